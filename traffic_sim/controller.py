"""
Simulation driver — owns the intersection and threads it through ticks.

This is the "main thread" of the simulation. It runs at a configurable
tick rate scaled by the speed multiplier, and turns user commands
(spawn, pause, speed, debug, quit) into calls on the intersection
between ticks.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any

from traffic_sim.arrivals.poisson import PoissonArrivals
from traffic_sim.config import Direction, SimulationConfig
from traffic_sim.models.intersection import Intersection
from traffic_sim.models.vehicle import Vehicle
from traffic_sim.safety.conflict import ConflictMonitor

logger = logging.getLogger(__name__)


@dataclass
class SimulationController:
    """
    Top-level driver for a single intersection simulation.

    Lifecycle:
      1. Construct with a SimulationConfig
      2. Call setup() to build the intersection and subsystems
      3. Call run() to start the main loop (blocking)
         OR call tick() manually for step-by-step control
      4. Call teardown() on shutdown
    """

    config: SimulationConfig = field(default_factory=SimulationConfig)

    # --- subsystems (initialized in setup()) ---
    intersection: Intersection = field(init=False)
    conflict_monitor: ConflictMonitor = field(init=False)
    arrivals: PoissonArrivals = field(init=False)

    # --- runtime state ---
    is_running: bool = False
    is_paused: bool = False
    debug_mode: bool = False
    confirm_exit: bool = False
    speed_multiplier: float = 1.0
    tick_count: int = 0

    # Dashboard callback (set by dashboard module)
    on_tick: list[Any] = field(default_factory=list)

    _rng: random.Random = field(init=False, repr=False)

    def setup(self, now: float | None = None) -> None:
        """Initialize all subsystems."""
        logger.info(
            "Setting up simulation (%.0fx%.0f playfield, road %.0f)",
            self.config.geometry.width, self.config.geometry.height,
            self.config.geometry.road_width,
        )

        self.intersection = Intersection.create(self.config, now=now)
        self.conflict_monitor = ConflictMonitor(intersection=self.intersection)
        self.arrivals = PoissonArrivals(config=self.config.arrivals)
        self.speed_multiplier = self.config.speed_multiplier
        self._rng = random.Random(self.config.random_seed)

        logger.info("Simulation setup complete")

    def teardown(self) -> None:
        """Shut down all subsystems."""
        self.is_running = False
        logger.info(
            "Simulation torn down after %d ticks (%s)",
            self.tick_count,
            self.intersection.get_status_summary() if hasattr(self, "intersection") else "not set up",
        )

    # --- main loop ---

    @property
    def tick_interval_s(self) -> float:
        return 1.0 / (self.config.tick_hz * self.speed_multiplier)

    def run(self, max_ticks: int | None = None) -> None:
        """
        Run the main loop.

        Blocks until is_running is set to False or max_ticks is reached.
        Uses monotonic timing to avoid drift; the interval is re-read
        every tick so speed changes apply immediately.
        """
        self.is_running = True
        next_tick = time.monotonic()

        logger.info("Simulation running at %.0f Hz", self.config.tick_hz)

        try:
            while self.is_running:
                now = time.monotonic()

                if now >= next_tick:
                    self.tick(now)
                    next_tick += self.tick_interval_s
                    if next_tick < now:
                        # Fell behind (e.g. after a slow frame); don't try to catch up
                        next_tick = now + self.tick_interval_s

                    if max_ticks is not None and self.tick_count >= max_ticks:
                        logger.info("Reached max_ticks (%d), stopping", max_ticks)
                        break

                sleep_time = next_tick - time.monotonic()
                if sleep_time > 0:
                    time.sleep(sleep_time * 0.9)

        except KeyboardInterrupt:
            logger.info("Simulation interrupted by user")
        finally:
            self.is_running = False

    def tick(self, now: float | None = None) -> None:
        """
        Execute one driver tick.

          1. Issue random arrivals (headless traffic); held while paused
          2. Advance the intersection unless paused
          3. Run the conflict monitor
          4. Notify listeners (dashboard, etc.)
        """
        if now is None:
            now = time.monotonic()

        self.tick_count += 1

        if not self.is_paused:
            self.arrivals.tick(self.intersection, now)
            self.intersection.update(now)
            self.conflict_monitor.check()
        else:
            self.arrivals.hold(now)

        if self.debug_mode and self.tick_count % max(1, int(self.config.tick_hz)) == 0:
            logger.debug("Status: %s", self.intersection.get_status_summary(now))

        for callback in self.on_tick:
            callback(self)

    # --- commands (called between ticks) ---

    def spawn(self, direction: Direction, now: float | None = None) -> Vehicle | None:
        """Request a vehicle heading in `direction`. May be dropped by admission control."""
        self.confirm_exit = False
        return self.intersection.spawn_vehicle(direction, now)

    def spawn_random(self, now: float | None = None) -> Vehicle | None:
        """Request a vehicle in a uniformly random direction."""
        return self.spawn(self._rng.choice(list(Direction)), now)

    def toggle_pause(self) -> None:
        self.confirm_exit = False
        self.is_paused = not self.is_paused
        logger.info("Simulation %s", "PAUSED" if self.is_paused else "RESUMED")

    def toggle_debug(self) -> None:
        self.confirm_exit = False
        self.debug_mode = not self.debug_mode
        logger.info("Debug mode %s", "ON" if self.debug_mode else "OFF")

    def speed_up(self) -> None:
        self._set_speed(self.speed_multiplier * self.config.speed_step)

    def slow_down(self) -> None:
        self._set_speed(self.speed_multiplier / self.config.speed_step)

    def _set_speed(self, multiplier: float) -> None:
        self.confirm_exit = False
        self.speed_multiplier = self.config.clamp_speed(multiplier)
        logger.info("Speed: %.1fx", self.speed_multiplier)

    def request_quit(self) -> bool:
        """
        Quit needs two consecutive requests; any other command in between
        resets the confirmation. Returns True when the loop will stop.
        """
        if self.confirm_exit:
            self.is_running = False
            return True
        self.confirm_exit = True
        logger.info("Press Escape again to exit")
        return False

    # --- status ---

    def get_full_status(self) -> dict:
        """Return complete system status for dashboard / logging."""
        return {
            "tick": self.tick_count,
            "paused": self.is_paused,
            "debug": self.debug_mode,
            "speed": round(self.speed_multiplier, 2),
            "intersection": self.intersection.get_status_summary(),
            "vehicles": [v.as_dict() for v in self.intersection.vehicles],
            "arrivals": self.arrivals.get_status(),
            "conflict_monitor": self.conflict_monitor.get_status(),
        }
