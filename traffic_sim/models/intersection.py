"""
The intersection: owns the signal controller and every living vehicle.

Drives the per-tick update (phase clock, snapshot, vehicle moves, pruning)
and decides whether spawn requests are admitted.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field

from traffic_sim.config import Direction, Route, SimulationConfig
from traffic_sim.models.signal import SignalController, TrafficLight, TrafficLightState
from traffic_sim.models.vehicle import TrafficSnapshot, Vehicle

logger = logging.getLogger(__name__)


@dataclass
class Intersection:
    """
    A single four-way intersection with one lane per travel direction.

    This is the central model that the controller, the conflict monitor
    and the dashboard all read from. Only the intersection itself
    mutates its vehicle list and lights.
    """

    config: SimulationConfig
    signal_controller: SignalController = field(init=False)
    vehicles: list[Vehicle] = field(default_factory=list)

    # Monotonic time of the last accepted spawn per direction; None = never
    last_spawn_time: dict[Direction, float | None] = field(default_factory=dict)

    # Seeded from config.random_seed unless one is passed in
    rng: random.Random | None = None

    # --- statistics ---
    spawned_total: int = 0
    exited_total: int = 0
    rejected_cooldown: int = 0
    rejected_blocked: int = 0
    tick_count: int = 0

    @classmethod
    def create(
        cls,
        config: SimulationConfig | None = None,
        now: float | None = None,
    ) -> Intersection:
        """Factory: build an intersection whose phase clock starts at `now`."""
        if config is None:
            config = SimulationConfig()
        if now is None:
            now = time.monotonic()

        intersection = cls(config=config)
        intersection.signal_controller.last_phase_change = now
        return intersection

    def __post_init__(self) -> None:
        self.signal_controller = SignalController(
            timing=self.config.timing,
            geometry=self.config.geometry,
        )
        for d in Direction:
            self.last_spawn_time.setdefault(d, None)
        if self.rng is None:
            self.rng = random.Random(self.config.random_seed)

    # --- convenience accessors ---

    @property
    def traffic_lights(self) -> dict[Direction, TrafficLight]:
        return self.signal_controller.lights

    @property
    def light_states(self) -> dict[Direction, TrafficLightState]:
        return {d: light.state for d, light in self.traffic_lights.items()}

    @property
    def last_phase_change(self) -> float:
        return self.signal_controller.last_phase_change

    def vehicles_heading(self, direction: Direction) -> list[Vehicle]:
        return [v for v in self.vehicles if v.direction == direction]

    def snapshot(self) -> TrafficSnapshot:
        return TrafficSnapshot.capture(self.vehicles)

    # --- main tick ---

    def update(self, now: float | None = None) -> None:
        """
        Advance the simulation by one tick.

          1. Flip the lights if the phase period has elapsed
          2. Snapshot every vehicle before anything moves
          3. Update each vehicle against the lights and the snapshot
          4. Drop vehicles that left the playfield
        """
        if now is None:
            now = time.monotonic()

        self.tick_count += 1
        self.signal_controller.tick(now)

        snapshot = self.snapshot()
        lights = self.traffic_lights
        for index, vehicle in enumerate(self.vehicles):
            vehicle.update(lights, snapshot, index)

        self._remove_out_of_bounds()

    def _remove_out_of_bounds(self) -> None:
        remaining: list[Vehicle] = []
        for vehicle in self.vehicles:
            if vehicle.is_out_of_bounds():
                self.exited_total += 1
                logger.debug(
                    "Vehicle #%d left the playfield heading %s",
                    vehicle.vehicle_id, vehicle.direction.value,
                )
            else:
                remaining.append(vehicle)
        self.vehicles = remaining

    # --- spawn admission ---

    def spawn_vehicle(self, direction: Direction, now: float | None = None) -> Vehicle | None:
        """
        Try to add a vehicle at the entry point for `direction`.

        Requests are dropped, not queued, when the direction is still in
        its cooldown window or its entry point is occupied. Returns the new
        vehicle, or None when the request was dropped.
        """
        if now is None:
            now = time.monotonic()

        last = self.last_spawn_time[direction]
        if last is not None and now - last < self.config.timing.spawn_cooldown_s:
            self.rejected_cooldown += 1
            logger.debug("Spawn %s rejected: cooldown (%.3fs since last)", direction.value, now - last)
            return None

        if self._entry_blocked(direction):
            self.rejected_blocked += 1
            logger.debug("Spawn %s rejected: entry point occupied", direction.value)
            return None

        route = self.rng.choice(list(Route))
        self.spawned_total += 1
        vehicle = Vehicle.at_entry(
            direction=direction,
            route=route,
            spec=self.config.vehicle,
            geometry=self.config.geometry,
            vehicle_id=self.spawned_total,
        )
        self.vehicles.append(vehicle)
        self.last_spawn_time[direction] = now

        logger.debug(
            "Spawned vehicle #%d heading %s (%s)",
            vehicle.vehicle_id, direction.value, route.value,
        )
        return vehicle

    def _entry_blocked(self, direction: Direction) -> bool:
        """True if a same-direction vehicle is still within the safe distance of the entry point."""
        ex, ey = self.config.geometry.entry_position(direction)
        dx, dy = direction.vector
        safe = self.config.vehicle.safe_distance
        for v in self.vehicles:
            if v.direction != direction:
                continue
            travelled = (v.x - ex) * dx + (v.y - ey) * dy
            if travelled < safe:
                return True
        return False

    # --- display helpers ---

    def get_status_summary(self, now: float | None = None) -> dict:
        """Summary for dashboard / logging."""
        return {
            "tick": self.tick_count,
            "vehicles": len(self.vehicles),
            "by_direction": {
                d.value: len(self.vehicles_heading(d)) for d in Direction
            },
            "stopped": sum(1 for v in self.vehicles if v.stopped),
            "spawned_total": self.spawned_total,
            "exited_total": self.exited_total,
            "rejected_cooldown": self.rejected_cooldown,
            "rejected_blocked": self.rejected_blocked,
            "signals": self.signal_controller.get_status_summary(now),
        }
