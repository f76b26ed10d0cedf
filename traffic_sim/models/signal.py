"""
Two-phase signal state machine for a four-way intersection.

The state machine alternates between exactly two phases:
  NS_GREEN (North/South green, East/West red)
  EW_GREEN (North/South red, East/West green)

Transitions are unconditional and periodic: every `light_cycle_s` both
axis pairs swap together. There is no yellow, no all-red and no
demand-based logic.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable

from traffic_sim.config import Direction, Geometry, TimingConstraints

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Signal display states
# ---------------------------------------------------------------------------

class TrafficLightState(Enum):
    """Binary display state for a single signal head."""
    RED = auto()
    GREEN = auto()


class Phase(Enum):
    """Which axis pair currently holds the green."""
    NS_GREEN = auto()
    EW_GREEN = auto()


AXIS_PAIRS: dict[Phase, tuple[Direction, Direction]] = {
    Phase.NS_GREEN: (Direction.NORTH, Direction.SOUTH),
    Phase.EW_GREEN: (Direction.EAST, Direction.WEST),
}


# ---------------------------------------------------------------------------
# Traffic light — display state for one direction
# ---------------------------------------------------------------------------

@dataclass
class TrafficLight:
    """
    Signal head bound to one travel direction.

    Passive value holder: only SignalController writes `state`.
    `position` is the top-left corner used when drawing and has no
    effect on the simulation.
    """
    direction: Direction
    position: tuple[float, float] = (0.0, 0.0)
    state: TrafficLightState = TrafficLightState.RED

    @property
    def is_red(self) -> bool:
        return self.state is TrafficLightState.RED


def default_light_positions(geometry: Geometry) -> dict[Direction, tuple[float, float]]:
    """Signal head placement beside each approach's stop line."""
    cx, cy = geometry.center
    half_road = geometry.road_width / 2.0
    size = geometry.traffic_light_size
    return {
        Direction.NORTH: (cx - half_road - size, cy + half_road),
        Direction.SOUTH: (cx + half_road, cy - half_road - size),
        Direction.EAST: (cx - half_road - size, cy - half_road - size),
        Direction.WEST: (cx + half_road, cy + half_road),
    }


# ---------------------------------------------------------------------------
# Signal state machine
# ---------------------------------------------------------------------------

@dataclass
class SignalController:
    """
    Owns the four traffic lights and the phase clock.

    External code never sets light states directly — it can only call
    tick() to advance time. The only other writer is resync(), used by
    the conflict monitor to restore the complementary invariant.
    """

    timing: TimingConstraints
    geometry: Geometry = field(default_factory=Geometry)

    # --- runtime state ---
    current_phase: Phase = Phase.NS_GREEN
    last_phase_change: float = field(default_factory=time.monotonic)
    phase_changes: int = 0

    # One light per direction, created once and never replaced
    lights: dict[Direction, TrafficLight] = field(default_factory=dict)

    # Callback
    on_phase_change: Callable[[Phase], None] | None = None

    def __post_init__(self) -> None:
        positions = default_light_positions(self.geometry)
        for d in Direction:
            self.lights[d] = TrafficLight(direction=d, position=positions[d])
        self._apply_signals_for_current_phase()

    def phase_remaining_s(self, now: float | None = None) -> float:
        if now is None:
            now = time.monotonic()
        return max(0.0, self.timing.light_cycle_s - (now - self.last_phase_change))

    # --- main tick ---

    def tick(self, now: float | None = None) -> bool:
        """
        Flip the phase if the cycle period has elapsed.

        Returns True when a flip happened on this tick.
        """
        if now is None:
            now = time.monotonic()

        if now - self.last_phase_change >= self.timing.light_cycle_s:
            self._flip(now)
            return True
        return False

    def state_of(self, direction: Direction) -> TrafficLightState:
        return self.lights[direction].state

    def resync(self) -> None:
        """Force East/West to the opposite of North/South, keeping the N/S display."""
        ns_state = self.lights[Direction.NORTH].state
        self.current_phase = (
            Phase.NS_GREEN if ns_state is TrafficLightState.GREEN else Phase.EW_GREEN
        )
        logger.warning("Signal resync: phase forced to %s", self.current_phase.name)
        self._apply_signals_for_current_phase()

    # --- internal state transitions ---

    def _flip(self, now: float) -> None:
        self.current_phase = (
            Phase.EW_GREEN if self.current_phase is Phase.NS_GREEN else Phase.NS_GREEN
        )
        self.last_phase_change = now
        self.phase_changes += 1
        self._apply_signals_for_current_phase()
        logger.info("Phase change #%d: %s", self.phase_changes, self.current_phase.name)
        if self.on_phase_change:
            self.on_phase_change(self.current_phase)

    def _apply_signals_for_current_phase(self) -> None:
        """Set all four heads from the current phase in one pass."""
        green_pair = AXIS_PAIRS[self.current_phase]
        for direction, light in self.lights.items():
            light.state = (
                TrafficLightState.GREEN if direction in green_pair else TrafficLightState.RED
            )

    # --- display helpers ---

    def get_display_state(self) -> dict[str, str]:
        """Return human-readable signal states for all directions."""
        return {d.value: light.state.name for d, light in self.lights.items()}

    def get_status_summary(self, now: float | None = None) -> dict:
        """Summary for dashboard / logging."""
        return {
            "phase": self.current_phase.name,
            "phase_changes": self.phase_changes,
            "phase_remaining_s": round(self.phase_remaining_s(now), 1),
            "signals": self.get_display_state(),
        }
