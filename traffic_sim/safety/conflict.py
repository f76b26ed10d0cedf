"""
Conflict monitor — independent safety watchdog.

Runs alongside the intersection and checks, every tick, that the light
display is complementary (N == S, E == W, N != E) and that no two vehicles
in the same lane have closed up to an overlap. A broken light invariant
is logged as critical and the signal controller is resynchronised.

The monitor only compares same-direction vehicles. Two perpendicular
streams are kept apart by the light alternation alone.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import numpy as np

from traffic_sim.config import Direction
from traffic_sim.models.intersection import Intersection

logger = logging.getLogger(__name__)


# Pairs of directions that must always show the same state
SAME_STATE_PAIRS: list[tuple[Direction, Direction]] = [
    (Direction.NORTH, Direction.SOUTH),
    (Direction.EAST, Direction.WEST),
]

# Pairs of directions that must always show different states
OPPOSED_PAIRS: list[tuple[Direction, Direction]] = [
    (Direction.NORTH, Direction.EAST),
    (Direction.SOUTH, Direction.WEST),
]


def light_invariant_holds(intersection: Intersection) -> bool:
    """True if the four lights form one of the two legal phases."""
    states = intersection.light_states
    for d1, d2 in SAME_STATE_PAIRS:
        if states[d1] != states[d2]:
            return False
    for d1, d2 in OPPOSED_PAIRS:
        if states[d1] == states[d2]:
            return False
    return True


def count_lane_overlaps(intersection: Intersection, min_gap: float) -> int:
    """Number of same-direction, same-lane vehicle pairs closer than `min_gap`."""
    snapshot = intersection.snapshot()
    n = len(snapshot)
    if n < 2:
        return 0

    overlaps = 0
    spec = intersection.config.vehicle
    for i in range(n):
        heading = snapshot.headings[i]
        cross = np.abs(heading[::-1])
        delta = snapshot.positions[i + 1:] - snapshot.positions[i]
        same_dir = np.all(snapshot.headings[i + 1:] == heading, axis=1)
        direction = intersection.vehicles[i].direction
        same_lane = np.abs(delta @ cross) < spec.lateral_footprint(direction)
        close = np.abs(delta @ heading) < min_gap
        overlaps += int(np.count_nonzero(same_dir & same_lane & close))
    return overlaps


@dataclass
class ConflictMonitor:
    """
    Watches the intersection and reacts if an illegal state is detected.

    This is intentionally independent of the SignalController — it reads
    only the published light states and vehicle positions.
    """

    intersection: Intersection
    fault_active: bool = False
    conflict_count: int = 0
    overlap_count: int = 0
    last_check_time: float = field(default_factory=time.monotonic)

    # Consecutive clean checks required to clear a fault
    clean_checks_to_clear: int = 50
    _consecutive_clean: int = 0

    def check(self) -> bool:
        """
        Run one check.

        Returns True if the intersection is healthy, False if the
        light invariant was broken.
        """
        self.last_check_time = time.monotonic()

        min_gap = self.intersection.config.vehicle.safe_distance / 2.0
        overlaps = count_lane_overlaps(self.intersection, min_gap)
        if overlaps:
            self.overlap_count += overlaps
            logger.debug("Conflict monitor: %d same-lane overlap(s) detected", overlaps)

        if not light_invariant_holds(self.intersection):
            self._on_conflict_detected()
            return False

        # No conflict
        if self.fault_active:
            self._consecutive_clean += 1
            if self._consecutive_clean >= self.clean_checks_to_clear:
                logger.info(
                    "Conflict monitor: %d consecutive clean checks — clearing fault",
                    self._consecutive_clean,
                )
                self.fault_active = False
                self._consecutive_clean = 0
        return True

    def _on_conflict_detected(self) -> None:
        """Handle a broken light invariant."""
        self.conflict_count += 1
        self._consecutive_clean = 0

        if not self.fault_active:
            self.fault_active = True
            logger.critical(
                "CONFLICT MONITOR FAULT: illegal light display %s — resynchronising (conflict #%d)",
                self.intersection.signal_controller.get_display_state(),
                self.conflict_count,
            )
        self.intersection.signal_controller.resync()

    def get_status(self) -> dict:
        return {
            "fault_active": self.fault_active,
            "conflict_count": self.conflict_count,
            "overlap_count": self.overlap_count,
        }
