"""
Vehicle model: constant-speed motion, stop decisions and turn resolution.

A vehicle never holds a reference to the intersection. Each tick it is
handed the light set and a TrafficSnapshot taken before anyone moved,
so the order in which vehicles are updated cannot change the outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from traffic_sim.config import Direction, Geometry, Route, VehicleSpec
from traffic_sim.models.signal import TrafficLight

logger = logging.getLogger(__name__)


# (from, route) -> (new direction, sign of the lane offset from centre).
# STRAIGHT is absent: the direction is kept and nothing is snapped.
TURN_TABLE: dict[tuple[Direction, Route], tuple[Direction, int]] = {
    (Direction.NORTH, Route.LEFT): (Direction.WEST, -1),
    (Direction.NORTH, Route.RIGHT): (Direction.EAST, +1),
    (Direction.SOUTH, Route.LEFT): (Direction.EAST, +1),
    (Direction.SOUTH, Route.RIGHT): (Direction.WEST, -1),
    (Direction.EAST, Route.LEFT): (Direction.NORTH, -1),
    (Direction.EAST, Route.RIGHT): (Direction.SOUTH, +1),
    (Direction.WEST, Route.LEFT): (Direction.SOUTH, +1),
    (Direction.WEST, Route.RIGHT): (Direction.NORTH, -1),
}


# ---------------------------------------------------------------------------
# Snapshot — read-only view of every vehicle at the start of a tick
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrafficSnapshot:
    """
    Positions and headings of all vehicles, copied before any of them move.

    Row `i` of each array describes the vehicle at index `i` of the
    intersection's vehicle list when the snapshot was taken.
    """
    positions: np.ndarray   # shape (n, 2), float
    headings: np.ndarray    # shape (n, 2), unit travel vectors

    @classmethod
    def capture(cls, vehicles: Sequence[Vehicle]) -> TrafficSnapshot:
        if not vehicles:
            return cls(positions=np.empty((0, 2)), headings=np.empty((0, 2)))
        positions = np.array([(v.x, v.y) for v in vehicles], dtype=float)
        headings = np.array([v.direction.vector for v in vehicles], dtype=float)
        positions.setflags(write=False)
        headings.setflags(write=False)
        return cls(positions=positions, headings=headings)

    def __len__(self) -> int:
        return len(self.positions)


# ---------------------------------------------------------------------------
# Vehicle
# ---------------------------------------------------------------------------

@dataclass
class Vehicle:
    """A single car travelling through the intersection."""

    x: float
    y: float
    direction: Direction
    route: Route
    spec: VehicleSpec
    geometry: Geometry
    vehicle_id: int = 0
    has_passed_intersection: bool = False

    # --- live state ---
    stopped: bool = False

    @classmethod
    def at_entry(
        cls,
        direction: Direction,
        route: Route,
        spec: VehicleSpec,
        geometry: Geometry,
        vehicle_id: int = 0,
    ) -> Vehicle:
        """Factory: place a new vehicle at the entry point for `direction`."""
        x, y = geometry.entry_position(direction)
        return cls(
            x=x, y=y, direction=direction, route=route,
            spec=spec, geometry=geometry, vehicle_id=vehicle_id,
        )

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)

    # --- per-tick update ---

    def update(
        self,
        lights: Mapping[Direction, TrafficLight],
        snapshot: TrafficSnapshot,
        index: int,
    ) -> None:
        """
        Advance one tick unless a red light or the vehicle ahead says stop.

        `index` is this vehicle's row in `snapshot`; it is how the vehicle
        excludes itself from the collision scan.
        """
        if self.should_stop_at_light(lights) or self.should_stop_for_vehicle(snapshot, index):
            self.stopped = True
            return

        self.stopped = False
        dx, dy = self.direction.vector
        self.x += dx * self.spec.speed
        self.y += dy * self.spec.speed

        if not self.has_passed_intersection and self._has_crossed_center():
            self.has_passed_intersection = True
            self.resolve_turn()

    def should_stop_at_light(self, lights: Mapping[Direction, TrafficLight]) -> bool:
        """True while approaching a red light within the safe distance of the centre."""
        if self.has_passed_intersection:
            return False
        light = lights.get(self.direction)
        if light is None or not light.is_red:
            return False
        distance = self.distance_to_center()
        return 0.0 < distance < self.spec.safe_distance

    def should_stop_for_vehicle(self, snapshot: TrafficSnapshot, index: int) -> bool:
        """True if a same-lane vehicle ahead is closer than the safe distance."""
        if len(snapshot) == 0:
            return False

        heading = np.array(self.direction.vector)
        # Cross axis: x for vertical travel, y for horizontal travel
        cross = np.abs(heading[::-1])

        delta = snapshot.positions - np.array([self.x, self.y])
        gap = delta @ heading
        lateral = np.abs(delta @ cross)

        blocking = (
            np.all(snapshot.headings == heading, axis=1)
            & (lateral < self.spec.lateral_footprint(self.direction))
            & (gap > 0.0)
            & (gap < self.spec.safe_distance)
        )
        if 0 <= index < len(blocking):
            blocking[index] = False
        return bool(blocking.any())

    def distance_to_center(self) -> float:
        """Along-axis distance to the intersection centre; positive while approaching."""
        dx, dy = self.direction.vector
        cx, cy = self.geometry.center
        return (cx - self.x) * dx + (cy - self.y) * dy

    def _has_crossed_center(self) -> bool:
        return self.distance_to_center() < 0.0

    # --- turn resolution ---

    def resolve_turn(self) -> None:
        """Turn in place at the centre and snap into the outgoing lane."""
        turn = TURN_TABLE.get((self.direction, self.route))
        if turn is None:
            return

        new_direction, sign = turn
        offset = sign * self.geometry.lane_offset
        if new_direction.is_vertical:
            self.x = self.geometry.center_x + offset
        else:
            self.y = self.geometry.center_y + offset

        logger.debug(
            "Vehicle #%d turned %s: %s -> %s",
            self.vehicle_id, self.route.value, self.direction.value, new_direction.value,
        )
        self.direction = new_direction

    # --- lifecycle ---

    def is_out_of_bounds(self) -> bool:
        g = self.geometry
        m = g.out_of_bounds_margin
        return (
            self.x < -m
            or self.x > g.width + m
            or self.y < -m
            or self.y > g.height + m
        )

    def as_dict(self) -> dict:
        return {
            "id": self.vehicle_id,
            "x": round(self.x, 1),
            "y": round(self.y, 1),
            "direction": self.direction.value,
            "route": self.route.value,
            "passed": self.has_passed_intersection,
            "stopped": self.stopped,
        }
