"""
Tests for vehicle motion, stop decisions and turn resolution.

Verifies:
  - Vehicles advance at constant speed along their heading
  - A red light holds a vehicle inside the stop zone, and only there
  - A vehicle keeps its distance to the one ahead in its lane
  - Self-exclusion in the collision scan is by snapshot index
  - Turns fire exactly once and snap into the outgoing lane
"""

import pytest

from traffic_sim.config import Direction, Geometry, Route, VehicleSpec
from traffic_sim.models.signal import TrafficLight, TrafficLightState
from traffic_sim.models.vehicle import TrafficSnapshot, Vehicle


@pytest.fixture
def geometry() -> Geometry:
    return Geometry()


@pytest.fixture
def spec() -> VehicleSpec:
    return VehicleSpec()


def make_lights(green: tuple[Direction, ...]) -> dict[Direction, TrafficLight]:
    return {
        d: TrafficLight(
            direction=d,
            state=TrafficLightState.GREEN if d in green else TrafficLightState.RED,
        )
        for d in Direction
    }


NS_GREEN = make_lights((Direction.NORTH, Direction.SOUTH))
EW_GREEN = make_lights((Direction.EAST, Direction.WEST))


def make_vehicle(
    geometry: Geometry,
    spec: VehicleSpec,
    x: float,
    y: float,
    direction: Direction,
    route: Route = Route.STRAIGHT,
) -> Vehicle:
    return Vehicle(x=x, y=y, direction=direction, route=route, spec=spec, geometry=geometry)


def step(vehicles: list[Vehicle], lights: dict[Direction, TrafficLight]) -> None:
    snapshot = TrafficSnapshot.capture(vehicles)
    for i, v in enumerate(vehicles):
        v.update(lights, snapshot, i)


class TestMotion:
    @pytest.mark.parametrize(
        "direction, expected",
        [
            (Direction.NORTH, (375.0, 698.0)),
            (Direction.SOUTH, (375.0, 702.0)),
            (Direction.EAST, (377.0, 700.0)),
            (Direction.WEST, (373.0, 700.0)),
        ],
    )
    def test_moves_one_speed_step_along_heading(
        self, geometry: Geometry, spec: VehicleSpec, direction: Direction, expected: tuple
    ) -> None:
        v = make_vehicle(geometry, spec, 375.0, 700.0, direction)
        step([v], make_lights(tuple(Direction)))
        assert v.position == pytest.approx(expected)
        assert v.stopped is False

    def test_entry_positions(self, geometry: Geometry, spec: VehicleSpec) -> None:
        north = Vehicle.at_entry(Direction.NORTH, Route.LEFT, spec, geometry)
        west = Vehicle.at_entry(Direction.WEST, Route.LEFT, spec, geometry)
        assert north.position == (375.0, 800.0)
        assert west.position == (800.0, 375.0)
        assert north.has_passed_intersection is False


class TestStopForLight:
    def test_red_light_inside_stop_zone_holds_vehicle(
        self, geometry: Geometry, spec: VehicleSpec
    ) -> None:
        # East-bound, 30px before the centre, E/W is red
        v = make_vehicle(geometry, spec, 370.0, 425.0, Direction.EAST)
        for _ in range(10):
            step([v], NS_GREEN)
        assert v.x == 370.0
        assert v.stopped is True

    def test_red_light_outside_stop_zone_does_not_hold(
        self, geometry: Geometry, spec: VehicleSpec
    ) -> None:
        # Exactly safe_distance away: the open interval excludes it
        v = make_vehicle(geometry, spec, 360.0, 425.0, Direction.EAST)
        step([v], NS_GREEN)
        assert v.x == 362.0
        step([v], NS_GREEN)
        assert v.x == 362.0

    def test_green_light_lets_vehicle_through(self, geometry: Geometry, spec: VehicleSpec) -> None:
        v = make_vehicle(geometry, spec, 370.0, 425.0, Direction.EAST)
        step([v], EW_GREEN)
        assert v.x == 372.0

    def test_vehicle_past_stop_line_ignores_red(self, geometry: Geometry, spec: VehicleSpec) -> None:
        v = make_vehicle(geometry, spec, 410.0, 425.0, Direction.EAST)
        v.has_passed_intersection = True
        step([v], NS_GREEN)
        assert v.x == 412.0

    def test_missing_light_never_stops(self, geometry: Geometry, spec: VehicleSpec) -> None:
        v = make_vehicle(geometry, spec, 370.0, 425.0, Direction.EAST)
        v.update({}, TrafficSnapshot.capture([v]), 0)
        assert v.x == 372.0

    def test_released_when_light_turns_green(self, geometry: Geometry, spec: VehicleSpec) -> None:
        v = make_vehicle(geometry, spec, 375.0, 430.0, Direction.NORTH)
        step([v], EW_GREEN)
        assert v.y == 430.0
        step([v], NS_GREEN)
        assert v.y == 428.0


class TestStopForVehicle:
    def test_follower_stops_within_safe_distance(
        self, geometry: Geometry, spec: VehicleSpec
    ) -> None:
        leader = make_vehicle(geometry, spec, 375.0, 600.0, Direction.NORTH)
        follower = make_vehicle(geometry, spec, 375.0, 630.0, Direction.NORTH)
        snapshot = TrafficSnapshot.capture([leader, follower])
        assert follower.should_stop_for_vehicle(snapshot, 1) is True
        assert leader.should_stop_for_vehicle(snapshot, 0) is False

    def test_follower_moves_when_gap_is_large(self, geometry: Geometry, spec: VehicleSpec) -> None:
        leader = make_vehicle(geometry, spec, 375.0, 600.0, Direction.NORTH)
        follower = make_vehicle(geometry, spec, 375.0, 645.0, Direction.NORTH)
        snapshot = TrafficSnapshot.capture([leader, follower])
        assert follower.should_stop_for_vehicle(snapshot, 1) is False

    def test_other_lane_is_ignored(self, geometry: Geometry, spec: VehicleSpec) -> None:
        leader = make_vehicle(geometry, spec, 425.0, 600.0, Direction.NORTH)
        follower = make_vehicle(geometry, spec, 375.0, 620.0, Direction.NORTH)
        snapshot = TrafficSnapshot.capture([leader, follower])
        assert follower.should_stop_for_vehicle(snapshot, 1) is False

    def test_other_direction_is_ignored(self, geometry: Geometry, spec: VehicleSpec) -> None:
        oncoming = make_vehicle(geometry, spec, 375.0, 600.0, Direction.SOUTH)
        v = make_vehicle(geometry, spec, 375.0, 620.0, Direction.NORTH)
        snapshot = TrafficSnapshot.capture([oncoming, v])
        assert v.should_stop_for_vehicle(snapshot, 1) is False

    def test_vehicle_behind_is_ignored(self, geometry: Geometry, spec: VehicleSpec) -> None:
        behind = make_vehicle(geometry, spec, 375.0, 620.0, Direction.NORTH)
        v = make_vehicle(geometry, spec, 375.0, 600.0, Direction.NORTH)
        snapshot = TrafficSnapshot.capture([behind, v])
        assert v.should_stop_for_vehicle(snapshot, 1) is False

    def test_self_is_excluded_by_index(self, geometry: Geometry, spec: VehicleSpec) -> None:
        """Excluding the row of the vehicle ahead hides it, whatever the values."""
        leader = make_vehicle(geometry, spec, 375.0, 600.0, Direction.NORTH)
        follower = make_vehicle(geometry, spec, 375.0, 630.0, Direction.NORTH)
        snapshot = TrafficSnapshot.capture([leader, follower])
        assert follower.should_stop_for_vehicle(snapshot, 0) is False

    def test_identical_twins_do_not_block_each_other(
        self, geometry: Geometry, spec: VehicleSpec
    ) -> None:
        a = make_vehicle(geometry, spec, 375.0, 600.0, Direction.NORTH)
        b = make_vehicle(geometry, spec, 375.0, 600.0, Direction.NORTH)
        assert a == b and a is not b
        step([a, b], NS_GREEN)
        assert a.y == 598.0 and b.y == 598.0

    def test_update_order_does_not_change_outcome(
        self, geometry: Geometry, spec: VehicleSpec
    ) -> None:
        def run(order: str) -> tuple[float, float]:
            follower = make_vehicle(geometry, spec, 300.0, 425.0, Direction.EAST)
            leader = make_vehicle(geometry, spec, 338.0, 425.0, Direction.EAST)
            vehicles = [follower, leader] if order == "fl" else [leader, follower]
            step(vehicles, EW_GREEN)
            return follower.x, leader.x

        assert run("fl") == run("lf") == (300.0, 340.0)

    def test_queue_behind_red_light_keeps_its_spacing(
        self, geometry: Geometry, spec: VehicleSpec
    ) -> None:
        """A stationary leader is never approached closer than one step inside the safe distance."""
        leader = make_vehicle(geometry, spec, 370.0, 425.0, Direction.EAST)
        follower = make_vehicle(geometry, spec, 250.0, 425.0, Direction.EAST)
        for _ in range(200):
            step([leader, follower], NS_GREEN)
            gap = leader.x - follower.x
            # The stop rule is gap < safe_distance on the pre-move snapshot, so a
            # follower seeing exactly safe_distance still takes one more step
            assert gap >= spec.safe_distance - spec.speed
        assert leader.x == 370.0
        assert follower.stopped is True


class TestTurnResolution:
    def test_left_from_north_turns_west_and_snaps(
        self, geometry: Geometry, spec: VehicleSpec
    ) -> None:
        v = make_vehicle(geometry, spec, 375.0, 401.0, Direction.NORTH, Route.LEFT)
        step([v], NS_GREEN)
        assert v.has_passed_intersection is True
        assert v.direction == Direction.WEST
        assert v.y == geometry.center_y - geometry.lane_offset

    def test_straight_keeps_direction(self, geometry: Geometry, spec: VehicleSpec) -> None:
        v = make_vehicle(geometry, spec, 375.0, 401.0, Direction.NORTH, Route.STRAIGHT)
        step([v], NS_GREEN)
        assert v.has_passed_intersection is True
        assert v.direction == Direction.NORTH
        assert v.position == (375.0, 399.0)

    @pytest.mark.parametrize(
        "start, direction, route, new_direction, snapped",
        [
            ((375.0, 401.0), Direction.NORTH, Route.RIGHT, Direction.EAST, ("y", 425.0)),
            ((425.0, 399.0), Direction.SOUTH, Route.LEFT, Direction.EAST, ("y", 425.0)),
            ((425.0, 399.0), Direction.SOUTH, Route.RIGHT, Direction.WEST, ("y", 375.0)),
            ((399.0, 425.0), Direction.EAST, Route.LEFT, Direction.NORTH, ("x", 375.0)),
            ((399.0, 425.0), Direction.EAST, Route.RIGHT, Direction.SOUTH, ("x", 425.0)),
            ((401.0, 375.0), Direction.WEST, Route.LEFT, Direction.SOUTH, ("x", 425.0)),
            ((401.0, 375.0), Direction.WEST, Route.RIGHT, Direction.NORTH, ("x", 375.0)),
        ],
    )
    def test_turn_table(
        self, geometry: Geometry, spec: VehicleSpec,
        start, direction, route, new_direction, snapped,
    ) -> None:
        v = make_vehicle(geometry, spec, start[0], start[1], direction, route)
        step([v], make_lights(tuple(Direction)))
        assert v.direction == new_direction
        axis, value = snapped
        assert getattr(v, axis) == value

    def test_turn_fires_only_once(self, geometry: Geometry, spec: VehicleSpec) -> None:
        # After turning east at y=425 the vehicle is again "before" x=400
        v = make_vehicle(geometry, spec, 375.0, 401.0, Direction.NORTH, Route.RIGHT)
        for _ in range(50):
            step([v], make_lights(tuple(Direction)))
            assert v.has_passed_intersection is True
        assert v.direction == Direction.EAST
        assert v.y == 425.0
        assert v.x == 375.0 + 49 * spec.speed

    def test_no_turn_before_crossing(self, geometry: Geometry, spec: VehicleSpec) -> None:
        v = make_vehicle(geometry, spec, 375.0, 403.0, Direction.NORTH, Route.LEFT)
        step([v], NS_GREEN)
        assert v.y == 401.0
        assert v.direction == Direction.NORTH
        assert v.has_passed_intersection is False


class TestOutOfBounds:
    @pytest.mark.parametrize(
        "x, y, expected",
        [
            (400.0, 400.0, False),
            (-50.0, 400.0, False),
            (-50.5, 400.0, True),
            (851.0, 400.0, True),
            (400.0, -51.0, True),
            (400.0, 850.0, False),
            (400.0, 851.0, True),
        ],
    )
    def test_margin(self, geometry: Geometry, spec: VehicleSpec, x, y, expected) -> None:
        v = make_vehicle(geometry, spec, x, y, Direction.NORTH)
        assert v.is_out_of_bounds() is expected


class TestGeometry:
    def test_lane_offset_is_half_a_lane(self, geometry: Geometry) -> None:
        assert geometry.lane_width == 50.0
        assert geometry.lane_offset == 25.0

    def test_lateral_footprint_follows_axis(self, spec: VehicleSpec) -> None:
        assert spec.lateral_footprint(Direction.NORTH) == spec.width
        assert spec.lateral_footprint(Direction.WEST) == spec.height

    @pytest.mark.parametrize(
        "kwargs",
        [{"width": 0.0}, {"road_width": 900.0}, {"road_width": -1.0}],
    )
    def test_invalid_geometry_rejected(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            Geometry(**kwargs)

    def test_invalid_vehicle_spec_rejected(self) -> None:
        with pytest.raises(ValueError):
            VehicleSpec(speed=0.0)
