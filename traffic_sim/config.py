"""
Central configuration for the intersection traffic simulation.

All timing values are in seconds unless noted otherwise.
All distances are in playfield pixels; y grows downward (screen coordinates).
"""

from dataclasses import dataclass, field
from enum import Enum


# ---------------------------------------------------------------------------
# Direction / route enums
# ---------------------------------------------------------------------------

class Direction(Enum):
    """Cardinal travel directions. A vehicle's direction is where it is heading."""
    NORTH = "N"
    SOUTH = "S"
    EAST = "E"
    WEST = "W"

    @property
    def vector(self) -> tuple[float, float]:
        """Unit travel vector in screen coordinates."""
        return _DIRECTION_VECTORS[self]

    @property
    def is_vertical(self) -> bool:
        return self in (Direction.NORTH, Direction.SOUTH)


_DIRECTION_VECTORS: dict[Direction, tuple[float, float]] = {
    Direction.NORTH: (0.0, -1.0),
    Direction.SOUTH: (0.0, 1.0),
    Direction.EAST: (1.0, 0.0),
    Direction.WEST: (-1.0, 0.0),
}


class Route(Enum):
    """Turn a vehicle executes when it reaches the intersection centre."""
    LEFT = "left"
    STRAIGHT = "straight"
    RIGHT = "right"


# ---------------------------------------------------------------------------
# Playfield geometry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Geometry:
    """Size of the playfield and the two crossing roads."""

    width: float = 800.0
    height: float = 800.0
    road_width: float = 100.0
    traffic_light_size: float = 20.0

    # Vehicles further than this outside the playfield are removed
    out_of_bounds_margin: float = 50.0

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Playfield must be positive, got {self.width}x{self.height}")
        if self.road_width <= 0 or self.road_width >= min(self.width, self.height):
            raise ValueError(f"Invalid road width: {self.road_width}")

    @property
    def lane_width(self) -> float:
        """One lane per travel direction, so each road carries two lanes."""
        return self.road_width / 2.0

    @property
    def lane_offset(self) -> float:
        """Distance from the road centreline to a lane centreline."""
        return self.lane_width / 2.0

    @property
    def center_x(self) -> float:
        return self.width / 2.0

    @property
    def center_y(self) -> float:
        return self.height / 2.0

    @property
    def center(self) -> tuple[float, float]:
        return (self.center_x, self.center_y)

    def entry_position(self, direction: Direction) -> tuple[float, float]:
        """Spawn point for a vehicle heading in `direction`: playfield edge, mid-lane."""
        cx, cy = self.center
        off = self.lane_offset
        if direction == Direction.NORTH:
            return (cx - off, self.height)
        if direction == Direction.SOUTH:
            return (cx + off, 0.0)
        if direction == Direction.EAST:
            return (0.0, cy + off)
        return (self.width, cy - off)


# ---------------------------------------------------------------------------
# Vehicle parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VehicleSpec:
    """Size and motion parameters shared by every vehicle."""

    width: float = 30.0
    height: float = 20.0
    speed: float = 2.0            # pixels per tick, constant
    safe_distance: float = 40.0   # gap kept to the stop line / vehicle ahead

    def __post_init__(self) -> None:
        if self.speed <= 0:
            raise ValueError(f"Vehicle speed must be positive, got {self.speed}")
        if self.safe_distance <= 0:
            raise ValueError(f"Safe distance must be positive, got {self.safe_distance}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Vehicle size must be positive, got {self.width}x{self.height}")

    def lateral_footprint(self, direction: Direction) -> float:
        """Cross-axis extent used to decide whether two vehicles share a lane."""
        return self.width if direction.is_vertical else self.height


# ---------------------------------------------------------------------------
# Timers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimingConstraints:
    """Fixed timers of the simulation. Both are plain elapsed-time checks."""

    light_cycle_s: float = 5.0      # Time between phase flips
    spawn_cooldown_s: float = 1.0   # Minimum gap between spawns per direction

    def __post_init__(self) -> None:
        if self.light_cycle_s <= 0:
            raise ValueError(f"Light cycle must be positive, got {self.light_cycle_s}")
        if self.spawn_cooldown_s < 0:
            raise ValueError(f"Spawn cooldown cannot be negative, got {self.spawn_cooldown_s}")


# ---------------------------------------------------------------------------
# Headless traffic generator
# ---------------------------------------------------------------------------

@dataclass
class ArrivalConfig:
    """Random spawn requests issued by the driver when no one is at the keyboard."""
    enabled: bool = True
    rate_per_s: float = 0.4           # Spawn requests per second, per approach
    random_seed: int | None = None


# ---------------------------------------------------------------------------
# Simulation-level config
# ---------------------------------------------------------------------------

@dataclass
class SimulationConfig:
    """Top-level configuration for one simulation run."""
    geometry: Geometry = field(default_factory=Geometry)
    vehicle: VehicleSpec = field(default_factory=VehicleSpec)
    timing: TimingConstraints = field(default_factory=TimingConstraints)
    arrivals: ArrivalConfig = field(default_factory=ArrivalConfig)

    # Seeds route selection; None draws from system entropy
    random_seed: int | None = None

    # Tick rate at 1.0x speed
    tick_hz: float = 60.0

    # Speed multiplier controls
    speed_multiplier: float = 1.0
    min_speed_multiplier: float = 0.25
    max_speed_multiplier: float = 5.0
    speed_step: float = 1.5

    # Dashboard
    dashboard_enabled: bool = True

    def __post_init__(self) -> None:
        if self.tick_hz <= 0:
            raise ValueError(f"tick_hz must be positive, got {self.tick_hz}")
        if not 0 < self.min_speed_multiplier <= self.max_speed_multiplier:
            raise ValueError(
                f"Invalid speed bounds: {self.min_speed_multiplier}–{self.max_speed_multiplier}"
            )
        if self.speed_step <= 1.0:
            raise ValueError(f"speed_step must be greater than 1, got {self.speed_step}")
        self.speed_multiplier = self.clamp_speed(self.speed_multiplier)

    def clamp_speed(self, multiplier: float) -> float:
        return max(self.min_speed_multiplier, min(self.max_speed_multiplier, multiplier))

    @property
    def tick_interval_s(self) -> float:
        return 1.0 / self.tick_hz
