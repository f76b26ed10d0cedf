"""
Random arrival generator for unattended (headless) runs.

Issues spawn requests per approach using a Poisson arrival process, so
the intersection sees traffic without anyone at the keyboard. Requests
still go through the intersection's normal admission control; the
generator never places vehicles itself.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import numpy as np

from traffic_sim.config import ArrivalConfig, Direction
from traffic_sim.models.intersection import Intersection

logger = logging.getLogger(__name__)


@dataclass
class PoissonArrivals:
    """
    Draws the number of arrivals per approach for each elapsed interval.

    Config:
      - rate_per_s   : mean spawn requests per second, per approach
      - random_seed  : seeds the numpy Generator for reproducible runs
    """

    config: ArrivalConfig = field(default_factory=ArrivalConfig)

    # --- runtime state ---
    last_time: float | None = None
    requested_total: int = 0
    admitted_total: int = 0
    _rng: np.random.Generator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.config.rate_per_s < 0:
            raise ValueError(f"Arrival rate cannot be negative, got {self.config.rate_per_s}")
        self._rng = np.random.default_rng(self.config.random_seed)
        logger.info("PoissonArrivals initialized (rate=%.2f/s per approach)", self.config.rate_per_s)

    def draw(self, elapsed_s: float) -> dict[Direction, int]:
        """Number of arrivals on each approach over `elapsed_s` seconds."""
        directions = list(Direction)
        if elapsed_s <= 0 or self.config.rate_per_s == 0:
            return {d: 0 for d in directions}
        counts = self._rng.poisson(self.config.rate_per_s * elapsed_s, size=len(directions))
        return {d: int(c) for d, c in zip(directions, counts)}

    def tick(self, intersection: Intersection, now: float | None = None) -> int:
        """
        Issue this interval's spawn requests. Returns how many were admitted.

        The first call only starts the clock.
        """
        if now is None:
            now = time.monotonic()
        if not self.config.enabled:
            return 0
        if self.last_time is None:
            self.last_time = now
            return 0

        elapsed = now - self.last_time
        self.last_time = now

        admitted = 0
        for direction, count in self.draw(elapsed).items():
            for _ in range(count):
                self.requested_total += 1
                if intersection.spawn_vehicle(direction, now) is not None:
                    admitted += 1
        self.admitted_total += admitted
        return admitted

    def hold(self, now: float | None = None) -> None:
        """Move the clock to `now` without drawing, so a pause issues no backlog."""
        if now is None:
            now = time.monotonic()
        if self.last_time is not None:
            self.last_time = now

    def get_status(self) -> dict:
        return {
            "enabled": self.config.enabled,
            "rate_per_s": self.config.rate_per_s,
            "requested_total": self.requested_total,
            "admitted_total": self.admitted_total,
        }
