"""
Entry point for the intersection traffic simulation.

Usage:
  python -m traffic_sim.main                  # Run with dashboard (default)
  python -m traffic_sim.main --headless       # Run without dashboard
  python -m traffic_sim.main --seed 42        # Reproducible routes and arrivals
  python -m traffic_sim.main --help           # Show all options
"""

from __future__ import annotations

import argparse
import logging

from traffic_sim.config import ArrivalConfig, SimulationConfig
from traffic_sim.controller import SimulationController


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Four-way intersection traffic simulation",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run without the visual dashboard",
    )
    parser.add_argument(
        "--hz",
        type=float,
        default=60.0,
        help="Tick rate in Hz at 1.0x speed (default: 60)",
    )
    parser.add_argument(
        "--speed",
        type=float,
        default=1.0,
        help="Initial speed multiplier, clamped to 0.25-5.0 (default: 1.0)",
    )
    parser.add_argument(
        "--max-ticks",
        type=int,
        default=None,
        help="Stop after N ticks (default: run forever)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for routes and arrivals (default: unseeded)",
    )
    parser.add_argument(
        "--arrival-rate",
        type=float,
        default=0.4,
        help="Random spawn requests per second per approach (default: 0.4)",
    )
    parser.add_argument(
        "--no-arrivals",
        action="store_true",
        help="Disable random arrivals; vehicles only come from key presses",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SimulationConfig:
    return SimulationConfig(
        arrivals=ArrivalConfig(
            enabled=not args.no_arrivals,
            rate_per_s=args.arrival_rate,
            random_seed=args.seed,
        ),
        random_seed=args.seed,
        tick_hz=args.hz,
        speed_multiplier=args.speed,
        dashboard_enabled=not args.headless,
    )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logger = logging.getLogger("traffic_sim")

    config = build_config(args)

    controller = SimulationController(config=config)
    controller.setup()

    # Set up dashboard if enabled
    dashboard = None
    if config.dashboard_enabled:
        try:
            from traffic_sim.dashboard.display import Dashboard
            dashboard = Dashboard()
            dashboard.setup(int(config.geometry.width), int(config.geometry.height))
            controller.on_tick.append(dashboard.update)
            logger.info("Dashboard enabled")
        except ImportError:
            logger.warning("pygame not installed — running headless")
            dashboard = None

    logger.info("Starting simulation (hz=%.0f, speed=%.2fx)", config.tick_hz, config.speed_multiplier)
    try:
        controller.run(max_ticks=args.max_ticks)
    finally:
        if dashboard:
            dashboard.teardown()
        controller.teardown()
        logger.info("Simulation stopped")


if __name__ == "__main__":
    main()
