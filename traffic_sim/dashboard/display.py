"""
Pygame-based visual dashboard for the intersection simulation.

Renders:
  - Roads and centre lane markings
  - One traffic light per approach
  - Vehicles, coloured by route (left=yellow, straight=blue, right=cyan)
  - Debug overlay: stop zones and a status panel
  - Keyboard controls for spawning and simulation control

Controls:
  - UP / DOWN / LEFT / RIGHT: spawn a SOUTH / NORTH / EAST / WEST-bound vehicle
  - R: spawn in a random direction
  - SPACE: pause/resume
  - + / -: speed up / slow down
  - D: toggle debug overlay
  - ESC (twice): quit
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from traffic_sim.config import Direction, Route

if TYPE_CHECKING:
    from traffic_sim.controller import SimulationController

logger = logging.getLogger(__name__)

# Colors
WHITE = (255, 255, 255)
DARK_GRAY = (40, 40, 40)
GRAY = (100, 100, 100)
LIGHT_GRAY = (180, 180, 180)
GRASS_COLOR = (0, 128, 0)

RED = (255, 0, 0)
GREEN = (0, 255, 0)
YELLOW = (255, 255, 0)
BLUE = (0, 0, 255)
CYAN = (0, 255, 255)
ORANGE = (240, 140, 30)

ROUTE_COLORS: dict[Route, tuple[int, int, int]] = {
    Route.LEFT: YELLOW,
    Route.STRAIGHT: BLUE,
    Route.RIGHT: CYAN,
}


@dataclass
class Dashboard:
    """
    Pygame dashboard for the simulation.

    Call setup() once, then register update() in the controller's on_tick.
    The window size follows the simulation's playfield geometry.
    """

    # --- pygame objects (initialized in setup) ---
    _screen: object = field(default=None, repr=False)
    _font: object = field(default=None, repr=False)
    _font_large: object = field(default=None, repr=False)

    def setup(self, width: int = 800, height: int = 800) -> None:
        """Initialize Pygame and create the window."""
        try:
            import pygame
        except ImportError:
            logger.error("pygame is required for the dashboard. Install with: pip install pygame")
            raise

        pygame.init()
        self._screen = pygame.display.set_mode((width, height))
        pygame.display.set_caption("Road Intersection")
        self._font = pygame.font.SysFont("monospace", 14)
        self._font_large = pygame.font.SysFont("monospace", 20, bold=True)

        logger.info("Dashboard initialized (%dx%d)", width, height)

    def update(self, controller: SimulationController) -> None:
        """
        Render one frame. Called from the controller's on_tick callback.

        Also handles Pygame events (keyboard input, quit).
        """
        import pygame

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                controller.request_quit()
            elif event.type == pygame.KEYDOWN:
                self._handle_key(event.key, controller)

        screen = self._screen
        screen.fill(GRASS_COLOR)

        self._draw_roads(screen, controller)
        self._draw_lights(screen, controller)
        self._draw_vehicles(screen, controller)
        if controller.debug_mode:
            self._draw_debug(screen, controller)
        if controller.is_paused:
            text = self._font_large.render("PAUSED", True, ORANGE)
            screen.blit(text, (10, screen.get_height() - 30))

        pygame.display.flip()

    def teardown(self) -> None:
        """Clean up Pygame."""
        import pygame
        pygame.quit()

    # --- keyboard handling ---

    def _handle_key(self, key: int, controller: SimulationController) -> None:
        import pygame

        key_map = {
            pygame.K_UP: Direction.SOUTH,
            pygame.K_DOWN: Direction.NORTH,
            pygame.K_LEFT: Direction.EAST,
            pygame.K_RIGHT: Direction.WEST,
        }

        if key in key_map:
            controller.spawn(key_map[key])
        elif key == pygame.K_r:
            controller.spawn_random()
        elif key == pygame.K_SPACE:
            controller.toggle_pause()
        elif key == pygame.K_d:
            controller.toggle_debug()
        elif key in (pygame.K_EQUALS, pygame.K_PLUS, pygame.K_KP_PLUS):
            controller.speed_up()
        elif key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            controller.slow_down()
        elif key == pygame.K_ESCAPE:
            controller.request_quit()
        else:
            controller.confirm_exit = False

    # --- drawing methods ---

    def _draw_roads(self, screen: object, controller: SimulationController) -> None:
        """Draw the two crossing roads and their centre markings."""
        import pygame

        g = controller.config.geometry
        cx, cy = int(g.center_x), int(g.center_y)
        half = int(g.road_width // 2)
        w, h = int(g.width), int(g.height)

        # Vertical and horizontal roads
        pygame.draw.rect(screen, GRAY, (cx - half, 0, int(g.road_width), h))
        pygame.draw.rect(screen, GRAY, (0, cy - half, w, int(g.road_width)))

        # Centre lane markings
        pygame.draw.rect(screen, WHITE, (cx - 2, 0, 4, h))
        pygame.draw.rect(screen, WHITE, (0, cy - 2, w, 4))

    def _draw_lights(self, screen: object, controller: SimulationController) -> None:
        import pygame

        size = int(controller.config.geometry.traffic_light_size)
        for light in controller.intersection.traffic_lights.values():
            x, y = light.position
            color = RED if light.is_red else GREEN
            pygame.draw.rect(screen, color, (int(x), int(y), size, size))

    def _draw_vehicles(self, screen: object, controller: SimulationController) -> None:
        import pygame

        spec = controller.config.vehicle
        for vehicle in controller.intersection.vehicles:
            if vehicle.direction.is_vertical:
                w, h = spec.width, spec.height
            else:
                w, h = spec.height, spec.width
            rect = (int(vehicle.x - w / 2), int(vehicle.y - h / 2), int(w), int(h))
            pygame.draw.rect(screen, ROUTE_COLORS[vehicle.route], rect)

    def _draw_debug(self, screen: object, controller: SimulationController) -> None:
        """Stop zones in front of each approach plus a small status panel."""
        import pygame

        g = controller.config.geometry
        safe = controller.config.vehicle.safe_distance
        cx, cy = g.center
        off = g.lane_offset

        # Zone in which a red light holds an approaching vehicle
        zones = {
            Direction.NORTH: (cx - off, cy + safe / 2),
            Direction.SOUTH: (cx + off, cy - safe / 2),
            Direction.EAST: (cx - safe / 2, cy + off),
            Direction.WEST: (cx + safe / 2, cy - off),
        }
        for direction, (zx, zy) in zones.items():
            if direction.is_vertical:
                rect = (int(zx - off), int(zy - safe / 2), int(g.lane_width), int(safe))
            else:
                rect = (int(zx - safe / 2), int(zy - off), int(safe), int(g.lane_width))
            pygame.draw.rect(screen, ORANGE, rect, 1)

        for vehicle in controller.intersection.vehicles:
            if vehicle.stopped:
                pygame.draw.circle(screen, RED, (int(vehicle.x), int(vehicle.y)), 4)

        status = controller.get_full_status()
        summary = status["intersection"]
        lines = [
            f"Tick: {status['tick']}  Speed: {status['speed']:.2f}x",
            f"Phase: {summary['signals']['phase']} ({summary['signals']['phase_remaining_s']:.1f}s)",
            f"Vehicles: {summary['vehicles']}  Stopped: {summary['stopped']}",
            f"Spawned: {summary['spawned_total']}  Exited: {summary['exited_total']}",
            f"Rejected: cooldown={summary['rejected_cooldown']} blocked={summary['rejected_blocked']}",
            f"Faults: {status['conflict_monitor']['conflict_count']}",
        ]
        pygame.draw.rect(screen, DARK_GRAY, (10, 10, 340, 18 * len(lines) + 10), 0, 5)
        y = 15
        for text in lines:
            surface = self._font.render(text, True, LIGHT_GRAY)
            screen.blit(surface, (15, y))
            y += 18
