# visualization.py
import pygame
import numpy as np
from typing import Tuple
import math
import logging
from config import config, ConfigurationError
from control_panel import ControlPanel, collect_input
from simulation_controller import BodySnapshot, ControlInput, SystemSnapshot
from visual_effects import StarField

SCREEN_COORD_LIMIT = 30000


def shutdown_display():
    """Releases pygame, also after a partially failed `Visualization` set-up."""
    pygame.quit()
    logging.info("Pygame display shut down.")


class Camera:
    """Top-down 2D camera over the ecliptic plane.

    Maps display-unit coordinates (x, y, z) to screen pixels by dropping z,
    translating by the camera centre, scaling by `pixels_per_unit * zoom` and
    flipping y so ecliptic north-up matches the screen.

    Attributes:
        center (np.ndarray): Display-unit (x, y) shown at the middle of the screen.
        zoom (float): Multiplier on `pixels_per_unit`, kept in [min_zoom, max_zoom].
    """

    def __init__(self, screen_width: int, screen_height: int, pixels_per_unit: float = None,
                 min_zoom: float = None, max_zoom: float = None):
        self.screen_width = screen_width
        self.screen_height = screen_height
        self.pixels_per_unit = config.Visualization.PIXELS_PER_UNIT if pixels_per_unit is None else pixels_per_unit
        self.min_zoom = config.Visualization.MIN_ZOOM if min_zoom is None else min_zoom
        self.max_zoom = config.Visualization.MAX_ZOOM if max_zoom is None else max_zoom
        if self.pixels_per_unit <= 0 or not (0 < self.min_zoom < self.max_zoom):
            raise ConfigurationError("Camera needs a positive pixel scale and ordered positive zoom limits.")
        self.reset()

    def reset(self):
        self.center = np.array([0.0, 0.0], dtype=np.float64)
        self.zoom = 1.0

    @property
    def scale(self) -> float:
        """Pixels per display unit at the current zoom."""
        return self.pixels_per_unit * self.zoom

    def world_to_screen(self, world_pos) -> Tuple[int, int]:
        x = self.screen_width / 2 + (world_pos[0] - self.center[0]) * self.scale
        y = self.screen_height / 2 - (world_pos[1] - self.center[1]) * self.scale
        return (int(round(x)), int(round(y)))

    def world_to_screen_many(self, points: np.ndarray) -> np.ndarray:
        """Vectorised `world_to_screen` for an (N, 2+) array; returns (N, 2) ints."""
        points = np.asarray(points, dtype=np.float64)
        xy = np.empty((len(points), 2), dtype=np.float64)
        xy[:, 0] = self.screen_width / 2 + (points[:, 0] - self.center[0]) * self.scale
        xy[:, 1] = self.screen_height / 2 - (points[:, 1] - self.center[1]) * self.scale
        # pygame draws with 32-bit coordinates
        return np.rint(np.clip(xy, -SCREEN_COORD_LIMIT, SCREEN_COORD_LIMIT)).astype(np.int64)

    def is_visible(self, screen_pos, radius_px: int = 0) -> bool:
        x, y = screen_pos
        return (-radius_px <= x <= self.screen_width + radius_px and
                -radius_px <= y <= self.screen_height + radius_px)

    def screen_to_world(self, screen_pos) -> np.ndarray:
        x = self.center[0] + (screen_pos[0] - self.screen_width / 2) / self.scale
        y = self.center[1] - (screen_pos[1] - self.screen_height / 2) / self.scale
        return np.array([x, y], dtype=np.float64)

    def radius_to_pixels(self, radius: float) -> int:
        return max(1, int(radius * self.scale))

    def zoom_by(self, factor: float, anchor_screen=None):
        """Zooms by `factor`, keeping the world point under `anchor_screen` fixed."""
        if anchor_screen is not None:
            before = self.screen_to_world(anchor_screen)
        self.zoom = float(np.clip(self.zoom * factor, self.min_zoom, self.max_zoom))
        if anchor_screen is not None:
            self.center += before - self.screen_to_world(anchor_screen)

    def pan_pixels(self, dx: float, dy: float):
        """Moves the view as if the scene were dragged by (dx, dy) pixels."""
        self.center[0] -= dx / self.scale
        self.center[1] += dy / self.scale


class Visualization:
    """Renders `SystemSnapshot`s with pygame and turns window events into `ControlInput`.

    Owns the window, the camera, the star field and the control panel. Drawing
    errors are logged and the frame continues; set-up errors disable the viewer
    and are re-raised.

    Attributes:
        screen (pygame.Surface | None): Main display surface.
        visualization_enabled (bool): False once initialization failed.
        camera (Camera): Current view.
        starfield (StarField | None): Background stars and constellation overlay.
        control_panel (ControlPanel | None): Info and help panels.
    """
    PAN_KEYS = {pygame.K_a: (1, 0), pygame.K_d: (-1, 0), pygame.K_w: (0, 1), pygame.K_s: (0, -1)}
    PAN_STEP_PX = 40

    def __init__(self):
        screen_w = config.Visualization.SCREEN_WIDTH_PX
        screen_h = config.Visualization.SCREEN_HEIGHT_PX
        self.visualization_enabled = False
        self.screen = None
        try:
            pygame.init()
            self.screen = pygame.display.set_mode((screen_w, screen_h))
            pygame.display.set_caption("Solar System Orrery")
            self.clock = pygame.time.Clock()

            try:
                self.font = pygame.font.Font(None, 24)
                self.small_font = pygame.font.Font(None, 16)
            except pygame.error as e_font:
                logging.error(f"Pygame error initializing fonts: {e_font}. Text rendering may be impaired.", exc_info=True)
                self.font = self.small_font = None

            self.camera = Camera(screen_w, screen_h)
            self.starfield = StarField(screen_w, screen_h)
            self.control_panel = ControlPanel(screen_w, screen_h)
            self.dragging = False
            self.visualization_enabled = True
            logging.info(f"Visualization initialized ({screen_w}x{screen_h} @ {config.Visualization.FPS} FPS).")

        except ConfigurationError as e_config:
            logging.critical(f"Visualization initialization failed due to ConfigurationError: {e_config}", exc_info=True)
            raise
        except pygame.error as e_pygame:
            logging.critical(f"A Pygame error occurred during Visualization init: {e_pygame}", exc_info=True)
            raise

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def handle_events(self) -> ControlInput:
        """Processes the pygame event queue.

        Camera events (zoom, pan, reset) are applied here; everything else is
        folded into the returned `ControlInput`.
        """
        if not self.visualization_enabled:
            return ControlInput()

        events = pygame.event.get()
        for event in events:
            try:
                self._handle_camera_event(event)
            except Exception as e_event:
                logging.error(f"Error handling camera event {event}: {e_event}", exc_info=True)
        control_input = collect_input(events)
        if control_input.quit:
            logging.info("Quit requested via Pygame window.")
        return control_input

    def _handle_camera_event(self, event):
        if event.type == pygame.KEYDOWN:
            if event.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
                self.camera.zoom_by(1.2)
            elif event.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                self.camera.zoom_by(1 / 1.2)
            elif event.key == pygame.K_HOME:
                self.camera.reset()
            elif event.key == pygame.K_h:
                self.control_panel.show_help = not self.control_panel.show_help
            elif event.key in self.PAN_KEYS:
                dx, dy = self.PAN_KEYS[event.key]
                self.camera.pan_pixels(dx * self.PAN_STEP_PX, dy * self.PAN_STEP_PX)
        elif event.type == pygame.MOUSEWHEEL:
            self.camera.zoom_by(1.1 ** event.y, pygame.mouse.get_pos())
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            self.dragging = True
        elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            self.dragging = False
        elif event.type == pygame.MOUSEMOTION and self.dragging:
            self.camera.pan_pixels(*event.rel)

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def render(self, snapshot: SystemSnapshot):
        """Draws one frame: stars, orbits, the Sun, bodies, labels and panels."""
        if not self.visualization_enabled or self.screen is None:
            return

        try:
            self.screen.fill(config.Visualization.BACKGROUND_COLOR)

            try:
                self.starfield.draw(self.screen, self.camera.center * self.camera.scale,
                                    overlay_visible=snapshot.display.overlay_visible)
            except Exception as e_starfield:
                logging.error(f"Error drawing starfield: {e_starfield}", exc_info=True)

            for body in snapshot.bodies.values():
                self._draw_orbit(body)
            self._draw_sun()
            for body in snapshot.bodies.values():
                self._draw_body(body, snapshot.display.labels_visible)

            self.control_panel.draw(self.screen, snapshot, self.clock.get_fps())
            pygame.display.flip()

        except pygame.error as e_pygame_render:
            logging.error(f"Pygame error during main render loop: {e_pygame_render}. Attempting to continue.", exc_info=True)

    def _draw_orbit(self, body: BodySnapshot):
        if len(body.orbit_polyline) < 2:
            return
        try:
            points = self.camera.world_to_screen_many(body.absolute_orbit())
            pygame.draw.lines(self.screen, config.Visualization.ORBIT_COLOR, False, points.tolist(), 1)
        except Exception as e_orbit_draw:
            logging.error(f"Error drawing orbit path for {body.name}: {e_orbit_draw}", exc_info=True)

    def _draw_sun(self):
        sun = config.SolarSystem.SUN
        screen_pos = self.camera.world_to_screen((0.0, 0.0))
        radius = self.camera.radius_to_pixels(sun['display_radius'])
        if self.camera.is_visible(screen_pos, radius):
            pygame.draw.circle(self.screen, sun['color'], screen_pos, radius)

    def _draw_body(self, body: BodySnapshot, labels_visible: bool):
        screen_pos = self.camera.world_to_screen(body.position)
        radius = self.camera.radius_to_pixels(body.visual_radius)
        if not self.camera.is_visible(screen_pos, radius):
            return
        pygame.draw.circle(self.screen, body.color, screen_pos, radius)

        # Spin marker: a meridian line at the current rotation phase
        if radius >= 4:
            end = (screen_pos[0] + radius * math.cos(body.rotation_phase),
                   screen_pos[1] - radius * math.sin(body.rotation_phase))
            pygame.draw.line(self.screen, (255, 255, 255), screen_pos, end, 1)

        if labels_visible and self.small_font:
            try:
                text_surface = self.small_font.render(body.name, True, config.Visualization.LABEL_COLOR)
                text_rect = text_surface.get_rect(midbottom=(screen_pos[0], screen_pos[1] - radius - 4))
                self.screen.blit(text_surface, text_rect)
            except pygame.error as e_font_render:
                logging.error(f"Pygame font error rendering label for {body.name}: {e_font_render}", exc_info=True)

    def tick(self) -> float:
        """Waits for the next frame; returns the real seconds elapsed since the previous one."""
        return self.clock.tick(config.Visualization.FPS) / 1000.0

    def close(self):
        shutdown_display()
        self.visualization_enabled = False
