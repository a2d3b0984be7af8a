import pygame
import logging
from typing import Dict, Iterable, List, Optional

from config import config
from simulation_controller import ControlInput, SystemSnapshot

# Key -> (ControlInput field, value). Delta fields accumulate, flags are set.
KEY_BINDINGS: Dict[int, tuple] = {
    pygame.K_UP: ('time_scale_delta', config.Time.TIME_SCALE_STEP),
    pygame.K_DOWN: ('time_scale_delta', -config.Time.TIME_SCALE_STEP),
    pygame.K_r: ('reverse_time', True),
    pygame.K_SPACE: ('toggle_pause', True),
    pygame.K_RIGHTBRACKET: ('min_size_delta', config.Display.MIN_SIZE_STEP),
    pygame.K_LEFTBRACKET: ('min_size_delta', -config.Display.MIN_SIZE_STEP),
    pygame.K_l: ('toggle_labels', True),
    pygame.K_c: ('toggle_overlay', True),
    pygame.K_PAGEUP: ('jump_days', config.Time.JUMP_DAYS),
    pygame.K_PAGEDOWN: ('jump_days', -config.Time.JUMP_DAYS),
    pygame.K_o: ('resample_orbits', True),
    pygame.K_ESCAPE: ('quit', True),
}

HELP_LINES = [
    "Up/Down: time scale   R: reverse   Space: pause",
    "[ / ]: min size   L: labels   C: constellations",
    "PgUp/PgDn: jump   O: resample orbits   Esc: quit",
    "Drag/WASD: pan   +/- or wheel: zoom   Home: reset view",
]


def collect_input(events: Iterable) -> ControlInput:
    """Folds one frame's pygame events into a `ControlInput`.

    Toggle keys pressed twice in the same frame cancel out.
    """
    control_input = ControlInput()
    for event in events:
        if event.type == pygame.QUIT:
            control_input.quit = True
            continue
        if event.type != pygame.KEYDOWN:
            continue
        binding = KEY_BINDINGS.get(event.key)
        if binding is None:
            continue
        field_name, value = binding
        current = getattr(control_input, field_name)
        if isinstance(value, bool):
            setattr(control_input, field_name, value if field_name == 'quit' else not current)
        else:
            setattr(control_input, field_name, current + value)
    return control_input


def format_panel_lines(snapshot: SystemSnapshot, fps: Optional[float] = None) -> List[str]:
    """Text shown in the info panel for `snapshot`."""
    if snapshot.paused:
        speed = "Paused"
    else:
        speed = f"{snapshot.time_scale:+.2f} days/sec"
    lines = [
        f"Date: {snapshot.instant.strftime('%Y-%m-%d %H:%M:%S')} UTC",
        f"Time scale: {speed}",
        f"Min size: {snapshot.display.min_size:.1f}",
        f"Labels: {'on' if snapshot.display.labels_visible else 'off'}",
        f"Constellations: {'on' if snapshot.display.overlay_visible else 'off'}",
    ]
    if fps is not None:
        lines.append(f"FPS: {fps:.0f}")
    return lines


class ControlPanel:
    """On-screen info panel listing the clock and display settings."""

    def __init__(self, screen_width, screen_height):
        self.screen_width = screen_width
        self.screen_height = screen_height

        try:
            self.ui_font = pygame.font.Font(None, 18)
            self.title_font = pygame.font.Font(None, 22)
        except pygame.error:  # Fallback if font system not fully init
            self.ui_font = pygame.font.SysFont("arial", 16)
            self.title_font = pygame.font.SysFont("arial", 20)

        self.ui_colors = {
            'panel_bg': (10, 30, 50, 190),
            'panel_border': (30, 120, 220, 200),
            'text_primary': (210, 230, 255),
            'text_secondary': (150, 170, 200),
            'accent_blue': (50, 180, 255),
        }
        self.line_height = 18
        self.title_line_height = 24
        self.show_help = True

    def draw_panel(self, surface, rect, title="", content_lines=None):
        if content_lines is None: content_lines = []

        panel_surf = pygame.Surface((rect.width, rect.height), pygame.SRCALPHA)
        pygame.draw.rect(panel_surf, self.ui_colors['panel_bg'], panel_surf.get_rect(), border_radius=3)
        pygame.draw.rect(panel_surf, self.ui_colors['panel_border'], panel_surf.get_rect(), 2, border_radius=3)

        corner_size = 8
        accent_color = self.ui_colors['accent_blue']
        pygame.draw.line(panel_surf, accent_color, (2, corner_size), (corner_size, 2), 2)
        pygame.draw.line(panel_surf, accent_color, (rect.width - 2, corner_size), (rect.width - corner_size, 2), 2)

        y_offset = 10
        if title:
            title_surf = self.title_font.render(title, True, self.ui_colors['text_primary'])
            panel_surf.blit(title_surf, (10, y_offset))
            y_offset += self.title_line_height

        for line in content_lines:
            if y_offset + self.line_height > rect.height:
                break
            if line.strip():
                text_surf = self.ui_font.render(line, True, self.ui_colors['text_secondary'])
                panel_surf.blit(text_surf, (15, y_offset))
            y_offset += self.line_height

        surface.blit(panel_surf, rect)

    def draw(self, surface, snapshot: SystemSnapshot, fps: Optional[float] = None):
        try:
            lines = format_panel_lines(snapshot, fps)
            height = 10 + self.title_line_height + self.line_height * len(lines) + 10
            self.draw_panel(surface, pygame.Rect(10, 10, 300, height), "Orrery", lines)

            if self.show_help:
                help_height = 10 + self.line_height * len(HELP_LINES) + 10
                help_rect = pygame.Rect(10, self.screen_height - help_height - 10, 380, help_height)
                self.draw_panel(surface, help_rect, "", HELP_LINES)
        except pygame.error as e_pygame_ui:
            logging.error(f"Pygame error during control panel drawing: {e_pygame_ui}", exc_info=True)
