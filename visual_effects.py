import pygame
import numpy as np
import math
from typing import List, Optional, Tuple

from config import config

STAR_COLORS = [
    ((255, 255, 255), 0.7),  # White
    ((255, 221, 170), 0.2),  # Yellowish
    ((187, 204, 255), 0.1),  # Blueish
]


def build_constellation_segments(positions: np.ndarray, group_count: int, max_links: int = 3,
                                 threshold: float = 120.0) -> List[Tuple[int, int]]:
    """
    Links a few neighbouring stars into constellation-like line segments.

    Starting stars are spread evenly through `positions`; each is joined to at
    most `max_links` later stars closer than `threshold` pixels.

    Returns:
        List[Tuple[int, int]]: Index pairs into `positions`.
    """
    count = len(positions)
    if count < 2 or group_count <= 0:
        return []

    stride = max(1, count // group_count)
    segments = []
    for start in range(0, count, stride):
        distances = np.linalg.norm(positions[start + 1:] - positions[start], axis=1)
        near = np.nonzero(distances < threshold)[0][:max_links]
        segments.extend((start, start + 1 + int(j)) for j in near)
    return segments


class StarField:
    """Parallax star background with an optional constellation overlay.

    The overlay is drawn when the snapshot's display settings ask for it; the
    star field holds no visibility state of its own.
    """

    def __init__(self, width, height, star_count=None, constellation_count=None, seed: Optional[int] = None):
        self.width = width
        self.height = height
        star_count = config.Visualization.STAR_COUNT if star_count is None else star_count
        constellation_count = config.Visualization.CONSTELLATION_COUNT if constellation_count is None else constellation_count
        rng = np.random.default_rng(seed)

        self.star_layers = [
            {'speed_factor': 0.02, 'base_brightness': 0.5, 'size': 1, 'count': int(star_count * 0.5)},  # Farthest
            {'speed_factor': 0.06, 'base_brightness': 0.75, 'size': 1, 'count': int(star_count * 0.3)},  # Mid
            {'speed_factor': 0.12, 'base_brightness': 1.0, 'size': 2, 'count': int(star_count * 0.2)},  # Near
        ]

        colors, weights = zip(*STAR_COLORS)
        for layer in self.star_layers:
            n = layer['count']
            layer['pos'] = rng.uniform((0, 0), (width, height), size=(n, 2))
            layer['brightness_mod'] = rng.uniform(0.5, 1.0, size=n)
            layer['twinkle_phase'] = rng.uniform(0, 2 * math.pi, size=n)
            layer['twinkle_speed'] = rng.uniform(0.001, 0.004, size=n)
            layer['color'] = [colors[i] for i in rng.choice(len(colors), size=n, p=weights)]

        # Constellations live on the farthest layer so they move as one with it
        self.constellation_segments = build_constellation_segments(
            self.star_layers[0]['pos'], constellation_count, threshold=min(width, height) * 0.12
        )

    def _layer_screen_positions(self, layer, camera_offset_world) -> np.ndarray:
        shift = np.asarray(camera_offset_world[:2], dtype=np.float64) * layer['speed_factor']
        wrapped = (layer['pos'] - shift) % (self.width, self.height)
        return wrapped

    def draw(self, surface, camera_offset_world=np.array([0.0, 0.0]), overlay_visible: bool = False):
        time_ms = pygame.time.get_ticks()

        for layer in self.star_layers:
            screen_positions = self._layer_screen_positions(layer, camera_offset_world)
            twinkle = (np.sin(time_ms * layer['twinkle_speed'] + layer['twinkle_phase']) + 1) / 2
            brightness = layer['base_brightness'] * layer['brightness_mod'] * (0.6 + 0.4 * twinkle)

            for pos, level, base_color in zip(screen_positions, brightness, layer['color']):
                if level < 0.08:
                    continue  # Too dim to see
                star_color = tuple(min(255, int(c * level)) for c in base_color)
                screen_pos_int = (int(pos[0]), int(pos[1]))
                if layer['size'] <= 1:
                    surface.set_at(screen_pos_int, star_color)
                else:
                    pygame.draw.circle(surface, star_color, screen_pos_int, layer['size'])

        if overlay_visible:
            self.draw_constellations(surface, camera_offset_world)

    def draw_constellations(self, surface, camera_offset_world):
        if not self.constellation_segments:
            return
        positions = self._layer_screen_positions(self.star_layers[0], camera_offset_world)
        overlay = pygame.Surface((self.width, self.height), pygame.SRCALPHA)
        for a, b in self.constellation_segments:
            start, end = positions[a], positions[b]
            # Skip links split by the wrap-around
            if np.linalg.norm(end - start) > min(self.width, self.height) * 0.5:
                continue
            pygame.draw.line(overlay, (255, 255, 255, 50), start.astype(int), end.astype(int), 1)
        surface.blit(overlay, (0, 0))
