# solarsystem.py
import math
import logging
from dataclasses import dataclass, field
from typing import Tuple, List, Dict, Optional, Iterator

import numpy as np

from config import config, ConfigurationError, validate_body_catalog


@dataclass(frozen=True)
class CelestialBody:
    """Static catalog entry for one simulated body. Never mutated after start-up."""
    name: str
    ephemeris_id: str
    radius_km: float
    color: Tuple[int, int, int]
    orbital_period_days: float
    rotation_period_hours: float  # Negative for retrograde spin

    # Name of the body this one orbits, None for bodies orbiting the Sun.
    # The parent never refers back to its children.
    parent: Optional[str] = None

    @property
    def rotation_period_seconds(self) -> float:
        return self.rotation_period_hours * 3600.0

    @property
    def is_heliocentric(self) -> bool:
        return self.parent is None


@dataclass
class BodyState:
    """Mutable per-body record owned by the simulation controller.

    `position` is in display units. `orbit_polyline` is an (N, 3) array in
    display units; for bodies with a parent its points are offsets from the
    parent's position, otherwise they are absolute.
    """
    body: CelestialBody
    position: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float64))
    visual_radius: float = 0.0
    rotation_phase: float = 0.0  # Radians in [0, 2*pi)
    orbit_polyline: np.ndarray = field(default_factory=lambda: np.empty((0, 3), dtype=np.float64))

    def __post_init__(self):
        if not isinstance(self.position, np.ndarray):
            self.position = np.array(self.position, dtype=np.float64)
        if not isinstance(self.orbit_polyline, np.ndarray):
            self.orbit_polyline = np.array(self.orbit_polyline, dtype=np.float64).reshape(-1, 3)

    @property
    def name(self) -> str:
        return self.body.name


class BodyRegistry:
    """Ordered, read-only collection of `CelestialBody` entries.

    Iteration order is the update order: every parent comes before its moons,
    so a single pass can position a moon from its already-updated parent.
    """

    def __init__(self, body_data: Optional[Dict[str, Dict]] = None):
        body_data = body_data if body_data is not None else config.SolarSystem.BODY_DATA
        validate_body_catalog(body_data)

        self._bodies: Dict[str, CelestialBody] = {}
        for name, data in body_data.items():
            self._bodies[name] = CelestialBody(
                name=name,
                ephemeris_id=data['ephemeris_id'],
                radius_km=float(data['radius_km']),
                color=tuple(data['color']),
                orbital_period_days=float(data['orbital_period_days']),
                rotation_period_hours=float(data['rotation_period_hours']),
                parent=data['parent'],
            )
        logging.info(f"Body registry created with {len(self._bodies)} bodies: {', '.join(self._bodies)}")

    def __iter__(self) -> Iterator[CelestialBody]:
        return iter(self._bodies.values())

    def __len__(self) -> int:
        return len(self._bodies)

    def __contains__(self, name: str) -> bool:
        return name in self._bodies

    @property
    def names(self) -> List[str]:
        return list(self._bodies)

    def get(self, name: str) -> CelestialBody:
        """Returns the body called `name`.

        Raises:
            ConfigurationError: If no such body is registered.
        """
        try:
            return self._bodies[name]
        except KeyError:
            raise ConfigurationError(f"Unknown body '{name}'.") from None

    def orbital_period_days(self, name: str) -> float:
        """Catalog lookup of a body's orbital period in days."""
        return self.get(name).orbital_period_days

    def parent_of(self, name: str) -> Optional[CelestialBody]:
        parent = self.get(name).parent
        return self._bodies[parent] if parent is not None else None

    def children_of(self, name: str) -> List[CelestialBody]:
        self.get(name)
        return [body for body in self._bodies.values() if body.parent == name]

    def check_ephemeris(self, ephemeris) -> None:
        """Confirms `ephemeris` can answer the query each body needs.

        Raises:
            ConfigurationError: For the first unsupported body.
        """
        for body in self:
            parent = self.parent_of(body.name)
            ephemeris.check_supported(body.ephemeris_id, parent.ephemeris_id if parent is not None else None)


def rotation_phase(seconds_since_j2000: float, rotation_period_hours: float) -> float:
    """
    Rotation angle of a body about its spin axis.

    Args:
        seconds_since_j2000 (float): Signed time offset from J2000.0.
        rotation_period_hours (float): Sidereal rotation period; negative for retrograde.

    Returns:
        float: Phase in radians in [0, 2*pi).

    Raises:
        ConfigurationError: If the rotation period is zero.
    """
    if not rotation_period_hours:
        raise ConfigurationError("Rotation period must be non-zero.")
    phase = math.fmod(2.0 * math.pi * seconds_since_j2000 / (rotation_period_hours * 3600.0), 2.0 * math.pi)
    if phase < 0:
        phase += 2.0 * math.pi
    # fmod of a tiny negative value can round up to exactly 2*pi
    if phase >= 2.0 * math.pi:
        phase = 0.0
    return phase
