# ephemeris.py
"""
Ephemeris providers: body positions as a pure function of (body id, instant).

Two queries are exposed, both deterministic:

- heliocentric position, in AU, heliocentric ecliptic J2000 frame;
- relative position, in km, centred on the body's parent (e.g. the Moon
  relative to the Earth).

Each has a vectorised form taking an array of Julian Dates, used by the orbit
sampler. `AstropyEphemeris` uses astropy's offline "builtin" ephemeris;
`KeplerEphemeris` evaluates J2000 mean orbital elements in closed form.
Instants outside the configured calendar span raise `EphemerisRangeError`.
"""

import math
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import numpy as np
from astropy import units as u
from astropy.coordinates import get_body_barycentric
from astropy.time import Time

from config import config, ConfigurationError, AU_KM, J2000_JD, SECONDS_PER_DAY

# Obliquity of the ecliptic at J2000 (degrees), equatorial -> ecliptic rotation
OBLIQUITY_J2000_DEG = 23.439291111
_COS_OBL = math.cos(math.radians(OBLIQUITY_J2000_DEG))
_SIN_OBL = math.sin(math.radians(OBLIQUITY_J2000_DEG))

_J2000_UTC = datetime(2000, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

KEPLER_ELEMENT_FIELDS = ('semi_major_axis_au', 'eccentricity', 'inclination_deg',
                         'longitude_of_ascending_node_deg', 'argument_of_perihelion_deg',
                         'mean_anomaly_at_epoch_deg')


class EphemerisRangeError(ValueError):
    """Raised when an instant lies outside the span an ephemeris is valid for.

    Propagated to the caller of `SimulationController.tick()`; time is never
    clamped, since that would desynchronize the displayed date from the
    displayed positions.
    """
    pass


# ---------------------------------------------------------------------------
# Julian Date helpers
# ---------------------------------------------------------------------------

def datetime_to_jd(dt: datetime) -> float:
    """Convert datetime (UTC) to Julian Date. Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return J2000_JD + (dt - _J2000_UTC).total_seconds() / SECONDS_PER_DAY


def jd_to_datetime(jd: float) -> datetime:
    """Julian Date -> timezone-aware UTC datetime."""
    return _J2000_UTC + timedelta(days=jd - J2000_JD)


def seconds_since_j2000(dt: datetime) -> float:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _J2000_UTC).total_seconds()


def equatorial_to_ecliptic(xyz: np.ndarray) -> np.ndarray:
    """Rotate (N, 3) equatorial (ICRS) vectors into the J2000 ecliptic frame."""
    x, y, z = xyz[:, 0], xyz[:, 1], xyz[:, 2]
    return np.column_stack((x, _COS_OBL * y + _SIN_OBL * z, -_SIN_OBL * y + _COS_OBL * z))


# ---------------------------------------------------------------------------
# Provider base
# ---------------------------------------------------------------------------

class EphemerisProvider:
    """Common interface and range checking for ephemeris providers.

    Subclasses implement `_heliocentric_au(ephemeris_id, jd)` and
    `_relative_km(ephemeris_id, jd)` for a 1-D array of Julian Dates, returning
    `(N, 3)` arrays, and `check_supported()`.
    """

    name = "base"

    def __init__(self, valid_year_min: Optional[int] = None, valid_year_max: Optional[int] = None):
        year_min = valid_year_min if valid_year_min is not None else config.Ephemeris.VALID_YEAR_MIN
        year_max = valid_year_max if valid_year_max is not None else config.Ephemeris.VALID_YEAR_MAX
        if not (1 <= year_min < year_max <= 9999):
            raise ConfigurationError(f"Invalid ephemeris year range ({year_min}, {year_max}).")
        self.valid_year_min = year_min
        self.valid_year_max = year_max
        self.jd_min = datetime_to_jd(datetime(year_min, 1, 1, tzinfo=timezone.utc))
        self.jd_max = datetime_to_jd(datetime(year_max, 12, 31, 23, 59, 59, tzinfo=timezone.utc))

    def check_supported(self, ephemeris_id: str, parent_ephemeris_id: Optional[str] = None) -> None:
        """Raise `ConfigurationError` if the body cannot be queried by this provider."""
        raise NotImplementedError

    def _check_range(self, jd: np.ndarray) -> None:
        if jd.size == 0:
            return
        lo, hi = float(np.min(jd)), float(np.max(jd))
        if not (math.isfinite(lo) and math.isfinite(hi)) or lo < self.jd_min or hi > self.jd_max:
            raise EphemerisRangeError(
                f"{self.name} ephemeris is valid for years {self.valid_year_min}..{self.valid_year_max}; "
                f"requested Julian Dates span {lo:.3f}..{hi:.3f}."
            )

    @staticmethod
    def _as_jd_array(instants) -> np.ndarray:
        if isinstance(instants, datetime):
            return np.array([datetime_to_jd(instants)], dtype=np.float64)
        jd = np.asarray(instants, dtype=np.float64)
        return np.atleast_1d(jd)

    def heliocentric_positions(self, ephemeris_id: str, jd) -> np.ndarray:
        """Heliocentric ecliptic positions in AU, shape (N, 3), for N Julian Dates."""
        jd = self._as_jd_array(jd)
        self._check_range(jd)
        return self._heliocentric_au(ephemeris_id, jd)

    def relative_positions(self, ephemeris_id: str, jd) -> np.ndarray:
        """Parent-centred ecliptic positions in km, shape (N, 3), for N Julian Dates."""
        jd = self._as_jd_array(jd)
        self._check_range(jd)
        return self._relative_km(ephemeris_id, jd)

    def heliocentric_position(self, ephemeris_id: str, instant: datetime) -> np.ndarray:
        return self.heliocentric_positions(ephemeris_id, instant)[0]

    def relative_position(self, ephemeris_id: str, instant: datetime) -> np.ndarray:
        return self.relative_positions(ephemeris_id, instant)[0]

    def _heliocentric_au(self, ephemeris_id: str, jd: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _relative_km(self, ephemeris_id: str, jd: np.ndarray) -> np.ndarray:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Keplerian provider
# ---------------------------------------------------------------------------

def solve_kepler_equation(mean_anomaly_rad, e: float, tolerance: float = 1e-12, max_iterations: int = 50) -> np.ndarray:
    """
    Solves Kepler's Equation M = E - e * sin(E) for eccentric anomaly E using Newton-Raphson.

    Vectorized over `mean_anomaly_rad`.

    Args:
        mean_anomaly_rad: Mean anomaly in radians (scalar or array).
        e: Eccentricity (0 <= e < 1).
        tolerance: Convergence tolerance on the Newton step.
        max_iterations: Maximum number of iterations.

    Returns:
        np.ndarray: Eccentric anomaly E in radians.

    Raises:
        ConfigurationError: If eccentricity is outside [0, 1).
    """
    if not (0.0 <= e < 1.0):
        raise ConfigurationError(f"Eccentricity e={e} is out of bounds [0, 1) for Kepler's equation solver.")

    M = np.asarray(mean_anomaly_rad, dtype=np.float64)
    E = M + e * np.sin(M)  # Common good first guess
    if e > 0.8:
        E = np.where(M > np.pi / 2, np.pi, M)

    for _ in range(max_iterations):
        delta_E = (E - e * np.sin(E) - M) / (1.0 - e * np.cos(E))
        E = E - delta_E
        if np.all(np.abs(delta_E) < tolerance):
            return E

    if config.Debug.DEBUG_MODE:
        logging.debug(f"Kepler's equation solver did not converge after {max_iterations} iterations (e={e}).")
    return E


class KeplerEphemeris(EphemerisProvider):
    """Closed-form positions from J2000 mean orbital elements.

    Heliocentric queries are answered for bodies without a parent, relative
    queries for bodies with one; both from the elements in the body catalog.
    Perturbations are ignored, so positions drift from the true ephemeris over
    long spans, but the function is smooth and exactly periodic with the
    catalog's orbital period.
    """

    name = "kepler"

    def __init__(self, body_data: Optional[Dict[str, Dict]] = None,
                 valid_year_min: Optional[int] = None, valid_year_max: Optional[int] = None):
        super().__init__(valid_year_min, valid_year_max)
        body_data = body_data if body_data is not None else config.SolarSystem.BODY_DATA
        self._elements: Dict[str, Dict[str, float]] = {}
        self._has_parent: Dict[str, bool] = {}

        for name, data in body_data.items():
            missing = [f for f in KEPLER_ELEMENT_FIELDS if f not in data]
            if missing:
                raise ConfigurationError(f"Body '{name}' lacks orbital elements for the Keplerian ephemeris: {missing}.")
            if data['semi_major_axis_au'] <= 0:
                raise ConfigurationError(f"Semi-major axis of body '{name}' must be positive.")
            if not (0.0 <= data['eccentricity'] < 1.0):
                raise ConfigurationError(f"Eccentricity of body '{name}' ({data['eccentricity']}) must be >= 0 and < 1.")
            period = data.get('orbital_period_days')
            if not period or period <= 0:
                raise ConfigurationError(f"Orbital period of body '{name}' must be positive.")

            elements = {field: float(data[field]) for field in KEPLER_ELEMENT_FIELDS}
            elements['period_days'] = float(period)
            self._elements[data['ephemeris_id']] = elements
            self._has_parent[data['ephemeris_id']] = data.get('parent') is not None

    def check_supported(self, ephemeris_id: str, parent_ephemeris_id: Optional[str] = None) -> None:
        if ephemeris_id not in self._elements:
            raise ConfigurationError(f"Unknown body id '{ephemeris_id}' for the Keplerian ephemeris.")
        if self._has_parent[ephemeris_id] != (parent_ephemeris_id is not None):
            raise ConfigurationError(
                f"Body '{ephemeris_id}' parent relation does not match the elements it was built from."
            )

    def _orbit_positions(self, ephemeris_id: str, jd: np.ndarray) -> np.ndarray:
        elems = self._elements.get(ephemeris_id)
        if elems is None:
            raise ConfigurationError(f"Unknown body id '{ephemeris_id}' for the Keplerian ephemeris.")

        a, e = elems['semi_major_axis_au'], elems['eccentricity']
        mean_motion = 2.0 * np.pi / elems['period_days']  # rad/day
        M = np.radians(elems['mean_anomaly_at_epoch_deg']) + mean_motion * (jd - J2000_JD)
        M = np.mod(M, 2.0 * np.pi)
        E = solve_kepler_equation(M, e)

        # Position in the orbital plane (perifocal coordinates)
        x_orb = a * (np.cos(E) - e)
        y_orb = a * math.sqrt(1.0 - e * e) * np.sin(E)

        # Rotate to the ecliptic frame
        w = math.radians(elems['argument_of_perihelion_deg'])
        om = math.radians(elems['longitude_of_ascending_node_deg'])
        inc = math.radians(elems['inclination_deg'])
        cos_w, sin_w = math.cos(w), math.sin(w)
        cos_om, sin_om = math.cos(om), math.sin(om)
        cos_i, sin_i = math.cos(inc), math.sin(inc)

        x = (cos_om * cos_w - sin_om * sin_w * cos_i) * x_orb + (-cos_om * sin_w - sin_om * cos_w * cos_i) * y_orb
        y = (sin_om * cos_w + cos_om * sin_w * cos_i) * x_orb + (-sin_om * sin_w + cos_om * cos_w * cos_i) * y_orb
        z = (sin_w * sin_i) * x_orb + (cos_w * sin_i) * y_orb
        return np.column_stack((x, y, z))

    def _heliocentric_au(self, ephemeris_id: str, jd: np.ndarray) -> np.ndarray:
        if self._has_parent.get(ephemeris_id, False):
            raise ConfigurationError(f"Body '{ephemeris_id}' orbits a parent; use the relative query.")
        return self._orbit_positions(ephemeris_id, jd)

    def _relative_km(self, ephemeris_id: str, jd: np.ndarray) -> np.ndarray:
        if not self._has_parent.get(ephemeris_id, False):
            raise ConfigurationError(f"Body '{ephemeris_id}' has no parent; use the heliocentric query.")
        return self._orbit_positions(ephemeris_id, jd) * AU_KM


# ---------------------------------------------------------------------------
# Astropy provider
# ---------------------------------------------------------------------------

class AstropyEphemeris(EphemerisProvider):
    """Positions from astropy's solar system ephemerides.

    Both queries are differences of barycentric positions: the body minus the
    Sun for heliocentric vectors, the body minus its parent for relative ones,
    rotated from ICRS into the ecliptic. Only the Moon around the Earth has a
    relative query. The default "builtin" ephemeris is computed in-process and
    needs no downloads.
    """

    name = "astropy"

    HELIOCENTRIC_BODIES = frozenset(('mercury', 'venus', 'earth', 'earth-moon-barycenter', 'moon',
                                     'mars', 'jupiter', 'saturn', 'uranus', 'neptune'))
    RELATIVE_PARENTS = {'moon': 'earth'}

    def __init__(self, ephemeris_name: Optional[str] = None,
                 valid_year_min: Optional[int] = None, valid_year_max: Optional[int] = None):
        super().__init__(valid_year_min, valid_year_max)
        self.ephemeris_name = ephemeris_name or config.Ephemeris.ASTROPY_EPHEMERIS

    def check_supported(self, ephemeris_id: str, parent_ephemeris_id: Optional[str] = None) -> None:
        if parent_ephemeris_id is None:
            if ephemeris_id not in self.HELIOCENTRIC_BODIES:
                raise ConfigurationError(f"Unknown body id '{ephemeris_id}' for the astropy ephemeris.")
            return
        if self.RELATIVE_PARENTS.get(ephemeris_id) != parent_ephemeris_id:
            raise ConfigurationError(
                f"The astropy ephemeris has no relative query for '{ephemeris_id}' around '{parent_ephemeris_id}'."
            )

    def _barycentric(self, ephemeris_id: str, t: Time):
        return get_body_barycentric(ephemeris_id, t, ephemeris=self.ephemeris_name)

    @staticmethod
    def _to_ecliptic(cartesian, unit) -> np.ndarray:
        xyz = np.asarray(cartesian.xyz.to_value(unit), dtype=np.float64).reshape(3, -1)
        return equatorial_to_ecliptic(xyz.T)

    def _heliocentric_au(self, ephemeris_id: str, jd: np.ndarray) -> np.ndarray:
        if ephemeris_id not in self.HELIOCENTRIC_BODIES:
            raise ConfigurationError(f"Unknown body id '{ephemeris_id}' for the astropy ephemeris.")
        t = Time(jd, format='jd', scale='tdb')
        return self._to_ecliptic(self._barycentric(ephemeris_id, t) - self._barycentric('sun', t), u.au)

    def _relative_km(self, ephemeris_id: str, jd: np.ndarray) -> np.ndarray:
        parent_id = self.RELATIVE_PARENTS.get(ephemeris_id)
        if parent_id is None:
            raise ConfigurationError(f"The astropy ephemeris has no relative query for '{ephemeris_id}'.")
        t = Time(jd, format='jd', scale='tdb')
        return self._to_ecliptic(self._barycentric(ephemeris_id, t) - self._barycentric(parent_id, t), u.km)


def create_ephemeris(provider: Optional[str] = None, body_data: Optional[Dict[str, Dict]] = None) -> EphemerisProvider:
    """Builds the configured ephemeris provider ("astropy" or "kepler")."""
    provider = provider or config.Ephemeris.PROVIDER
    if provider == "astropy":
        ephemeris = AstropyEphemeris()
    elif provider == "kepler":
        ephemeris = KeplerEphemeris(body_data)
    else:
        raise ConfigurationError(f"Unknown ephemeris provider '{provider}'.")
    logging.info(f"Using {ephemeris.name} ephemeris (valid {ephemeris.valid_year_min}..{ephemeris.valid_year_max}).")
    return ephemeris
