# orbit_sampler.py
import math
import logging
from datetime import datetime
from typing import Optional

import numpy as np

from config import config, ConfigurationError
from ephemeris import EphemerisProvider, datetime_to_jd
from scaling import to_display_distance, km_to_display
from solarsystem import BodyRegistry, CelestialBody


class OrbitSampler:
    """
    Samples one full revolution of a body's trajectory as a polyline.

    Sample i is taken at `reference + i * period / samples` days for
    i = 0..samples, so the polyline holds samples + 1 points and its last point
    lies exactly one period after the first. A window that would run past the
    end of the ephemeris range is moved back to end at the range limit.
    Heliocentric bodies yield absolute display positions; bodies with a parent
    yield offsets from the parent.

    Sampling queries the ephemeris once per body with all instants at once. It
    runs at start-up and on demand, never per frame.
    """

    def __init__(self, ephemeris: EphemerisProvider, registry: BodyRegistry, samples: Optional[int] = None):
        self.ephemeris = ephemeris
        self.registry = registry
        self.samples = config.Orbit.SAMPLES if samples is None else samples
        if not isinstance(self.samples, (int, np.integer)) or self.samples < 1:
            raise ConfigurationError(f"Orbit sample count must be a positive integer (got {self.samples}).")

    def sample_instants(self, reference: datetime, period_days: float) -> np.ndarray:
        """
        Julian Dates of the samples over one period starting at `reference`.

        When `reference` lies inside the ephemeris range but the period would
        run past its end, the window is moved back to end at the range limit.
        It still covers one full period and contains `reference`.
        """
        if period_days is None or not math.isfinite(period_days) or period_days <= 0:
            raise ConfigurationError(f"Orbital period must be a positive number of days (got {period_days}).")
        jd0 = datetime_to_jd(reference)
        jd_min, jd_max = self.ephemeris.jd_min, self.ephemeris.jd_max
        if jd_min <= jd0 <= jd_max and jd0 + period_days > jd_max:
            jd0 = max(jd_min, jd_max - period_days)
            logging.debug(f"Orbit window of {period_days:.1f} days moved back to JD {jd0:.3f} to stay in range.")
            return np.minimum(jd0 + np.linspace(0.0, period_days, self.samples + 1), jd_max)
        return jd0 + np.linspace(0.0, period_days, self.samples + 1)

    def sample(self, name: str, reference: datetime) -> np.ndarray:
        """
        Computes the orbit polyline of body `name`.

        Args:
            name (str): Registered body name.
            reference (datetime): Instant of the first sample.

        Returns:
            np.ndarray: (samples + 1, 3) array in display units.

        Raises:
            ConfigurationError: Unknown body or non-positive period. Raised
                before any ephemeris lookup.
            EphemerisRangeError: If `reference` is outside the ephemeris range.
        """
        body = self.registry.get(name)
        return self.sample_body(body, reference)

    def sample_body(self, body: CelestialBody, reference: datetime) -> np.ndarray:
        jd = self.sample_instants(reference, body.orbital_period_days)
        if body.parent is None:
            points = to_display_distance(self.ephemeris.heliocentric_positions(body.ephemeris_id, jd))
        else:
            points = km_to_display(self.ephemeris.relative_positions(body.ephemeris_id, jd))

        if config.Debug.DEBUG_MODE:
            closure = float(np.linalg.norm(points[-1] - points[0]))
            logging.debug(f"Sampled orbit of {body.name}: {len(points)} points, closure gap {closure:.4f} display units")
        return points

    def sample_all(self, reference: datetime) -> dict:
        """Polylines of every registered body, keyed by name, in registry order."""
        return {body.name: self.sample_body(body, reference) for body in self.registry}
