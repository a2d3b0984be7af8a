# config.py
import math
import logging
from datetime import datetime
from typing import Dict, Optional

# Configure basic logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(module)s - %(message)s')

# Fundamental Physical Constants (used across different config sections)
AU_KM = 149597870.7  # Astronomical Unit in kilometers
SECONDS_PER_DAY = 86400.0
J2000_JD = 2451545.0  # Julian Date of the J2000.0 epoch (2000-01-01 12:00 UTC)

# Display Scale Constants (fundamental for conversions)
AU_SCALE = 100.0  # Display units per AU
KM_SCALE = AU_SCALE / AU_KM  # Display units per km

# Fields every catalog entry must provide. Orbital elements are only needed by the
# Keplerian ephemeris provider and are checked there.
REQUIRED_BODY_FIELDS = ('ephemeris_id', 'radius_km', 'color', 'parent',
                        'orbital_period_days', 'rotation_period_hours')


class ConfigurationError(Exception):
    """Custom exception for simulation configuration errors.

    Raised by `SimulationConfig.validate()` and by configuration-dependent
    components (body registry, ephemeris providers, orbit sampler, controller
    setters) when settings are invalid, inconsistent, or missing, which would
    leave a body with undefined geometry.

    Attributes:
        message (str): A human-readable explanation of the configuration error.
                       This is the first argument passed to the exception constructor.
    """
    pass


def validate_body_catalog(body_data: Dict[str, Dict]) -> None:
    """Validates an ordered body catalog.

    Checks, for every entry: required fields are present, the radius and
    orbital period are positive, the rotation period is non-zero, the colour is
    an RGB triple, and the parent (if any) is a body listed *earlier* in the
    catalog that has no parent itself.

    Args:
        body_data (Dict[str, Dict]): Mapping of body name to catalog fields, in
            update order.

    Raises:
        ConfigurationError: On the first invalid entry.
    """
    if not body_data:
        raise ConfigurationError("Body catalog is empty.")

    seen = {}
    for name, data in body_data.items():
        missing = [f for f in REQUIRED_BODY_FIELDS if f not in data]
        if missing:
            raise ConfigurationError(f"Body '{name}' is missing catalog fields: {missing}.")
        if not data['ephemeris_id']:
            raise ConfigurationError(f"Body '{name}' has an empty ephemeris_id.")
        if not data['radius_km'] or data['radius_km'] <= 0:
            raise ConfigurationError(f"Radius of body '{name}' must be positive (got {data['radius_km']}).")

        period = data['orbital_period_days']
        if period is None or not math.isfinite(period) or period <= 0:
            raise ConfigurationError(f"Orbital period of body '{name}' must be a positive number of days (got {period}).")
        if not data['rotation_period_hours']:
            raise ConfigurationError(f"Rotation period of body '{name}' must be non-zero.")

        color = data['color']
        if len(color) != 3 or not all(0 <= c <= 255 for c in color):
            raise ConfigurationError(f"Color of body '{name}' must be an RGB triple in 0..255 (got {color}).")

        parent = data['parent']
        if parent is not None:
            if parent == name:
                raise ConfigurationError(f"Body '{name}' cannot orbit itself.")
            if parent not in seen:
                if parent in body_data:
                    raise ConfigurationError(f"Parent '{parent}' must be listed before its child '{name}'.")
                raise ConfigurationError(f"Parent '{parent}' of body '{name}' not found in catalog.")
            if seen[parent] is not None:
                raise ConfigurationError(
                    f"Body '{name}' has parent '{parent}' which itself orbits '{seen[parent]}'. "
                    "Only one level of parenting is supported."
                )
        seen[name] = parent


class SimulationConfig:
    """Centralized, hierarchical configuration for the solar system orrery.

    This class consolidates all parameters into nested static classes
    (e.g., `SimulationConfig.Time`, `SimulationConfig.Display`,
    `SimulationConfig.SolarSystem`) for organized access. An instance of this
    class, named `config`, is created at the end of this module, making it
    globally available via `from config import config`.

    The `__init__` method invokes `validate()`, which checks every section for
    valid ranges and consistency and raises `ConfigurationError` if anything is
    wrong. This preempts runtime failures due to faulty configuration.

    Example Usage:
        >>> from config import config
        >>> print(f"Orbit samples: {config.Orbit.SAMPLES}")
        >>> print(f"Earth period (days): {config.SolarSystem.BODY_DATA['Earth']['orbital_period_days']}")
    """

    # --- Time Configuration ---
    class Time:
        """Configuration for the simulation clock.

        Attributes:
            START_UTC (Optional[datetime]): Instant the clock starts at. `None` means
                the current wall-clock time.
            DEFAULT_TIME_SCALE_DAYS_PER_SEC (float): Initial clock rate in simulated
                days per real second. 1.0 means one day per second.
            MAX_ABS_TIME_SCALE (float): Largest |rate| the control panel steps to.
            TIME_SCALE_STEP (float): Rate change per control panel key press.
            JUMP_DAYS (float): Days skipped by the jump keys.
            RESAMPLE_AFTER_JUMP_DAYS (float): Jumps longer than this trigger an orbit resample.
        """
        START_UTC: Optional[datetime] = None
        DEFAULT_TIME_SCALE_DAYS_PER_SEC = 1.0
        MAX_ABS_TIME_SCALE = 365.0
        TIME_SCALE_STEP = 1.0
        JUMP_DAYS = 30.0
        RESAMPLE_AFTER_JUMP_DAYS = 365.0

    # --- Display Configuration ---
    class Display:
        """Initial values of the live display tunables.

        Attributes:
            DEFAULT_MIN_SIZE (float): Minimum visual radius of any body in display units.
            MIN_SIZE_LIMITS (Tuple[float, float]): Range the control panel keeps the min size in.
            MIN_SIZE_STEP (float): Min size change per control panel key press.
            SHOW_LABELS (bool): Whether body labels start visible.
            SHOW_OVERLAY (bool): Whether the constellation overlay starts visible.
        """
        DEFAULT_MIN_SIZE = 0.5
        MIN_SIZE_LIMITS = (0.1, 5.0)
        MIN_SIZE_STEP = 0.1
        SHOW_LABELS = True
        SHOW_OVERLAY = False

    # --- Orbit Sampling Configuration ---
    class Orbit:
        """Configuration for the orbit sampler.

        Attributes:
            SAMPLES (int): Number of steps per revolution. The polyline holds
                SAMPLES + 1 points, the last one a full period after the first.
        """
        SAMPLES = 360

    # --- Ephemeris Configuration ---
    class Ephemeris:
        """Configuration for the ephemeris provider.

        Attributes:
            PROVIDER (str): "astropy" (astropy builtin ephemeris) or "kepler"
                (closed-form J2000 mean elements).
            ASTROPY_EPHEMERIS (str): Ephemeris name passed to astropy. "builtin"
                needs no downloads.
            VALID_YEAR_MIN (int): First calendar year queries are accepted for.
            VALID_YEAR_MAX (int): Last calendar year queries are accepted for.
        """
        PROVIDER = "astropy"
        ASTROPY_EPHEMERIS = "builtin"
        VALID_YEAR_MIN = 1000
        VALID_YEAR_MAX = 3000

    # --- Solar System Configuration ---
    class SolarSystem:
        """Static catalog of simulated bodies.

        Attributes:
            SUN (Dict): Display data for the Sun, drawn fixed at the origin.
            BODY_DATA (Dict[str, Dict]): Ordered mapping of body name to:
                - ephemeris_id (str): Identifier passed to the ephemeris provider.
                - radius_km (float): Mean physical radius.
                - color (Tuple[int, int, int]): Display RGB colour.
                - parent (Optional[str]): Name of the body this one orbits, None for
                  heliocentric bodies. Parents must be listed before their moons.
                - orbital_period_days (float): Sidereal period, sizes the orbit sample span.
                - rotation_period_hours (float): Sidereal rotation period, negative
                  for retrograde spin.
                - semi_major_axis_au, eccentricity, inclination_deg,
                  longitude_of_ascending_node_deg, argument_of_perihelion_deg,
                  mean_anomaly_at_epoch_deg: J2000 mean elements for the Keplerian
                  provider, ecliptic frame, relative to the parent for moons.
        """
        SUN = {'name': 'Sun', 'display_radius': 5.0, 'color': (255, 221, 0)}

        BODY_DATA = {
            'Mercury': {
                'ephemeris_id': 'mercury', 'radius_km': 2439.7, 'color': (170, 170, 170), 'parent': None,
                'orbital_period_days': 87.969, 'rotation_period_hours': 1407.6,
                'semi_major_axis_au': 0.387098, 'eccentricity': 0.205630, 'inclination_deg': 7.005,
                'longitude_of_ascending_node_deg': 48.331, 'argument_of_perihelion_deg': 29.124,
                'mean_anomaly_at_epoch_deg': 174.794
            },
            'Venus': {
                'ephemeris_id': 'venus', 'radius_km': 6051.8, 'color': (255, 204, 0), 'parent': None,
                'orbital_period_days': 224.701, 'rotation_period_hours': -5832.5,
                'semi_major_axis_au': 0.723332, 'eccentricity': 0.006772, 'inclination_deg': 3.39458,
                'longitude_of_ascending_node_deg': 76.680, 'argument_of_perihelion_deg': 54.884,
                'mean_anomaly_at_epoch_deg': 50.447
            },
            'Earth': {
                'ephemeris_id': 'earth', 'radius_km': 6371.0, 'color': (34, 51, 255), 'parent': None,
                'orbital_period_days': 365.256, 'rotation_period_hours': 23.9345,
                'semi_major_axis_au': 1.00000261, 'eccentricity': 0.01671123, 'inclination_deg': 0.00005,
                'longitude_of_ascending_node_deg': -11.26064, 'argument_of_perihelion_deg': 114.20783,
                'mean_anomaly_at_epoch_deg': 357.51716
            },
            'Moon': {
                'ephemeris_id': 'moon', 'radius_km': 1737.4, 'color': (136, 136, 136), 'parent': 'Earth',
                'orbital_period_days': 27.321661, 'rotation_period_hours': 655.72,
                'semi_major_axis_au': 0.00257, 'eccentricity': 0.0549, 'inclination_deg': 5.145,
                'longitude_of_ascending_node_deg': 125.08, 'argument_of_perihelion_deg': 318.15,
                'mean_anomaly_at_epoch_deg': 115.36
            },
            'Mars': {
                'ephemeris_id': 'mars', 'radius_km': 3389.5, 'color': (255, 68, 0), 'parent': None,
                'orbital_period_days': 686.980, 'rotation_period_hours': 24.6229,
                'semi_major_axis_au': 1.523679, 'eccentricity': 0.09340, 'inclination_deg': 1.850,
                'longitude_of_ascending_node_deg': 49.558, 'argument_of_perihelion_deg': 286.502,
                'mean_anomaly_at_epoch_deg': 19.412
            },
            'Jupiter': {
                'ephemeris_id': 'jupiter', 'radius_km': 69911.0, 'color': (255, 170, 136), 'parent': None,
                'orbital_period_days': 4332.589, 'rotation_period_hours': 9.925,
                'semi_major_axis_au': 5.2044, 'eccentricity': 0.0489, 'inclination_deg': 1.303,
                'longitude_of_ascending_node_deg': 100.464, 'argument_of_perihelion_deg': 273.867,
                'mean_anomaly_at_epoch_deg': 20.020
            },
            'Saturn': {
                'ephemeris_id': 'saturn', 'radius_km': 58232.0, 'color': (255, 221, 170), 'parent': None,
                'orbital_period_days': 10759.22, 'rotation_period_hours': 10.656,
                'semi_major_axis_au': 9.5826, 'eccentricity': 0.0565, 'inclination_deg': 2.485,
                'longitude_of_ascending_node_deg': 113.665, 'argument_of_perihelion_deg': 339.392,
                'mean_anomaly_at_epoch_deg': 317.020
            },
            'Uranus': {
                'ephemeris_id': 'uranus', 'radius_km': 25362.0, 'color': (136, 255, 255), 'parent': None,
                'orbital_period_days': 30685.4, 'rotation_period_hours': -17.24,
                'semi_major_axis_au': 19.2184, 'eccentricity': 0.0457, 'inclination_deg': 0.772,
                'longitude_of_ascending_node_deg': 74.006, 'argument_of_perihelion_deg': 96.999,
                'mean_anomaly_at_epoch_deg': 142.238600
            },
            'Neptune': {
                'ephemeris_id': 'neptune', 'radius_km': 24622.0, 'color': (68, 68, 255), 'parent': None,
                'orbital_period_days': 60189.0, 'rotation_period_hours': 16.11,
                'semi_major_axis_au': 30.110, 'eccentricity': 0.0113, 'inclination_deg': 1.770,
                'longitude_of_ascending_node_deg': 131.783, 'argument_of_perihelion_deg': 276.336,
                'mean_anomaly_at_epoch_deg': 256.228
            }
        }

    # --- Visualization Configuration ---
    class Visualization:
        """Configuration for the pygame viewer.

        Attributes:
            SCREEN_WIDTH_PX (int): Width of the display window in pixels.
            SCREEN_HEIGHT_PX (int): Height of the display window in pixels.
            FPS (int): Target frames per second for rendering.
            PIXELS_PER_UNIT (float): Screen pixels per display unit at zoom 1.0.
            MIN_ZOOM (float): Smallest allowed camera zoom.
            MAX_ZOOM (float): Largest allowed camera zoom.
            STAR_COUNT (int): Number of background stars.
            CONSTELLATION_COUNT (int): Number of star groups linked in the overlay.
            BACKGROUND_COLOR (Tuple[int, int, int]): Window clear colour.
            ORBIT_COLOR (Tuple[int, int, int]): Colour of orbit polylines.
            LABEL_COLOR (Tuple[int, int, int]): Colour of body labels.
        """
        SCREEN_WIDTH_PX = 1400
        SCREEN_HEIGHT_PX = 900
        FPS = 60
        PIXELS_PER_UNIT = 4.0
        MIN_ZOOM = 0.01
        MAX_ZOOM = 500.0
        STAR_COUNT = 400
        CONSTELLATION_COUNT = 12
        BACKGROUND_COLOR = (0, 0, 0)
        ORBIT_COLOR = (68, 68, 68)
        LABEL_COLOR = (255, 255, 255)

    # --- Monitoring Configuration ---
    class Monitoring:
        """Configuration for system resource monitoring.

        Attributes:
            MEMORY_USAGE_WARN_MB (int): Memory usage threshold in Megabytes. If exceeded,
                                        a warning is logged.
            MEMORY_CHECK_INTERVAL_TICKS (int): Frequency (in ticks) at which
                                               memory usage is checked.
        """
        MEMORY_USAGE_WARN_MB = 1024
        MEMORY_CHECK_INTERVAL_TICKS = 600

    # --- Debug Configuration ---
    class Debug:
        """Configuration for debugging features and logging verbosity.

        Attributes:
            DEBUG_MODE (bool): Master toggle for verbose debug logging.
            LOG_BODY_INTERVAL_TICKS (int): Frequency (ticks) for logging positions of selected bodies.
            LOG_BODY_NAMES (List[str]): Names of bodies whose positions are logged.
        """
        DEBUG_MODE = False
        LOG_BODY_INTERVAL_TICKS = 300
        LOG_BODY_NAMES = ["Earth", "Moon"]

    def __init__(self):
        """Initializes the `SimulationConfig` instance and validates it.

        Raises:
            ConfigurationError: If `self.validate()` detects any issues with the
                                configuration values.
        """
        self.validate()

    def validate(self):
        """Performs validation of all configuration settings.

        -   **Global Scales**: `AU_SCALE` and derived `KM_SCALE` are positive.
        -   **Time**: the default rate is finite and within `MAX_ABS_TIME_SCALE`,
            step sizes are positive.
        -   **Display**: min size limits are positive and ordered and contain the default.
        -   **Orbit**: at least three samples per revolution.
        -   **Ephemeris**: known provider name and an ordered year range.
        -   **SolarSystem**: the catalog passes `validate_body_catalog`.
        -   **Visualization / Monitoring / Debug**: positive sizes and intervals.

        Raises:
            ConfigurationError: If any configuration setting is found to be invalid.
        """
        # Global scale checks
        if AU_SCALE <= 0:
            raise ConfigurationError("Global AU_SCALE must be positive.")
        if KM_SCALE <= 0:
            raise ConfigurationError("Global KM_SCALE must be positive (derived from AU_SCALE and AU_KM).")

        # Time validation
        rate = self.Time.DEFAULT_TIME_SCALE_DAYS_PER_SEC
        if not math.isfinite(rate) or abs(rate) > self.Time.MAX_ABS_TIME_SCALE:
            raise ConfigurationError(
                f"Time.DEFAULT_TIME_SCALE_DAYS_PER_SEC ({rate}) must be finite and within "
                f"+/- MAX_ABS_TIME_SCALE ({self.Time.MAX_ABS_TIME_SCALE})."
            )
        if self.Time.TIME_SCALE_STEP <= 0 or self.Time.JUMP_DAYS <= 0:
            raise ConfigurationError("Time.TIME_SCALE_STEP and Time.JUMP_DAYS must be positive.")
        if self.Time.RESAMPLE_AFTER_JUMP_DAYS < 0:
            raise ConfigurationError("Time.RESAMPLE_AFTER_JUMP_DAYS cannot be negative.")

        # Display validation
        low, high = self.Display.MIN_SIZE_LIMITS
        if not (0 < low <= self.Display.DEFAULT_MIN_SIZE <= high):
            raise ConfigurationError(
                f"Display.DEFAULT_MIN_SIZE ({self.Display.DEFAULT_MIN_SIZE}) must lie within "
                f"positive MIN_SIZE_LIMITS ({low}, {high})."
            )
        if self.Display.MIN_SIZE_STEP <= 0:
            raise ConfigurationError("Display.MIN_SIZE_STEP must be positive.")

        # Orbit sampling
        if not isinstance(self.Orbit.SAMPLES, int) or self.Orbit.SAMPLES < 3:
            raise ConfigurationError(f"Orbit.SAMPLES ({self.Orbit.SAMPLES}) must be an integer >= 3.")

        # Ephemeris
        if self.Ephemeris.PROVIDER not in ("astropy", "kepler"):
            raise ConfigurationError(f"Unknown Ephemeris.PROVIDER '{self.Ephemeris.PROVIDER}'.")
        if not (1 <= self.Ephemeris.VALID_YEAR_MIN < self.Ephemeris.VALID_YEAR_MAX <= 9999):
            raise ConfigurationError(
                f"Ephemeris year range ({self.Ephemeris.VALID_YEAR_MIN}, {self.Ephemeris.VALID_YEAR_MAX}) "
                "must be ordered and within 1..9999."
            )

        # Solar System Data Validation
        if self.SolarSystem.SUN.get('display_radius', 0) <= 0:
            raise ConfigurationError("SolarSystem.SUN display_radius must be positive.")
        validate_body_catalog(self.SolarSystem.BODY_DATA)

        # Visualization
        if self.Visualization.SCREEN_WIDTH_PX <= 0 or self.Visualization.SCREEN_HEIGHT_PX <= 0:
            raise ConfigurationError("Visualization screen dimensions (SCREEN_WIDTH_PX, SCREEN_HEIGHT_PX) must be positive.")
        if self.Visualization.FPS <= 0:
            raise ConfigurationError("Visualization.FPS must be positive.")
        if not (0 < self.Visualization.MIN_ZOOM < self.Visualization.MAX_ZOOM):
            raise ConfigurationError("Visualization zoom limits must be positive and ordered.")

        # Monitoring and debug intervals
        if self.Monitoring.MEMORY_CHECK_INTERVAL_TICKS <= 0 or self.Debug.LOG_BODY_INTERVAL_TICKS <= 0:
            raise ConfigurationError("Monitoring and debug tick intervals must be positive.")

        logging.info("Configuration validated successfully.")


# --- Instantiate the configuration ---
# This makes the config object available for import and runs validation.
# e.g., from config import config
try:
    config = SimulationConfig()
except ConfigurationError as e:
    logging.error(f"FATAL CONFIGURATION ERROR: {e}", exc_info=True)
    raise
