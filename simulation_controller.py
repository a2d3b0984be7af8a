# simulation_controller.py
import math
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Optional, Tuple

import numpy as np

from config import config, ConfigurationError
from ephemeris import EphemerisProvider, create_ephemeris
from orbit_sampler import OrbitSampler
from scaling import to_display_distance, km_to_display, visual_radius, display_to_au
from simulation_clock import SimulationClock
from solarsystem import BodyRegistry, BodyState, rotation_phase


@dataclass
class DisplayConfig:
    """Live display tunables, changed through the controller setters only.

    Attributes:
        min_size (float): Lower clamp for every body's visual radius, display units.
        labels_visible (bool): Whether the viewer draws body names.
        overlay_visible (bool): Whether the viewer draws the constellation overlay.
    """
    min_size: float = config.Display.DEFAULT_MIN_SIZE
    labels_visible: bool = config.Display.SHOW_LABELS
    overlay_visible: bool = config.Display.SHOW_OVERLAY


@dataclass
class ControlInput:
    """Input collected by the UI layer during one frame.

    Each field defaults to "no change". Deltas are added to the current value;
    toggles flip the current value.

    Attributes:
        time_scale_delta (float): Change of the clock rate, days per real second.
        reverse_time (bool): Flip the sign of the clock rate.
        toggle_pause (bool): Pause or resume the clock.
        min_size_delta (float): Change of the minimum visual size.
        toggle_labels (bool): Flip label visibility.
        toggle_overlay (bool): Flip constellation overlay visibility.
        jump_days (float): Move the clock by this many days immediately.
        resample_orbits (bool): Recompute every orbit polyline at the current instant.
        quit (bool): The user asked to close the application.
    """
    time_scale_delta: float = 0.0
    reverse_time: bool = False
    toggle_pause: bool = False
    min_size_delta: float = 0.0
    toggle_labels: bool = False
    toggle_overlay: bool = False
    jump_days: float = 0.0
    resample_orbits: bool = False
    quit: bool = False


@dataclass
class BodySnapshot:
    """Read-only view of one body for the renderer.

    `orbit_polyline` holds offsets from `parent_anchor` for bodies with a
    parent; `parent_anchor` is the origin for heliocentric bodies.
    """
    name: str
    color: Tuple[int, int, int]
    parent: Optional[str]
    position: np.ndarray
    visual_radius: float
    rotation_phase: float
    orbit_polyline: np.ndarray
    parent_anchor: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float64))

    def absolute_orbit(self) -> np.ndarray:
        """Orbit polyline in display coordinates."""
        return self.orbit_polyline + self.parent_anchor


@dataclass
class SystemSnapshot:
    instant: datetime
    time_scale: float
    paused: bool
    display: DisplayConfig
    bodies: Dict[str, BodySnapshot]


class SimulationController:
    """
    Per-frame orchestration of the orrery.

    Owns the clock, the body states and the display configuration. Each
    `tick()` advances the clock and recomputes every body from the new instant
    in registry order (parents first), so positions are a pure function of the
    instant and the display settings. Orbit polylines are sampled at
    construction and on demand only.

    Raises from `tick()`:
        ValueError: Negative elapsed time.
        EphemerisRangeError: The clock left the ephemeris' valid span.
    """

    def __init__(self, ephemeris: Optional[EphemerisProvider] = None,
                 registry: Optional[BodyRegistry] = None,
                 clock: Optional[SimulationClock] = None,
                 display: Optional[DisplayConfig] = None):
        try:
            self.registry = registry if registry is not None else BodyRegistry()
            self.ephemeris = ephemeris if ephemeris is not None else create_ephemeris()
            self.registry.check_ephemeris(self.ephemeris)
            self.clock = clock if clock is not None else SimulationClock()
            self.display = display if display is not None else DisplayConfig()
            self._check_min_size(self.display.min_size)
            self.sampler = OrbitSampler(self.ephemeris, self.registry)

            self.states: Dict[str, BodyState] = {body.name: BodyState(body=body) for body in self.registry}
            self.tick_count = 0

            self._update_bodies()
            self.resample_orbits()
            logging.info(f"SimulationController initialized at {self.clock.instant.isoformat()} "
                         f"with {len(self.states)} bodies ({self.ephemeris.name} ephemeris).")
        except ConfigurationError as e_config:
            logging.critical(f"SimulationController initialization failed due to ConfigurationError: {e_config}", exc_info=True)
            raise
        except Exception as e_unexpected:
            logging.critical(f"Unexpected error during SimulationController initialization: {e_unexpected}", exc_info=True)
            raise

    # ------------------------------------------------------------------
    # Per-frame update
    # ------------------------------------------------------------------

    def tick(self, elapsed_real_seconds: float):
        """
        Advances the clock by `elapsed_real_seconds` of real time and updates
        every body's position, visual radius and rotation phase.

        With zero elapsed time the state is left exactly as it was.

        Args:
            elapsed_real_seconds (float): Real time since the previous tick, >= 0.

        Raises:
            ValueError: If `elapsed_real_seconds` is negative or not finite.
            EphemerisRangeError: If the new instant is outside the ephemeris range.
        """
        if not math.isfinite(elapsed_real_seconds) or elapsed_real_seconds < 0:
            raise ValueError(f"Elapsed real time must be a finite, non-negative number of seconds (got {elapsed_real_seconds}).")

        previous_instant = self.clock.instant
        self.clock.advance(elapsed_real_seconds)
        try:
            self._update_bodies()
        except Exception:
            # Keep clock and displayed positions consistent
            self.clock.jump_to(previous_instant)
            raise
        self.tick_count += 1

        if config.Debug.DEBUG_MODE and self.tick_count % config.Debug.LOG_BODY_INTERVAL_TICKS == 0:
            self._log_bodies()

    def _update_bodies(self):
        instant = self.clock.instant
        seconds = self.clock.seconds_since_j2000()
        min_size = self.display.min_size

        new_positions: Dict[str, np.ndarray] = {}
        for body in self.registry:
            if body.parent is None:
                position = to_display_distance(self.ephemeris.heliocentric_position(body.ephemeris_id, instant))
            else:
                offset = km_to_display(self.ephemeris.relative_position(body.ephemeris_id, instant))
                position = new_positions[body.parent] + offset
            new_positions[body.name] = np.asarray(position, dtype=np.float64)

        # Commit only once every lookup has succeeded
        for body in self.registry:
            state = self.states[body.name]
            state.position = new_positions[body.name]
            state.visual_radius = visual_radius(body.radius_km, min_size)
            state.rotation_phase = rotation_phase(seconds, body.rotation_period_hours)

    def _log_bodies(self):
        for name in config.Debug.LOG_BODY_NAMES:
            state = self.states.get(name)
            if state is not None:
                pos_au = display_to_au(state.position)
                logging.debug(f"Tick {self.tick_count}: {name} at {np.round(pos_au, 5)} AU, "
                              f"phase {state.rotation_phase:.3f} rad")

    # ------------------------------------------------------------------
    # Orbits and jumps
    # ------------------------------------------------------------------

    def resample_orbits(self, reference: Optional[datetime] = None):
        """Recomputes every orbit polyline starting at `reference` (default: current instant)."""
        reference = reference if reference is not None else self.clock.instant
        polylines = self.sampler.sample_all(reference)
        for name, polyline in polylines.items():
            self.states[name].orbit_polyline = polyline
        logging.info(f"Orbits resampled at {reference.isoformat()}.")

    def jump(self, days: float):
        """Moves the clock by `days` and updates the bodies. Long jumps also resample the orbits."""
        previous_instant = self.clock.instant
        self.clock.jump(days)
        try:
            self._update_bodies()
            if abs(days) > config.Time.RESAMPLE_AFTER_JUMP_DAYS:
                self.resample_orbits()
        except Exception:
            self.clock.jump_to(previous_instant)
            self._update_bodies()
            raise

    # ------------------------------------------------------------------
    # Setters used by the UI
    # ------------------------------------------------------------------

    def set_time_scale(self, rate: float):
        """Sets the clock rate in simulated days per real second. Must be finite."""
        self.clock.set_rate(rate)
        logging.debug(f"Time scale set to {self.clock.rate} days/sec.")

    @staticmethod
    def _check_min_size(value):
        try:
            ok = math.isfinite(value) and value > 0
        except TypeError:
            ok = False
        if not ok:
            raise ConfigurationError(f"Minimum visual size must be a finite positive number (got {value!r}).")

    def set_min_size(self, value: float):
        """Sets the minimum visual radius. Takes effect on the next tick."""
        self._check_min_size(value)
        self.display.min_size = float(value)

    def set_labels_visible(self, visible: bool):
        self.display.labels_visible = bool(visible)

    def set_overlay_visible(self, visible: bool):
        self.display.overlay_visible = bool(visible)

    def current_instant(self) -> datetime:
        return self.clock.instant

    def apply_input(self, control_input: ControlInput):
        """Applies one frame's worth of UI input to the clock and the display settings."""
        if control_input.time_scale_delta:
            rate = self.clock.adjust_rate(control_input.time_scale_delta, config.Time.MAX_ABS_TIME_SCALE)
            logging.debug(f"Time scale adjusted to {rate} days/sec ({self.clock.speed_label}).")
        if control_input.reverse_time:
            self.clock.reverse()
        if control_input.toggle_pause:
            self.clock.toggle_pause()
        if control_input.min_size_delta:
            low, high = config.Display.MIN_SIZE_LIMITS
            value = round(self.display.min_size + control_input.min_size_delta, 6)
            self.set_min_size(max(low, min(high, value)))
        if control_input.toggle_labels:
            self.set_labels_visible(not self.display.labels_visible)
        if control_input.toggle_overlay:
            self.set_overlay_visible(not self.display.overlay_visible)
        if control_input.jump_days:
            self.jump(control_input.jump_days)
        if control_input.resample_orbits:
            self.resample_orbits()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def body_state(self, name: str) -> BodyState:
        self.registry.get(name)
        return self.states[name]

    def snapshot(self) -> SystemSnapshot:
        """Copies the current state for rendering."""
        bodies: Dict[str, BodySnapshot] = {}
        for body in self.registry:
            state = self.states[body.name]
            anchor = self.states[body.parent].position.copy() if body.parent is not None else np.zeros(3)
            bodies[body.name] = BodySnapshot(
                name=body.name,
                color=body.color,
                parent=body.parent,
                position=state.position.copy(),
                visual_radius=state.visual_radius,
                rotation_phase=state.rotation_phase,
                orbit_polyline=state.orbit_polyline,
                parent_anchor=anchor,
            )
        return SystemSnapshot(
            instant=self.clock.instant,
            time_scale=self.clock.rate,
            paused=self.clock.is_paused,
            display=replace(self.display),
            bodies=bodies,
        )
