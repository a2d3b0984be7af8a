# simulation_clock.py
import math
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from config import config, ConfigurationError, SECONDS_PER_DAY
from ephemeris import EphemerisRangeError, seconds_since_j2000


class SimulationClock:
    """
    Simulated instant plus a signed rate in simulated days per real second.

    The instant is a timezone-aware UTC datetime. A rate of 0 pauses the clock,
    a negative rate runs it backwards. Advancing by zero real seconds leaves the
    instant untouched.

    Attributes:
        instant (datetime): Current simulated instant (UTC).
        rate (float): Simulated days per real second.
    """

    def __init__(self, start: Optional[datetime] = None, rate: Optional[float] = None):
        if start is None:
            start = config.Time.START_UTC or datetime.now(timezone.utc)
        self.instant = self._as_utc(start)
        self.rate = 0.0
        self.set_rate(config.Time.DEFAULT_TIME_SCALE_DAYS_PER_SEC if rate is None else rate)
        self._paused_rate: Optional[float] = None
        logging.info(f"Simulation clock starts at {self.instant.isoformat()} ({self.speed_label})")

    @staticmethod
    def _as_utc(value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def set_rate(self, rate: float):
        """Sets the rate in days per real second. Raises ConfigurationError if not finite."""
        try:
            rate = float(rate)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Time scale must be a number (got {rate!r}).") from None
        if not math.isfinite(rate):
            raise ConfigurationError(f"Time scale must be finite (got {rate}).")
        self.rate = rate
        self._paused_rate = None

    def adjust_rate(self, delta: float, limit: Optional[float] = None) -> float:
        """
        Changes the rate by `delta` days per real second, clamped to +/- `limit`.

        A paused clock stays paused and the change applies to the rate it
        resumes with.

        Returns:
            float: The new (running or resume) rate.
        """
        paused_rate = self._paused_rate
        rate = (self.rate if paused_rate is None else paused_rate) + delta
        if limit is not None:
            rate = max(-limit, min(limit, rate))
        self.set_rate(rate)
        if paused_rate is not None:
            self._paused_rate = self.rate
            self.rate = 0.0
            return self._paused_rate
        return self.rate

    def advance(self, elapsed_real_seconds: float) -> datetime:
        """
        Moves the instant forward by `elapsed_real_seconds * rate` days.

        Returns:
            datetime: The new instant.

        Raises:
            EphemerisRangeError: If the new instant falls outside the datetime calendar.
        """
        if elapsed_real_seconds == 0 or self.rate == 0:
            return self.instant
        return self._shift_days(elapsed_real_seconds * self.rate)

    def jump(self, days: float) -> datetime:
        """Moves the instant by `days` regardless of the rate."""
        if days == 0:
            return self.instant
        return self._shift_days(days)

    def jump_to(self, instant: datetime) -> datetime:
        self.instant = self._as_utc(instant)
        return self.instant

    def _shift_days(self, days: float) -> datetime:
        if not math.isfinite(days):
            raise EphemerisRangeError(f"Cannot move the clock by a non-finite number of days ({days}).")
        try:
            self.instant = self.instant + timedelta(seconds=days * SECONDS_PER_DAY)
        except OverflowError:
            raise EphemerisRangeError(
                f"Moving {days:.1f} days from {self.instant.isoformat()} leaves the representable calendar."
            ) from None
        return self.instant

    def pause(self):
        if self._paused_rate is None:
            self._paused_rate = self.rate
            self.rate = 0.0

    def resume(self):
        if self._paused_rate is not None:
            self.rate = self._paused_rate
            self._paused_rate = None

    def toggle_pause(self):
        if self.is_paused:
            self.resume()
        else:
            self.pause()

    @property
    def is_paused(self) -> bool:
        return self._paused_rate is not None

    def reverse(self):
        """Flips the direction of time, keeping its magnitude."""
        if self._paused_rate is not None:
            self._paused_rate = -self._paused_rate
        else:
            self.rate = -self.rate

    def seconds_since_j2000(self) -> float:
        return seconds_since_j2000(self.instant)

    @property
    def speed_label(self) -> str:
        if self.is_paused:
            return "Paused"
        return f"{self.rate:+.2f} days/sec"
