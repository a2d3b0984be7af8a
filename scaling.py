# scaling.py

import math

import numpy as np

from config import AU_SCALE, KM_SCALE, ConfigurationError


def to_display_distance(value_au):
    """
    Converts a distance (or position vector) in AU to display units.

    The same linear factor `AU_SCALE` is used for every body so relative
    distances are preserved.

    Args:
        value_au (float or np.ndarray): Distance(s) in astronomical units.

    Returns:
        float or np.ndarray: The value in display units, same shape as the input.
    """
    if isinstance(value_au, (list, tuple)):
        value_au = np.asarray(value_au, dtype=np.float64)
    return value_au * AU_SCALE


def km_to_display(value_km):
    """
    Converts a distance (or position vector) in kilometers to display units.

    Args:
        value_km (float or np.ndarray): Distance(s) in kilometers.

    Returns:
        float or np.ndarray: The value in display units (`value_km * KM_SCALE`).
    """
    if isinstance(value_km, (list, tuple)):
        value_km = np.asarray(value_km, dtype=np.float64)
    return value_km * KM_SCALE


def visual_radius(radius_km, min_size):
    """
    Computes the rendered radius of a body.

    The true radius scaled by `KM_SCALE` is clamped from below by `min_size`,
    which keeps small bodies visible at the cost of true relative size once
    the scaled radius falls under the clamp.

    Args:
        radius_km (float): Physical radius in kilometers.
        min_size (float): Minimum visual radius in display units. Must be positive.

    Returns:
        float: `max(radius_km * KM_SCALE, min_size)`.

    Raises:
        ConfigurationError: If `min_size` is not a positive finite number.
    """
    if min_size is None or not math.isfinite(min_size) or min_size <= 0:
        raise ConfigurationError(f"Minimum visual size must be positive (got {min_size}).")
    return max(radius_km * KM_SCALE, min_size)


def display_to_au(value_display):
    """Inverse of `to_display_distance`, used for debug logging."""
    return value_display / AU_SCALE
