"""
Angle and Longitude Utilities.

Degree/radian conversion and longitude normalization. All functions accept
Python floats as well as numpy arrays.
"""

from typing import Union
import numpy as np
from numpy.typing import NDArray

from common.constants import TWO_PI

ArrayLike = Union[float, NDArray[np.float64]]


def to_radians(deg: ArrayLike) -> ArrayLike:
    """Convert degrees to radians."""
    return np.radians(deg)


def to_degrees(rad: ArrayLike) -> ArrayLike:
    """Convert radians to degrees."""
    return np.degrees(rad)


def normalize_longitude(lon: float) -> float:
    """Normalize a longitude into (-π, π].

    The operation is idempotent. Non-finite input yields NaN rather than
    raising.

    Parameters
    ----------
    lon : float
        Longitude in radians, any real value.

    Returns
    -------
    float
        Equivalent longitude in (-π, π].
    """
    if not np.isfinite(lon):
        return float("nan")
    lon = float(np.fmod(lon, TWO_PI))
    if lon > np.pi:
        lon -= TWO_PI
    elif lon <= -np.pi:
        lon += TWO_PI
    return lon


def normalize_longitude_array(lon: NDArray[np.float64]) -> NDArray[np.float64]:
    """Vectorized `normalize_longitude`; non-finite entries become NaN."""
    lon = np.asarray(lon, dtype=np.float64)
    with np.errstate(invalid='ignore'):
        out = np.fmod(lon, TWO_PI)
    out = np.where(out > np.pi, out - TWO_PI, out)
    out = np.where(out <= -np.pi, out + TWO_PI, out)
    return np.where(np.isfinite(lon), out, np.nan)


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp `value` into [lo, hi]."""
    return min(max(value, lo), hi)


def finite_or(value: float, default: float) -> float:
    """Return `value` if it is a finite number, else `default`."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return value if np.isfinite(value) else default
