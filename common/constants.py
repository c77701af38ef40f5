"""
Numerical Constants for Projection and Rendering.

This module collects the tolerances, clamp ranges and rendering defaults
used throughout the system. Each constant carries its unit and a short
description so that the value can be traced back to its role.

References
----------
- Snyder, J.P. (1987). Map Projections - A Working Manual. USGS Prof. Paper 1395.
"""

from dataclasses import dataclass
from typing import Final, Tuple
import numpy as np


@dataclass(frozen=True)
class Constant:
    """A numerical constant with provenance.

    Attributes
    ----------
    value : float
        The nominal value of the constant.
    unit : str
        The unit of the constant.
    description : str
        Human-readable description of the constant.
    """
    value: float
    unit: str
    description: str


class ProjectionConstants:
    """Registry of constants used by the projection engine.

    Tolerances
    ----------
    Degenerate-geometry thresholds. Values below these are treated as
    exact zero so that atan2(0, 0) and division by a vanishing radius
    never reach the trigonometric code.

    Clamp Ranges
    ------------
    Per-projection bounds on the extent parameter (edge angle or
    maximum latitude), in degrees.
    """

    # =========================================================================
    # Tolerances
    # =========================================================================

    FORWARD_CENTER_EPSILON: Final[Constant] = Constant(
        value=1e-12,
        unit="radian",
        description="Angular distance below which a point maps to the canvas center"
    )

    INVERSE_CENTER_EPSILON: Final[Constant] = Constant(
        value=1e-10,
        unit="pixel",
        description="Polar radius below which a pixel maps to the projection center"
    )

    STEREOGRAPHIC_ANTIPODE_EPSILON: Final[Constant] = Constant(
        value=1e-4,
        unit="dimensionless",
        description="cos(c) below -epsilon is on the far hemisphere"
    )

    MERCATOR_LATITUDE_TOLERANCE: Final[Constant] = Constant(
        value=1e-9,
        unit="radian",
        description="Slack allowed when checking inverse Mercator latitude range"
    )

    ZERO_EDGE_ANGLE: Final[Constant] = Constant(
        value=1e-12,
        unit="radian",
        description="Edge angles at or below this describe an empty field of view"
    )

    # =========================================================================
    # Clamp Ranges (degrees)
    # =========================================================================

    ORTHOGRAPHIC_EDGE_RANGE: Final[Tuple[float, float]] = (0.0, 90.0)
    MERCATOR_MAX_LATITUDE_RANGE: Final[Tuple[float, float]] = (45.0, 89.9)
    STEREOGRAPHIC_EDGE_RANGE: Final[Tuple[float, float]] = (0.0, 150.0)

    # =========================================================================
    # Parameter Defaults (degrees)
    # =========================================================================

    DEFAULT_CENTER_LATITUDE: Final[float] = 0.0
    DEFAULT_CENTER_LONGITUDE: Final[float] = 0.0
    DEFAULT_EDGE_ANGLE: Final[float] = 90.0

    @classmethod
    def get_all_constants(cls) -> dict:
        """Return all constants as a dictionary.

        Returns
        -------
        dict
            Mapping of constant names to Constant objects.
        """
        return {
            name: getattr(cls, name)
            for name in dir(cls)
            if isinstance(getattr(cls, name), Constant)
        }


class RenderingConstants:
    """Defaults for raster resampling and graticule generation."""

    BACKGROUND_RGBA: Final[Tuple[int, int, int, int]] = (255, 255, 255, 255)

    GRATICULE_SEGMENTS: Final[int] = 60

    # Upper bound used when iterating meridians so that +180 is included
    MERIDIAN_STOP_DEG: Final[float] = 180.0001

    DEFAULT_GRATICULE_SPACING_DEG: Final[float] = 15.0
    DEFAULT_GRATICULE_COLOR: Final[str] = "#ffffff"
    DEFAULT_LINE_WIDTH: Final[float] = 1.0

    DASH_PATTERNS: Final[dict] = {
        "solid": (),
        "dash": (8, 4),
        "dot": (2, 2),
        "dashdot": (10, 3, 2, 3),
    }

    DEFAULT_CACHE_CAPACITY: Final[int] = 20
    CACHE_KEY_DECIMALS: Final[int] = 2


# Convenience module-level constants for frequently used values
HALF_PI: Final[float] = np.pi / 2
TWO_PI: Final[float] = 2 * np.pi
