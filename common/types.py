"""
Type Definitions for the Projection Engine.

This module defines the dataclasses that travel between the projection,
resampling and graticule components. Geographic quantities are always held
in RADIANS and canvas quantities in PIXELS.

Design Rationale
----------------
Visibility is carried as data rather than as exceptions: every point type
has a `visible` flag, and an invisible point holds NaN coordinates so that
accidental reads propagate as NaN instead of as plausible positions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Tuple, Union
import numpy as np
from numpy.typing import NDArray


class ProjectionType(str, Enum):
    """Supported projection families."""
    ORTHOGRAPHIC = "orthographic"
    MERCATOR = "mercator"
    STEREOGRAPHIC = "stereographic"

    @classmethod
    def parse(cls, value: Union[str, "ProjectionType", None]) -> "ProjectionType":
        """Resolve a type tag, falling back to orthographic.

        Short aliases used by the viewer UI ('ortho', 'merc', 'stereo')
        are accepted. Unknown or missing tags resolve to ORTHOGRAPHIC.
        """
        if isinstance(value, ProjectionType):
            return value
        if not isinstance(value, str):
            return cls.ORTHOGRAPHIC
        tag = value.strip().lower()
        return _PROJECTION_ALIASES.get(tag, cls.ORTHOGRAPHIC)

    @classmethod
    def is_known(cls, value: Any) -> bool:
        """Whether `value` names a projection without falling back."""
        if isinstance(value, ProjectionType):
            return True
        return isinstance(value, str) and value.strip().lower() in _PROJECTION_ALIASES


_PROJECTION_ALIASES = {
    "orthographic": ProjectionType.ORTHOGRAPHIC,
    "ortho": ProjectionType.ORTHOGRAPHIC,
    "mercator": ProjectionType.MERCATOR,
    "merc": ProjectionType.MERCATOR,
    "stereographic": ProjectionType.STEREOGRAPHIC,
    "stereo": ProjectionType.STEREOGRAPHIC,
}


@dataclass(frozen=True)
class GeoPoint:
    """A geographic point produced by an inverse projection.

    Attributes
    ----------
    latitude : float
        Latitude in RADIANS. Range: [-π/2, π/2].
    longitude : float
        Longitude in RADIANS. Range: (-π, π].
    visible : bool
        False when the pixel has no geographic preimage. Coordinates of an
        invisible point are NaN and must not be read.

    Examples
    --------
    >>> p = GeoPoint.from_degrees(40.71, -74.01)
    >>> lat_deg, lon_deg = p.to_degrees()
    """
    latitude: float  # radians
    longitude: float  # radians
    visible: bool = True

    def __post_init__(self):
        """Validate coordinate ranges of visible points."""
        if not self.visible:
            return
        if not -np.pi / 2 - 1e-12 <= self.latitude <= np.pi / 2 + 1e-12:
            raise ValueError(
                f"Latitude {self.latitude} rad out of range [-π/2, π/2]. "
                f"Did you pass degrees instead of radians?"
            )
        if not -np.pi < self.longitude <= np.pi + 1e-12:
            raise ValueError(
                f"Longitude {self.longitude} rad out of range (-π, π]. "
                f"Normalize it first, or did you pass degrees?"
            )

    @classmethod
    def invisible(cls) -> "GeoPoint":
        """A point with no geographic position."""
        return cls(latitude=float("nan"), longitude=float("nan"), visible=False)

    def to_degrees(self) -> Tuple[float, float]:
        """Convert to degrees for display.

        Returns
        -------
        Tuple[float, float]
            (latitude_degrees, longitude_degrees)
        """
        return float(np.degrees(self.latitude)), float(np.degrees(self.longitude))

    @classmethod
    def from_degrees(cls, lat_deg: float, lon_deg: float) -> "GeoPoint":
        """Create a visible point from degrees."""
        return cls(latitude=float(np.radians(lat_deg)), longitude=float(np.radians(lon_deg)))


@dataclass(frozen=True)
class CanvasPoint:
    """A point on the projection canvas.

    Attributes
    ----------
    x, y : float
        Pixel coordinates; y grows downwards. NaN when not visible.
    visible : bool
        False when the geographic point is outside the visible region.
    """
    x: float
    y: float
    visible: bool = True

    @classmethod
    def invisible(cls) -> "CanvasPoint":
        """A geographic point with no canvas position."""
        return cls(x=float("nan"), y=float("nan"), visible=False)

    def as_tuple(self) -> Tuple[float, float]:
        return self.x, self.y


@dataclass
class ProjectedPoints:
    """Vectorized forward projection result.

    Attributes
    ----------
    x, y : ndarray
        Pixel coordinates, NaN where not visible.
    visible : ndarray of bool
        Visibility mask with the same shape as `x`.
    """
    x: NDArray[np.float64]
    y: NDArray[np.float64]
    visible: NDArray[np.bool_]


@dataclass
class GeoPoints:
    """Vectorized inverse projection result.

    Attributes
    ----------
    latitude, longitude : ndarray
        Geographic coordinates in radians, NaN where not visible.
    visible : ndarray of bool
        Visibility mask with the same shape as `latitude`.
    """
    latitude: NDArray[np.float64]
    longitude: NDArray[np.float64]
    visible: NDArray[np.bool_]


@dataclass(frozen=True)
class ProjectionParameters:
    """Caller-facing projection parameters, in degrees.

    The defaults reproduce the initial view of the interactive viewer: an
    orthographic hemisphere centred on New York City.

    Attributes
    ----------
    projection_type : ProjectionType
        Projection family.
    center_latitude_deg, center_longitude_deg : float
        Projection center in degrees.
    edge_angle_deg : float
        Edge angle (orthographic, stereographic) or maximum latitude
        (Mercator), in degrees. Clamped per type at construction.
    clamp_latitude : bool
        Mercator only: clamp latitudes to ±max latitude before forward
        projection and reject inverse latitudes outside that range.
    """
    projection_type: ProjectionType = ProjectionType.ORTHOGRAPHIC
    center_latitude_deg: float = 40.71
    center_longitude_deg: float = -74.01
    edge_angle_deg: float = 90.0
    clamp_latitude: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProjectionParameters":
        """Build parameters from a plain mapping, ignoring unknown keys."""
        defaults = cls()
        return cls(
            projection_type=ProjectionType.parse(
                data.get("projection_type", defaults.projection_type)
            ),
            center_latitude_deg=_as_float(
                data.get("center_latitude_deg"), defaults.center_latitude_deg
            ),
            center_longitude_deg=_as_float(
                data.get("center_longitude_deg"), defaults.center_longitude_deg
            ),
            edge_angle_deg=_as_float(
                data.get("edge_angle_deg"), defaults.edge_angle_deg
            ),
            clamp_latitude=bool(data.get("clamp_latitude", defaults.clamp_latitude)),
        )

    def to_dict(self) -> dict:
        return {
            "projection_type": self.projection_type.value,
            "center_latitude_deg": self.center_latitude_deg,
            "center_longitude_deg": self.center_longitude_deg,
            "edge_angle_deg": self.edge_angle_deg,
            "clamp_latitude": self.clamp_latitude,
        }


def _as_float(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass
class RasterBuffer:
    """A caller-owned RGBA raster.

    Attributes
    ----------
    pixels : ndarray
        Array of shape (height, width, 4) and dtype uint8.

    Notes
    -----
    Source (equirectangular) and destination (projected) rasters are always
    distinct buffers.
    """
    pixels: NDArray[np.uint8]

    def __post_init__(self):
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(
                f"Raster must have shape (height, width, 4), got {self.pixels.shape}"
            )
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Raster must be uint8, got {self.pixels.dtype}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        color: Tuple[int, int, int, int] = (0, 0, 0, 0)
    ) -> "RasterBuffer":
        """Allocate a raster filled with a single colour."""
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = np.asarray(color, dtype=np.uint8)
        return cls(pixels)

    @classmethod
    def from_array(cls, array: NDArray) -> "RasterBuffer":
        """Wrap an RGB or RGBA array, copying it into uint8 RGBA.

        Parameters
        ----------
        array : ndarray
            Array of shape (height, width, 3) or (height, width, 4).
            RGB input receives an opaque alpha channel.

        Raises
        ------
        ValueError
            If the array is not 3-dimensional with 3 or 4 channels.
        """
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise ValueError(
                f"Expected an RGB or RGBA array, got shape {array.shape}"
            )
        rgba = np.full(array.shape[:2] + (4,), 255, dtype=np.uint8)
        rgba[..., :array.shape[2]] = array.astype(np.uint8)
        return cls(rgba)

    def pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        """Return the RGBA quadruple at column x, row y."""
        r, g, b, a = self.pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def sample(self, ix: NDArray[np.intp], iy: NDArray[np.intp]) -> NDArray[np.uint8]:
        """Gather pixels at integer column/row indices.

        Indices must already be within bounds.
        """
        return self.pixels[iy, ix]


@dataclass
class Polyline:
    """One graticule stroke.

    Attributes
    ----------
    points : list of (x, y)
        Ordered canvas points, at least two.
    kind : str
        'parallel' or 'meridian'.
    value_deg : float
        The latitude (parallel) or longitude (meridian) the stroke traces.
    """
    points: list = field(default_factory=list)
    kind: str = "parallel"
    value_deg: float = 0.0

    def __len__(self) -> int:
        return len(self.points)

    def as_array(self) -> NDArray[np.float64]:
        """Points as an (N, 2) array."""
        return np.asarray(self.points, dtype=np.float64).reshape(-1, 2)


# Type aliases for array types
RGBA = Tuple[int, int, int, int]
AngleArray = NDArray[np.float64]  # radians
PixelArray = NDArray[np.float64]  # pixels

