"""
Map Projections between Geographic Coordinates and Canvas Pixels.

This module provides the three projections used to display an
equirectangular image: orthographic, Mercator and stereographic. Each maps
(latitude, longitude) on the unit sphere to pixel coordinates on a canvas
and back.

Canvas Model
------------
The canvas centre is the image of the projection centre. `R` is half the
smaller canvas dimension; output of the azimuthal projections is clipped to
the disk of radius `R` by the display. Canvas y grows downwards, so
geographic north is towards smaller y.

Visibility
----------
Projections never raise for out-of-range or non-finite geographic input.
A point with no image (far hemisphere, beyond the edge angle, outside the
latitude range) is reported with `visible=False` and NaN coordinates.

Implementation
--------------
Every projection implements the vectorized `forward_array` and
`inverse_array`; the scalar `forward` and `inverse` are thin wrappers around
them, so resampling (many pixels at once) and graticule generation (one
point at a time) run the same arithmetic.

References
----------
- Snyder, J.P. (1987). Map Projections - A Working Manual. USGS Prof. Paper 1395.
  Orthographic/azimuthal inverse: eq. (20-14), (20-15).
  Stereographic: eq. (21-2) to (21-4), inverse (20-14), (21-15).
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional, Tuple
import numpy as np
from numpy.typing import NDArray

from common.constants import ProjectionConstants, HALF_PI
from common.types import (
    CanvasPoint,
    GeoPoint,
    GeoPoints,
    ProjectedPoints,
    ProjectionParameters,
    ProjectionType,
)
from geospatial.angles import clamp, finite_or, normalize_longitude, normalize_longitude_array


def _as_arrays(a, b) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    return np.broadcast_arrays(a, b)


def _canvas_geometry(canvas_width: float, canvas_height: float) -> Tuple[float, float, float]:
    """Return (cx, cy, R) for a canvas."""
    return canvas_width / 2, canvas_height / 2, min(canvas_width, canvas_height) / 2


def _masked_projected(x, y, visible) -> ProjectedPoints:
    return ProjectedPoints(
        x=np.where(visible, x, np.nan),
        y=np.where(visible, y, np.nan),
        visible=np.asarray(visible, dtype=bool),
    )


def _masked_geo(lat, lon, visible) -> GeoPoints:
    return GeoPoints(
        latitude=np.where(visible, lat, np.nan),
        longitude=np.where(visible, lon, np.nan),
        visible=np.asarray(visible, dtype=bool),
    )


class Projection(ABC):
    """Abstract base class for canvas projections.

    All projections in this system implement this interface. Instances are
    immutable after construction, so they can be shared and cached by the
    value of their parameters.

    Parameters
    ----------
    center_latitude_deg, center_longitude_deg : float
        Projection centre in degrees. Latitude is clamped to [-90, 90] and
        longitude normalized; non-finite values become 0.
    edge_angle_deg : float
        Extent parameter in degrees, clamped to `EDGE_RANGE_DEG`;
        non-finite values become 90 before clamping.

    Notes
    -----
    Construction never fails; out-of-range input is clamped silently. The
    factory in `geospatial.factory` is responsible for logging corrections.
    """

    projection_type: ProjectionType
    display_name: str
    parameter_label: str = "Edge angle (°)"
    EDGE_RANGE_DEG: Tuple[float, float]

    def __init__(
        self,
        center_latitude_deg: float = ProjectionConstants.DEFAULT_CENTER_LATITUDE,
        center_longitude_deg: float = ProjectionConstants.DEFAULT_CENTER_LONGITUDE,
        edge_angle_deg: float = ProjectionConstants.DEFAULT_EDGE_ANGLE
    ):
        lat_deg = clamp(
            finite_or(center_latitude_deg, ProjectionConstants.DEFAULT_CENTER_LATITUDE),
            -90.0, 90.0
        )
        lon_deg = finite_or(center_longitude_deg, ProjectionConstants.DEFAULT_CENTER_LONGITUDE)
        edge_deg = finite_or(edge_angle_deg, ProjectionConstants.DEFAULT_EDGE_ANGLE)

        lo, hi = self.EDGE_RANGE_DEG
        self._edge_angle_deg = clamp(edge_deg, lo, hi)
        self._center_latitude_deg = lat_deg
        self._center_longitude_deg = lon_deg

        self._center_latitude = float(np.radians(lat_deg))
        self._center_longitude = normalize_longitude(float(np.radians(lon_deg)))
        self._edge_angle_rad = float(np.radians(self._edge_angle_deg))

        self._sin_lat0 = float(np.sin(self._center_latitude))
        self._cos_lat0 = float(np.cos(self._center_latitude))

    @property
    def name(self) -> str:
        """Human-readable name of the projection."""
        return self.display_name

    @property
    def center_latitude(self) -> float:
        """Centre latitude in radians."""
        return self._center_latitude

    @property
    def center_longitude(self) -> float:
        """Centre longitude in radians, in (-π, π]."""
        return self._center_longitude

    @property
    def edge_angle_rad(self) -> float:
        """Clamped extent parameter in radians."""
        return self._edge_angle_rad

    @property
    def edge_angle_deg(self) -> float:
        """Clamped extent parameter in degrees."""
        return self._edge_angle_deg

    @property
    def parameter_bounds_deg(self) -> Tuple[float, float]:
        return self.EDGE_RANGE_DEG

    def to_parameters(self) -> ProjectionParameters:
        """The effective (post-clamp) parameters of this instance."""
        return ProjectionParameters(
            projection_type=self.projection_type,
            center_latitude_deg=self._center_latitude_deg,
            center_longitude_deg=self._center_longitude_deg,
            edge_angle_deg=self._edge_angle_deg,
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(center_latitude_deg={self._center_latitude_deg}, "
            f"center_longitude_deg={self._center_longitude_deg}, "
            f"edge_angle_deg={self._edge_angle_deg})"
        )

    @abstractmethod
    def forward_array(
        self,
        lat: NDArray[np.float64],
        lon: NDArray[np.float64],
        canvas_width: float,
        canvas_height: float
    ) -> ProjectedPoints:
        """Project arrays of geographic coordinates to canvas pixels.

        Parameters
        ----------
        lat, lon : ndarray
            Geographic coordinates in radians (broadcastable).
        canvas_width, canvas_height : float
            Canvas size in pixels.

        Returns
        -------
        ProjectedPoints
            Pixel coordinates and visibility mask.
        """
        pass

    @abstractmethod
    def inverse_array(
        self,
        x: NDArray[np.float64],
        y: NDArray[np.float64],
        canvas_width: float,
        canvas_height: float
    ) -> GeoPoints:
        """Map arrays of canvas pixels back to geographic coordinates.

        Parameters
        ----------
        x, y : ndarray
            Pixel coordinates (broadcastable).
        canvas_width, canvas_height : float
            Canvas size in pixels.

        Returns
        -------
        GeoPoints
            Latitude/longitude in radians and visibility mask.
        """
        pass

    @abstractmethod
    def needs_circular_clipping(self) -> bool:
        """Whether the valid output region is the disk inscribed in the canvas."""
        pass

    def wrap_width(self, canvas_width: float, canvas_height: float) -> Optional[float]:
        """Horizontal period of the map in pixels, or None if it does not repeat."""
        return None

    def forward(
        self,
        lat: float,
        lon: float,
        canvas_width: float,
        canvas_height: float
    ) -> CanvasPoint:
        """Project one geographic point (radians) to the canvas."""
        result = self.forward_array(
            np.array([lat], dtype=np.float64),
            np.array([lon], dtype=np.float64),
            canvas_width,
            canvas_height
        )
        if not result.visible[0]:
            return CanvasPoint.invisible()
        return CanvasPoint(x=float(result.x[0]), y=float(result.y[0]))

    def inverse(
        self,
        x: float,
        y: float,
        canvas_width: float,
        canvas_height: float
    ) -> GeoPoint:
        """Map one canvas pixel back to geography (radians)."""
        result = self.inverse_array(
            np.array([x], dtype=np.float64),
            np.array([y], dtype=np.float64),
            canvas_width,
            canvas_height
        )
        if not result.visible[0]:
            return GeoPoint.invisible()
        return GeoPoint(
            latitude=float(result.latitude[0]),
            longitude=float(result.longitude[0])
        )

    def _is_empty_view(self) -> bool:
        return self._edge_angle_rad <= ProjectionConstants.ZERO_EDGE_ANGLE.value

    def _cos_angular_distance(self, sin_lat, cos_lat, d_lon):
        """Spherical law of cosines: cos of the distance to the centre."""
        return self._sin_lat0 * sin_lat + self._cos_lat0 * cos_lat * np.cos(d_lon)


class OrthographicProjection(Projection):
    """Hemispheric view with a configurable edge angle.

    The canvas radius grows linearly with the angular distance `c` from the
    centre, reaching `R` at the edge angle. The azimuth of a point is
    preserved.

    Parameters
    ----------
    edge_angle_deg : float
        Maximum visible angular distance, clamped to [0°, 90°].
    """

    projection_type = ProjectionType.ORTHOGRAPHIC
    display_name = "Orthographic"
    EDGE_RANGE_DEG = ProjectionConstants.ORTHOGRAPHIC_EDGE_RANGE

    def needs_circular_clipping(self) -> bool:
        return True

    def forward_array(self, lat, lon, canvas_width, canvas_height) -> ProjectedPoints:
        lat, lon = _as_arrays(lat, lon)
        cx, cy, R = _canvas_geometry(canvas_width, canvas_height)

        if self._is_empty_view():
            return _masked_projected(lat, lon, np.zeros(lat.shape, dtype=bool))

        with np.errstate(invalid='ignore', divide='ignore'):
            sin_lat = np.sin(lat)
            cos_lat = np.cos(lat)
            d_lon = lon - self._center_longitude

            cos_c = self._cos_angular_distance(sin_lat, cos_lat, d_lon)
            c = np.arccos(np.clip(cos_c, -1.0, 1.0))
            visible = c <= self._edge_angle_rad

            alpha = np.arctan2(
                cos_lat * np.sin(d_lon),
                self._cos_lat0 * sin_lat - self._sin_lat0 * cos_lat * np.cos(d_lon)
            )
            radius = R * (c / self._edge_angle_rad)
            x = cx + radius * np.sin(alpha)
            y = cy - radius * np.cos(alpha)

        # atan2(0, 0) is ambiguous at the centre
        at_center = np.abs(c) < ProjectionConstants.FORWARD_CENTER_EPSILON.value
        x = np.where(at_center, cx, x)
        y = np.where(at_center, cy, y)

        return _masked_projected(x, y, visible)

    def inverse_array(self, x, y, canvas_width, canvas_height) -> GeoPoints:
        x, y = _as_arrays(x, y)
        cx, cy, R = _canvas_geometry(canvas_width, canvas_height)

        if self._is_empty_view():
            return _masked_geo(x, y, np.zeros(x.shape, dtype=bool))

        x_p = x - cx
        y_p = -(y - cy)
        rho = np.hypot(x_p, y_p)

        with np.errstate(invalid='ignore', divide='ignore'):
            c = self._edge_angle_rad * (rho / R)
            visible = (rho <= R) & (c <= np.pi)

            sin_c = np.sin(c)
            cos_c = np.cos(c)
            x_norm = x_p / rho
            y_norm = y_p / rho

            lat = np.arcsin(np.clip(
                self._sin_lat0 * cos_c + self._cos_lat0 * sin_c * y_norm, -1.0, 1.0
            ))
            lon = self._center_longitude + np.arctan2(
                x_norm * sin_c,
                self._cos_lat0 * cos_c - self._sin_lat0 * sin_c * y_norm
            )

        at_center = rho < ProjectionConstants.INVERSE_CENTER_EPSILON.value
        lat = np.where(at_center, self._center_latitude, lat)
        lon = np.where(at_center, self._center_longitude, lon)

        return _masked_geo(lat, normalize_longitude_array(lon), visible)


class MercatorProjection(Projection):
    """Cylindrical conformal projection scaled to a maximum latitude.

    The configured maximum latitude maps to the top/bottom of a canvas
    square of side `2R`; longitude scales by the same factor, so the map
    repeats horizontally without bound. x is not wrapped to the canvas.

    Parameters
    ----------
    edge_angle_deg : float
        Maximum latitude, clamped to [45°, 89.9°].
    clamp_latitude : bool
        When True, latitudes are clamped to ±max latitude before forward
        projection and inverse latitudes outside that range are reported
        invisible. When False, forward projection of points beyond the
        range yields unbounded y and the inverse is always visible.
    """

    projection_type = ProjectionType.MERCATOR
    display_name = "Mercator"
    parameter_label = "Max latitude (°)"
    EDGE_RANGE_DEG = ProjectionConstants.MERCATOR_MAX_LATITUDE_RANGE

    def __init__(
        self,
        center_latitude_deg: float = ProjectionConstants.DEFAULT_CENTER_LATITUDE,
        center_longitude_deg: float = ProjectionConstants.DEFAULT_CENTER_LONGITUDE,
        edge_angle_deg: float = ProjectionConstants.DEFAULT_EDGE_ANGLE,
        clamp_latitude: bool = True
    ):
        super().__init__(center_latitude_deg, center_longitude_deg, edge_angle_deg)
        self._clamp_latitude = bool(clamp_latitude)
        self._max_latitude = self._edge_angle_rad
        self._max_mercator_y = float(np.log(np.tan(np.pi / 4 + self._max_latitude / 2)))

    @property
    def max_latitude(self) -> float:
        """Maximum latitude in radians."""
        return self._max_latitude

    @property
    def max_mercator_y(self) -> float:
        """Mercator y of the maximum latitude."""
        return self._max_mercator_y

    @property
    def clamp_latitude(self) -> bool:
        return self._clamp_latitude

    def to_parameters(self) -> ProjectionParameters:
        return replace(super().to_parameters(), clamp_latitude=self._clamp_latitude)

    def __repr__(self) -> str:
        return (
            f"MercatorProjection(center_latitude_deg={self._center_latitude_deg}, "
            f"center_longitude_deg={self._center_longitude_deg}, "
            f"edge_angle_deg={self._edge_angle_deg}, "
            f"clamp_latitude={self._clamp_latitude})"
        )

    def needs_circular_clipping(self) -> bool:
        return False

    def wrap_width(self, canvas_width: float, canvas_height: float) -> Optional[float]:
        _, _, scale = _canvas_geometry(canvas_width, canvas_height)
        return 2 * np.pi * scale / self._max_mercator_y

    def forward_array(self, lat, lon, canvas_width, canvas_height) -> ProjectedPoints:
        lat, lon = _as_arrays(lat, lon)
        cx, cy, scale = _canvas_geometry(canvas_width, canvas_height)

        lon = normalize_longitude_array(lon)
        if self._clamp_latitude:
            lat = np.clip(lat, -self._max_latitude, self._max_latitude)

        with np.errstate(invalid='ignore', divide='ignore', over='ignore'):
            mercator_y = np.log(np.tan(np.pi / 4 + lat / 2))
            x = cx + scale * (lon - self._center_longitude) / self._max_mercator_y
            y = cy - scale * mercator_y / self._max_mercator_y

        # Poles and latitudes past ±90° have no finite Mercator y
        visible = np.isfinite(x) & np.isfinite(y)
        return _masked_projected(x, y, visible)

    def inverse_array(self, x, y, canvas_width, canvas_height) -> GeoPoints:
        x, y = _as_arrays(x, y)
        cx, cy, scale = _canvas_geometry(canvas_width, canvas_height)

        with np.errstate(invalid='ignore', divide='ignore', over='ignore'):
            lon = normalize_longitude_array(
                self._center_longitude + ((x - cx) / scale) * self._max_mercator_y
            )
            mercator_y = -((y - cy) / scale) * self._max_mercator_y
            lat = 2 * np.arctan(np.exp(mercator_y)) - HALF_PI

        visible = np.isfinite(lat) & np.isfinite(lon)
        if self._clamp_latitude:
            tolerance = ProjectionConstants.MERCATOR_LATITUDE_TOLERANCE.value
            with np.errstate(invalid='ignore'):
                visible &= np.abs(lat) <= self._max_latitude + tolerance

        return _masked_geo(lat, lon, visible)


class StereographicProjection(Projection):
    """Stereographic view with a configurable field of view.

    Uses the stereographic radial function `k = 2 / (1 + cos c)` with the
    radius normalized by `π / edge_angle`, so the canvas radius of a point
    is `R (π / edge) tan(c / 2)`. This keeps the projection conformal while
    letting the edge angle zoom the view; it is not the canonical
    stereographic scale.

    Only the near hemisphere is shown: beyond c = 90° both directions report
    points invisible, even when the edge angle is wider.

    Parameters
    ----------
    edge_angle_deg : float
        Maximum visible angular distance, clamped to [0°, 150°].
    """

    projection_type = ProjectionType.STEREOGRAPHIC
    display_name = "Stereographic"
    EDGE_RANGE_DEG = ProjectionConstants.STEREOGRAPHIC_EDGE_RANGE

    def needs_circular_clipping(self) -> bool:
        return True

    def scale_reference(self, canvas_width: float, canvas_height: float) -> float:
        """Canvas radius per unit of tan(c / 2)."""
        _, _, R = _canvas_geometry(canvas_width, canvas_height)
        return R * (np.pi / self._edge_angle_rad)

    def edge_radius(self, canvas_width: float, canvas_height: float) -> float:
        """Canvas radius of the edge angle."""
        return self.scale_reference(canvas_width, canvas_height) * np.tan(self._edge_angle_rad / 2)

    def forward_array(self, lat, lon, canvas_width, canvas_height) -> ProjectedPoints:
        lat, lon = _as_arrays(lat, lon)
        cx, cy, R = _canvas_geometry(canvas_width, canvas_height)

        if self._is_empty_view():
            return _masked_projected(lat, lon, np.zeros(lat.shape, dtype=bool))

        with np.errstate(invalid='ignore', divide='ignore'):
            sin_lat = np.sin(lat)
            cos_lat = np.cos(lat)
            d_lon = lon - self._center_longitude

            cos_c = self._cos_angular_distance(sin_lat, cos_lat, d_lon)
            c = np.arccos(np.clip(cos_c, -1.0, 1.0))
            visible = (
                (cos_c >= -ProjectionConstants.STEREOGRAPHIC_ANTIPODE_EPSILON.value)
                & (c <= self._edge_angle_rad)
            )

            k = 2 / (1 + cos_c)
            x_factor = cos_lat * np.sin(d_lon)
            y_factor = self._cos_lat0 * sin_lat - self._sin_lat0 * cos_lat * np.cos(d_lon)
            scale_factor = R * (k / 2) * (np.pi / self._edge_angle_rad)

            x = cx + scale_factor * x_factor
            y = cy - scale_factor * y_factor

        return _masked_projected(x, y, visible)

    def inverse_array(self, x, y, canvas_width, canvas_height) -> GeoPoints:
        x, y = _as_arrays(x, y)
        cx, cy, _ = _canvas_geometry(canvas_width, canvas_height)

        if self._is_empty_view():
            return _masked_geo(x, y, np.zeros(x.shape, dtype=bool))

        x_p = x - cx
        y_p = -(y - cy)
        rho = np.hypot(x_p, y_p)

        scale_ref = self.scale_reference(canvas_width, canvas_height)
        with np.errstate(invalid='ignore'):
            visible = rho <= self.edge_radius(canvas_width, canvas_height)

        with np.errstate(invalid='ignore', divide='ignore'):
            c = 2 * np.arctan2(rho, scale_ref)
            sin_c = np.sin(c)
            cos_c = np.cos(c)
            visible &= cos_c >= -ProjectionConstants.STEREOGRAPHIC_ANTIPODE_EPSILON.value

            lat = np.arcsin(np.clip(
                cos_c * self._sin_lat0 + (y_p * sin_c * self._cos_lat0) / rho, -1.0, 1.0
            ))
            lon = self._center_longitude + np.arctan2(
                x_p * sin_c,
                rho * self._cos_lat0 * cos_c - y_p * self._sin_lat0 * sin_c
            )

        at_center = rho < ProjectionConstants.INVERSE_CENTER_EPSILON.value
        lat = np.where(at_center, self._center_latitude, lat)
        lon = np.where(at_center, self._center_longitude, lon)

        return _masked_geo(lat, normalize_longitude_array(lon), visible)
