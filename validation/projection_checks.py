"""
Consistency Checks for Canvas Projections.

This module verifies that projection outputs obey the geometric contracts
the rest of the engine relies on.

Check Categories
----------------
1. Round trip (inverse undoes forward inside the visible region)
2. Visibility consistency (invisible results carry no coordinates, visible
   results are finite and in range)
3. Clipping flag (matches the projection family)
4. Reference agreement (forward projection matches PROJ on the unit sphere)

Reference Projections
---------------------
The canvas projections are rescaled versions of standard PROJ projections
evaluated on a sphere of radius 1:

- Orthographic: the canvas radius is linear in angular distance, which is
  the azimuthal equidistant projection (`aeqd`) scaled by R / edge.
- Stereographic: `stere` (radius 2 tan(c/2)) scaled by R π / (2 edge).
- Mercator: `merc` with `+over`, scaled by R / y_max. `+over` stops PROJ
  from wrapping `lon - lon_0`, matching the unbounded horizontal extent.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple
import numpy as np
from numpy.typing import NDArray
from pyproj import CRS, Transformer

from common.constants import HALF_PI, ProjectionConstants
from common.logging_config import get_logger
from common.types import ProjectionType
from geospatial.angles import normalize_longitude_array
from geospatial.projections import (
    MercatorProjection,
    Projection,
    StereographicProjection,
)

logger = get_logger(__name__)

_UNIT_SPHERE_LONGLAT = "+proj=longlat +R=1 +no_defs"


@dataclass
class ValidationResult:
    """Result of a validation check.

    Attributes
    ----------
    test_name : str
        Name of the check.
    passed : bool
        Whether the check passed.
    message : str
        Description of the result.
    details : dict
        Additional details.
    """
    test_name: str
    passed: bool
    message: str
    details: Dict[str, Any]


def angular_distance(
    lat1: NDArray[np.float64],
    lon1: NDArray[np.float64],
    lat2: NDArray[np.float64],
    lon2: NDArray[np.float64]
) -> NDArray[np.float64]:
    """Great-circle distance in radians (haversine form).

    Well conditioned for small distances and insensitive to longitude
    wrapping, so it also compares points at the poles correctly.
    """
    hav = (
        np.sin((lat2 - lat1) / 2) ** 2
        + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2) ** 2
    )
    return 2 * np.arcsin(np.sqrt(np.clip(hav, 0.0, 1.0)))


def geographic_lattice(step_deg: float = 5.0) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Flattened (lat, lon) lattice in radians covering the whole sphere."""
    lats = np.radians(np.arange(-90.0, 90.0 + step_deg / 2, step_deg))
    lons = np.radians(np.arange(-180.0, 180.0, step_deg))
    lat, lon = np.meshgrid(lats, lons, indexing="ij")
    return lat.ravel(), lon.ravel()


def reference_proj4(projection: Projection) -> str:
    """PROJ definition of the unit-sphere projection `projection` rescales."""
    lat0 = float(np.degrees(projection.center_latitude))
    lon0 = float(np.degrees(projection.center_longitude))
    if projection.projection_type is ProjectionType.MERCATOR:
        return f"+proj=merc +lon_0={lon0!r} +R=1 +over +no_defs"
    if projection.projection_type is ProjectionType.STEREOGRAPHIC:
        return f"+proj=stere +lat_0={lat0!r} +lon_0={lon0!r} +k_0=1 +R=1 +no_defs"
    return f"+proj=aeqd +lat_0={lat0!r} +lon_0={lon0!r} +R=1 +no_defs"


class ProjectionConsistencyChecker:
    """Checker for geometric consistency of projections.

    Parameters
    ----------
    lattice_step_deg : float
        Spacing of the geographic test lattice.
    round_trip_tolerance : float
        Maximum round-trip error in radians.
    reference_tolerance_px : float
        Maximum deviation from PROJ in pixels.
    strict_mode : bool
        If True, `check_all` raises on the first failed check.
    """

    def __init__(
        self,
        lattice_step_deg: float = 5.0,
        round_trip_tolerance: float = 1e-6,
        reference_tolerance_px: float = 1e-4,
        strict_mode: bool = False
    ):
        if lattice_step_deg <= 0:
            raise ValueError("lattice_step_deg must be positive")
        self.lattice_step_deg = lattice_step_deg
        self.round_trip_tolerance = round_trip_tolerance
        self.reference_tolerance_px = reference_tolerance_px
        self.strict_mode = strict_mode
        self._logger = get_logger("ProjectionConsistencyChecker")

    def check_all(
        self,
        projection: Projection,
        width: int = 200,
        height: int = 200
    ) -> List[ValidationResult]:
        """Run every check against one projection.

        Parameters
        ----------
        projection : Projection
            Projection under test.
        width, height : int
            Canvas size in pixels.

        Returns
        -------
        List[ValidationResult]
            Results of all checks.

        Raises
        ------
        ValueError
            In strict mode, if any check fails.
        """
        results = [
            self.check_round_trip(projection, width, height),
            self.check_visibility_consistency(projection, width, height),
            self.check_clipping_flag(projection),
            self.check_against_reference(projection, width, height),
        ]

        for result in results:
            if result.passed:
                continue
            self._logger.warning(f"{projection!r}: {result.message}")
            if self.strict_mode:
                raise ValueError(f"{result.test_name} failed: {result.message}")

        return results

    def check_round_trip(
        self,
        projection: Projection,
        width: int = 200,
        height: int = 200
    ) -> ValidationResult:
        """Check that inverse(forward(p)) returns p inside the view.

        Points on the boundary of the visible region are excluded; there
        forward and inverse visibility can disagree by rounding.
        """
        lat, lon = self._interior_points(projection)
        if lat.size == 0:
            return ValidationResult(
                test_name="round_trip",
                passed=True,
                message="Round trip: empty view, nothing to check",
                details={'num_points': 0},
            )

        projected = projection.forward_array(lat, lon, width, height)
        geo = projection.inverse_array(projected.x, projected.y, width, height)

        lost = ~(projected.visible & geo.visible)
        error = angular_distance(lat, lon, geo.latitude, geo.longitude)
        error = np.where(lost, np.inf, error)
        num_violations = int(np.sum(error > self.round_trip_tolerance))

        return ValidationResult(
            test_name="round_trip",
            passed=num_violations == 0,
            message=f"Round trip check: {num_violations} of {lat.size} points off",
            details={
                'num_points': int(lat.size),
                'num_lost': int(np.sum(lost)),
                'num_violations': num_violations,
                'max_error_rad': float(np.max(np.where(lost, 0.0, error))),
                'tolerance_rad': self.round_trip_tolerance,
            },
        )

    def check_visibility_consistency(
        self,
        projection: Projection,
        width: int = 200,
        height: int = 200
    ) -> ValidationResult:
        """Check that visibility flags and coordinates agree.

        Forward results over the lattice and inverse results over every
        canvas pixel must be NaN exactly where they are invisible; visible
        inverse results must lie in [-π/2, π/2] x (-π, π].
        """
        lat, lon = geographic_lattice(self.lattice_step_deg)
        projected = projection.forward_array(lat, lon, width, height)

        xx, yy = np.meshgrid(np.arange(width, dtype=np.float64),
                             np.arange(height, dtype=np.float64))
        geo = projection.inverse_array(xx, yy, width, height)

        forward_bad = int(np.sum(
            projected.visible != (np.isfinite(projected.x) & np.isfinite(projected.y))
        ))
        inverse_bad = int(np.sum(
            geo.visible != (np.isfinite(geo.latitude) & np.isfinite(geo.longitude))
        ))

        lat_v = geo.latitude[geo.visible]
        lon_v = geo.longitude[geo.visible]
        out_of_range = int(np.sum(
            (np.abs(lat_v) > HALF_PI + 1e-12) | (lon_v <= -np.pi) | (lon_v > np.pi)
        ))

        num_violations = forward_bad + inverse_bad + out_of_range
        return ValidationResult(
            test_name="visibility_consistency",
            passed=num_violations == 0,
            message=f"Visibility consistency check: {num_violations} violations",
            details={
                'forward_mismatches': forward_bad,
                'inverse_mismatches': inverse_bad,
                'out_of_range': out_of_range,
                'visible_pixels': int(np.sum(geo.visible)),
                'visible_lattice_points': int(np.sum(projected.visible)),
            },
        )

    def check_clipping_flag(self, projection: Projection) -> ValidationResult:
        """Check that disk-shaped views request circular clipping."""
        expected = projection.projection_type in (
            ProjectionType.ORTHOGRAPHIC, ProjectionType.STEREOGRAPHIC
        )
        actual = projection.needs_circular_clipping()
        return ValidationResult(
            test_name="clipping_flag",
            passed=actual == expected,
            message=f"Clipping flag check: expected {expected}, got {actual}",
            details={'projection_type': projection.projection_type.value},
        )

    def check_against_reference(
        self,
        projection: Projection,
        width: int = 200,
        height: int = 200
    ) -> ValidationResult:
        """Compare forward projection with PROJ over the visible lattice."""
        if projection.edge_angle_rad <= ProjectionConstants.ZERO_EDGE_ANGLE.value:
            return ValidationResult(
                test_name="reference_agreement",
                passed=True,
                message="Reference check: empty view, nothing to check",
                details={'num_points': 0},
            )

        lat, lon = self._interior_points(projection)
        projected = projection.forward_array(lat, lon, width, height)
        visible = projected.visible
        lat, lon = lat[visible], lon[visible]

        proj4 = reference_proj4(projection)
        transformer = Transformer.from_crs(
            CRS.from_proj4(_UNIT_SPHERE_LONGLAT), CRS.from_proj4(proj4), always_xy=True
        )
        # Forward maps -180° to +180°; PROJ keeps it at -180°
        ref_x, ref_y = transformer.transform(
            np.degrees(normalize_longitude_array(lon)), np.degrees(lat)
        )
        ref_px, ref_py = self._reference_to_canvas(
            projection, np.asarray(ref_x), np.asarray(ref_y), width, height
        )

        error = np.hypot(projected.x[visible] - ref_px, projected.y[visible] - ref_py)
        max_error = float(np.max(error)) if error.size else 0.0
        num_violations = int(np.sum(~(error <= self.reference_tolerance_px)))

        return ValidationResult(
            test_name="reference_agreement",
            passed=num_violations == 0,
            message=(
                f"Reference check against {proj4.split()[0]}: "
                f"{num_violations} of {error.size} points off, max {max_error:.2e} px"
            ),
            details={
                'proj4': proj4,
                'num_points': int(error.size),
                'num_violations': num_violations,
                'max_error_px': max_error,
                'tolerance_px': self.reference_tolerance_px,
            },
        )

    def _interior_points(self, projection: Projection) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Lattice points strictly inside the visible region."""
        lat, lon = geographic_lattice(self.lattice_step_deg)
        margin = 1e-9

        if isinstance(projection, MercatorProjection):
            # Forward clamps latitude, so points past the limit cannot return
            limit = projection.max_latitude if projection.clamp_latitude else HALF_PI
            keep = np.abs(lat) < limit - margin
        else:
            c = angular_distance(
                lat, lon, projection.center_latitude, projection.center_longitude
            )
            limit = projection.edge_angle_rad
            if isinstance(projection, StereographicProjection):
                # Forward hides the far hemisphere whatever the edge angle
                antipode_cutoff = np.arccos(
                    -ProjectionConstants.STEREOGRAPHIC_ANTIPODE_EPSILON.value
                )
                limit = min(limit, antipode_cutoff)
            keep = c < limit - margin

        return lat[keep], lon[keep]

    @staticmethod
    def _reference_to_canvas(
        projection: Projection,
        ref_x: NDArray[np.float64],
        ref_y: NDArray[np.float64],
        width: int,
        height: int
    ) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        cx, cy = width / 2, height / 2
        R = min(width, height) / 2

        if isinstance(projection, MercatorProjection):
            scale = R / projection.max_mercator_y
        elif isinstance(projection, StereographicProjection):
            scale = R * np.pi / (2 * projection.edge_angle_rad)
        else:
            scale = R / projection.edge_angle_rad

        return cx + scale * ref_x, cy - scale * ref_y
