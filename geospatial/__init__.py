"""
Geospatial Module for the Projection Engine.

All mappings between geographic coordinates and canvas pixels originate
from this module. No downstream module may implement projection math
independently.

This module provides:
- Angle conversion and longitude normalization
- Orthographic, Mercator and stereographic projections
- The projection factory and its bounded cache
"""

from geospatial.angles import (
    to_radians,
    to_degrees,
    normalize_longitude,
    normalize_longitude_array,
)

from geospatial.projections import (
    Projection,
    OrthographicProjection,
    MercatorProjection,
    StereographicProjection,
)

from geospatial.factory import (
    PROJECTION_TYPES,
    ProjectionCache,
    ProjectionFactory,
    create_projection,
)

__all__ = [
    # Angles
    "to_radians",
    "to_degrees",
    "normalize_longitude",
    "normalize_longitude_array",
    # Projections
    "Projection",
    "OrthographicProjection",
    "MercatorProjection",
    "StereographicProjection",
    # Factory
    "PROJECTION_TYPES",
    "ProjectionCache",
    "ProjectionFactory",
    "create_projection",
]
