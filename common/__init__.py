"""
Common utilities and infrastructure for the projection engine.

This package provides foundational components used across all modules:
- Numerical constants, tolerances and clamp ranges
- Point, parameter and raster types
- Angle unit handling
- Logging and audit trail infrastructure
"""

from common.constants import ProjectionConstants, RenderingConstants
from common.units import ureg, Q_, angle_to_degrees
from common.types import (
    ProjectionType,
    GeoPoint,
    CanvasPoint,
    GeoPoints,
    ProjectedPoints,
    ProjectionParameters,
    RasterBuffer,
    Polyline,
)
from common.logging_config import get_logger, AuditLogger

__all__ = [
    "ProjectionConstants",
    "RenderingConstants",
    "ureg",
    "Q_",
    "angle_to_degrees",
    "ProjectionType",
    "GeoPoint",
    "CanvasPoint",
    "GeoPoints",
    "ProjectedPoints",
    "ProjectionParameters",
    "RasterBuffer",
    "Polyline",
    "get_logger",
    "AuditLogger",
]
