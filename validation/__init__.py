"""
Validation Framework for the Projection Engine.

This module provides geometric consistency checks for projections.
"""

from validation.projection_checks import (
    ProjectionConsistencyChecker,
    ValidationResult,
    angular_distance,
    geographic_lattice,
    reference_proj4,
)

__all__ = [
    "ProjectionConsistencyChecker",
    "ValidationResult",
    "angular_distance",
    "geographic_lattice",
    "reference_proj4",
]
