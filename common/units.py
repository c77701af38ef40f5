"""
Unit Registry for Angular Parameters.

This module provides a centralized unit system using the `pint` library so
that angular parameters can be supplied in any angle unit (degrees,
radians, arc-minutes, ...) and are converted exactly once, at the boundary
of the projection engine.

Example Usage
-------------
>>> from common.units import Q_, angle_to_degrees
>>> angle_to_degrees(Q_(90, "arcminute"))
1.5
>>> angle_to_degrees(45.0)  # bare numbers are degrees
45.0
"""

from typing import Union

import pint
from pint import UnitRegistry as PintUnitRegistry

# Create the global unit registry
ureg = PintUnitRegistry()

# Convenience alias for creating quantities
Q_ = ureg.Quantity

AngleLike = Union[float, int, pint.Quantity]


def angle_to_degrees(value: AngleLike) -> float:
    """Convert an angle-like value to a float in degrees.

    Parameters
    ----------
    value : float or pint.Quantity
        Bare numbers are taken to be degrees. Quantities may use any
        angle unit. Non-finite numbers are passed through unchanged.

    Returns
    -------
    float
        The angle in degrees.

    Raises
    ------
    ValueError
        If a quantity does not have angle dimensionality.
    """
    if isinstance(value, pint.Quantity):
        try:
            return float(value.to(ureg.degree).magnitude)
        except pint.DimensionalityError as e:
            raise ValueError(
                f"Expected an angle, got {value.units}"
            ) from e
    return float(value)

