import math

import numpy as np
import pytest

from geospatial.angles import (
    clamp,
    finite_or,
    normalize_longitude,
    normalize_longitude_array,
    to_degrees,
    to_radians,
)


def test_degree_radian_conversion():
    assert to_radians(180.0) == pytest.approx(math.pi)
    assert to_degrees(math.pi / 2) == pytest.approx(90.0)


@pytest.mark.parametrize(
    "lon, expected",
    [
        (0.0, 0.0),
        (math.pi, math.pi),
        (-math.pi, math.pi),
        (2 * math.pi + 1.0, 1.0),
        (1.5 * math.pi, -0.5 * math.pi),
        (-1.5 * math.pi, 0.5 * math.pi),
        (7.0, 7.0 - 2 * math.pi),
    ],
)
def test_normalize_longitude_range(lon, expected):
    assert normalize_longitude(lon) == pytest.approx(expected)


def test_normalize_longitude_is_idempotent():
    rng = np.random.default_rng(3)
    for lon in rng.uniform(-50.0, 50.0, size=200):
        once = normalize_longitude(lon)
        assert -math.pi < once <= math.pi
        assert normalize_longitude(once) == once


def test_normalize_longitude_non_finite_is_nan():
    assert math.isnan(normalize_longitude(float("nan")))
    assert math.isnan(normalize_longitude(float("inf")))


def test_normalize_longitude_array_matches_scalar():
    lons = np.array([-10.0, -math.pi, 0.3, math.pi, 9.0, np.nan])
    out = normalize_longitude_array(lons)
    for value, got in zip(lons[:-1], out[:-1]):
        assert got == pytest.approx(normalize_longitude(value))
    assert np.isnan(out[-1])


def test_clamp_and_finite_or():
    assert clamp(120.0, 0.0, 90.0) == 90.0
    assert clamp(-5.0, 0.0, 90.0) == 0.0
    assert finite_or(float("nan"), 3.0) == 3.0
    assert finite_or("abc", 3.0) == 3.0
    assert finite_or("12.5", 3.0) == 12.5
