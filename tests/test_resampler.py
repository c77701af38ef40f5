import math

import numpy as np
import pytest

from common.constants import RenderingConstants
from common.types import RasterBuffer
from geospatial.projections import (
    MercatorProjection,
    OrthographicProjection,
    StereographicProjection,
)
from rendering.resampler import (
    ImageResampler,
    ResampleConfig,
    equirectangular_indices,
    sample_pixel,
)


class CountingRaster(RasterBuffer):
    """Raster that records how often it is sampled."""

    def sample(self, ix, iy):
        self.calls = getattr(self, "calls", 0) + 1
        return super().sample(ix, iy)


def test_equirectangular_indices():
    lat = np.array([0.0, math.pi / 2, -math.pi / 2 + 1e-9, 0.0, np.nan])
    lon = np.array([0.0, -math.pi, 0.0, math.pi, 0.0])
    ix, iy, in_bounds = equirectangular_indices(lat, lon, 360, 180)

    assert in_bounds.tolist() == [True, True, True, False, False]
    assert (ix[0], iy[0]) == (180, 90)
    assert (ix[1], iy[1]) == (0, 0)
    assert iy[2] == 179


def test_empty_view_fills_background_without_sampling():
    source = CountingRaster(np.zeros((180, 360, 4), dtype=np.uint8))
    image = ImageResampler().resample(OrthographicProjection(0.0, 0.0, 0.0), source, 64, 48)

    assert getattr(source, "calls", 0) == 0
    assert (image.width, image.height) == (64, 48)
    assert np.all(image.pixels == np.array(RenderingConstants.BACKGROUND_RGBA, dtype=np.uint8))


def test_orthographic_resample(gradient_source):
    image = ImageResampler().resample(OrthographicProjection(0.0, 0.0, 90.0), gradient_source, 200, 200)

    # Centre pixel samples lat 0, lon 0
    assert image.pixel(100, 100) == (180, 90, 7, 255)
    # Corners lie outside the disk
    assert image.pixel(0, 0) == RenderingConstants.BACKGROUND_RGBA
    assert image.pixel(199, 199) == RenderingConstants.BACKGROUND_RGBA


def test_mercator_resample_covers_whole_canvas():
    red = (255, 0, 0, 255)
    source = RasterBuffer.blank(360, 180, red)
    image = ImageResampler().resample(MercatorProjection(0.0, 0.0, 85.0), source, 100, 100)
    assert np.all(image.pixels == np.array(red, dtype=np.uint8))


def test_source_is_not_modified(gradient_source):
    before = gradient_source.pixels.copy()
    ImageResampler().resample(StereographicProjection(20.0, 40.0, 120.0), gradient_source, 80, 60)
    np.testing.assert_array_equal(gradient_source.pixels, before)


@pytest.mark.parametrize(
    "projection",
    [
        OrthographicProjection(40.71, -74.01, 90.0),
        MercatorProjection(0.0, 100.0, 70.0),
        StereographicProjection(-35.0, 150.0, 110.0),
    ],
)
def test_vectorized_matches_scalar_reference(projection, gradient_source):
    width, height = 60, 40
    image = ImageResampler(ResampleConfig(rows_per_block=7)).resample(
        projection, gradient_source, width, height
    )
    for x, y in [(0, 0), (30, 20), (45, 5), (12, 33), (59, 39)]:
        expected = sample_pixel(projection, gradient_source, x, y, width, height)
        assert image.pixel(x, y) == expected


def test_threaded_resample_matches_sequential(gradient_source):
    projection = OrthographicProjection(10.0, 20.0, 75.0)
    sequential = ImageResampler(ResampleConfig(rows_per_block=8)).resample(
        projection, gradient_source, 90, 70
    )
    threaded = ImageResampler(ResampleConfig(rows_per_block=8, max_workers=4)).resample(
        projection, gradient_source, 90, 70
    )
    np.testing.assert_array_equal(sequential.pixels, threaded.pixels)


def test_custom_background(gradient_source):
    config = ResampleConfig(background=(0, 0, 0, 0))
    image = ImageResampler(config).resample(
        OrthographicProjection(0.0, 0.0, 90.0), gradient_source, 50, 50
    )
    assert image.pixel(0, 0) == (0, 0, 0, 0)


@pytest.mark.parametrize("size", [(0, 10), (10, -1), (10.5, 10), ("a", 10)])
def test_invalid_canvas_size(size, gradient_source):
    with pytest.raises(ValueError):
        ImageResampler().resample(OrthographicProjection(), gradient_source, *size)


def test_resample_config_validation():
    with pytest.raises(ValueError):
        ResampleConfig(rows_per_block=0)
    with pytest.raises(ValueError):
        ResampleConfig(background=(1, 2, 3))
