import numpy as np
import pytest

from geospatial.projections import MercatorProjection, OrthographicProjection
from rendering.graticule import GraticuleGenerator, GraticuleStyle, StrokeKind


def test_default_lattice():
    generator = GraticuleGenerator()
    parallels = generator.parallel_latitudes()
    meridians = generator.meridian_longitudes()

    assert len(parallels) == 13
    assert parallels[0] == -90.0 and parallels[-1] == 90.0
    assert len(meridians) == 25
    assert meridians[0] == -180.0 and meridians[-1] == 180.0


def test_offset_shifts_parallels():
    generator = GraticuleGenerator(GraticuleStyle(lat_spacing_deg=30.0, offset_deg=10.0))
    assert generator.parallel_latitudes() == [-80.0, -50.0, -20.0, 10.0, 40.0, 70.0]


def test_style_falls_back_on_invalid_values():
    style = GraticuleStyle(
        lon_spacing_deg=0.0,
        lat_spacing_deg=float("nan"),
        stroke_kind="wavy",
        color="",
        line_width=-2.0,
    )
    assert style.lon_spacing_deg == 15.0
    assert style.lat_spacing_deg == 15.0
    assert style.stroke_kind is StrokeKind.SOLID
    assert style.color == "#ffffff"
    assert style.line_width == 1.0


def test_stroke_kind_dash_patterns():
    assert StrokeKind.SOLID.dash_pattern == ()
    assert GraticuleStyle(stroke_kind="dash").dash_pattern == (8, 4)
    assert StrokeKind.DOT.dash_pattern == (2, 2)
    assert StrokeKind.DASHDOT.dash_pattern == (10, 3, 2, 3)


def test_style_from_dict_ignores_unknown_keys():
    style = GraticuleStyle.from_dict({"stroke_kind": "dot", "color": "#ff0000", "zoom": 3})
    assert style.stroke_kind is StrokeKind.DOT
    assert style.color == "#ff0000"


def test_parallel_is_split_at_invisible_samples():
    # Centred on the antimeridian, the equator is visible at both ends only
    ortho = OrthographicProjection(0.0, 180.0, 90.0)
    strokes = GraticuleGenerator().parallel(ortho, 0.0, 200, 200)

    assert len(strokes) == 2
    for stroke in strokes:
        assert stroke.kind == "parallel"
        assert stroke.value_deg == 0.0
        assert len(stroke) >= 2


def test_mercator_equator_is_single_stroke():
    merc = MercatorProjection(0.0, 0.0, 85.0)
    strokes = GraticuleGenerator(segments=60).parallel(merc, 0.0, 360, 180)

    # -180° lands on the right edge with +180°; that lone sample is dropped
    assert len(strokes) == 1
    points = strokes[0].as_array()
    assert points.shape == (60, 2)
    assert np.all(np.diff(points[:, 0]) > 0)
    np.testing.assert_allclose(points[:, 1], 90.0)


def test_mercator_parallel_does_not_jump_across_the_seam():
    merc = MercatorProjection(0.0, 0.0, 85.0)
    strokes = GraticuleGenerator(segments=60).parallel(merc, 30.0, 360, 180)

    assert len(strokes) == 1
    xs = strokes[0].as_array()[:, 0]
    assert xs[0] == pytest.approx(180.0 - 90.0 * np.radians(174.0) / merc.max_mercator_y)
    step = merc.wrap_width(360, 180) / 60
    np.testing.assert_allclose(np.diff(xs), step)


@pytest.mark.parametrize("center_lon", [0.0, 100.0, -179.0])
def test_mercator_strokes_are_seam_free(center_lon):
    merc = MercatorProjection(0.0, center_lon, 80.0)
    graticule = GraticuleGenerator().generate(merc, 300, 200)
    half_period = merc.wrap_width(300, 200) / 2

    assert graticule.parallels and graticule.meridians
    for stroke in graticule.parallels:
        assert np.all(np.diff(stroke.as_array()[:, 0]) > 0)
    for stroke in graticule.lines:
        assert np.all(np.abs(np.diff(stroke.as_array()[:, 0])) < half_period)


def test_meridian_through_center_is_vertical():
    ortho = OrthographicProjection(0.0, 0.0, 90.0)
    strokes = GraticuleGenerator().meridian(ortho, 0.0, 200, 200)

    assert len(strokes) == 1
    points = strokes[0].as_array()
    np.testing.assert_allclose(points[:, 0], 100.0, atol=1e-9)


def test_generate_returns_only_visible_strokes():
    ortho = OrthographicProjection(40.71, -74.01, 90.0)
    graticule = GraticuleGenerator(GraticuleStyle(stroke_kind="dashdot")).generate(ortho, 300, 300)

    assert graticule.parallels and graticule.meridians
    assert graticule.lines == graticule.parallels + graticule.meridians
    assert graticule.style.stroke_kind is StrokeKind.DASHDOT
    for stroke in graticule.lines:
        points = stroke.as_array()
        assert len(points) >= 2
        # Every point lies within the inscribed disk
        radius = ((points[:, 0] - 150.0) ** 2 + (points[:, 1] - 150.0) ** 2) ** 0.5
        assert radius.max() <= 150.0 + 1e-6


def test_empty_view_has_no_strokes():
    graticule = GraticuleGenerator().generate(OrthographicProjection(0.0, 0.0, 0.0), 100, 100)
    assert graticule.lines == []


def test_segments_must_be_positive():
    with pytest.raises(ValueError):
        GraticuleGenerator(segments=0)
