import math

import numpy as np
import pytest

from common.types import ProjectionType
from geospatial.projections import (
    MercatorProjection,
    OrthographicProjection,
    Projection,
    StereographicProjection,
)


def test_projection_base_is_abstract():
    with pytest.raises(TypeError):
        Projection()


@pytest.mark.parametrize(
    "cls, requested, expected",
    [
        (OrthographicProjection, 120.0, 90.0),
        (OrthographicProjection, -5.0, 0.0),
        (MercatorProjection, 10.0, 45.0),
        (MercatorProjection, 95.0, 89.9),
        (StereographicProjection, 200.0, 150.0),
        (StereographicProjection, 75.0, 75.0),
    ],
)
def test_edge_angle_is_clamped_per_type(cls, requested, expected):
    projection = cls(0.0, 0.0, requested)
    assert projection.edge_angle_deg == pytest.approx(expected)
    assert projection.edge_angle_rad == pytest.approx(math.radians(expected))


def test_center_parameters_are_sanitized():
    projection = OrthographicProjection(120.0, 450.0, float("nan"))
    assert projection.center_latitude == pytest.approx(math.pi / 2)
    assert projection.center_longitude == pytest.approx(math.pi / 2)
    assert projection.edge_angle_deg == 90.0


def test_clipping_flags():
    assert OrthographicProjection().needs_circular_clipping()
    assert StereographicProjection().needs_circular_clipping()
    assert not MercatorProjection(0.0, 0.0, 85.0).needs_circular_clipping()


def test_orthographic_forward_center_and_far_side():
    ortho = OrthographicProjection(0.0, 0.0, 90.0)

    center = ortho.forward(0.0, 0.0, 200, 200)
    assert center.visible
    assert center.as_tuple() == pytest.approx((100.0, 100.0))

    assert not ortho.forward(0.0, math.radians(100.0), 200, 200).visible


def test_orthographic_radius_is_linear_in_angular_distance():
    ortho = OrthographicProjection(0.0, 0.0, 90.0)

    east = ortho.forward(0.0, math.radians(45.0), 200, 200)
    assert (east.x, east.y) == pytest.approx((150.0, 100.0))

    north = ortho.forward(math.radians(45.0), 0.0, 200, 200)
    assert (north.x, north.y) == pytest.approx((100.0, 50.0))


def test_orthographic_inverse():
    ortho = OrthographicProjection(0.0, 0.0, 90.0)

    p = ortho.inverse(150.0, 100.0, 200, 200)
    assert p.visible
    assert p.latitude == pytest.approx(0.0, abs=1e-12)
    assert p.longitude == pytest.approx(math.pi / 4)

    # Canvas corners are outside the inscribed disk
    assert not ortho.inverse(0.0, 0.0, 200, 200).visible


def test_orthographic_inverse_at_center_returns_center():
    ortho = OrthographicProjection(40.71, -74.01, 90.0)
    p = ortho.inverse(300.0, 300.0, 600, 600)
    assert p.visible
    assert p.to_degrees() == pytest.approx((40.71, -74.01))


def test_zero_edge_angle_shows_nothing():
    for projection in (OrthographicProjection(0.0, 0.0, 0.0), StereographicProjection(0.0, 0.0, 0.0)):
        assert not projection.forward(0.0, 0.0, 200, 200).visible
        assert not projection.inverse(100.0, 100.0, 200, 200).visible


def test_mercator_inverse_at_canvas_center():
    merc = MercatorProjection(0.0, 0.0, 85.0)
    p = merc.inverse(180.0, 90.0, 360, 180)
    assert p.visible
    assert p.latitude == pytest.approx(0.0, abs=1e-12)
    assert p.longitude == pytest.approx(0.0, abs=1e-12)


def test_mercator_max_latitude_maps_to_canvas_top():
    merc = MercatorProjection(0.0, 0.0, 85.0)
    top = merc.forward(math.radians(85.0), 0.0, 360, 180)
    assert (top.x, top.y) == pytest.approx((180.0, 0.0), abs=1e-9)

    # Clamped latitudes land on the same row
    beyond = merc.forward(math.radians(89.0), 0.0, 360, 180)
    assert beyond.y == pytest.approx(0.0, abs=1e-9)


def test_mercator_without_latitude_clamp():
    merc = MercatorProjection(0.0, 0.0, 85.0, clamp_latitude=False)
    beyond = merc.forward(math.radians(89.0), 0.0, 360, 180)
    assert beyond.visible
    assert beyond.y < 0.0

    # Above the max latitude row is only visible without the clamp
    assert merc.inverse(180.0, -10.0, 360, 180).visible
    assert not MercatorProjection(0.0, 0.0, 85.0).inverse(180.0, -10.0, 360, 180).visible


def test_mercator_to_parameters_keeps_clamp_flag():
    merc = MercatorProjection(0.0, 30.0, 80.0, clamp_latitude=False)
    params = merc.to_parameters()
    assert params.projection_type is ProjectionType.MERCATOR
    assert params.edge_angle_deg == 80.0
    assert params.clamp_latitude is False
    assert "clamp_latitude=False" in repr(merc)


def test_stereographic_radius_uses_half_angle_tangent():
    stereo = StereographicProjection(0.0, 0.0, 90.0)
    assert stereo.scale_reference(200, 200) == pytest.approx(200.0)

    center = stereo.forward(0.0, 0.0, 200, 200)
    assert center.as_tuple() == pytest.approx((100.0, 100.0))

    p = stereo.forward(0.0, math.radians(60.0), 200, 200)
    assert p.visible
    assert p.x == pytest.approx(100.0 + 200.0 * math.tan(math.radians(30.0)))
    assert p.y == pytest.approx(100.0)

    back = stereo.inverse(p.x, p.y, 200, 200)
    assert back.visible
    assert back.latitude == pytest.approx(0.0, abs=1e-12)
    assert back.longitude == pytest.approx(math.radians(60.0))


def test_stereographic_hides_points_beyond_edge():
    stereo = StereographicProjection(0.0, 0.0, 90.0)
    assert not stereo.forward(0.0, math.radians(120.0), 200, 200).visible
    assert not stereo.inverse(100.0 + 250.0, 100.0, 200, 200).visible


def test_stereographic_inverse_stops_at_the_near_hemisphere():
    stereo = StereographicProjection(0.0, 0.0, 150.0)
    assert stereo.scale_reference(200, 200) == pytest.approx(120.0)

    # The canvas corner is about 99° from the centre, inside the edge radius
    corner_rho = math.hypot(100.0, 100.0)
    assert corner_rho < stereo.edge_radius(200, 200)
    assert not stereo.inverse(0.0, 0.0, 200, 200).visible

    # 2 atan(115 / 120) is just under 90°
    near = stereo.inverse(215.0, 100.0, 200, 200)
    assert near.visible
    assert near.longitude == pytest.approx(2 * math.atan(115.0 / 120.0))


@pytest.mark.parametrize(
    "projection",
    [
        StereographicProjection(0.0, 0.0, 150.0),
        StereographicProjection(30.0, 20.0, 120.0),
        StereographicProjection(-60.0, 170.0, 140.0),
    ],
    ids=repr,
)
def test_stereographic_inverse_pixels_project_back_to_themselves(projection):
    width, height = 200, 160
    xx, yy = np.meshgrid(np.arange(0.0, width, 2.0), np.arange(0.0, height, 2.0))
    geo = projection.inverse_array(xx, yy, width, height)
    assert geo.visible.any()
    assert not geo.visible.all()

    lat = geo.latitude[geo.visible]
    lon = geo.longitude[geo.visible]
    projected = projection.forward_array(lat, lon, width, height)
    assert projected.visible.all()
    np.testing.assert_allclose(projected.x, xx[geo.visible], atol=1e-6)
    np.testing.assert_allclose(projected.y, yy[geo.visible], atol=1e-6)


def test_only_mercator_wraps_horizontally():
    merc = MercatorProjection(0.0, 0.0, 85.0)
    assert merc.wrap_width(360, 180) == pytest.approx(2 * math.pi * 90.0 / merc.max_mercator_y)
    assert OrthographicProjection().wrap_width(360, 180) is None
    assert StereographicProjection().wrap_width(360, 180) is None


def test_non_finite_input_is_invisible():
    for projection in (
        OrthographicProjection(),
        MercatorProjection(0.0, 0.0, 85.0),
        StereographicProjection(),
    ):
        assert not projection.forward(float("nan"), 0.0, 200, 200).visible
        assert not projection.inverse(float("nan"), 10.0, 200, 200).visible


@pytest.mark.parametrize(
    "projection",
    [
        OrthographicProjection(40.71, -74.01, 90.0),
        OrthographicProjection(-20.0, 130.0, 45.0),
        MercatorProjection(0.0, 30.0, 85.0),
        StereographicProjection(30.0, 20.0, 120.0),
    ],
)
def test_forward_inverse_round_trip(projection):
    lat0 = math.degrees(projection.center_latitude)
    lon0 = math.degrees(projection.center_longitude)
    offsets = [(5.0, 10.0), (-12.0, 3.0), (20.0, -25.0), (-30.0, -1.0)]

    for dlat, dlon in offsets:
        # Mercator ignores the centre latitude
        if projection.projection_type is ProjectionType.MERCATOR:
            lat = math.radians(dlat)
        else:
            lat = math.radians(lat0 + dlat)
        lon = math.radians(lon0 + dlon)
        p = projection.forward(lat, lon, 400, 300)
        assert p.visible
        g = projection.inverse(p.x, p.y, 400, 300)
        assert g.visible
        assert g.latitude == pytest.approx(lat, abs=1e-6)
        assert g.longitude == pytest.approx(lon, abs=1e-6)


def test_array_and_scalar_paths_agree():
    stereo = StereographicProjection(10.0, -40.0, 100.0)
    lat = np.radians(np.array([0.0, 15.0, -30.0, 60.0]))
    lon = np.radians(np.array([-40.0, -10.0, -80.0, 170.0]))
    projected = stereo.forward_array(lat, lon, 300, 200)

    for i in range(lat.size):
        p = stereo.forward(lat[i], lon[i], 300, 200)
        assert p.visible == bool(projected.visible[i])
        if p.visible:
            assert (p.x, p.y) == pytest.approx((projected.x[i], projected.y[i]))
        else:
            assert np.isnan(projected.x[i])
