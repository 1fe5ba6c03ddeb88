"""Tests for geographic helpers."""

import math

import pytest

from wayfinder.geo import (
    bearing_between,
    bearing_or_none,
    bearing_to_compass,
    haversine_distance,
    is_valid_coordinate,
    nearest_point_on_polyline,
    point_ahead,
)
from wayfinder.models import GeoPoint

POINTS = [
    GeoPoint(0.0, 0.0),
    GeoPoint(51.4800, -3.1800),
    GeoPoint(-33.8688, 151.2093),
    GeoPoint(89.9, 179.9),
    GeoPoint(-45.0, -179.5),
]


@pytest.mark.parametrize("a", POINTS)
@pytest.mark.parametrize("b", POINTS)
def test_distance_symmetric(a, b):
    assert haversine_distance(a, b) == pytest.approx(haversine_distance(b, a))


@pytest.mark.parametrize("a", POINTS)
def test_distance_to_self_is_zero(a):
    assert haversine_distance(a, a) == 0


def test_distance_known_value():
    # 0.001 degree of longitude on the equator
    assert haversine_distance(GeoPoint(0, 0), GeoPoint(0, 0.001)) == pytest.approx(111.195, abs=0.01)


@pytest.mark.parametrize("bad", [
    None,
    GeoPoint(float("nan"), 0.0),
    GeoPoint(0.0, float("inf")),
    GeoPoint("x", 0.0),
])
def test_distance_invalid_is_inf(bad):
    assert math.isinf(haversine_distance(bad, GeoPoint(0, 0)))
    assert math.isinf(haversine_distance(GeoPoint(0, 0), bad))


@pytest.mark.parametrize("a", POINTS)
@pytest.mark.parametrize("b", POINTS)
def test_bearing_in_range(a, b):
    assert 0 <= bearing_between(a, b) < 360


def test_bearing_cardinal_directions():
    origin = GeoPoint(0, 0)
    assert bearing_between(origin, GeoPoint(1, 0)) == pytest.approx(0)
    assert bearing_between(origin, GeoPoint(0, 1)) == pytest.approx(90)
    assert bearing_between(origin, GeoPoint(-1, 0)) == pytest.approx(180)
    assert bearing_between(origin, GeoPoint(0, -1)) == pytest.approx(270)


def test_bearing_degenerate_input():
    p = GeoPoint(10, 10)
    assert bearing_between(p, p) == 0
    assert bearing_between(None, p) == 0
    assert bearing_or_none(p, p) is None
    assert bearing_or_none(GeoPoint(float("nan"), 0), p) is None


def test_bearing_to_compass():
    assert bearing_to_compass(0) == "north"
    assert bearing_to_compass(44) == "northeast"
    assert bearing_to_compass(180) == "south"
    assert bearing_to_compass(350) == "north"


def test_is_valid_coordinate():
    assert is_valid_coordinate(0, 0)
    assert is_valid_coordinate(-90, 180)
    assert not is_valid_coordinate(91, 0)
    assert not is_valid_coordinate(0, -181)
    assert not is_valid_coordinate(None, 0)
    assert not is_valid_coordinate(True, 0)
    assert not is_valid_coordinate(float("nan"), 0)


def test_nearest_point_inside_segment():
    polyline = [GeoPoint(0, 0), GeoPoint(0, 0.002)]
    p = point_ahead(GeoPoint(0, 0.001), 0, 40)
    match = nearest_point_on_polyline(p, polyline)
    assert match.index == 0
    assert match.distance == pytest.approx(40, abs=0.5)
    assert match.point.lon == pytest.approx(0.001, abs=1e-5)


def test_nearest_point_beyond_end_uses_endpoint():
    polyline = [GeoPoint(0, 0), GeoPoint(0, 0.001)]
    p = GeoPoint(0, 0.002)
    match = nearest_point_on_polyline(p, polyline)
    assert match.point == GeoPoint(0, 0.001)
    assert match.distance == pytest.approx(111.195, abs=0.01)


def test_nearest_point_picks_closest_segment():
    polyline = [GeoPoint(0, 0), GeoPoint(0, 0.003), GeoPoint(0.003, 0.003)]
    p = point_ahead(GeoPoint(0.0015, 0.003), 270, 10)
    match = nearest_point_on_polyline(p, polyline)
    assert match.index == 1
    assert match.distance == pytest.approx(10, abs=0.5)


def test_nearest_point_tie_keeps_earliest_segment():
    # Both segments share the vertex closest to p
    polyline = [GeoPoint(0, 0), GeoPoint(0, 0.001), GeoPoint(0, 0.002)]
    p = GeoPoint(0, 0.001)
    assert nearest_point_on_polyline(p, polyline).index == 0


def test_nearest_point_degenerate_input():
    assert nearest_point_on_polyline(GeoPoint(0, 0), []).index == -1
    assert math.isinf(nearest_point_on_polyline(GeoPoint(0, 0), []).distance)
    assert math.isinf(nearest_point_on_polyline(None, [GeoPoint(0, 0), GeoPoint(1, 1)]).distance)

    single = nearest_point_on_polyline(GeoPoint(0, 0), [GeoPoint(0, 0.001)])
    assert single.index == 0
    assert single.distance == pytest.approx(111.195, abs=0.01)


def test_point_ahead_distance_and_bearing():
    origin = GeoPoint(51.48, -3.18)
    target = point_ahead(origin, 45, 250)
    assert haversine_distance(origin, target) == pytest.approx(250, abs=0.01)
    assert bearing_between(origin, target) == pytest.approx(45, abs=0.01)


def test_point_ahead_wraps_longitude():
    target = point_ahead(GeoPoint(0, 179.9999), 90, 100)
    assert -180 <= target.lon < 180
    assert target.lon < 0


def test_point_ahead_invalid_returns_input():
    p = GeoPoint(0, 0)
    assert point_ahead(p, float("nan"), 10) is p
    assert point_ahead(p, 90, None) is p
