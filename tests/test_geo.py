"""Tests for distance / ETA helpers."""

import math

import pytest

from foodshare_bot.errors import InvalidCoordinate, InvalidSpeed
from foodshare_bot.utils.geo import EARTH_RADIUS_KM, GeoPoint, distance_km, eta_minutes, validate_point

POINTS = [
    GeoPoint(28.6139, 77.2090),
    GeoPoint(28.5355, 77.3910),
    GeoPoint(-33.8688, 151.2093),
    GeoPoint(90.0, 0.0),
    GeoPoint(0.0, -180.0),
    GeoPoint(51.5074, -0.1278),
]


class TestDistance:
    @pytest.mark.parametrize("point", POINTS)
    def test_distance_to_self_is_zero(self, point):
        assert distance_km(point, point) == 0

    @pytest.mark.parametrize("a", POINTS)
    @pytest.mark.parametrize("b", POINTS)
    def test_distance_is_symmetric(self, a, b):
        assert distance_km(a, b) == pytest.approx(distance_km(b, a))

    def test_one_degree_of_latitude(self):
        expected = EARTH_RADIUS_KM * math.pi / 180
        assert distance_km(GeoPoint(0, 0), GeoPoint(1, 0)) == pytest.approx(expected, rel=1e-9)

    def test_antipodal_points(self):
        assert distance_km(GeoPoint(0, 0), GeoPoint(0, 180)) == pytest.approx(math.pi * EARTH_RADIUS_KM)

    def test_delhi_to_noida(self):
        assert distance_km(POINTS[0], POINTS[1]) == pytest.approx(19.8, abs=0.3)

    @pytest.mark.parametrize(
        "bad",
        [
            GeoPoint(90.5, 0),
            GeoPoint(-91, 0),
            GeoPoint(0, 180.01),
            GeoPoint(0, -181),
            GeoPoint(float("nan"), 0),
            GeoPoint(0, float("inf")),
        ],
    )
    def test_invalid_coordinates_rejected(self, bad):
        with pytest.raises(InvalidCoordinate):
            distance_km(bad, POINTS[0])
        with pytest.raises(InvalidCoordinate):
            distance_km(POINTS[0], bad)

    def test_validate_point_parses_numbers(self):
        assert validate_point("28.5", 77) == GeoPoint(28.5, 77.0)

    def test_validate_point_rejects_garbage(self):
        with pytest.raises(InvalidCoordinate):
            validate_point("north", 77)
        with pytest.raises(InvalidCoordinate):
            validate_point(None, 77)


class TestEta:
    def test_rounds_minutes(self):
        assert eta_minutes(10, 20) == 30
        assert eta_minutes(1, 20) == 3

    def test_zero_distance_is_arrived(self):
        assert eta_minutes(0, 20) == 0

    @pytest.mark.parametrize("speed", [0, -5, float("nan")])
    def test_invalid_speed(self, speed):
        with pytest.raises(InvalidSpeed):
            eta_minutes(5, speed)
