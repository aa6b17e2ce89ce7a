"""Unit tests for geo_math.py — haversine distance, projection, walking time."""

import math

import pytest

from geo_math import (
    GeoPoint,
    distance_km,
    distance_meters,
    format_distance,
    offset_point,
    walking_minutes,
)

LONDON = GeoPoint(51.5074, -0.1278)
PARIS = GeoPoint(48.8566, 2.3522)


class TestDistance:
    def test_same_point_is_zero(self):
        assert distance_meters(LONDON, LONDON) == 0
        assert distance_km(LONDON, LONDON) == 0

    def test_london_paris(self):
        assert distance_km(LONDON, PARIS) == pytest.approx(343.5, abs=2)

    def test_symmetric(self):
        assert distance_meters(LONDON, PARIS) == pytest.approx(distance_meters(PARIS, LONDON))

    def test_km_and_meters_agree(self):
        assert distance_meters(LONDON, PARIS) == pytest.approx(distance_km(LONDON, PARIS) * 1000)

    def test_one_hundredth_degree_latitude(self):
        a = GeoPoint(51.52, -0.04)
        b = GeoPoint(51.53, -0.04)
        assert distance_meters(a, b) == pytest.approx(1112, abs=2)


class TestOffsetPoint:
    def test_north_moves_latitude_only(self):
        p = offset_point(LONDON, 1000, 0)
        assert p.lat > LONDON.lat
        assert p.lng == pytest.approx(LONDON.lng)

    def test_east_moves_longitude_only(self):
        p = offset_point(LONDON, 1000, math.pi / 2)
        assert p.lat == pytest.approx(LONDON.lat)
        assert p.lng > LONDON.lng

    @pytest.mark.parametrize("bearing", [0, math.pi / 4, math.pi / 2, math.pi, 3 * math.pi / 2])
    def test_distance_roughly_preserved(self, bearing):
        p = offset_point(LONDON, 2000, bearing)
        assert distance_meters(LONDON, p) == pytest.approx(2000, rel=0.01)

    def test_projected_point_never_outside_radius(self):
        # Boundary samples must not overshoot the circle they were drawn on
        for i in range(8):
            p = offset_point(LONDON, 3000, i * math.pi / 4)
            assert distance_meters(LONDON, p) <= 3000


class TestWalkingMinutes:
    def test_one_km_is_twelve_minutes(self):
        assert walking_minutes(1.0) == 12

    def test_zero(self):
        assert walking_minutes(0) == 0

    def test_rounds_half_up(self):
        # 1.4 km -> 16.8 min
        assert walking_minutes(1.4) == 17
        # 0.125 km -> 1.5 min
        assert walking_minutes(0.125) == 2


class TestFormatDistance:
    def test_metres_below_one_km(self):
        assert format_distance(0.85) == "850m"

    def test_km_one_decimal(self):
        assert format_distance(1.42) == "1.4km"

    def test_exactly_one_km(self):
        assert format_distance(1.0) == "1.0km"
