"""Tests for geometry primitives."""

import math

import numpy as np
import pytest

from core.geometry import (
    GeoPoint,
    coordinates_array,
    deg_to_rad,
    distance_matrix,
    filter_valid_points,
    haversine_distance,
    is_valid_coordinate,
    rad_to_deg,
)


class TestHaversine:
    """Tests for great-circle distance."""

    def test_same_point_is_zero(self):
        assert haversine_distance(40.0, -74.0, 40.0, -74.0) == pytest.approx(0.0)

    def test_one_degree_of_latitude(self):
        # 2 * pi * 6371 / 360
        assert haversine_distance(0, 0, 1, 0) == pytest.approx(111.195, abs=0.01)

    def test_new_york_to_london(self):
        d = haversine_distance(40.7128, -74.0060, 51.5074, -0.1278)
        assert d == pytest.approx(5570, rel=0.01)

    def test_symmetric(self):
        assert haversine_distance(10, 20, -30, 40) == pytest.approx(haversine_distance(-30, 40, 10, 20))

    def test_antipodal_points(self):
        assert haversine_distance(0, 0, 0, 180) == pytest.approx(math.pi * 6371.0, rel=1e-9)

    def test_broadcasts_over_arrays(self):
        lats = np.array([0.0, 1.0, 2.0])
        result = haversine_distance(0.0, 0.0, lats, np.zeros(3))
        assert result.shape == (3,)
        assert result[0] == pytest.approx(0.0)
        assert result[2] == pytest.approx(2 * result[1])

    def test_scalar_result_is_float(self):
        assert isinstance(haversine_distance(0, 0, 1, 1), float)


class TestConversions:

    def test_round_trip(self):
        assert rad_to_deg(deg_to_rad(123.4)) == pytest.approx(123.4)

    def test_right_angle(self):
        assert deg_to_rad(90) == pytest.approx(math.pi / 2)


class TestValidation:
    """Tests for coordinate validation and filtering."""

    @pytest.mark.parametrize("lat,lng", [(0, 0), (90, 180), (-90, -180), (45.5, -122.6)])
    def test_valid_coordinates(self, lat, lng):
        assert is_valid_coordinate(lat, lng)

    @pytest.mark.parametrize("lat,lng", [
        (91, 0), (0, 181), (-90.1, 0), (float("nan"), 0), (0, float("inf")), (None, 0), ("north", 0),
    ])
    def test_invalid_coordinates(self, lat, lng):
        assert not is_valid_coordinate(lat, lng)

    def test_filter_drops_invalid_points(self):
        points = [
            GeoPoint(id="ok", lat=10, lng=10, value=1),
            GeoPoint(id="bad-lat", lat=100, lng=10, value=1),
            GeoPoint(id="bad-value", lat=10, lng=10, value=float("nan")),
        ]
        assert [p.id for p in filter_valid_points(points)] == ["ok"]

    def test_filter_handles_none(self):
        assert filter_valid_points(None) == []


class TestDistanceMatrix:

    def test_shape_and_diagonal(self, two_clusters):
        matrix = distance_matrix(two_clusters)
        assert matrix.shape == (6, 6)
        assert np.allclose(np.diag(matrix), 0.0)
        assert np.allclose(matrix, matrix.T)

    def test_groups_are_far_apart(self, two_clusters):
        matrix = distance_matrix(two_clusters)
        assert matrix[0, 1] < 5
        assert matrix[0, 3] > 150

    def test_coordinates_array(self, two_clusters):
        coords = coordinates_array(two_clusters)
        assert coords.shape == (6, 2)
        assert coords[0].tolist() == [40.0, -74.0]
