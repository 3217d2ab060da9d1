"""Test fixtures and configuration for pytest."""

import pytest
import numpy as np

from core.geometry import GeoPoint


@pytest.fixture
def two_clusters():
    """Two tight groups of three points, roughly 200 km apart."""
    return [
        GeoPoint(id="a1", lat=40.00, lng=-74.00, value=10.0),
        GeoPoint(id="a2", lat=40.01, lng=-74.01, value=12.0),
        GeoPoint(id="a3", lat=40.02, lng=-74.00, value=11.0),
        GeoPoint(id="b1", lat=41.80, lng=-74.00, value=50.0),
        GeoPoint(id="b2", lat=41.81, lng=-74.01, value=52.0),
        GeoPoint(id="b3", lat=41.82, lng=-74.00, value=51.0),
    ]


@pytest.fixture
def clustered_values():
    """Ten points in two regions more than 100 km apart; values track the region."""
    np.random.seed(42)
    points = []
    for i in range(5):
        points.append(GeoPoint(
            id=f"low-{i}",
            lat=40.0 + np.random.uniform(0, 0.2),
            lng=-74.0 + np.random.uniform(0, 0.2),
            value=10.0 + i,
        ))
    for i in range(5):
        points.append(GeoPoint(
            id=f"high-{i}",
            lat=41.5 + np.random.uniform(0, 0.2),
            lng=-74.0 + np.random.uniform(0, 0.2),
            value=100.0 + i,
        ))
    return points


@pytest.fixture
def monthly_records():
    """Twelve months of steadily growing sales."""
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return [{"name": m, "value": 100 + 10 * i} for i, m in enumerate(months)]


@pytest.fixture
def city_records():
    """Raw rows the way a CSV upload would deliver them."""
    return [
        {"id": "nyc", "name": "New York", "latitude": 40.71, "longitude": -74.01, "value": 120, "region": "east"},
        {"id": "bos", "name": "Boston", "latitude": 42.36, "longitude": -71.06, "value": 80, "region": "east"},
        {"id": "chi", "name": "Chicago", "latitude": 41.88, "longitude": -87.63, "value": 95, "region": "central"},
        {"id": "la", "name": "Los Angeles", "latitude": 34.05, "longitude": -118.24, "value": 150, "region": "west"},
        {"id": "sf", "name": "San Francisco", "latitude": 37.77, "longitude": -122.42, "value": 110, "region": "west"},
        {"id": "bad", "name": "Nowhere", "latitude": 123.0, "longitude": 10.0, "value": 5, "region": "none"},
    ]
