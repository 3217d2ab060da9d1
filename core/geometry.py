"""Geometry primitives: great-circle distances and the GeoPoint value type."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


@dataclass
class GeoPoint:
    """A geographic observation with a scalar value."""

    id: str
    lat: float
    lng: float
    value: float = 0.0
    properties: Dict[str, Any] = field(default_factory=dict)
    time_index: Optional[int] = None
    cluster: int = -1  # -1 = noise / unassigned
    is_anomaly: bool = False
    deviation: Optional[float] = None
    name: Optional[str] = None


def deg_to_rad(degrees):
    return np.deg2rad(degrees)


def rad_to_deg(radians):
    return np.rad2deg(radians)


def haversine_distance(lat_a, lng_a, lat_b, lng_b):
    """
    Great-circle distance in kilometres.

    Works on scalars or numpy arrays (broadcasting). NaN inputs produce NaN;
    callers validate coordinates upstream.
    """
    lat_a_rad = deg_to_rad(np.asarray(lat_a, dtype=float))
    lat_b_rad = deg_to_rad(np.asarray(lat_b, dtype=float))
    d_lat = deg_to_rad(np.asarray(lat_b, dtype=float) - np.asarray(lat_a, dtype=float))
    d_lng = deg_to_rad(np.asarray(lng_b, dtype=float) - np.asarray(lng_a, dtype=float))

    a = (
        np.sin(d_lat / 2) ** 2
        + np.cos(lat_a_rad) * np.cos(lat_b_rad) * np.sin(d_lng / 2) ** 2
    )
    # Rounding can push `a` a hair outside [0, 1]
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    distance = EARTH_RADIUS_KM * c

    if np.ndim(distance) == 0:
        return float(distance)
    return distance


def is_valid_coordinate(lat: Any, lng: Any) -> bool:
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        return False
    return (
        math.isfinite(lat_f)
        and math.isfinite(lng_f)
        and -90 <= lat_f <= 90
        and -180 <= lng_f <= 180
    )


def filter_valid_points(points: Optional[Sequence[GeoPoint]]) -> List[GeoPoint]:
    """Drop points with out-of-range coordinates or a non-finite value."""
    if not points:
        return []

    valid = [
        p for p in points
        if is_valid_coordinate(p.lat, p.lng) and _is_finite_number(p.value)
    ]
    dropped = len(points) - len(valid)
    if dropped:
        logger.debug("Dropped %d invalid point(s) out of %d", dropped, len(points))
    return valid


def coordinates_array(points: Sequence[GeoPoint]) -> np.ndarray:
    """Return an (N, 2) array of [lat, lng] rows."""
    if not points:
        return np.empty((0, 2), dtype=float)
    return np.array([[p.lat, p.lng] for p in points], dtype=float)


def distance_matrix(points: Sequence[GeoPoint]) -> np.ndarray:
    """Pairwise haversine distances (km) as an N x N matrix."""
    coords = coordinates_array(points)
    if len(coords) == 0:
        return np.zeros((0, 0), dtype=float)

    lat = coords[:, 0]
    lng = coords[:, 1]
    distances = haversine_distance(lat[:, None], lng[:, None], lat[None, :], lng[None, :])
    np.fill_diagonal(distances, 0.0)
    return distances


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False
