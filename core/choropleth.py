"""
Choropleth aggregation: mean point value per GeoJSON feature.

Membership uses the feature's bounding box rather than exact polygon
containment, so points near concave or neighbouring boundaries can be
counted in more than one feature.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from core.geometry import GeoPoint, filter_valid_points

CHOROPLETH_OUTLIER_Z = 2.0


@dataclass
class FeatureBounds:
    north: float
    south: float
    east: float
    west: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east


@dataclass
class ChoroplethValue:
    feature: Dict[str, Any]
    value: float
    normalized_value: float
    rank: int
    point_count: int
    is_outlier: bool


def feature_bounds(feature: Dict[str, Any]) -> Optional[FeatureBounds]:
    """Bounding box of a GeoJSON feature ([lng, lat] coordinate order)."""
    geometry = (feature or {}).get("geometry") or {}
    coordinates = geometry.get("coordinates")
    if not coordinates:
        return None

    lats: List[float] = []
    lngs: List[float] = []
    _collect_positions(coordinates, lats, lngs)
    if not lats:
        return None

    return FeatureBounds(north=max(lats), south=min(lats), east=max(lngs), west=min(lngs))


def aggregate_by_feature(
    geojson: Dict[str, Any],
    points: Sequence[GeoPoint],
) -> List[ChoroplethValue]:
    """
    Aggregate point values per feature.

    Args:
        geojson: FeatureCollection dict
        points: Points to aggregate

    Returns:
        One ChoroplethValue per feature, in feature order; rank 1 is the
        highest mean value
    """
    features = (geojson or {}).get("features") or []
    valid = filter_valid_points(points)
    if not features or not valid:
        return []

    means: List[float] = []
    counts: List[int] = []
    for feature in features:
        bounds = feature_bounds(feature)
        members = [p.value for p in valid if bounds is not None and bounds.contains(p.lat, p.lng)]
        means.append(float(np.mean(members)) if members else 0.0)
        counts.append(len(members))

    values = np.array(means, dtype=float)
    low, high = values.min(), values.max()
    spread = high - low
    normalized = (values - low) / spread if spread > 0 else np.zeros_like(values)

    std = values.std()
    z_scores = np.abs(values - values.mean()) / std if std > 0 else np.zeros_like(values)

    # Stable sort keeps feature order among equal values
    order = np.argsort(-values, kind="stable")
    ranks = np.empty(len(values), dtype=int)
    ranks[order] = np.arange(1, len(values) + 1)

    return [
        ChoroplethValue(
            feature=feature,
            value=float(values[i]),
            normalized_value=float(normalized[i]),
            rank=int(ranks[i]),
            point_count=counts[i],
            is_outlier=bool(z_scores[i] > CHOROPLETH_OUTLIER_Z),
        )
        for i, feature in enumerate(features)
    ]


def _collect_positions(coords: Any, lats: List[float], lngs: List[float]) -> None:
    if not isinstance(coords, (list, tuple)) or not coords:
        return
    if isinstance(coords[0], (list, tuple)):
        for inner in coords:
            _collect_positions(inner, lats, lngs)
        return
    if len(coords) >= 2:
        lngs.append(float(coords[0]))
        lats.append(float(coords[1]))
