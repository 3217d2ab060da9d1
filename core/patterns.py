"""Pattern detection over geographic points: clusters, anomalies, regions, correlations."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from itertools import combinations
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from core.clustering import Cluster, dbscan_clustering
from core.geometry import GeoPoint, filter_valid_points

PATTERN_CLUSTER_RADIUS_KM = 50.0
# Three neighbours plus the point itself
PATTERN_CLUSTER_MIN_POINTS = 4
ZSCORE_THRESHOLD = 2.5
MIN_CORRELATION_SAMPLES = 5
CORRELATION_THRESHOLD = 0.3


@dataclass
class PropertyCorrelation:
    variable1: str
    variable2: str
    correlation: float
    significance: float


@dataclass
class DataPattern:
    clusters: List[Cluster] = field(default_factory=list)
    outliers: List[GeoPoint] = field(default_factory=list)
    has_temporal_data: bool = False
    time_range: Optional[Tuple[int, int]] = None
    dominant_region: Optional[str] = None
    correlations: List[PropertyCorrelation] = field(default_factory=list)


def detect_data_patterns(points: Sequence[GeoPoint]) -> DataPattern:
    valid = filter_valid_points(points)
    if not valid:
        return DataPattern()

    time_indices = [p.time_index for p in valid if p.time_index is not None]
    time_range = (min(time_indices), max(time_indices)) if time_indices else None

    return DataPattern(
        clusters=dbscan_clustering(valid, PATTERN_CLUSTER_RADIUS_KM, PATTERN_CLUSTER_MIN_POINTS).clusters,
        outliers=detect_statistical_outliers(valid),
        has_temporal_data=bool(time_indices),
        time_range=time_range,
        dominant_region=dominant_region(valid),
        correlations=property_correlations(valid),
    )


def detect_statistical_outliers(
    points: Sequence[GeoPoint],
    threshold: float = ZSCORE_THRESHOLD,
) -> List[GeoPoint]:
    """Points whose value lies more than ``threshold`` std devs from the mean."""
    if threshold <= 0:
        raise ValueError("Threshold must be positive for Z-score detection")

    valid = filter_valid_points(points)
    if not valid:
        return []

    values = np.array([p.value for p in valid], dtype=float)
    std = values.std()
    if np.isclose(std, 0):
        return []

    z_scores = np.abs(values - values.mean()) / std
    return [
        dataclasses.replace(point, is_anomaly=True, deviation=float(z))
        for point, z in zip(valid, z_scores)
        if z > threshold
    ]


def dominant_region(points: Sequence[GeoPoint]) -> Optional[str]:
    """Hemisphere holding the most points (ties resolved in N, S, E, W order)."""
    if not points:
        return None

    regions = {
        "Northern Hemisphere": sum(1 for p in points if p.lat > 0),
        "Southern Hemisphere": sum(1 for p in points if p.lat <= 0),
        "Eastern Hemisphere": sum(1 for p in points if p.lng > 0),
        "Western Hemisphere": sum(1 for p in points if p.lng <= 0),
    }
    return max(regions.items(), key=lambda item: item[1])[0]


def property_correlations(points: Sequence[GeoPoint]) -> List[PropertyCorrelation]:
    """Pearson correlations between numeric point properties, strongest first."""
    if not points:
        return []

    frame = pd.DataFrame([p.properties for p in points])
    numeric = frame.apply(pd.to_numeric, errors="coerce").dropna(axis=1, how="all")
    columns = [col for col in numeric.columns if frame[col].map(_is_number).any()]

    results: List[PropertyCorrelation] = []
    for col1, col2 in combinations(columns, 2):
        pair = numeric[[col1, col2]].dropna()
        if len(pair) <= MIN_CORRELATION_SAMPLES:
            continue
        if np.isclose(pair[col1].std(), 0) or np.isclose(pair[col2].std(), 0):
            continue

        corr = float(pair[col1].corr(pair[col2]))
        if np.isfinite(corr) and abs(corr) > CORRELATION_THRESHOLD:
            results.append(
                PropertyCorrelation(
                    variable1=str(col1),
                    variable2=str(col2),
                    correlation=corr,
                    significance=abs(corr),
                )
            )

    results.sort(key=lambda r: r.significance, reverse=True)
    return results


def _is_number(value) -> bool:
    return isinstance(value, (int, float, np.number)) and not isinstance(value, bool)

