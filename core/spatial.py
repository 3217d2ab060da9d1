"""
Spatial autocorrelation: inverse-distance weights, global Moran's I,
local indicators (hotspots / coldspots), spatial outliers and neighborhoods.

All routines are O(N^2) in the number of points; callers should bound N
before invoking them.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from core.geometry import GeoPoint, distance_matrix, filter_valid_points
from core.statistics import two_sided_p_value

logger = logging.getLogger(__name__)

DEFAULT_CUTOFF_KM = 100.0
MIN_MORANS_POINTS = 5
LOCAL_SIGNIFICANCE = 1.96
PATTERN_THRESHOLD = 0.3
LARGE_INPUT_WARNING = 5000


class InsufficientDataError(ValueError):
    """Raised when an analysis needs more observations than were supplied."""


@dataclass
class SpatialWeightMatrix:
    """Row-standardised inverse-distance weights (each row sums to 0 or 1)."""

    values: np.ndarray
    cutoff_km: float = DEFAULT_CUTOFF_KM

    @property
    def size(self) -> int:
        return int(self.values.shape[0])

    @property
    def total_weight(self) -> float:
        return float(self.values.sum())

    def row_sums(self) -> np.ndarray:
        return self.values.sum(axis=1)

    def neighbor_indices(self, i: int) -> np.ndarray:
        return np.nonzero(self.values[i] > 0)[0]


@dataclass
class MoransIResult:
    """Global Moran's I with its (simplified) significance test."""

    value: float
    expected: float
    variance: float
    z_score: float
    p_value: float

    @property
    def pattern(self) -> str:
        return classify_pattern(self.value)


@dataclass
class LocalIndicator:
    """Local Moran's I for a single point."""

    point: GeoPoint
    local_i: float
    spatial_lag: float


@dataclass
class HotspotResult:
    hotspots: List[LocalIndicator]
    coldspots: List[LocalIndicator]


@dataclass
class Neighborhood:
    center: GeoPoint
    neighbors: List[GeoPoint]
    avg_value: float


@dataclass
class SpatialAnalysisResult:
    """Everything derived from one weight matrix over one point set."""

    morans_i: MoransIResult
    hotspots: List[LocalIndicator]
    coldspots: List[LocalIndicator]
    outliers: List[GeoPoint]
    neighborhoods: List[Neighborhood]
    point_count: int

    @property
    def pattern(self) -> str:
        return self.morans_i.pattern


def build_spatial_weights(
    points: Sequence[GeoPoint],
    cutoff_km: float = DEFAULT_CUTOFF_KM,
) -> SpatialWeightMatrix:
    """
    Build the row-standardised inverse-distance weight matrix.

    raw(i, j) = 1 / (d + 1) when d < cutoff, else 0; the diagonal is 0.
    Rows with no neighbour inside the cutoff stay all-zero.

    Args:
        points: Points; invalid ones are dropped first
        cutoff_km: Neighbour distance cutoff in kilometres

    Returns:
        SpatialWeightMatrix aligned with ``filter_valid_points(points)``
    """
    points = filter_valid_points(points)
    n = len(points)
    if n >= LARGE_INPUT_WARNING:
        logger.warning("Building a %dx%d weight matrix; consider sampling first", n, n)

    distances = distance_matrix(points)
    raw = np.where(distances < cutoff_km, 1.0 / (distances + 1.0), 0.0)
    if n:
        np.fill_diagonal(raw, 0.0)

    row_sums = raw.sum(axis=1, keepdims=True)
    weights = np.divide(raw, row_sums, out=np.zeros_like(raw), where=row_sums > 0)
    return SpatialWeightMatrix(values=weights, cutoff_km=cutoff_km)


def classify_pattern(morans_i: float) -> str:
    if morans_i > PATTERN_THRESHOLD:
        return "clustered"
    if morans_i < -PATTERN_THRESHOLD:
        return "dispersed"
    return "random"


def calculate_morans_i(
    points: Sequence[GeoPoint],
    weights: Optional[SpatialWeightMatrix] = None,
    cutoff_km: float = DEFAULT_CUTOFF_KM,
) -> MoransIResult:
    """
    Calculate global Moran's I.

    The variance term is the simplified (n - 1) / W^2 rather than the full
    analytical variance under randomisation.

    Args:
        points: Points with values
        weights: Optional precomputed matrix aligned with the valid points
        cutoff_km: Cutoff used when ``weights`` is not supplied

    Returns:
        MoransIResult

    Raises:
        InsufficientDataError: fewer than 5 valid points
    """
    valid = filter_valid_points(points)
    n = len(valid)
    if n < MIN_MORANS_POINTS:
        raise InsufficientDataError(
            f"Moran's I needs at least {MIN_MORANS_POINTS} points, got {n}"
        )

    w = _resolve_weights(valid, weights, cutoff_km).values
    deviations = _deviations(valid)

    denominator = float(np.dot(deviations, deviations))
    numerator = float(deviations @ w @ deviations)
    total_weight = float(w.sum())

    if total_weight > 0 and denominator > 0:
        value = (n / total_weight) * (numerator / denominator)
    else:
        logger.debug("Degenerate Moran's I input (W=%s, SS=%s)", total_weight, denominator)
        value = 0.0

    expected = -1.0 / (n - 1)
    variance = (n - 1) / total_weight ** 2 if total_weight > 0 else 0.0
    z_score = (value - expected) / math.sqrt(variance) if variance > 0 else 0.0

    return MoransIResult(
        value=value,
        expected=expected,
        variance=variance,
        z_score=z_score,
        p_value=two_sided_p_value(z_score),
    )


def local_morans_i(
    points: Sequence[GeoPoint],
    weights: Optional[SpatialWeightMatrix] = None,
    cutoff_km: float = DEFAULT_CUTOFF_KM,
) -> List[LocalIndicator]:
    """Local Moran's I for every valid point; empty when values are constant."""
    valid = filter_valid_points(points)
    if not valid:
        return []

    w = _resolve_weights(valid, weights, cutoff_km).values
    deviations = _deviations(valid)
    variance = float(np.mean(deviations ** 2))
    if variance == 0:
        return []

    lags = w @ deviations
    local_values = deviations / variance * lags
    return [
        LocalIndicator(point=point, local_i=float(local_i), spatial_lag=float(lag))
        for point, local_i, lag in zip(valid, local_values, lags)
    ]


def identify_hotspots(
    points: Sequence[GeoPoint],
    weights: Optional[SpatialWeightMatrix] = None,
    cutoff_km: float = DEFAULT_CUTOFF_KM,
) -> HotspotResult:
    """
    Classify significant local indicators.

    High value with high neighbours is a hotspot, low with low a coldspot;
    mixed signs are spatial outliers in LISA terms and are not reported here.
    """
    valid = filter_valid_points(points)
    values = np.array([p.value for p in valid], dtype=float)
    mean = float(values.mean()) if values.size else 0.0

    hotspots: List[LocalIndicator] = []
    coldspots: List[LocalIndicator] = []
    for indicator in local_morans_i(valid, weights, cutoff_km):
        if abs(indicator.local_i) <= LOCAL_SIGNIFICANCE:
            continue
        deviation = indicator.point.value - mean
        if deviation > 0 and indicator.spatial_lag > 0:
            hotspots.append(indicator)
        elif deviation < 0 and indicator.spatial_lag < 0:
            coldspots.append(indicator)

    return HotspotResult(hotspots=hotspots, coldspots=coldspots)


def detect_spatial_outliers(
    points: Sequence[GeoPoint],
    weights: Optional[SpatialWeightMatrix] = None,
    cutoff_km: float = DEFAULT_CUTOFF_KM,
) -> List[GeoPoint]:
    """
    Flag points that deviate from their unweighted neighbourhood mean.

    A point is anomalous when |value - m| > 2 * sqrt(m), m being the mean of
    neighbours with nonzero weight. The threshold is ad hoc and only defined
    for m >= 0; points with a negative neighbourhood mean are never flagged.
    """
    valid = filter_valid_points(points)
    if not valid:
        return []

    matrix = _resolve_weights(valid, weights, cutoff_km)
    values = np.array([p.value for p in valid], dtype=float)

    outliers: List[GeoPoint] = []
    for i, point in enumerate(valid):
        neighbors = matrix.neighbor_indices(i)
        if neighbors.size == 0:
            continue

        neighbor_mean = float(values[neighbors].mean())
        if neighbor_mean < 0:
            continue

        difference = abs(values[i] - neighbor_mean)
        if difference > 2 * math.sqrt(neighbor_mean):
            outliers.append(
                dataclasses.replace(point, is_anomaly=True, deviation=float(difference))
            )

    return outliers


def build_neighborhoods(
    points: Sequence[GeoPoint],
    weights: Optional[SpatialWeightMatrix] = None,
    cutoff_km: float = DEFAULT_CUTOFF_KM,
) -> List[Neighborhood]:
    valid = filter_valid_points(points)
    if not valid:
        return []

    matrix = _resolve_weights(valid, weights, cutoff_km)
    neighborhoods = []
    for i, point in enumerate(valid):
        neighbors = [valid[j] for j in matrix.neighbor_indices(i)]
        if neighbors:
            avg_value = float(np.mean([p.value for p in neighbors]))
        else:
            avg_value = point.value
        neighborhoods.append(Neighborhood(center=point, neighbors=neighbors, avg_value=avg_value))
    return neighborhoods


def analyze_spatial_data(
    points: Sequence[GeoPoint],
    cutoff_km: float = DEFAULT_CUTOFF_KM,
) -> SpatialAnalysisResult:
    """
    Run the full autocorrelation suite over a single weight matrix.

    Raises:
        InsufficientDataError: fewer than 5 valid points
    """
    valid = filter_valid_points(points)
    if len(valid) < MIN_MORANS_POINTS:
        raise InsufficientDataError(
            f"Spatial analysis needs at least {MIN_MORANS_POINTS} points, got {len(valid)}"
        )

    weights = build_spatial_weights(valid, cutoff_km)
    morans = calculate_morans_i(valid, weights)
    spots = identify_hotspots(valid, weights)

    logger.debug(
        "Spatial analysis over %d points: I=%.4f (%s), %d hotspots, %d coldspots",
        len(valid), morans.value, morans.pattern, len(spots.hotspots), len(spots.coldspots),
    )

    return SpatialAnalysisResult(
        morans_i=morans,
        hotspots=spots.hotspots,
        coldspots=spots.coldspots,
        outliers=detect_spatial_outliers(valid, weights),
        neighborhoods=build_neighborhoods(valid, weights),
        point_count=len(valid),
    )


def _resolve_weights(
    points: Sequence[GeoPoint],
    weights: Optional[SpatialWeightMatrix],
    cutoff_km: float,
) -> SpatialWeightMatrix:
    if weights is None:
        return build_spatial_weights(points, cutoff_km)
    if weights.size != len(points):
        raise ValueError(
            f"Weight matrix is {weights.size}x{weights.size} but {len(points)} valid points were given"
        )
    return weights


def _deviations(points: Sequence[GeoPoint]) -> np.ndarray:
    values = np.array([p.value for p in points], dtype=float)
    if values.size == 0 or np.ptp(values) == 0:
        return np.zeros_like(values)
    return values - values.mean()
