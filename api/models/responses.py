"""Pydantic response schemas."""

import dataclasses
from typing import Any, Dict, List, Optional

from api.models.requests import ApiModel
from core.clustering import Cluster
from core.geometry import GeoPoint


class PointResponse(ApiModel):
    id: str
    lat: float
    lng: float
    value: float
    properties: Dict[str, Any]
    time_index: Optional[int] = None
    cluster: int
    is_anomaly: bool
    deviation: Optional[float] = None
    name: Optional[str] = None


def point_response(point: GeoPoint) -> PointResponse:
    return PointResponse(**dataclasses.asdict(point))


class MoransIResponse(ApiModel):
    value: float
    expected: float
    variance: float
    z_score: float
    p_value: float
    pattern: str


class LocalIndicatorResponse(ApiModel):
    point: PointResponse
    local_i: float
    spatial_lag: float


class NeighborhoodResponse(ApiModel):
    center_id: str
    neighbor_ids: List[str]
    avg_value: float


class SpatialAnalysisResponse(ApiModel):
    point_count: int
    morans_i: MoransIResponse
    hotspots: List[LocalIndicatorResponse]
    coldspots: List[LocalIndicatorResponse]
    outliers: List[PointResponse]
    neighborhoods: List[NeighborhoodResponse]
    insights: List[str]


class ClusterResponse(ApiModel):
    id: int
    center: List[float]  # [lat, lng]
    size: int
    mean_value: float
    variance: float
    point_ids: List[str]


def cluster_response(cluster: Cluster) -> ClusterResponse:
    return ClusterResponse(
        id=cluster.id,
        center=list(cluster.center),
        size=cluster.size,
        mean_value=cluster.mean_value,
        variance=cluster.variance,
        point_ids=[p.id for p in cluster.points],
    )


class ClusteringResponse(ApiModel):
    method: str
    clusters: List[ClusterResponse]
    noise: List[PointResponse]
    points: List[PointResponse]
    insights: List[str]


class CorrelationResponse(ApiModel):
    variable1: str
    variable2: str
    correlation: float
    significance: float


class PatternsResponse(ApiModel):
    clusters: List[ClusterResponse]
    outliers: List[PointResponse]
    has_temporal_data: bool
    time_range: Optional[List[int]] = None
    dominant_region: Optional[str] = None
    correlations: List[CorrelationResponse]


class ChoroplethValueResponse(ApiModel):
    feature: Dict[str, Any]
    value: float
    normalized_value: float
    rank: int
    point_count: int
    is_outlier: bool


class ChoroplethResponse(ApiModel):
    values: List[ChoroplethValueResponse]


class InsightResponse(ApiModel):
    kind: str
    description: str
    confidence: float
    significance: float
    data: Dict[str, Any]


class InsightsResponse(ApiModel):
    insights: List[InsightResponse]
    record_count: int


class DescriptiveStatsResponse(ApiModel):
    count: int
    sum: float
    mean: float
    median: float
    min: float
    max: float
    range: float
    variance: float
    std_dev: float
    q1: float
    q3: float
    iqr: float
    coefficient_of_variation: Optional[float] = None
    skewness: float


class TrendResponse(ApiModel):
    slope: float
    intercept: float
    correlation: float
    r_squared: float
    p_value: float
    direction: str
    strength: str


class OutlierSummaryResponse(ApiModel):
    lower_fence: float
    upper_fence: float
    values: List[float]
    names: List[Optional[str]]


class ParetoResponse(ApiModel):
    items_needed: int
    total_items: int
    percentage: float
    value_share: float
    is_concentrated: bool


class DescribeResponse(ApiModel):
    record_count: int
    stats: Optional[DescriptiveStatsResponse] = None
    trend: Optional[TrendResponse] = None
    outliers: Optional[OutlierSummaryResponse] = None
    pareto: Optional[ParetoResponse] = None


class CacheMetricsResponse(ApiModel):
    hits: int
    misses: int
    evictions: int
    size: int
    max_size: int
    hit_rate: float


class DatasetResponse(ApiModel):
    id: str
    name: str
    record_count: int
    point_count: int
    created_at: float
