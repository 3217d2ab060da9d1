"""
Spatial endpoints: autocorrelation suite, global Moran's I, pattern
detection and choropleth aggregation.
"""

import dataclasses
from typing import List

from fastapi import APIRouter, Depends

from api.dependencies import (
    analysis_error,
    get_config,
    get_insight_cache,
    get_record_source,
    resolve_points,
)
from api.models.requests import (
    ChoroplethRequest,
    MoransIRequest,
    PatternsRequest,
    SpatialAnalysisRequest,
)
from api.models.responses import (
    ChoroplethResponse,
    ChoroplethValueResponse,
    CorrelationResponse,
    LocalIndicatorResponse,
    MoransIResponse,
    NeighborhoodResponse,
    PatternsResponse,
    SpatialAnalysisResponse,
    cluster_response,
    point_response,
)
from api.record_source import RecordSource
from config.settings import Config
from core.cache import InsightCache
from core.choropleth import aggregate_by_feature
from core.insights import InsightGenerator
from core.patterns import detect_data_patterns
from core.spatial import (
    LocalIndicator,
    MoransIResult,
    analyze_spatial_data,
    calculate_morans_i,
)

router = APIRouter(prefix="/api/spatial", tags=["spatial"])


def _morans(result: MoransIResult) -> MoransIResponse:
    return MoransIResponse(
        value=result.value,
        expected=result.expected,
        variance=result.variance,
        z_score=result.z_score,
        p_value=result.p_value,
        pattern=result.pattern,
    )


def _indicators(indicators: List[LocalIndicator]) -> List[LocalIndicatorResponse]:
    return [
        LocalIndicatorResponse(
            point=point_response(ind.point),
            local_i=ind.local_i,
            spatial_lag=ind.spatial_lag,
        )
        for ind in indicators
    ]


@router.post("/analysis", response_model=SpatialAnalysisResponse)
def spatial_analysis(
    body: SpatialAnalysisRequest,
    config: Config = Depends(get_config),
    cache: InsightCache = Depends(get_insight_cache),
    source: RecordSource = Depends(get_record_source),
):
    """Moran's I, hotspots, spatial outliers and neighborhoods over one weight matrix."""
    cutoff = body.cutoff_km or config.analysis.weight_cutoff_km
    points = resolve_points(body, source, config)

    def _compute() -> SpatialAnalysisResponse:
        try:
            result = analyze_spatial_data(points, cutoff)
        except ValueError as exc:
            raise analysis_error(exc)
        return SpatialAnalysisResponse(
            point_count=result.point_count,
            morans_i=_morans(result.morans_i),
            hotspots=_indicators(result.hotspots),
            coldspots=_indicators(result.coldspots),
            outliers=[point_response(p) for p in result.outliers],
            neighborhoods=[
                NeighborhoodResponse(
                    center_id=n.center.id,
                    neighbor_ids=[p.id for p in n.neighbors],
                    avg_value=n.avg_value,
                )
                for n in result.neighborhoods
            ],
            insights=InsightGenerator.describe_spatial_analysis(result),
        )

    # Key on the resolved points, not the request body
    key = InsightCache.make_key("spatial-analysis", [[dataclasses.asdict(p) for p in points], cutoff])
    return cache.get_or_compute(key, _compute)


@router.post("/morans-i", response_model=MoransIResponse)
def morans_i(
    body: MoransIRequest,
    config: Config = Depends(get_config),
    source: RecordSource = Depends(get_record_source),
):
    """Global Moran's I with z-score and two-sided p-value."""
    points = resolve_points(body, source, config)
    try:
        result = calculate_morans_i(points, cutoff_km=body.cutoff_km or config.analysis.weight_cutoff_km)
    except ValueError as exc:
        raise analysis_error(exc)
    return _morans(result)


@router.post("/patterns", response_model=PatternsResponse)
def patterns(
    body: PatternsRequest,
    config: Config = Depends(get_config),
    source: RecordSource = Depends(get_record_source),
):
    """Geographic clusters, value anomalies, dominant region and property correlations."""
    points = resolve_points(body, source, config)
    pattern = detect_data_patterns(points)
    return PatternsResponse(
        clusters=[cluster_response(c) for c in pattern.clusters],
        outliers=[point_response(p) for p in pattern.outliers],
        has_temporal_data=pattern.has_temporal_data,
        time_range=list(pattern.time_range) if pattern.time_range else None,
        dominant_region=pattern.dominant_region,
        correlations=[
            CorrelationResponse(
                variable1=c.variable1,
                variable2=c.variable2,
                correlation=c.correlation,
                significance=c.significance,
            )
            for c in pattern.correlations
        ],
    )


@router.post("/choropleth", response_model=ChoroplethResponse)
def choropleth(
    body: ChoroplethRequest,
    config: Config = Depends(get_config),
    source: RecordSource = Depends(get_record_source),
):
    """Mean point value per GeoJSON feature, normalized and ranked."""
    points = resolve_points(body, source, config)
    values = aggregate_by_feature(body.geojson, points)
    return ChoroplethResponse(
        values=[
            ChoroplethValueResponse(
                feature=v.feature,
                value=v.value,
                normalized_value=v.normalized_value,
                rank=v.rank,
                point_count=v.point_count,
                is_outlier=v.is_outlier,
            )
            for v in values
        ]
    )
