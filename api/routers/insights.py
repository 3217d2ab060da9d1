"""
Insight endpoints: ranked findings, descriptive statistics and cache metrics.
"""

import dataclasses

from fastapi import APIRouter, Depends

from api.dependencies import get_config, get_insight_cache, get_record_source, resolve_records
from api.models.requests import DescribeRequest, InsightsRequest
from api.models.responses import (
    CacheMetricsResponse,
    DescribeResponse,
    DescriptiveStatsResponse,
    InsightResponse,
    InsightsResponse,
    OutlierSummaryResponse,
    ParetoResponse,
    TrendResponse,
)
from api.record_source import RecordSource
from config.settings import Config
from core.cache import InsightCache
from core.insights import InsightGenerator
from core.statistics import (
    describe,
    extract_numeric_records,
    fit_trend,
    iqr_outliers,
    pareto_concentration,
)

router = APIRouter(prefix="/api/insights", tags=["insights"])


@router.post("", response_model=InsightsResponse)
def generate_insights(
    body: InsightsRequest,
    config: Config = Depends(get_config),
    cache: InsightCache = Depends(get_insight_cache),
    source: RecordSource = Depends(get_record_source),
):
    """Top statistical, trend, outlier and distribution findings."""
    records = resolve_records(body, source)
    limit = body.limit or config.analysis.insight_limit
    min_confidence = (
        body.min_confidence
        if body.min_confidence is not None
        else config.analysis.min_insight_confidence
    )

    def _compute() -> InsightsResponse:
        insights = InsightGenerator.generate_insights(
            records,
            temporal=body.temporal,
            limit=limit,
            min_confidence=min_confidence,
        )
        return InsightsResponse(
            insights=[
                InsightResponse(
                    kind=i.kind,
                    description=i.description,
                    confidence=i.confidence,
                    significance=i.significance,
                    data=i.data,
                )
                for i in insights
            ],
            record_count=len(records),
        )

    key = InsightCache.make_key(
        "insights", [records, body.temporal, limit, min_confidence]
    )
    return cache.get_or_compute(key, _compute)


@router.post("/describe", response_model=DescribeResponse)
def describe_records(
    body: DescribeRequest,
    source: RecordSource = Depends(get_record_source),
):
    """Descriptive statistics, trend, IQR outliers and Pareto share of the record values."""
    records = resolve_records(body, source)
    numeric = extract_numeric_records(records)
    values = [r.value for r in numeric]

    stats = describe(values)
    if stats is None:
        return DescribeResponse(record_count=len(records))

    trend = fit_trend(values)
    outliers = iqr_outliers(numeric)
    pareto = pareto_concentration(values)

    return DescribeResponse(
        record_count=len(records),
        stats=DescriptiveStatsResponse(**dataclasses.asdict(stats)),
        trend=TrendResponse(
            slope=trend.slope,
            intercept=trend.intercept,
            correlation=trend.correlation,
            r_squared=trend.r_squared,
            p_value=trend.p_value,
            direction=trend.direction,
            strength=trend.strength,
        ) if trend else None,
        outliers=OutlierSummaryResponse(
            lower_fence=outliers.lower_fence,
            upper_fence=outliers.upper_fence,
            values=[r.value for r in outliers.outliers],
            names=[r.name for r in outliers.outliers],
        ) if outliers else None,
        pareto=ParetoResponse(
            items_needed=pareto.items_needed,
            total_items=pareto.total_items,
            percentage=pareto.percentage,
            value_share=pareto.value_share,
            is_concentrated=pareto.is_concentrated,
        ) if pareto else None,
    )


@router.get("/cache", response_model=CacheMetricsResponse)
def cache_metrics(cache: InsightCache = Depends(get_insight_cache)):
    metrics = cache.metrics()
    return CacheMetricsResponse(
        hits=metrics.hits,
        misses=metrics.misses,
        evictions=metrics.evictions,
        size=metrics.size,
        max_size=metrics.max_size,
        hit_rate=metrics.hit_rate,
    )
