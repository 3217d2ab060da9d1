"""
FastAPI dependency-injection helpers.
"""

import logging
from typing import Any, Dict, List

from fastapi import HTTPException, Request

from api.models.requests import PointSourceRequest, RecordSourceRequest
from api.record_source import RecordSource
from config.settings import Config
from core.cache import InsightCache
from core.geometry import GeoPoint, filter_valid_points
from core.geospatial import records_to_points
from core.spatial import InsufficientDataError

logger = logging.getLogger(__name__)


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_insight_cache(request: Request) -> InsightCache:
    return request.app.state.insight_cache


def get_record_source(request: Request) -> RecordSource:
    return request.app.state.record_source


def lookup_records(dataset_id: str, source: RecordSource) -> List[Dict[str, Any]]:
    """Records of a registered dataset, or 404."""
    dataset = source.get(dataset_id)
    if dataset is None:
        raise HTTPException(status_code=404, detail=f"Dataset '{dataset_id}' not found")
    return dataset.records


def resolve_records(body: RecordSourceRequest, source: RecordSource) -> List[Dict[str, Any]]:
    if body.records is not None:
        return body.records
    if body.dataset_id is not None:
        return lookup_records(body.dataset_id, source)
    raise HTTPException(status_code=400, detail="Provide records or datasetId")


def resolve_points(body: PointSourceRequest, source: RecordSource, config: Config) -> List[GeoPoint]:
    """
    Turn inline points, inline records or a dataset id into valid GeoPoints.

    Raises:
        HTTPException: 400 when no input is given, 404 for an unknown
            dataset, 413 when the point count exceeds the configured limit
    """
    if body.points is not None:
        points = filter_valid_points([
            GeoPoint(
                id=p.id if p.id is not None else f"point-{i}",
                lat=p.lat,
                lng=p.lng,
                value=p.value,
                properties=dict(p.properties),
                time_index=p.time_index,
                name=p.name,
            )
            for i, p in enumerate(body.points)
        ])
    elif body.records is not None:
        points = records_to_points(body.records)
    elif body.dataset_id is not None:
        points = records_to_points(lookup_records(body.dataset_id, source))
    else:
        raise HTTPException(status_code=400, detail="Provide points, records or datasetId")

    limit = config.analysis.max_spatial_points
    if len(points) > limit:
        raise HTTPException(
            status_code=413,
            detail=f"{len(points)} points exceeds the limit of {limit}",
        )
    return points


def analysis_error(exc: ValueError) -> HTTPException:
    """Map analyzer errors to HTTP errors."""
    if isinstance(exc, InsufficientDataError):
        return HTTPException(status_code=422, detail=str(exc))
    logger.debug("Rejected analysis request: %s", exc)
    return HTTPException(status_code=400, detail=str(exc))
