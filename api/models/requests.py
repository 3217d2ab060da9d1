"""Pydantic request schemas."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PointIn(ApiModel):
    id: Optional[str] = None
    lat: float
    lng: float
    value: float = 0.0
    properties: Dict[str, Any] = Field(default_factory=dict)
    time_index: Optional[int] = None
    name: Optional[str] = None


class PointSourceRequest(ApiModel):
    """Exactly one of points, records or dataset_id is used (in that order)."""

    points: Optional[List[PointIn]] = None
    records: Optional[List[Dict[str, Any]]] = None
    dataset_id: Optional[str] = None


class SpatialAnalysisRequest(PointSourceRequest):
    cutoff_km: Optional[float] = Field(default=None, gt=0)


class MoransIRequest(PointSourceRequest):
    cutoff_km: Optional[float] = Field(default=None, gt=0)


class PatternsRequest(PointSourceRequest):
    pass


class ChoroplethRequest(PointSourceRequest):
    geojson: Dict[str, Any]


class DbscanRequest(PointSourceRequest):
    eps_km: Optional[float] = None
    min_points: Optional[int] = None


class KMeansRequest(PointSourceRequest):
    k: Optional[int] = None
    max_iterations: Optional[int] = Field(default=None, ge=1)
    seed: Optional[int] = None


class DatasetCreateRequest(ApiModel):
    name: Optional[str] = None
    records: List[Dict[str, Any]]


class RecordSourceRequest(ApiModel):
    records: Optional[List[Dict[str, Any]]] = None
    dataset_id: Optional[str] = None


class InsightsRequest(RecordSourceRequest):
    temporal: Optional[bool] = None  # None = infer from record names
    limit: Optional[int] = Field(default=None, ge=1)
    min_confidence: Optional[float] = Field(default=None, ge=0, le=100)


class DescribeRequest(RecordSourceRequest):
    pass
