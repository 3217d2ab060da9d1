"""
Dataset endpoints: register, inspect and drop in-memory record collections.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_record_source
from api.models.requests import DatasetCreateRequest
from api.models.responses import DatasetResponse
from api.record_source import Dataset, RecordSource
from core.geospatial import records_to_points

router = APIRouter(prefix="/api/datasets", tags=["datasets"])


def _describe(dataset: Dataset) -> DatasetResponse:
    return DatasetResponse(
        id=dataset.id,
        name=dataset.name,
        record_count=len(dataset.records),
        point_count=len(records_to_points(dataset.records)),
        created_at=dataset.created_at,
    )


@router.post("", response_model=DatasetResponse, status_code=201)
def create_dataset(body: DatasetCreateRequest, source: RecordSource = Depends(get_record_source)):
    """Register a record collection for later analysis by id."""
    if not body.records:
        raise HTTPException(status_code=400, detail="Dataset has no records")
    return _describe(source.create(body.records, body.name))


@router.get("/{dataset_id}", response_model=DatasetResponse)
def get_dataset(dataset_id: str, source: RecordSource = Depends(get_record_source)):
    dataset = source.get(dataset_id)
    if dataset is None:
        raise HTTPException(status_code=404, detail=f"Dataset '{dataset_id}' not found")
    return _describe(dataset)


@router.delete("/{dataset_id}", status_code=204)
def delete_dataset(dataset_id: str, source: RecordSource = Depends(get_record_source)):
    if not source.delete(dataset_id):
        raise HTTPException(status_code=404, detail=f"Dataset '{dataset_id}' not found")
