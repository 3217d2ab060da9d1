"""
Clustering endpoints: DBSCAN and K-Means over geographic points.
"""

from fastapi import APIRouter, Depends

from api.dependencies import analysis_error, get_config, get_record_source, resolve_points
from api.models.requests import DbscanRequest, KMeansRequest
from api.models.responses import ClusteringResponse, cluster_response, point_response
from api.record_source import RecordSource
from config.settings import Config
from core.clustering import ClusterResult, dbscan_clustering, kmeans_clustering
from core.insights import InsightGenerator

router = APIRouter(prefix="/api/clusters", tags=["clustering"])


def _clustering_response(result: ClusterResult) -> ClusteringResponse:
    return ClusteringResponse(
        method=result.method,
        clusters=[cluster_response(c) for c in result.clusters],
        noise=[point_response(p) for p in result.noise],
        points=[point_response(p) for p in result.points],
        insights=InsightGenerator.describe_clusters(result),
    )


@router.post("/dbscan", response_model=ClusteringResponse)
def dbscan(
    body: DbscanRequest,
    config: Config = Depends(get_config),
    source: RecordSource = Depends(get_record_source),
):
    """Density-based clustering with haversine distances."""
    points = resolve_points(body, source, config)
    eps_km = body.eps_km if body.eps_km is not None else config.analysis.dbscan_eps_km
    min_points = body.min_points if body.min_points is not None else config.analysis.dbscan_min_points
    try:
        result = dbscan_clustering(points, eps_km, min_points)
    except ValueError as exc:
        raise analysis_error(exc)
    return _clustering_response(result)


@router.post("/kmeans", response_model=ClusteringResponse)
def kmeans(
    body: KMeansRequest,
    config: Config = Depends(get_config),
    source: RecordSource = Depends(get_record_source),
):
    """Fixed-k clustering; pass a seed for reproducible centroids."""
    points = resolve_points(body, source, config)
    analysis = config.analysis
    try:
        result = kmeans_clustering(
            points,
            k=body.k if body.k is not None else analysis.kmeans_k,
            max_iterations=body.max_iterations or analysis.kmeans_max_iterations,
            seed=body.seed if body.seed is not None else analysis.kmeans_seed,
        )
    except ValueError as exc:
        raise analysis_error(exc)
    return _clustering_response(result)
