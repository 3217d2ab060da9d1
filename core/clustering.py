"""
Clustering of geographic points: density-based (DBSCAN) and partitional
(K-Means), both on great-circle distances.

Cluster centres are arithmetic means of latitude/longitude, which is
adequate for the regional extents these datasets cover.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from sklearn.cluster import DBSCAN

from core.geometry import (
    GeoPoint,
    coordinates_array,
    distance_matrix,
    filter_valid_points,
    haversine_distance,
)

logger = logging.getLogger(__name__)

NOISE = -1
KMEANS_TOLERANCE_KM = 0.001


@dataclass
class Cluster:
    """A group of points with summary statistics of their values."""

    id: int
    center: Tuple[float, float]  # (lat, lng)
    points: List[GeoPoint]
    mean_value: float
    variance: float

    @property
    def size(self) -> int:
        return len(self.points)


@dataclass
class ClusterResult:
    """Clusters, noise points and the labelled copy of every valid input point."""

    clusters: List[Cluster] = field(default_factory=list)
    noise: List[GeoPoint] = field(default_factory=list)
    points: List[GeoPoint] = field(default_factory=list)
    method: str = "dbscan"


def dbscan_clustering(
    points: Sequence[GeoPoint],
    eps_km: float,
    min_points: int,
) -> ClusterResult:
    """
    Density-based clustering on haversine distances.

    A point is core when at least ``min_points`` points (itself included)
    lie within ``eps_km``. Labels are deterministic for a fixed input order.

    Args:
        points: Points to cluster; invalid coordinates are dropped
        eps_km: Neighbourhood radius in kilometres
        min_points: Minimum neighbourhood size for a core point

    Returns:
        ClusterResult with noise points labelled -1
    """
    if eps_km <= 0:
        raise ValueError("eps_km must be positive")
    if min_points < 1:
        raise ValueError("min_points must be at least 1")

    valid = filter_valid_points(points)
    if not valid:
        return ClusterResult(method="dbscan")

    distances = distance_matrix(valid)
    labels = DBSCAN(eps=eps_km, min_samples=min_points, metric="precomputed").fit_predict(distances)

    labelled = [dataclasses.replace(p, cluster=int(label)) for p, label in zip(valid, labels)]
    cluster_ids = sorted({int(label) for label in labels if label != NOISE})
    clusters = []
    for cluster_id in cluster_ids:
        members = [p for p in labelled if p.cluster == cluster_id]
        lat, lng = _mean_position(members)
        mean_value, variance = _value_moments(members)
        clusters.append(
            Cluster(
                id=cluster_id,
                center=(lat, lng),
                points=members,
                mean_value=mean_value,
                variance=variance,
            )
        )

    noise = [p for p in labelled if p.cluster == NOISE]
    logger.debug(
        "DBSCAN(eps=%.2fkm, min_points=%d): %d clusters, %d noise of %d points",
        eps_km, min_points, len(clusters), len(noise), len(labelled),
    )
    return ClusterResult(clusters=clusters, noise=noise, points=labelled, method="dbscan")


def kmeans_clustering(
    points: Sequence[GeoPoint],
    k: int,
    max_iterations: int = 100,
    seed: Optional[int] = None,
    tolerance_km: float = KMEANS_TOLERANCE_KM,
) -> ClusterResult:
    """
    Fixed-k clustering with haversine assignment and arithmetic-mean centroids.

    Initial centroids are ``k`` distinct input points drawn with ``seed``.
    Iteration stops once every centroid moves less than ``tolerance_km`` or
    after ``max_iterations`` passes. A cluster that loses all its points
    keeps its previous centroid.

    Args:
        points: Points to cluster; invalid coordinates are dropped
        k: Number of clusters
        max_iterations: Upper bound on assign/update passes
        seed: Seed for centroid initialisation (None = nondeterministic)
        tolerance_km: Convergence threshold on centroid shift

    Returns:
        ClusterResult (no noise); empty when fewer than ``k`` points
    """
    if k < 1:
        raise ValueError("k must be at least 1")

    valid = filter_valid_points(points)
    if len(valid) < k:
        logger.debug("K-Means skipped: %d points for k=%d", len(valid), k)
        return ClusterResult(points=list(valid), method="kmeans")

    coords = coordinates_array(valid)
    rng = np.random.default_rng(seed)
    centroids = coords[rng.choice(len(coords), size=k, replace=False)].copy()

    iterations = 0
    for iterations in range(1, max_iterations + 1):
        assignments = _assign(coords, centroids)
        updated = centroids.copy()
        for index in range(k):
            members = coords[assignments == index]
            if len(members):
                updated[index] = members.mean(axis=0)

        shifts = haversine_distance(centroids[:, 0], centroids[:, 1], updated[:, 0], updated[:, 1])
        centroids = updated
        if np.all(np.asarray(shifts) < tolerance_km):
            break

    assignments = _assign(coords, centroids)
    labelled = [dataclasses.replace(p, cluster=int(a)) for p, a in zip(valid, assignments)]
    clusters = []
    for index in range(k):
        members = [p for p in labelled if p.cluster == index]
        mean_value, variance = _value_moments(members)
        clusters.append(
            Cluster(
                id=index,
                center=(float(centroids[index, 0]), float(centroids[index, 1])),
                points=members,
                mean_value=mean_value,
                variance=variance,
            )
        )

    logger.debug("K-Means(k=%d) finished after %d iteration(s)", k, iterations)
    return ClusterResult(clusters=clusters, noise=[], points=labelled, method="kmeans")


def point_density(points: Sequence[GeoPoint], radius_km: float) -> np.ndarray:
    """Neighbours within ``radius_km`` (excluding self) per square kilometre."""
    if radius_km <= 0:
        raise ValueError("radius_km must be positive")

    valid = filter_valid_points(points)
    if not valid:
        return np.zeros(0, dtype=float)

    distances = distance_matrix(valid)
    counts = (distances <= radius_km).sum(axis=1) - 1
    return counts / (math.pi * radius_km ** 2)


def _assign(coords: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    distances = haversine_distance(
        coords[:, None, 0], coords[:, None, 1], centroids[None, :, 0], centroids[None, :, 1]
    )
    # argmin keeps the lowest index on ties
    return np.argmin(distances, axis=1)


def _mean_position(members: Sequence[GeoPoint]) -> Tuple[float, float]:
    coords = coordinates_array(members)
    return float(coords[:, 0].mean()), float(coords[:, 1].mean())


def _value_moments(members: Sequence[GeoPoint]) -> Tuple[float, float]:
    if not members:
        return 0.0, 0.0
    values = np.array([p.value for p in members], dtype=float)
    return float(values.mean()), float(values.var())
