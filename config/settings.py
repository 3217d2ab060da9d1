"""
Centralized configuration management for the insight engine.

Handles environment variables for analysis defaults, caching and the
service layer with type safety and validation.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


def _optional_int(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


@dataclass
class AnalysisConfig:
    """Defaults and guards for the numeric analyzers."""

    # Spatial weights
    weight_cutoff_km: float = 100.0
    max_spatial_points: int = 5000  # O(N^2) guard

    # DBSCAN
    dbscan_eps_km: float = 50.0
    dbscan_min_points: int = 3

    # K-Means
    kmeans_k: int = 5
    kmeans_max_iterations: int = 100
    kmeans_seed: Optional[int] = None

    # Insight aggregation
    insight_limit: int = 5
    min_insight_confidence: float = 30.0

    def __post_init__(self):
        if self.weight_cutoff_km <= 0:
            raise ValueError("weight_cutoff_km must be positive")
        if self.max_spatial_points < 1:
            raise ValueError("max_spatial_points must be at least 1")
        if self.dbscan_eps_km <= 0:
            raise ValueError("dbscan_eps_km must be positive")
        if self.dbscan_min_points < 1 or self.kmeans_k < 1:
            raise ValueError("dbscan_min_points and kmeans_k must be at least 1")

    @classmethod
    def from_env(cls) -> "AnalysisConfig":
        """Load analysis config from environment variables."""
        return cls(
            weight_cutoff_km=float(os.getenv("WEIGHT_CUTOFF_KM", "100")),
            max_spatial_points=int(os.getenv("MAX_SPATIAL_POINTS", "5000")),
            dbscan_eps_km=float(os.getenv("DBSCAN_EPS_KM", "50")),
            dbscan_min_points=int(os.getenv("DBSCAN_MIN_POINTS", "3")),
            kmeans_k=int(os.getenv("KMEANS_K", "5")),
            kmeans_max_iterations=int(os.getenv("KMEANS_MAX_ITERATIONS", "100")),
            kmeans_seed=_optional_int(os.getenv("KMEANS_SEED")),
            insight_limit=int(os.getenv("INSIGHT_LIMIT", "5")),
            min_insight_confidence=float(os.getenv("MIN_INSIGHT_CONFIDENCE", "30")),
        )


@dataclass
class CacheConfig:
    """Insight cache sizing."""

    max_size: int = 50
    ttl_seconds: float = 1200.0  # 20 minutes
    dataset_ttl_seconds: float = 3600.0

    @classmethod
    def from_env(cls) -> "CacheConfig":
        return cls(
            max_size=int(os.getenv("CACHE_MAX_SIZE", "50")),
            ttl_seconds=float(os.getenv("CACHE_TTL_SECONDS", "1200")),
            dataset_ttl_seconds=float(os.getenv("DATASET_TTL_SECONDS", "3600")),
        )


@dataclass
class AppConfig:
    """Application-level configuration."""

    title: str = "Geo Insight Engine"
    log_level: str = "INFO"
    cors_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"]
    )
    cleanup_interval_seconds: int = 300

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load app config from environment variables."""
        origins = os.getenv("CORS_ORIGINS")
        return cls(
            title=os.getenv("APP_TITLE", "Geo Insight Engine"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins
                else ["http://localhost:5173", "http://127.0.0.1:5173"]
            ),
            cleanup_interval_seconds=int(os.getenv("CLEANUP_INTERVAL_SECONDS", "300")),
        )


class Config:
    """Global configuration manager."""

    _instance: Optional["Config"] = None

    def __init__(
        self,
        analysis: Optional[AnalysisConfig] = None,
        cache: Optional[CacheConfig] = None,
        app: Optional[AppConfig] = None,
    ):
        self.analysis = analysis or AnalysisConfig.from_env()
        self.cache = cache or CacheConfig.from_env()
        self.app = app or AppConfig.from_env()

    @classmethod
    def load(cls) -> "Config":
        """Singleton pattern - load or return existing config."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the loaded config so the next load() re-reads the environment."""
        cls._instance = None
