"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import Optional
import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import RequestLoggingMiddleware
from api.record_source import RecordSource
from api.routers import clustering, datasets, insights, spatial
from config.settings import Config
from core.cache import InsightCache

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Periodic cleanup of expired cache entries and datasets."""
    interval = app.state.config.app.cleanup_interval_seconds

    async def _cleanup_loop():
        while True:
            await asyncio.sleep(interval)
            expired_entries = app.state.insight_cache.expire()
            expired_datasets = app.state.record_source.cleanup_expired()
            if expired_entries or expired_datasets:
                logger.info(
                    "Cleanup removed %d cache entries and %d datasets",
                    expired_entries, expired_datasets,
                )

    task = asyncio.create_task(_cleanup_loop())
    yield
    task.cancel()


def create_app(config: Optional[Config] = None) -> FastAPI:
    config = config or Config.load()

    logging.basicConfig(
        level=config.app.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=config.app.title,
        version="0.1.0",
        lifespan=lifespan,
    )

    # Shared state, injected into routes through api.dependencies
    app.state.config = config
    app.state.insight_cache = InsightCache(
        max_size=config.cache.max_size,
        ttl_seconds=config.cache.ttl_seconds,
    )
    app.state.record_source = RecordSource(ttl_seconds=config.cache.dataset_ttl_seconds)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(datasets.router)
    app.include_router(spatial.router)
    app.include_router(clustering.router)
    app.include_router(insights.router)

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


app = create_app()
