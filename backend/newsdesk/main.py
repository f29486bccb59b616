"""
Main FastAPI application for Newsdesk.
"""
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import structlog
from fastapi import FastAPI

from newsdesk.api.routes import router
from newsdesk.config import Settings, get_settings
from newsdesk.core.logging import configure_logging
from newsdesk.models.database import Database
from newsdesk.services.ingestion.factory import build_aggregator
from newsdesk.services.ingestion.repository import ArticleRepository
from newsdesk.services.ingestion.scheduler import IngestionScheduler
from newsdesk.services.ingestion.state_store import create_state_store

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    settings: Settings = app.state.settings

    logger.info("Initializing database", url=settings.database_url)
    database = Database(settings.database_url, echo=settings.debug)
    await database.create_tables()

    store = create_state_store(settings.state_backend, settings.redis_url)
    http_client = httpx.AsyncClient(timeout=settings.request_timeout_seconds)
    repository = ArticleRepository(database)

    aggregator = build_aggregator(settings, repository, store, http_client)
    scheduler = IngestionScheduler(aggregator, cron=settings.fetch_cron)
    scheduler.start()

    app.state.database = database
    app.state.store = store
    app.state.repository = repository
    app.state.scheduler = scheduler

    yield

    logger.info("Shutting down")
    scheduler.stop()
    await http_client.aclose()
    await store.close()
    await database.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.json_logs)

    app = FastAPI(
        title=settings.app_name,
        description="Articles merged from several news APIs.",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        scheduler = getattr(app.state, "scheduler", None)
        return {
            "status": "healthy",
            "service": "newsdesk",
            "version": settings.app_version,
            "scheduler": scheduler.get_status() if scheduler else None,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "newsdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
