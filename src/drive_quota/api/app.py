"""FastAPI application exposing quota diagnostics."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from drive_quota import __version__
from drive_quota.api.routes import router as quota_router
from drive_quota.config import settings
from drive_quota.quota.monitor import default_quota_monitor
from drive_quota.scheduler import QuotaCleanupScheduler

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure root logging from settings."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan events."""
    # Startup
    logger.info("Starting Drive quota monitor API...")
    cleanup: QuotaCleanupScheduler | None = None
    if settings.quota_cleanup_enabled:
        cleanup = QuotaCleanupScheduler(default_quota_monitor)
        cleanup.start()
    app.state.cleanup_scheduler = cleanup
    yield
    # Shutdown
    logger.info("Shutting down Drive quota monitor API...")
    if cleanup is not None:
        cleanup.shutdown(wait=False)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="Drive Quota Monitor",
        description="Admission control and quota diagnostics for Google Drive API calls",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(quota_router, prefix="/v1", tags=["quota"])

    # Health check
    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": __version__}

    return app


# Create app instance
app = create_app()
