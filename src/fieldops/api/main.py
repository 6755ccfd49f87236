"""
FieldOps API Main Application

Entry point for the FastAPI application.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from fieldops.platform.config import settings
from fieldops.platform.logging import configure_logging, get_logger
from fieldops.api.routers import scheduling
from fieldops.api.dependencies import (
    init_resources,
    close_resources,
    get_postgres_adapter,
)

# Configure logging on import
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info("Starting FieldOps API...")
    try:
        await init_resources()
        logger.info("Resources initialized successfully.")
    except Exception as e:
        logger.error(f"Failed to initialize resources: {e}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down FieldOps API...")
    await close_resources()
    logger.info("Resources closed.")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Installation scheduling: conflict detection and resolution",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(",") if settings.CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =============================================================================
# OBSERVABILITY
# =============================================================================

if settings.METRICS_ENABLED:
    # Add Prometheus metrics endpoint
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)


# =============================================================================
# HEALTH ENDPOINTS
# =============================================================================


@app.get("/health/live", tags=["Health"])
async def liveness() -> dict:
    """Liveness probe - is the service running?"""
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
async def readiness() -> dict:
    """
    Readiness probe - is the service ready to accept traffic?
    Checks the database connection.
    """
    adapter = get_postgres_adapter()
    postgres_healthy = adapter.health_check()

    return {
        "status": "ready" if postgres_healthy else "not_ready",
        "version": settings.VERSION,
        "checks": {
            "postgres": "healthy" if postgres_healthy else "unhealthy",
        },
    }


# =============================================================================
# API ROUTERS
# =============================================================================

app.include_router(scheduling.router, prefix="/api/v1/scheduling", tags=["Scheduling"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fieldops.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
