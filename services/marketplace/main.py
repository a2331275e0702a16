"""
Marketplace Service - Main Application
======================================

FastAPI application for the freelance marketplace API.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import RateLimitBackend, settings
from shared.database.postgres import PostgresClient
from shared.database.redis import RedisClient
from shared.logging import get_logger, setup_logging
from shared.models.common import HealthResponse

import services.marketplace.models  # noqa: F401  (registers tables on Base.metadata)
from services.marketplace.dependencies import (
    connection_manager_for,
    enforce_rate_limit,
    rate_limiter_for,
)
from services.marketplace.errors import register_exception_handlers
from services.marketplace.routes import auth, realtime

# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="freelance-marketplace",
)

logger = get_logger(__name__)

_uses_redis = settings.rate_limit.enabled and settings.rate_limit.backend == RateLimitBackend.REDIS


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "marketplace_starting",
        environment=settings.environment.value,
        port=settings.ports.marketplace,
    )

    # Startup
    try:
        PostgresClient.get_engine()
        logger.info("postgres_connected")

        if settings.postgres.is_sqlite:
            # No migrations run against local SQLite files
            await PostgresClient.create_all()

        if _uses_redis:
            RedisClient.get_client()
            logger.info("redis_connected")

        rate_limiter_for(app)
        connection_manager_for(app)

    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("marketplace_shutting_down")
    await PostgresClient.close()
    if _uses_redis:
        await RedisClient.close()


# Create FastAPI application
app = FastAPI(
    title="Freelance Marketplace API",
    description="Freelance marketplace REST API: authentication, sessions and realtime notifications",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Returns health status of the service and its dependencies.
    """
    components: dict[str, dict[str, Any]] = {}

    components["database"] = await PostgresClient.health_check()

    if _uses_redis:
        components["redis"] = await RedisClient.health_check()

    all_healthy = all(
        c.get("status") == "healthy" for c in components.values()
    )

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        service="freelance-marketplace",
        version="0.1.0",
        environment=settings.environment.value,
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Freelance Marketplace API",
        "version": "0.1.0",
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    auth.router,
    prefix="/api/auth",
    tags=["Authentication"],
    dependencies=[Depends(enforce_rate_limit)],
)

app.include_router(
    realtime.router,
    tags=["Realtime"],
)


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.marketplace.main:app",
        host="0.0.0.0",
        port=settings.ports.marketplace,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
