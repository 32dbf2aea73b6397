"""
Company Directory Service

Serves the merged company view (branches joined with their company,
working days, products, social links and verification status) from an
in-memory cache in front of the document store.

API Endpoints:
- GET /health - Service health check
- GET /v0/companies - Merged company view (cached, 5 minute window)
- GET /v0/companies/{id} - Company lookup and scoped sub-resources
- GET /v0/branches/{id} - Branch lookup and scoped sub-resources
- GET /v0/diagnostics - Last fetch outcome per collection
- POST /v0/cache/invalidate, /v0/cache/refresh - Cache control
- GET /metrics - Prometheus metrics endpoint
"""

import logging
import random
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, settings
from .routes import health, metrics, v0
from ..aggregator import AggregatorConfig, CompanyAggregator
from ..store import AppwriteRecordStore, RecordStore

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_store(config: Settings) -> AppwriteRecordStore:
    """Create the document store client from settings."""
    return AppwriteRecordStore(
        project_id=config.appwrite_project_id,
        database_id=config.database_id,
        api_key=config.appwrite_api_key,
        endpoint=config.appwrite_endpoint,
        page_size=config.store_page_size,
        timeout=config.store_timeout_seconds,
    )


def build_aggregator(
    config: Settings,
    store: RecordStore,
    rng: Optional[random.Random] = None,
) -> CompanyAggregator:
    """Create the aggregator from settings around an existing store."""
    return CompanyAggregator(
        store=store,
        config=AggregatorConfig(
            collection_ids=config.collection_ids,
            cache_ttl_seconds=config.cache_ttl_seconds,
            fetch_timeout_seconds=config.fetch_timeout,
            store_endpoint=config.appwrite_endpoint,
            project_id=config.appwrite_project_id,
            products_bucket_id=config.products_bucket_id or None,
        ),
        rng=rng,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown of:
    - Document store HTTP client
    - Company aggregator (one instance, owned by the app)
    - Optional cache warm-up
    """
    logger.info(f"Starting {settings.service_name} v{settings.service_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Store: {settings.appwrite_endpoint} database={settings.database_id or '(unset)'}")

    if not settings.appwrite_project_id or not settings.database_id:
        logger.warning("APPWRITE_PROJECT_ID or DATABASE_ID not configured - reads will fail and degrade to empty")

    store = build_store(settings)
    aggregator = build_aggregator(settings, store)

    health.register_health_check("aggregator", aggregator.check_health)

    if settings.warm_cache_on_startup:
        views = await aggregator.fetch_all()
        logger.info(f"Cache warm-up complete: {len(views)} company views")

    # Store references on app.state for route access
    app.state.store = store
    app.state.aggregator = aggregator

    logger.info("Service startup complete")

    yield

    # Shutdown
    logger.info("Shutting down service...")
    health.unregister_health_check("aggregator")
    await store.close()
    app.state.aggregator = None
    app.state.store = None
    logger.info("Service shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Company Directory",
    description="Cached merged company and branch view over the document store",
    version=settings.service_version,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "local" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
# Root health endpoints
app.include_router(health.router, tags=["health"])
# Path-based routing behind the load balancer (/directory/* -> service)
app.include_router(health.router, prefix="/directory", tags=["health-alb"])

# V0 API endpoints
app.include_router(v0.router, tags=["v0-api"])
app.include_router(v0.router, prefix="/directory", tags=["v0-api-alb"])

# Prometheus metrics endpoint
app.include_router(metrics.router, tags=["metrics"])
app.include_router(metrics.router, prefix="/directory", tags=["metrics-alb"])


@app.get("/")
async def root() -> dict:
    """Root endpoint - service info."""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.company_directory.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "local",
    )
