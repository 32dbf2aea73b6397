"""
Health Check Endpoint

Liveness, readiness and per-component health for the company directory.

Components register an async check returning {"status", "message"}; the
overall status is the worst component status.
"""

from datetime import datetime, timezone
from typing import Awaitable, Callable, Literal, Optional
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import settings


router = APIRouter()

HealthStatus = Literal["healthy", "degraded", "unhealthy"]
HealthCheck = Callable[[], Awaitable[dict]]

# Worse statuses rank higher
_STATUS_RANK: dict[str, int] = {"healthy": 0, "degraded": 1, "unhealthy": 2}


class ComponentHealth(BaseModel):
    status: HealthStatus
    message: Optional[str] = None
    last_check: Optional[str] = None


class HealthResponse(BaseModel):
    status: HealthStatus
    service: str
    version: str
    environment: str
    timestamp: str
    components: dict[str, ComponentHealth]


_component_checks: dict[str, HealthCheck] = {}


def register_health_check(name: str, check_fn: HealthCheck) -> None:
    """Register a component health check (the lifespan registers the aggregator)."""
    _component_checks[name] = check_fn


def unregister_health_check(name: str) -> None:
    _component_checks.pop(name, None)


async def _run_check(check_fn: HealthCheck, checked_at: str) -> ComponentHealth:
    """Run one check; a raising check counts as unhealthy."""
    try:
        result = await check_fn()
    except Exception as e:
        return ComponentHealth(status="unhealthy", message=str(e), last_check=checked_at)

    status = result.get("status", "healthy")
    if status not in _STATUS_RANK:
        status = "unhealthy"
    return ComponentHealth(status=status, message=result.get("message"), last_check=checked_at)


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Service health.

    The aggregator reports degraded while no fetch has completed or when a
    collection failed on the last fetch, and unhealthy when the last fetch
    failed outright.
    """
    checked_at = datetime.now(timezone.utc).isoformat()
    components = {
        name: await _run_check(check_fn, checked_at)
        for name, check_fn in _component_checks.items()
    }

    if not components:
        components["service"] = ComponentHealth(
            status="healthy",
            message="No components registered",
            last_check=checked_at,
        )

    overall = max((c.status for c in components.values()), key=_STATUS_RANK.__getitem__)

    return HealthResponse(
        status=overall,
        service=settings.service_name,
        version=settings.service_version,
        environment=settings.environment,
        timestamp=checked_at,
        components=components,
    )


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness probe: the process is serving requests."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(request: Request):
    """
    Readiness probe.

    Ready once the aggregator exists and has completed at least one fetch,
    degraded or not.
    """
    aggregator = getattr(request.app.state, "aggregator", None)
    if aggregator is None or aggregator.last_diagnostics is None:
        return JSONResponse(status_code=503, content={"status": "not_ready"})
    return {"status": "ready"}
