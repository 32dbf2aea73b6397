"""
Company Directory V0 API Endpoints

Endpoints:
- GET /v0/companies - Merged company view (refreshes when stale)
- GET /v0/companies/online, /v0/companies/active - Filtered merged view
- GET /v0/companies/search - Company search by name or email
- GET /v0/companies/{id}[/working-days|/products|/social-media]
- GET /v0/branches/{id}[/working-days|/products|/social-media]
- GET /v0/products/image-url - Resolve a raw product image reference
- GET /v0/diagnostics - Last fetch outcome and cache age
- POST /v0/cache/invalidate - Expire the freshness window
- POST /v0/cache/refresh - Invalidate and refetch

Everything except /v0/companies and /v0/cache/refresh answers from the
cache without touching the store.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel, Field

from ...core.types import (
    Branch,
    Company,
    MergedCompanyView,
    Product,
    SocialMediaLink,
    WorkingDay,
)
from ..config import settings


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v0", tags=["v0"])


# =============================================================================
# Response Models
# =============================================================================

class ImageUrlResponse(BaseModel):
    """Response for /v0/products/image-url endpoint."""

    path: str
    url: str


class DiagnosticsResponse(BaseModel):
    """Response for /v0/diagnostics endpoint."""

    is_loading: bool
    is_fresh: bool
    last_fetch_time: Optional[float] = Field(None, description="Unix seconds of last successful fetch")
    cache_age_seconds: Optional[float] = None
    cache_ttl_seconds: float
    record_counts: dict[str, int] = Field(default_factory=dict)
    degraded: bool = False
    errors: dict[str, str] = Field(default_factory=dict, description="Collection -> error of last fetch")
    last_failure: Optional[str] = Field(None, description="Set if the last fetch failed outright")


class CacheActionResponse(BaseModel):
    """Response for /v0/cache/* endpoints."""

    status: str
    view_count: Optional[int] = None
    degraded_collections: list[str] = Field(default_factory=list)


# =============================================================================
# Dependencies
# =============================================================================

def get_aggregator(request: Request):
    """Get aggregator from app state."""
    aggregator = getattr(request.app.state, "aggregator", None)
    if not aggregator:
        raise HTTPException(status_code=503, detail="Aggregator not initialized")
    return aggregator


def verify_admin_key(
    x_admin_key: Annotated[Optional[str], Header(alias="X-Admin-Key")] = None,
) -> bool:
    """
    Verify admin API key for cache mutation endpoints.

    Requires X-Admin-Key header matching ADMIN_API_KEY environment variable.
    In non-production environments with no key configured, allows access.

    Raises:
        HTTPException 401 if key is required but missing
        HTTPException 403 if key is invalid
    """
    configured_key = settings.admin_api_key

    # In production, admin key is REQUIRED
    if settings.environment == "production" and not configured_key:
        logger.error("ADMIN_API_KEY not configured in production - rejecting request")
        raise HTTPException(
            status_code=503,
            detail="Admin API key not configured. Contact administrator."
        )

    if configured_key:
        if not x_admin_key:
            raise HTTPException(
                status_code=401,
                detail="X-Admin-Key header required for cache endpoints"
            )
        if x_admin_key != configured_key:
            logger.warning("Invalid admin key attempt")
            raise HTTPException(status_code=403, detail="Invalid admin key")
        return True

    # Non-production with no key configured: allow (for local dev)
    logger.debug("Admin key check bypassed (non-production, no key configured)")
    return True


# =============================================================================
# Merged View
# =============================================================================

@router.get("/companies", response_model=list[MergedCompanyView])
async def list_companies(
    request: Request,
    refresh: Annotated[
        bool,
        Query(description="Ignore the freshness window and refetch")
    ] = False,
):
    """
    Merged company view, one entry per active branch.

    Served from cache inside the freshness window. Never fails because of
    the store: failed collections degrade to empty (see /v0/diagnostics).
    """
    aggregator = get_aggregator(request)
    return await aggregator.fetch_all(force_refresh=refresh)


@router.get("/companies/online", response_model=list[MergedCompanyView])
async def list_online_companies(request: Request):
    """Cached merged views whose branch is online."""
    return get_aggregator(request).get_online_companies()


@router.get("/companies/active", response_model=list[MergedCompanyView])
async def list_active_companies(request: Request):
    """Cached merged views whose branch is active."""
    return get_aggregator(request).get_active_companies()


@router.get("/companies/search", response_model=list[Company])
async def search_companies(
    request: Request,
    q: Annotated[str, Query(min_length=1, description="Substring of name or email")],
):
    """Case-insensitive company search over name and email."""
    return get_aggregator(request).search_companies(q)


# =============================================================================
# Companies
# =============================================================================

@router.get("/companies/{company_id}", response_model=Company)
async def get_company(request: Request, company_id: str):
    """Company by document id or company_id."""
    company = get_aggregator(request).get_company_by_id(company_id)
    if company is None:
        raise HTTPException(status_code=404, detail=f"Company not found: {company_id}")
    return company


@router.get("/companies/{company_id}/working-days", response_model=list[WorkingDay])
async def get_company_working_days(request: Request, company_id: str):
    return get_aggregator(request).get_working_days_for_company(company_id)


@router.get("/companies/{company_id}/products", response_model=list[Product])
async def get_company_products(request: Request, company_id: str):
    return get_aggregator(request).get_products_for_company(company_id)


@router.get("/companies/{company_id}/social-media", response_model=list[SocialMediaLink])
async def get_company_social_media(request: Request, company_id: str):
    return get_aggregator(request).get_social_media_for_company(company_id)


# =============================================================================
# Branches
# =============================================================================

@router.get("/branches/{branch_id}", response_model=Branch)
async def get_branch(request: Request, branch_id: str):
    """Branch by document id or branch_id."""
    branch = get_aggregator(request).get_branch_by_id(branch_id)
    if branch is None:
        raise HTTPException(status_code=404, detail=f"Branch not found: {branch_id}")
    return branch


@router.get("/branches/{branch_id}/working-days", response_model=list[WorkingDay])
async def get_branch_working_days(request: Request, branch_id: str):
    """Working days for the branch plus its company-level defaults."""
    return get_aggregator(request).get_working_days_for_branch(branch_id)


@router.get("/branches/{branch_id}/products", response_model=list[Product])
async def get_branch_products(request: Request, branch_id: str):
    """Products for the branch plus company-wide products."""
    return get_aggregator(request).get_products_for_branch(branch_id)


@router.get("/branches/{branch_id}/social-media", response_model=list[SocialMediaLink])
async def get_branch_social_media(request: Request, branch_id: str):
    return get_aggregator(request).get_social_media_for_branch(branch_id)


# =============================================================================
# Products
# =============================================================================

@router.get("/products/image-url", response_model=ImageUrlResponse)
async def resolve_product_image(
    request: Request,
    path: Annotated[str, Query(description="Raw product image reference (file id or URL)")],
):
    aggregator = get_aggregator(request)
    return ImageUrlResponse(path=path, url=aggregator.get_product_image_url(path))


# =============================================================================
# Diagnostics & Cache Control
# =============================================================================

@router.get("/diagnostics", response_model=DiagnosticsResponse)
async def get_diagnostics(request: Request):
    """
    Cache state and the per-collection outcome of the last fetch.

    Distinguishes "no data" from "collection failed", which the merged
    view alone cannot.
    """
    aggregator = get_aggregator(request)
    diagnostics = aggregator.last_diagnostics
    failure = aggregator.last_failure

    summary = diagnostics.to_dict() if diagnostics is not None else {}

    return DiagnosticsResponse(
        is_loading=aggregator.is_loading,
        is_fresh=aggregator.is_fresh(),
        last_fetch_time=aggregator.last_fetch_time,
        cache_age_seconds=aggregator.cache_age_seconds,
        cache_ttl_seconds=aggregator.config.cache_ttl_seconds,
        record_counts=summary.get("record_counts", {}),
        degraded=summary.get("degraded", False),
        errors=summary.get("errors", {}),
        last_failure=str(failure) if failure is not None else None,
    )


@router.post("/cache/invalidate", response_model=CacheActionResponse)
async def invalidate_cache(
    request: Request,
    _admin_verified: Annotated[bool, Depends(verify_admin_key)] = True,
):
    """Expire the freshness window; cached data stays visible until the next fetch."""
    get_aggregator(request).invalidate()
    return CacheActionResponse(status="invalidated")


@router.post("/cache/refresh", response_model=CacheActionResponse)
async def refresh_cache(
    request: Request,
    _admin_verified: Annotated[bool, Depends(verify_admin_key)] = True,
):
    """Invalidate and refetch all collections."""
    aggregator = get_aggregator(request)
    views = await aggregator.refresh()

    diagnostics = aggregator.last_diagnostics
    degraded = [c.value for c in diagnostics.degraded_collections] if diagnostics else []
    status = "failed" if aggregator.last_failure is not None else "refreshed"

    logger.info(f"Cache refresh via API: {len(views)} views, status={status}")
    return CacheActionResponse(status=status, view_count=len(views), degraded_collections=degraded)
