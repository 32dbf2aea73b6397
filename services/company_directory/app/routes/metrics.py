"""
Prometheus Metrics Endpoint

Exposes /metrics endpoint in Prometheus text format.
"""

import logging
from fastapi import APIRouter, Request, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from ...core.metrics import (
    REGISTRY,
    set_service_info,
    update_cache_sizes,
)
from ..config import settings


logger = logging.getLogger(__name__)
router = APIRouter()


def _update_live_metrics(request: Request) -> None:
    """
    Update cache size gauges from the aggregator's current snapshot.

    Called on each /metrics scrape so gauges track the live cache.
    """
    aggregator = getattr(request.app.state, "aggregator", None)
    if not aggregator:
        return

    update_cache_sizes({
        "companies": len(aggregator.companies),
        "branches": len(aggregator.branches),
        "working_days": len(aggregator.working_days),
        "products": len(aggregator.products),
        "social_media": len(aggregator.social_media),
        "verifications": len(aggregator.verifications),
    })


@router.get("/metrics")
async def prometheus_metrics(request: Request) -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text exposition format.

    Metrics exposed:
    - directory_fetches_total{outcome}
    - directory_collection_reads_total{collection, status}
    - directory_collection_read_latency_seconds{collection}
    - directory_cached_records{collection}
    - directory_merged_views
    - directory_service_info{version, environment}
    """
    # Set service info on each scrape (idempotent)
    set_service_info(settings.service_version, settings.environment)

    _update_live_metrics(request)

    metrics_output = generate_latest(REGISTRY)

    return Response(
        content=metrics_output,
        media_type=CONTENT_TYPE_LATEST,
    )
