"""
Prometheus Metrics for Company Directory

Exposes operational metrics for monitoring and alerting.

Metrics:
- fetch_all outcome counters (fetched, cached, busy, failed)
- Per-collection read counters and latency histograms
- Cached record and merged view gauges
"""

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry

# Create a custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry()


# =============================================================================
# Aggregator Metrics
# =============================================================================

# fetch_all calls by outcome
FETCHES_TOTAL = Counter(
    "directory_fetches_total",
    "Total fetch_all calls by outcome",
    ["outcome"],  # fetched, cached, busy, failed
    registry=REGISTRY,
)

# Records held in the cache per collection
CACHED_RECORDS = Gauge(
    "directory_cached_records",
    "Records held in the cache per collection",
    ["collection"],
    registry=REGISTRY,
)

# Merged views produced by the last merge
MERGED_VIEWS = Gauge(
    "directory_merged_views",
    "Merged company views produced by the last merge",
    registry=REGISTRY,
)


# =============================================================================
# Store Read Metrics
# =============================================================================

COLLECTION_READS_TOTAL = Counter(
    "directory_collection_reads_total",
    "Total collection reads against the record store",
    ["collection", "status"],  # status: success, error
    registry=REGISTRY,
)

COLLECTION_READ_LATENCY = Histogram(
    "directory_collection_read_latency_seconds",
    "Collection read latency in seconds",
    ["collection"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY,
)


# =============================================================================
# Service Info Metrics
# =============================================================================

SERVICE_INFO = Gauge(
    "directory_service_info",
    "Service information",
    ["version", "environment"],
    registry=REGISTRY,
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_fetch(outcome: str) -> None:
    """Count a fetch_all call."""
    FETCHES_TOTAL.labels(outcome=outcome).inc()


def record_collection_read(collection: str, success: bool, latency_seconds: float) -> None:
    """Record a single collection read."""
    status = "success" if success else "error"
    COLLECTION_READS_TOTAL.labels(collection=collection, status=status).inc()
    if success:
        COLLECTION_READ_LATENCY.labels(collection=collection).observe(latency_seconds)


def update_cache_sizes(sizes: dict[str, int]) -> None:
    """Set cached record gauges from a collection -> count mapping."""
    for collection, count in sizes.items():
        CACHED_RECORDS.labels(collection=collection).set(count)


def set_merged_views(count: int) -> None:
    """Set merged view gauge."""
    MERGED_VIEWS.set(count)


def set_service_info(version: str, environment: str) -> None:
    """Set service info gauge."""
    SERVICE_INFO.labels(version=version, environment=environment).set(1)
