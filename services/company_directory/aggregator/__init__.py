# Company Directory Aggregator
# Cached multi-collection fetch and merge

"""
Aggregator module for building the merged company view.

Components:
- CompanyAggregator: Fetches collections concurrently, caches, merges
- AggregatorConfig: Collection ids, freshness window, image URL settings
- FetchDiagnostics: Per-collection outcome of the last fetch
"""

from .company_aggregator import (
    AggregationFailure,
    AggregatorConfig,
    CacheSnapshot,
    CollectionResult,
    CompanyAggregator,
    FetchDiagnostics,
)

__all__ = [
    "AggregationFailure",
    "AggregatorConfig",
    "CacheSnapshot",
    "CollectionResult",
    "CompanyAggregator",
    "FetchDiagnostics",
]
