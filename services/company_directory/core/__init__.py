# Company Directory Core Modules
"""
Core business logic for the merged company view.

Modules:
- types: Store record and merged view models (Pydantic)
- constants: Cache window, collection ids, field-name fallbacks
- resolution: Verification, coordinates and image URL resolution
- metrics: Prometheus metrics
"""

from .types import (
    Branch,
    CollectionId,
    Company,
    Coordinates,
    FetchOutcome,
    FilterExpression,
    FilterKind,
    MergedCompanyView,
    Product,
    Query,
    ScopedRecord,
    SocialMediaLink,
    StoreRecord,
    VerificationRecord,
    WorkingDay,
)

from .constants import (
    CACHE_TTL_SECONDS,
    COMPANY_ID_FIELDS,
    DEFAULT_COLLECTION_IDS,
    FALLBACK_PRODUCTS_BUCKET_ID,
    LOCATION_COORDINATES,
    TIME_AWAY_OPTIONS,
    VERIFICATION_STATUS_FIELDS,
    VERIFIED_STATUS,
)

from .resolution import (
    build_file_view_url,
    find_verification,
    is_company_verified,
    pick_time_text,
    resolve_coordinates,
    resolve_field,
    resolve_verification_status,
)

__all__ = [
    # Types
    "Branch",
    "CollectionId",
    "Company",
    "Coordinates",
    "FetchOutcome",
    "FilterExpression",
    "FilterKind",
    "MergedCompanyView",
    "Product",
    "Query",
    "ScopedRecord",
    "SocialMediaLink",
    "StoreRecord",
    "VerificationRecord",
    "WorkingDay",
    # Constants
    "CACHE_TTL_SECONDS",
    "COMPANY_ID_FIELDS",
    "DEFAULT_COLLECTION_IDS",
    "FALLBACK_PRODUCTS_BUCKET_ID",
    "LOCATION_COORDINATES",
    "TIME_AWAY_OPTIONS",
    "VERIFICATION_STATUS_FIELDS",
    "VERIFIED_STATUS",
    # Resolution
    "build_file_view_url",
    "find_verification",
    "is_company_verified",
    "pick_time_text",
    "resolve_coordinates",
    "resolve_field",
    "resolve_verification_status",
]
