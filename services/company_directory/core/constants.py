"""
Company Directory Constants

Central configuration for the cache window, store collection ids,
field-name fallbacks and display placeholders.

Collection ids and the storage bucket fallback are deployment-specific
values of the hosted document store; override them through Settings
rather than editing them here.
"""

from typing import Optional

from .types import CollectionId, Coordinates


# =============================================================================
# Cache
# =============================================================================

# Freshness window: cached data is served without touching the store
# for this long after a successful fetch (5 minutes)
CACHE_TTL_SECONDS: float = 300.0

# Per-read timeout (seconds). None disables the timeout.
DEFAULT_FETCH_TIMEOUT_SECONDS: Optional[float] = None


# =============================================================================
# Store Collections
# =============================================================================

# Default physical collection ids in the document store
DEFAULT_COLLECTION_IDS: dict[CollectionId, str] = {
    CollectionId.COMPANIES: "company_tb",
    CollectionId.BRANCHES: "branches",
    CollectionId.WORKING_DAYS: "working_days",
    CollectionId.PRODUCTS: "products",
    CollectionId.SOCIAL_MEDIA: "social_media",
    CollectionId.VERIFICATIONS: "company_verification",
}

# Store-managed creation timestamp attribute
CREATED_AT_ATTRIBUTE: str = "$createdAt"

# Documents per page when listing a collection
DEFAULT_PAGE_SIZE: int = 100

# Safety limit on pages per collection read
MAX_PAGES_PER_COLLECTION: int = 50


# =============================================================================
# Verification Field Resolution
# =============================================================================
# Verification records were written by several clients over time, each
# with its own spelling of the company key and status field. Candidates
# are tried in order; the first non-empty value wins.

COMPANY_ID_FIELDS: tuple[str, ...] = (
    "company_id",
    "companyId",
    "companyID",
    "company",
)

VERIFICATION_STATUS_FIELDS: tuple[str, ...] = (
    "status",
    "verification_status",
    "verificationStatus",
)

# Only this exact status counts as verified
VERIFIED_STATUS: str = "verified"


# =============================================================================
# Product Images
# =============================================================================

DEFAULT_STORE_ENDPOINT: str = "https://nyc.cloud.appwrite.io/v1"

# Products bucket of the production deployment, used when no bucket is configured
FALLBACK_PRODUCTS_BUCKET_ID: str = "68b1c57b001542be7fbe"

FILE_VIEW_URL_TEMPLATE: str = "{endpoint}/storage/buckets/{bucket_id}/files/{file_id}/view?project={project_id}"


# =============================================================================
# Display Placeholders
# =============================================================================

DEFAULT_LOCATION_TEXT: str = "Location not specified"

# Known branch locations (exact match on the location string)
LOCATION_COORDINATES: dict[str, Coordinates] = {
    "Accra, Ghana": Coordinates(lat=5.6037, lng=-0.1870),
    "Tema, Ghana": Coordinates(lat=5.6699, lng=-0.0166),
    "Kumasi, Ghana": Coordinates(lat=6.6885, lng=-1.6244),
    "Takoradi, Ghana": Coordinates(lat=4.8845, lng=-1.7554),
    "Cape Coast, Ghana": Coordinates(lat=5.1036, lng=-1.2466),
    "Ho, Ghana": Coordinates(lat=6.6000, lng=0.4700),
}

# Unknown locations are jittered around this point
BASE_COORDINATES: Coordinates = LOCATION_COORDINATES["Accra, Ghana"]

# Maximum total jitter span per axis (degrees); offset is in [-span/2, span/2)
COORDINATE_JITTER_SPAN: float = 2.0

TIME_AWAY_OPTIONS: tuple[str, ...] = (
    "10 minutes away",
    "15 minutes away",
    "20 minutes away",
    "25 minutes away",
    "30 minutes away",
)
