"""
Company Directory Field Resolution

Pure helpers used by the merge step:
- Ordered fallback lookup across historical field-name spellings
- Verification status resolution per company
- Display coordinates and travel-time placeholders
- Product image URL composition

Randomized placeholders draw from a caller-supplied random.Random so the
merge stays reproducible under a fixed seed.
"""

import random
from typing import Any, Iterable, Mapping, Optional, Sequence

from .constants import (
    BASE_COORDINATES,
    COMPANY_ID_FIELDS,
    COORDINATE_JITTER_SPAN,
    FALLBACK_PRODUCTS_BUCKET_ID,
    FILE_VIEW_URL_TEMPLATE,
    LOCATION_COORDINATES,
    TIME_AWAY_OPTIONS,
    VERIFICATION_STATUS_FIELDS,
    VERIFIED_STATUS,
)
from .types import Coordinates, VerificationRecord


def resolve_field(record: Mapping[str, Any], candidates: Sequence[str]) -> Optional[Any]:
    """
    Return the first truthy value among candidate field names.

    Args:
        record: Attribute mapping of a store record
        candidates: Field names in priority order

    Returns:
        First non-empty value, or None if no candidate is set
    """
    for name in candidates:
        value = record.get(name)
        if value:
            return value
    return None


def find_verification(
    verifications: Iterable[VerificationRecord],
    company_id: Optional[str],
    key_fields: Sequence[str] = COMPANY_ID_FIELDS,
) -> Optional[VerificationRecord]:
    """Find the first verification record whose company key equals company_id."""
    if company_id is None:
        return None
    for record in verifications:
        if resolve_field(record.as_mapping(), key_fields) == company_id:
            return record
    return None


def resolve_verification_status(
    record: Optional[VerificationRecord],
    status_fields: Sequence[str] = VERIFICATION_STATUS_FIELDS,
) -> Optional[str]:
    """Read a verification record's status across the known spellings."""
    if record is None:
        return None
    return resolve_field(record.as_mapping(), status_fields)


def is_company_verified(
    verifications: Iterable[VerificationRecord],
    company_id: Optional[str],
) -> bool:
    """
    Resolve whether a company is verified.

    Verified only if a matching record exists and its status is exactly
    "verified". Other statuses ("pending", "Verified", "rejected") and
    missing records are unverified.
    """
    record = find_verification(verifications, company_id)
    return resolve_verification_status(record) == VERIFIED_STATUS


def resolve_coordinates(location: Optional[str], rng: random.Random) -> Coordinates:
    """
    Display coordinates for a branch location.

    Known locations resolve from the lookup table. Anything else gets a
    placeholder jittered around the base point by up to half the jitter
    span on each axis.
    """
    known = LOCATION_COORDINATES.get(location) if location else None
    if known is not None:
        return known.model_copy()

    return Coordinates(
        lat=BASE_COORDINATES.lat + (rng.random() - 0.5) * COORDINATE_JITTER_SPAN,
        lng=BASE_COORDINATES.lng + (rng.random() - 0.5) * COORDINATE_JITTER_SPAN,
    )


def pick_time_text(rng: random.Random) -> str:
    """Placeholder travel-time string."""
    return rng.choice(TIME_AWAY_OPTIONS)


def build_file_view_url(
    image_path: Optional[str],
    endpoint: str,
    project_id: str,
    bucket_id: Optional[str] = None,
) -> str:
    """
    Resolve a raw product image reference to a viewable URL.

    Args:
        image_path: Store file id, or an already absolute URL
        endpoint: Store API endpoint (e.g. https://nyc.cloud.appwrite.io/v1)
        project_id: Store project id
        bucket_id: Products bucket id; falls back to the deployment bucket

    Returns:
        Empty string for empty input, the input unchanged if it is already
        an http(s) URL, otherwise the composed file view URL
    """
    if not image_path:
        return ""

    if image_path.startswith("http"):
        return image_path

    return FILE_VIEW_URL_TEMPLATE.format(
        endpoint=endpoint.rstrip("/"),
        bucket_id=bucket_id or FALLBACK_PRODUCTS_BUCKET_ID,
        file_id=image_path,
        project_id=project_id,
    )
