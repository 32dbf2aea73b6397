"""
Company Directory Core Types

Canonical type definitions for records read from the document store and for
the merged company view served to page collaborators.

SERIALIZATION CONTRACT:
    Store documents carry system attributes prefixed with "$" ($id,
    $createdAt). Internally these are exposed as `id` and `created_at`
    via Pydantic aliases with `populate_by_name`, so records can be built
    from raw store documents or from Python keyword arguments.

    Unknown document attributes are kept (extra="allow") because the
    store schema is owned by another team and grows without notice.

    Example:
        Store JSON: {"$id": "64f0...", "company_id": "c1", "name": "Acme"}
        Internal:   company.id, company.company_id, company.name
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Core Enums
# =============================================================================

class CollectionId(str, Enum):
    """Logical collections the aggregator reads from the store."""
    COMPANIES = "companies"
    BRANCHES = "branches"
    WORKING_DAYS = "working_days"
    PRODUCTS = "products"
    SOCIAL_MEDIA = "social_media"
    VERIFICATIONS = "verifications"


class FilterKind(str, Enum):
    """Filter expression kinds understood by a RecordStore."""
    EQUAL = "equal"
    ORDER_DESC = "orderDesc"
    ORDER_ASC = "orderAsc"
    LIMIT = "limit"
    CURSOR_AFTER = "cursorAfter"


class FetchOutcome(str, Enum):
    """How a fetch_all call was served."""
    FETCHED = "fetched"
    CACHED = "cached"
    BUSY = "busy"
    FAILED = "failed"


# =============================================================================
# Filter Expressions
# =============================================================================

class FilterExpression(BaseModel):
    """A single store-side filter or ordering clause."""

    model_config = ConfigDict(frozen=True)

    kind: FilterKind
    attribute: Optional[str] = None
    values: tuple[Any, ...] = ()

    def to_query(self) -> dict[str, Any]:
        """Encode as a store query object."""
        query: dict[str, Any] = {"method": self.kind.value}
        if self.attribute is not None:
            query["attribute"] = self.attribute
        if self.values:
            query["values"] = list(self.values)
        return query


class Query:
    """Factory helpers for FilterExpression."""

    @staticmethod
    def equal(attribute: str, value: Any) -> FilterExpression:
        return FilterExpression(kind=FilterKind.EQUAL, attribute=attribute, values=(value,))

    @staticmethod
    def order_desc(attribute: str) -> FilterExpression:
        return FilterExpression(kind=FilterKind.ORDER_DESC, attribute=attribute)

    @staticmethod
    def order_asc(attribute: str) -> FilterExpression:
        return FilterExpression(kind=FilterKind.ORDER_ASC, attribute=attribute)

    @staticmethod
    def limit(count: int) -> FilterExpression:
        return FilterExpression(kind=FilterKind.LIMIT, values=(count,))

    @staticmethod
    def cursor_after(document_id: str) -> FilterExpression:
        return FilterExpression(kind=FilterKind.CURSOR_AFTER, values=(document_id,))


# =============================================================================
# Store Records
# =============================================================================

class StoreRecord(BaseModel):
    """Base for all store documents: system attributes plus open schema."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
    )

    id: Optional[str] = Field(default=None, alias="$id", description="Store document id")
    created_at: Optional[str] = Field(default=None, alias="$createdAt", description="ISO creation time")

    def as_mapping(self) -> dict[str, Any]:
        """All attributes (declared and extra) keyed by their Python names."""
        return self.model_dump()


class ScopedRecord(StoreRecord):
    """A child record scoped to a branch and/or a company."""

    branch_id: Optional[str] = None
    company_id: Optional[str] = None

    def belongs_to(self, branch_id: Optional[str], company_id: Optional[str]) -> bool:
        """
        Dual-key scope match.

        True if this record's branch_id equals branch_id, or its company_id
        equals company_id. Either match suffices, so a company-level record
        attaches to every branch of that company.
        """
        if branch_id is not None and self.branch_id == branch_id:
            return True
        return company_id is not None and self.company_id == company_id


class Company(StoreRecord):
    """Company record (source of truth for name and contact email)."""

    company_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


class Branch(StoreRecord):
    """Branch record owned by a company."""

    branch_id: Optional[str] = None
    company_id: Optional[str] = None
    branch_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    is_online: Optional[bool] = None
    is_active: Optional[bool] = None
    disabled: Optional[bool] = None
    profile_image: Optional[str] = None
    header_image: Optional[str] = None
    branch_type: Optional[str] = None


class WorkingDay(ScopedRecord):
    """Opening hours for one day, scoped to a branch or a company default."""

    day: Optional[str] = None
    hours: Optional[str] = None


class Product(ScopedRecord):
    """Product listing; `image` is the resolved URL of `product_image`."""

    name: Optional[str] = None
    product_image: Optional[str] = None
    image: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Product name across the spellings the store has used."""
        extra = self.model_extra or {}
        return self.name or extra.get("product_name") or extra.get("productName") or "Unknown Product"


class SocialMediaLink(ScopedRecord):
    """Link to a social media profile."""

    platform: Optional[str] = None
    url: Optional[str] = None


class VerificationRecord(StoreRecord):
    """
    Company verification record.

    Field names for the company key and status vary between historical
    writers, so no attributes are declared; see core.resolution.
    """


# =============================================================================
# Merged View
# =============================================================================

class Coordinates(BaseModel):
    """Display coordinates for a branch."""

    lat: float
    lng: float


class MergedCompanyView(BaseModel):
    """
    Derived per-branch company view (never persisted).

    One instance per active branch whose company is known. Carries branch
    display fields, the owning company's name, the scoped child records,
    a derived verification flag and display-only placeholder fields.
    """

    id: Optional[str] = Field(None, description="Branch document id")
    branch_id: Optional[str] = None
    company_id: Optional[str] = None
    name: Optional[str] = Field(None, description="Owning company name")
    branch_name: Optional[str] = Field(None, description="Branch name, company name if unset")
    email: Optional[str] = None
    phone_number: Optional[str] = None
    location: str = Field(default="Location not specified")
    description: Optional[str] = None
    website: Optional[str] = None
    is_online: bool = False
    is_active: bool = False
    profile_image: Optional[str] = None
    header_image: Optional[str] = None
    branch_type: Optional[str] = None
    is_verified: bool = False
    coordinates: Coordinates
    working_days: list[WorkingDay] = Field(default_factory=list)
    products: list[Product] = Field(default_factory=list)
    social_media: list[SocialMediaLink] = Field(default_factory=list)

    # Display placeholders
    time: str = Field(..., description="Travel time display string")
    distance: Optional[float] = Field(None, description="Always null until distance is computed")
