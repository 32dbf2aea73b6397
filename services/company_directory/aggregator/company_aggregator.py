"""
Company Aggregator

Caches the six store collections behind the company directory and joins
them into per-branch MergedCompanyView objects.

Responsibilities:
- Fan out concurrent reads of all collections, fan in before merging
- Degrade a failed collection to empty without aborting the others
- Serve cached data inside the freshness window
- Guard against overlapping fetches (at most one in flight)
- Answer lookups, searches and scoped child queries from the cache

Snapshot rules:
- All six collections are replaced together in one assignment
- A failed fan-out leaves the previous snapshot untouched
- fetch_all never raises; callers always receive a list
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence, TypeVar

from pydantic import ValidationError

from ..core.types import (
    Branch,
    CollectionId,
    Company,
    FetchOutcome,
    FilterExpression,
    MergedCompanyView,
    Product,
    Query,
    ScopedRecord,
    SocialMediaLink,
    StoreRecord,
    VerificationRecord,
    WorkingDay,
)
from ..core.constants import (
    CACHE_TTL_SECONDS,
    CREATED_AT_ATTRIBUTE,
    DEFAULT_COLLECTION_IDS,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_LOCATION_TEXT,
    DEFAULT_STORE_ENDPOINT,
)
from ..core.metrics import (
    record_collection_read,
    record_fetch,
    set_merged_views,
    update_cache_sizes,
)
from ..core.resolution import (
    build_file_view_url,
    is_company_verified,
    pick_time_text,
    resolve_coordinates,
)
from ..store.base import RecordStore, StoreError


logger = logging.getLogger(__name__)

ScopedT = TypeVar("ScopedT", bound=ScopedRecord)

# Record model per logical collection
COLLECTION_MODELS: dict[CollectionId, type[StoreRecord]] = {
    CollectionId.COMPANIES: Company,
    CollectionId.BRANCHES: Branch,
    CollectionId.WORKING_DAYS: WorkingDay,
    CollectionId.PRODUCTS: Product,
    CollectionId.SOCIAL_MEDIA: SocialMediaLink,
    CollectionId.VERIFICATIONS: VerificationRecord,
}


class AggregationFailure(Exception):
    """The fan-out/fan-in of collection reads failed as a whole."""


@dataclass
class AggregatorConfig:
    """Configuration for the company aggregator."""

    collection_ids: dict[CollectionId, str] = field(
        default_factory=lambda: dict(DEFAULT_COLLECTION_IDS)
    )
    cache_ttl_seconds: float = CACHE_TTL_SECONDS
    fetch_timeout_seconds: Optional[float] = DEFAULT_FETCH_TIMEOUT_SECONDS

    # Product image URL composition
    store_endpoint: str = DEFAULT_STORE_ENDPOINT
    project_id: str = ""
    products_bucket_id: Optional[str] = None


@dataclass
class CollectionResult:
    """Outcome of one collection read: records, or the error that emptied it."""

    collection: CollectionId
    records: list[StoreRecord] = field(default_factory=list)
    error: Optional[StoreError] = None
    latency_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class FetchDiagnostics:
    """Per-collection outcome of the most recent completed fetch."""

    started_at: float
    completed_at: Optional[float] = None
    record_counts: dict[CollectionId, int] = field(default_factory=dict)
    errors: dict[CollectionId, StoreError] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        """True if any collection degraded to empty."""
        return bool(self.errors)

    @property
    def degraded_collections(self) -> list[CollectionId]:
        return list(self.errors.keys())

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "degraded": self.degraded,
            "record_counts": {c.value: n for c, n in self.record_counts.items()},
            "errors": {c.value: str(e) for c, e in self.errors.items()},
        }


@dataclass
class CacheSnapshot:
    """One consistent set of cached collections."""

    companies: list[Company] = field(default_factory=list)
    branches: list[Branch] = field(default_factory=list)
    working_days: list[WorkingDay] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    social_media: list[SocialMediaLink] = field(default_factory=list)
    verifications: list[VerificationRecord] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: Sequence[CollectionResult]) -> "CacheSnapshot":
        by_collection = {r.collection: r.records for r in results}
        return cls(
            companies=by_collection.get(CollectionId.COMPANIES, []),
            branches=by_collection.get(CollectionId.BRANCHES, []),
            working_days=by_collection.get(CollectionId.WORKING_DAYS, []),
            products=by_collection.get(CollectionId.PRODUCTS, []),
            social_media=by_collection.get(CollectionId.SOCIAL_MEDIA, []),
            verifications=by_collection.get(CollectionId.VERIFICATIONS, []),
        )

    def sizes(self) -> dict[str, int]:
        return {
            CollectionId.COMPANIES.value: len(self.companies),
            CollectionId.BRANCHES.value: len(self.branches),
            CollectionId.WORKING_DAYS.value: len(self.working_days),
            CollectionId.PRODUCTS.value: len(self.products),
            CollectionId.SOCIAL_MEDIA.value: len(self.social_media),
            CollectionId.VERIFICATIONS.value: len(self.verifications),
        }


class CompanyAggregator:
    """
    Cache-and-join engine over the directory collections.

    One instance is owned by the hosting application and shared by
    reference; it holds no module-level state.

    Usage:
        aggregator = CompanyAggregator(
            store=AppwriteRecordStore(project_id, database_id, api_key),
            config=AggregatorConfig(project_id=project_id),
        )
        views = await aggregator.fetch_all()
        online = aggregator.get_online_companies()
        aggregator.invalidate()
    """

    def __init__(
        self,
        store: RecordStore,
        config: Optional[AggregatorConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.config = config or AggregatorConfig()
        self._rng = rng or random.Random()
        self._clock = clock

        self._snapshot = CacheSnapshot()
        self._loading = False
        self._last_fetch_time: Optional[float] = None
        self._last_diagnostics: Optional[FetchDiagnostics] = None
        self._last_failure: Optional[AggregationFailure] = None

    # =========================================================================
    # Fetch / Cache Control
    # =========================================================================

    async def fetch_all(self, force_refresh: bool = False) -> list[MergedCompanyView]:
        """
        Return the merged view, refreshing from the store when stale.

        Args:
            force_refresh: Ignore the freshness window and refetch

        Returns:
            Merged views; the current snapshot's views if a fetch is already
            in flight, an empty list if the whole fan-out failed
        """
        if self._loading:
            logger.debug("Fetch already in flight, serving current snapshot")
            record_fetch(FetchOutcome.BUSY.value)
            return self.merge()

        if not force_refresh and self.is_fresh():
            logger.info(f"Using cached company data (age={self.cache_age_seconds:.1f}s)")
            record_fetch(FetchOutcome.CACHED.value)
            return self.merge()

        self._loading = True
        try:
            logger.info("Fetching company data from store...")
            snapshot, diagnostics = await self._fetch_snapshot()

            views = self._merge_snapshot(snapshot)

            # Replace everything together
            self._snapshot = snapshot
            self._last_fetch_time = self._clock()
            self._last_diagnostics = diagnostics
            self._last_failure = None

            update_cache_sizes(snapshot.sizes())
            set_merged_views(len(views))
            record_fetch(FetchOutcome.FETCHED.value)

            if diagnostics.degraded:
                logger.warning(
                    f"Loaded {len(views)} company views with degraded collections: "
                    f"{[c.value for c in diagnostics.degraded_collections]}"
                )
            else:
                logger.info(
                    f"Loaded {len(views)} company views "
                    f"({len(snapshot.companies)} companies, {len(snapshot.branches)} branches, "
                    f"{len(snapshot.working_days)} working days, {len(snapshot.products)} products, "
                    f"{len(snapshot.social_media)} social links, "
                    f"{len(snapshot.verifications)} verifications)"
                )
            return views

        except Exception as e:
            failure = e if isinstance(e, AggregationFailure) else AggregationFailure(str(e))
            self._last_failure = failure
            record_fetch(FetchOutcome.FAILED.value)
            logger.error(f"Error fetching company data: {type(e).__name__}: {e}")
            return self._fallback_views()

        finally:
            self._loading = False

    async def refresh(self) -> list[MergedCompanyView]:
        """Invalidate the cache and fetch again."""
        self.invalidate()
        return await self.fetch_all()

    def invalidate(self) -> None:
        """Expire the freshness window; cached data stays visible until replaced."""
        self._last_fetch_time = None
        logger.info("Company data cache invalidated")

    def is_fresh(self) -> bool:
        """True if the last successful fetch is inside the freshness window."""
        age = self.cache_age_seconds
        return age is not None and age < self.config.cache_ttl_seconds

    async def _fetch_snapshot(self) -> tuple[CacheSnapshot, FetchDiagnostics]:
        """Read all collections concurrently and build a new snapshot."""
        diagnostics = FetchDiagnostics(started_at=self._clock())

        reads = [
            self._read_collection(collection, filters)
            for collection, filters in self._collection_plan()
        ]
        try:
            results: list[CollectionResult] = await asyncio.gather(*reads)
        except Exception as e:
            raise AggregationFailure(f"Collection fan-out failed: {type(e).__name__}: {e}") from e

        for result in results:
            diagnostics.record_counts[result.collection] = len(result.records)
            if result.error is not None:
                diagnostics.errors[result.collection] = result.error

        diagnostics.completed_at = self._clock()
        return CacheSnapshot.from_results(results), diagnostics

    def _collection_plan(self) -> list[tuple[CollectionId, Optional[list[FilterExpression]]]]:
        """Collections to read with their store-side filters."""
        newest_first = Query.order_desc(CREATED_AT_ATTRIBUTE)
        return [
            (CollectionId.COMPANIES, [newest_first]),
            (
                CollectionId.BRANCHES,
                [
                    Query.equal("is_active", True),
                    Query.equal("disabled", False),
                    newest_first,
                ],
            ),
            (CollectionId.WORKING_DAYS, None),
            (CollectionId.PRODUCTS, None),
            (CollectionId.SOCIAL_MEDIA, None),
            (CollectionId.VERIFICATIONS, None),
        ]

    async def _read_collection(
        self,
        collection: CollectionId,
        filters: Optional[list[FilterExpression]],
    ) -> CollectionResult:
        """
        Read one collection; any failure folds to an empty result.

        The error is kept on the result for diagnostics.
        """
        collection_id = self.config.collection_ids.get(collection, DEFAULT_COLLECTION_IDS[collection])
        timeout = self.config.fetch_timeout_seconds
        start_time = time.perf_counter()

        try:
            call = self.store.list(collection_id, filters)
            if timeout:
                documents = await asyncio.wait_for(call, timeout=timeout)
            else:
                documents = await call
            records = self._parse_records(collection, documents)
        except StoreError as e:
            error = e
        except asyncio.TimeoutError:
            error = StoreError(collection_id, f"Timed out after {timeout}s")
        except Exception as e:
            error = StoreError(collection_id, f"{type(e).__name__}: {e}")
        else:
            latency = time.perf_counter() - start_time
            record_collection_read(collection.value, success=True, latency_seconds=latency)
            logger.debug(f"Read {len(records)} {collection.value} records in {latency:.3f}s")
            return CollectionResult(collection=collection, records=records, latency_seconds=latency)

        latency = time.perf_counter() - start_time
        record_collection_read(collection.value, success=False, latency_seconds=latency)
        logger.error(f"Error fetching {collection.value}: {error}")
        return CollectionResult(collection=collection, error=error, latency_seconds=latency)

    def _parse_records(self, collection: CollectionId, documents: Sequence[dict[str, Any]]) -> list[StoreRecord]:
        """Validate raw documents, skipping any that do not fit the model."""
        if not isinstance(documents, (list, tuple)):
            raise StoreError(
                self.config.collection_ids.get(collection, DEFAULT_COLLECTION_IDS[collection]),
                f"Expected a document list, got {type(documents).__name__}",
            )
        model = COLLECTION_MODELS[collection]
        records: list[StoreRecord] = []
        for index, document in enumerate(documents):
            try:
                records.append(model.model_validate(document))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed {collection.value} document #{index} "
                    f"({e.error_count()} errors)"
                )
        return records

    def _fallback_views(self) -> list[MergedCompanyView]:
        """Views returned when a fetch fails outright."""
        logger.info("Using fallback company data (empty)")
        return []

    # =========================================================================
    # Merge
    # =========================================================================

    def merge(self) -> list[MergedCompanyView]:
        """Recompute the merged view from the cached snapshot (no I/O)."""
        views = self._merge_snapshot(self._snapshot)
        set_merged_views(len(views))
        return views

    def _merge_snapshot(self, snapshot: CacheSnapshot) -> list[MergedCompanyView]:
        """Join branches to companies and scoped child records."""
        companies_by_id: dict[str, Company] = {}
        for company in snapshot.companies:
            if company.company_id is not None:
                companies_by_id.setdefault(company.company_id, company)

        views: list[MergedCompanyView] = []
        for branch in snapshot.branches:
            company = companies_by_id.get(branch.company_id) if branch.company_id else None
            if company is None:
                logger.debug(f"Dropping branch {branch.branch_id}: no company {branch.company_id}")
                continue

            is_verified = is_company_verified(snapshot.verifications, branch.company_id)
            logger.debug(f"Verification for company {branch.company_id}: verified={is_verified}")

            views.append(MergedCompanyView(
                id=branch.id,
                branch_id=branch.branch_id,
                company_id=branch.company_id,
                name=company.name,
                branch_name=branch.branch_name or company.name,
                email=branch.email,
                phone_number=branch.phone_number,
                location=branch.location or DEFAULT_LOCATION_TEXT,
                description=branch.description,
                website=branch.website,
                is_online=bool(branch.is_online),
                is_active=bool(branch.is_active),
                profile_image=branch.profile_image,
                header_image=branch.header_image,
                branch_type=branch.branch_type,
                is_verified=is_verified,
                coordinates=resolve_coordinates(branch.location, self._rng),
                working_days=_scoped(snapshot.working_days, branch.branch_id, branch.company_id),
                products=self._with_image_urls(
                    _scoped(snapshot.products, branch.branch_id, branch.company_id)
                ),
                social_media=_scoped(snapshot.social_media, branch.branch_id, branch.company_id),
                time=pick_time_text(self._rng),
                distance=None,
            ))

        return views

    # =========================================================================
    # Accessors (cache only, no I/O)
    # =========================================================================

    def get_company_by_id(self, company_id: str) -> Optional[Company]:
        """Find a company by document id or company_id."""
        for company in self._snapshot.companies:
            if company_id in (company.id, company.company_id):
                return company
        return None

    def get_branch_by_id(self, branch_id: str) -> Optional[Branch]:
        """Find a branch by document id or branch_id."""
        for branch in self._snapshot.branches:
            if branch_id in (branch.id, branch.branch_id):
                return branch
        return None

    def search_companies(self, query: str) -> list[Company]:
        """Case-insensitive substring search over company name and email."""
        term = query.lower()
        return [
            company
            for company in self._snapshot.companies
            if (company.name and term in company.name.lower())
            or (company.email and term in company.email.lower())
        ]

    def get_online_companies(self) -> list[MergedCompanyView]:
        return [view for view in self.merge() if view.is_online]

    def get_active_companies(self) -> list[MergedCompanyView]:
        return [view for view in self.merge() if view.is_active]

    def get_working_days_for_branch(self, branch_id: str) -> list[WorkingDay]:
        return self._scoped_to_branch(self._snapshot.working_days, branch_id)

    def get_working_days_for_company(self, company_id: str) -> list[WorkingDay]:
        return [wd for wd in self._snapshot.working_days if wd.company_id == company_id]

    def get_products_for_branch(self, branch_id: str) -> list[Product]:
        return self._with_image_urls(self._scoped_to_branch(self._snapshot.products, branch_id))

    def get_products_for_company(self, company_id: str) -> list[Product]:
        return self._with_image_urls(
            [p for p in self._snapshot.products if p.company_id == company_id]
        )

    def get_social_media_for_branch(self, branch_id: str) -> list[SocialMediaLink]:
        return self._scoped_to_branch(self._snapshot.social_media, branch_id)

    def get_social_media_for_company(self, company_id: str) -> list[SocialMediaLink]:
        return [sm for sm in self._snapshot.social_media if sm.company_id == company_id]

    def get_product_image_url(self, image_path: Optional[str]) -> str:
        """Resolve a raw product image reference to a viewable URL."""
        return build_file_view_url(
            image_path,
            endpoint=self.config.store_endpoint,
            project_id=self.config.project_id,
            bucket_id=self.config.products_bucket_id,
        )

    def _scoped_to_branch(self, records: list[ScopedT], branch_id: str) -> list[ScopedT]:
        """
        Records for a branch under the dual-key rule.

        Uses the cached branch's company_id so company-level records are
        included; an unknown branch matches on branch_id alone.
        """
        branch = self.get_branch_by_id(branch_id)
        if branch is None:
            return _scoped(records, branch_id, None)
        return _scoped(records, branch.branch_id or branch_id, branch.company_id)

    def _with_image_urls(self, products: list[Product]) -> list[Product]:
        return [
            product.model_copy(update={"image": self.get_product_image_url(product.product_image)})
            for product in products
        ]

    # =========================================================================
    # State
    # =========================================================================

    @property
    def companies(self) -> list[Company]:
        return list(self._snapshot.companies)

    @property
    def branches(self) -> list[Branch]:
        return list(self._snapshot.branches)

    @property
    def working_days(self) -> list[WorkingDay]:
        return list(self._snapshot.working_days)

    @property
    def products(self) -> list[Product]:
        return list(self._snapshot.products)

    @property
    def social_media(self) -> list[SocialMediaLink]:
        return list(self._snapshot.social_media)

    @property
    def verifications(self) -> list[VerificationRecord]:
        return list(self._snapshot.verifications)

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def last_fetch_time(self) -> Optional[float]:
        return self._last_fetch_time

    @property
    def cache_age_seconds(self) -> Optional[float]:
        if self._last_fetch_time is None:
            return None
        return self._clock() - self._last_fetch_time

    @property
    def last_diagnostics(self) -> Optional[FetchDiagnostics]:
        return self._last_diagnostics

    @property
    def last_failure(self) -> Optional[AggregationFailure]:
        return self._last_failure

    async def check_health(self) -> dict[str, str]:
        """Component health for the /health endpoint."""
        if self._last_failure is not None:
            return {"status": "unhealthy", "message": f"Last fetch failed: {self._last_failure}"}
        if self._last_diagnostics is None:
            return {"status": "degraded", "message": "No fetch completed yet"}
        if self._last_diagnostics.degraded:
            collections = ", ".join(c.value for c in self._last_diagnostics.degraded_collections)
            return {"status": "degraded", "message": f"Degraded collections: {collections}"}
        return {"status": "healthy", "message": f"{len(self._snapshot.branches)} branches cached"}


def _scoped(records: list[ScopedT], branch_id: Optional[str], company_id: Optional[str]) -> list[ScopedT]:
    return [record for record in records if record.belongs_to(branch_id, company_id)]
