"""
Unit tests for Company Directory core modules.

Tests record models, filter expressions and field resolution.
"""

import random

import pytest

from services.company_directory.core.types import (
    Branch,
    Company,
    Coordinates,
    FilterKind,
    Product,
    Query,
    VerificationRecord,
    WorkingDay,
)
from services.company_directory.core.constants import (
    BASE_COORDINATES,
    COORDINATE_JITTER_SPAN,
    FALLBACK_PRODUCTS_BUCKET_ID,
    TIME_AWAY_OPTIONS,
)
from services.company_directory.core.resolution import (
    build_file_view_url,
    find_verification,
    is_company_verified,
    pick_time_text,
    resolve_coordinates,
    resolve_field,
    resolve_verification_status,
)


class TestStoreRecords:
    """Tests for store record models."""

    def test_system_attributes_from_store_document(self):
        """$id and $createdAt should map to id and created_at."""
        company = Company.model_validate({
            "$id": "doc-1",
            "$createdAt": "2025-01-02T10:00:00.000+00:00",
            "company_id": "c1",
            "name": "Acme",
        })

        assert company.id == "doc-1"
        assert company.created_at == "2025-01-02T10:00:00.000+00:00"
        assert company.company_id == "c1"
        assert company.name == "Acme"

    def test_populate_by_name(self):
        """Records can be built from Python keyword arguments."""
        branch = Branch(id="doc-2", branch_id="b1", company_id="c1")

        assert branch.id == "doc-2"
        assert branch.branch_id == "b1"

    def test_unknown_attributes_kept(self):
        """Attributes outside the model should survive validation."""
        record = VerificationRecord.model_validate({"companyId": "c1", "verificationStatus": "verified"})

        mapping = record.as_mapping()
        assert mapping["companyId"] == "c1"
        assert mapping["verificationStatus"] == "verified"

    def test_product_display_name_fallbacks(self):
        """display_name should try name, then legacy spellings."""
        assert Product(name="Rice").display_name == "Rice"
        assert Product.model_validate({"product_name": "Oil"}).display_name == "Oil"
        assert Product.model_validate({"productName": "Sugar"}).display_name == "Sugar"
        assert Product().display_name == "Unknown Product"


class TestDualKeyScope:
    """Tests for ScopedRecord.belongs_to."""

    def test_matches_branch_id(self):
        wd = WorkingDay(branch_id="b1", day="Monday")
        assert wd.belongs_to("b1", "c9") is True

    def test_matches_company_id(self):
        """Company-level record attaches to any branch of the company."""
        wd = WorkingDay(company_id="c1", day="Monday")
        assert wd.belongs_to("b1", "c1") is True
        assert wd.belongs_to("b2", "c1") is True

    def test_no_match(self):
        wd = WorkingDay(branch_id="b2", company_id="c2")
        assert wd.belongs_to("b1", "c1") is False

    def test_none_keys_never_match(self):
        """A record with no keys should not match a branch with no keys."""
        wd = WorkingDay(day="Monday")
        assert wd.belongs_to(None, None) is False


class TestFilterExpressions:
    """Tests for Query factories and query encoding."""

    def test_equal(self):
        f = Query.equal("is_active", True)

        assert f.kind == FilterKind.EQUAL
        assert f.to_query() == {"method": "equal", "attribute": "is_active", "values": [True]}

    def test_order_desc(self):
        f = Query.order_desc("$createdAt")
        assert f.to_query() == {"method": "orderDesc", "attribute": "$createdAt"}

    def test_limit_and_cursor(self):
        assert Query.limit(100).to_query() == {"method": "limit", "values": [100]}
        assert Query.cursor_after("doc-9").to_query() == {"method": "cursorAfter", "values": ["doc-9"]}

    def test_expressions_are_hashable(self):
        """Frozen expressions compare by value."""
        assert Query.equal("disabled", False) == Query.equal("disabled", False)
        assert len({Query.limit(10), Query.limit(10)}) == 1


class TestVerificationResolution:
    """Tests for verification lookup across field spellings."""

    def test_resolve_field_priority(self):
        record = {"company_id": "", "companyId": "c1", "company": "c2"}
        assert resolve_field(record, ("company_id", "companyId", "company")) == "c1"

    def test_resolve_field_missing(self):
        assert resolve_field({}, ("a", "b")) is None

    @pytest.mark.parametrize("key_field", ["company_id", "companyId", "companyID", "company"])
    def test_find_by_any_key_spelling(self, key_field):
        records = [VerificationRecord.model_validate({key_field: "c1", "status": "verified"})]
        assert find_verification(records, "c1") is records[0]

    @pytest.mark.parametrize("status_field", ["status", "verification_status", "verificationStatus"])
    def test_status_by_any_spelling(self, status_field):
        record = VerificationRecord.model_validate({"company_id": "c1", status_field: "verified"})
        assert resolve_verification_status(record) == "verified"

    def test_verified_requires_exact_status(self):
        """Only the exact lowercase status counts as verified."""
        for status in ("pending", "Verified", "rejected", ""):
            records = [VerificationRecord.model_validate({"company_id": "c1", "status": status})]
            assert is_company_verified(records, "c1") is False

        records = [VerificationRecord.model_validate({"company_id": "c1", "status": "verified"})]
        assert is_company_verified(records, "c1") is True

    def test_first_matching_record_wins(self):
        records = [
            VerificationRecord.model_validate({"company_id": "c1", "status": "pending"}),
            VerificationRecord.model_validate({"company_id": "c1", "status": "verified"}),
        ]
        assert is_company_verified(records, "c1") is False

    def test_missing_record_is_unverified(self):
        records = [VerificationRecord.model_validate({"company_id": "c2", "status": "verified"})]
        assert is_company_verified(records, "c1") is False
        assert is_company_verified(records, None) is False


class TestCoordinates:
    """Tests for display coordinate resolution."""

    def test_known_location(self):
        coords = resolve_coordinates("Accra, Ghana", random.Random(0))
        assert coords == Coordinates(lat=5.6037, lng=-0.1870)

    def test_known_location_consumes_no_randomness(self):
        rng = random.Random(1)
        resolve_coordinates("Kumasi, Ghana", rng)

        assert rng.random() == random.Random(1).random()

    def test_unknown_location_within_jitter(self):
        rng = random.Random(42)
        half_span = COORDINATE_JITTER_SPAN / 2

        for location in ("Lagos, Nigeria", None, ""):
            coords = resolve_coordinates(location, rng)
            assert abs(coords.lat - BASE_COORDINATES.lat) <= half_span
            assert abs(coords.lng - BASE_COORDINATES.lng) <= half_span

    def test_seeded_placeholders_reproducible(self):
        first = resolve_coordinates("Nowhere", random.Random(7))
        second = resolve_coordinates("Nowhere", random.Random(7))
        assert first == second

    def test_time_text_from_options(self):
        rng = random.Random(3)
        for _ in range(20):
            assert pick_time_text(rng) in TIME_AWAY_OPTIONS


class TestFileViewUrl:
    """Tests for product image URL composition."""

    def test_empty_input(self):
        assert build_file_view_url("", "https://store/v1", "p1") == ""
        assert build_file_view_url(None, "https://store/v1", "p1") == ""

    def test_absolute_url_passthrough(self):
        url = "https://cdn.example.com/img.png"
        assert build_file_view_url(url, "https://store/v1", "p1") == url

    def test_file_id_composed(self):
        url = build_file_view_url("file-1", "https://store/v1/", "p1", bucket_id="bucket-1")
        assert url == "https://store/v1/storage/buckets/bucket-1/files/file-1/view?project=p1"

    def test_fallback_bucket(self):
        url = build_file_view_url("file-1", "https://store/v1", "p1")
        assert f"/buckets/{FALLBACK_PRODUCTS_BUCKET_ID}/" in url
