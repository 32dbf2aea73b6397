"""
Unit tests for Company Directory V0 API endpoints.

Tests the /v0/* endpoints using TestClient.
"""

import asyncio
import random

import pytest
from unittest.mock import MagicMock, AsyncMock, patch
from fastapi.testclient import TestClient

from services.company_directory.app.main import app
from services.company_directory.app.config import settings
from services.company_directory.aggregator import AggregatorConfig, CompanyAggregator
from services.company_directory.core.constants import DEFAULT_COLLECTION_IDS
from services.company_directory.core.types import CollectionId
from services.company_directory.store.base import RecordStore, StoreError


DOCUMENTS = {
    CollectionId.COMPANIES: [
        {"$id": "doc-c1", "company_id": "c1", "name": "Acme Foods", "email": "info@acme.com"},
        {"$id": "doc-c2", "company_id": "c2", "name": "Beta Ltd", "email": "sales@beta.io"},
    ],
    CollectionId.BRANCHES: [
        {
            "$id": "doc-b1",
            "branch_id": "b1",
            "company_id": "c1",
            "branch_name": "Acme Osu",
            "location": "Accra, Ghana",
            "is_active": True,
            "is_online": True,
        },
        {"$id": "doc-b2", "branch_id": "b2", "company_id": "c2", "is_active": True, "is_online": False},
    ],
    CollectionId.WORKING_DAYS: [
        {"branch_id": "b1", "day": "Monday", "hours": "8:00 - 17:00"},
        {"company_id": "c1", "day": "Saturday", "hours": "9:00 - 13:00"},
    ],
    CollectionId.PRODUCTS: [
        {"company_id": "c1", "name": "Rice", "product_image": "file-1"},
    ],
    CollectionId.SOCIAL_MEDIA: [
        {"branch_id": "b2", "platform": "facebook", "url": "https://facebook.com/beta"},
    ],
    CollectionId.VERIFICATIONS: [
        {"companyId": "c1", "verificationStatus": "verified"},
    ],
}


@pytest.fixture
def mock_store():
    """Create a mock store serving DOCUMENTS."""
    logical = {physical: collection for collection, physical in DEFAULT_COLLECTION_IDS.items()}

    async def mock_list(collection_id, filters=None):
        return [dict(doc) for doc in DOCUMENTS.get(logical[collection_id], [])]

    store = MagicMock(spec=RecordStore)
    store.list = AsyncMock(side_effect=mock_list)
    return store


@pytest.fixture
def aggregator(mock_store):
    """Create an aggregator with a warm cache."""
    aggregator = CompanyAggregator(
        store=mock_store,
        config=AggregatorConfig(project_id="proj-1", products_bucket_id="bucket-1"),
        rng=random.Random(0),
    )
    asyncio.run(aggregator.fetch_all())
    return aggregator


@pytest.fixture
def client(aggregator):
    """Create test client with the aggregator on app state."""
    app.state.aggregator = aggregator
    return TestClient(app)


class TestMergedView:
    """Tests for /v0/companies and filtered views."""

    def test_companies_returns_views(self, client):
        response = client.get("/v0/companies")

        assert response.status_code == 200
        data = response.json()
        assert [v["branch_id"] for v in data] == ["b1", "b2"]

        acme = data[0]
        assert acme["name"] == "Acme Foods"
        assert acme["branch_name"] == "Acme Osu"
        assert acme["is_verified"] is True
        assert acme["coordinates"] == {"lat": 5.6037, "lng": -0.1870}
        assert acme["distance"] is None
        assert [wd["day"] for wd in acme["working_days"]] == ["Monday", "Saturday"]
        assert acme["products"][0]["image"].endswith("/buckets/bucket-1/files/file-1/view?project=proj-1")

        assert data[1]["is_verified"] is False
        assert data[1]["branch_name"] == "Beta Ltd"

    def test_companies_served_from_cache(self, client, mock_store):
        client.get("/v0/companies")
        assert mock_store.list.call_count == 6

    def test_companies_refresh(self, client, mock_store):
        response = client.get("/v0/companies", params={"refresh": True})

        assert response.status_code == 200
        assert mock_store.list.call_count == 12

    def test_online(self, client):
        data = client.get("/v0/companies/online").json()
        assert [v["branch_id"] for v in data] == ["b1"]

    def test_active(self, client):
        data = client.get("/v0/companies/active").json()
        assert len(data) == 2

    def test_search(self, client):
        data = client.get("/v0/companies/search", params={"q": "BETA"}).json()
        assert [c["company_id"] for c in data] == ["c2"]

    def test_search_requires_query(self, client):
        response = client.get("/v0/companies/search", params={"q": ""})
        assert response.status_code == 422

    def test_degraded_fetch_still_200(self, client, aggregator, mock_store):
        """A failed branch read returns an empty list, not an error."""
        async def failing_list(collection_id, filters=None):
            if collection_id == "branches":
                raise StoreError(collection_id, "Service unavailable", status_code=503)
            return []

        mock_store.list.side_effect = failing_list

        response = client.get("/v0/companies", params={"refresh": True})

        assert response.status_code == 200
        assert response.json() == []


class TestLookups:
    """Tests for company and branch lookups."""

    def test_company_by_business_id(self, client):
        response = client.get("/v0/companies/c1")

        assert response.status_code == 200
        assert response.json()["name"] == "Acme Foods"

    def test_company_by_document_id(self, client):
        response = client.get("/v0/companies/doc-c2")

        assert response.status_code == 200
        assert response.json()["company_id"] == "c2"

    def test_company_not_found(self, client):
        response = client.get("/v0/companies/nope")
        assert response.status_code == 404

    def test_company_children(self, client):
        assert [wd["day"] for wd in client.get("/v0/companies/c1/working-days").json()] == ["Saturday"]
        assert [p["name"] for p in client.get("/v0/companies/c1/products").json()] == ["Rice"]
        assert client.get("/v0/companies/c1/social-media").json() == []

    def test_branch_lookup(self, client):
        response = client.get("/v0/branches/b1")

        assert response.status_code == 200
        assert response.json()["branch_name"] == "Acme Osu"

    def test_branch_not_found(self, client):
        response = client.get("/v0/branches/nope")
        assert response.status_code == 404

    def test_branch_children(self, client):
        days = client.get("/v0/branches/b1/working-days").json()
        assert [wd["day"] for wd in days] == ["Monday", "Saturday"]

        products = client.get("/v0/branches/b1/products").json()
        assert products[0]["image"].endswith("/files/file-1/view?project=proj-1")

        social = client.get("/v0/branches/b2/social-media").json()
        assert [s["platform"] for s in social] == ["facebook"]

    def test_image_url(self, client):
        response = client.get("/v0/products/image-url", params={"path": "file-9"})

        assert response.status_code == 200
        data = response.json()
        assert data["path"] == "file-9"
        assert data["url"].endswith("/buckets/bucket-1/files/file-9/view?project=proj-1")

    def test_image_url_passthrough(self, client):
        url = "https://cdn.example.com/a.png"
        data = client.get("/v0/products/image-url", params={"path": url}).json()
        assert data["url"] == url


class TestDiagnostics:
    """Tests for /v0/diagnostics."""

    def test_diagnostics_after_clean_fetch(self, client):
        data = client.get("/v0/diagnostics").json()

        assert data["is_loading"] is False
        assert data["is_fresh"] is True
        assert data["cache_ttl_seconds"] == 300.0
        assert data["degraded"] is False
        assert data["record_counts"]["branches"] == 2
        assert data["errors"] == {}
        assert data["last_failure"] is None

    def test_diagnostics_before_any_fetch(self, mock_store):
        app.state.aggregator = CompanyAggregator(store=mock_store)
        client = TestClient(app)

        data = client.get("/v0/diagnostics").json()

        assert data["is_fresh"] is False
        assert data["last_fetch_time"] is None
        assert data["record_counts"] == {}

    def test_no_aggregator_returns_503(self):
        app.state.aggregator = None
        client = TestClient(app)

        response = client.get("/v0/companies")
        assert response.status_code == 503


class TestCacheControl:
    """Tests for admin-guarded cache endpoints."""

    def test_invalidate_without_key_configured(self, client, aggregator):
        with patch.object(settings, "admin_api_key", ""):
            response = client.post("/v0/cache/invalidate")

        assert response.status_code == 200
        assert response.json()["status"] == "invalidated"
        assert aggregator.is_fresh() is False

    def test_refresh(self, client, mock_store):
        with patch.object(settings, "admin_api_key", ""):
            response = client.post("/v0/cache/refresh")

        data = response.json()
        assert response.status_code == 200
        assert data["status"] == "refreshed"
        assert data["view_count"] == 2
        assert data["degraded_collections"] == []
        assert mock_store.list.call_count == 12

    def test_key_required_when_configured(self, client):
        with patch.object(settings, "admin_api_key", "s3cret"):
            missing = client.post("/v0/cache/refresh")
            wrong = client.post("/v0/cache/refresh", headers={"X-Admin-Key": "nope"})
            ok = client.post("/v0/cache/invalidate", headers={"X-Admin-Key": "s3cret"})

        assert missing.status_code == 401
        assert wrong.status_code == 403
        assert ok.status_code == 200

    def test_production_without_key_rejected(self, client):
        with patch.object(settings, "admin_api_key", ""), patch.object(settings, "environment", "production"):
            response = client.post("/v0/cache/invalidate")

        assert response.status_code == 503


class TestAlbRouting:
    """Tests for /directory prefixed routes."""

    def test_companies_via_prefix(self, client):
        response = client.get("/directory/v0/companies")
        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_diagnostics_via_prefix(self, client):
        response = client.get("/directory/v0/diagnostics")
        assert response.status_code == 200
