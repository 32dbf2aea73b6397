"""
Appwrite Record Store

REST client for the hosted Appwrite document database.

Appwrite Databases API:
- List documents:
  GET {endpoint}/databases/{databaseId}/collections/{collectionId}/documents
- Auth headers: X-Appwrite-Project, X-Appwrite-Key
- Queries: repeated `queries[]` params, each a JSON query object

Response format:
{
    "total": 42,
    "documents": [
        {"$id": "64f0...", "$createdAt": "2025-01-02T10:00:00.000+00:00", ...},
        ...
    ]
}

The API caps every response at a page limit (25 by default), so reads
page with limit + cursorAfter until a short page comes back.
"""

import json
import logging
from typing import Any, Optional, Sequence

import httpx

from ..core.constants import DEFAULT_PAGE_SIZE, DEFAULT_STORE_ENDPOINT, MAX_PAGES_PER_COLLECTION
from ..core.types import FilterExpression, FilterKind, Query
from .base import RecordStore, StoreError

logger = logging.getLogger(__name__)


class AppwriteRecordStore(RecordStore):
    """
    Record store backed by the Appwrite REST API.

    Usage:
        store = AppwriteRecordStore(
            project_id="68b1...",
            database_id="68b1...",
            api_key="...",
        )
        docs = await store.list("branches", [Query.equal("is_active", True)])
        await store.close()
    """

    def __init__(
        self,
        project_id: str,
        database_id: str,
        api_key: str = "",
        endpoint: str = DEFAULT_STORE_ENDPOINT,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: float = 30.0,
    ):
        self.project_id = project_id
        self.database_id = database_id
        self.endpoint = endpoint.rstrip("/")
        self.page_size = page_size
        self._api_key = api_key
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._build_headers(),
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Appwrite-Project": self.project_id,
        }
        if self._api_key:
            headers["X-Appwrite-Key"] = self._api_key
        return headers

    def documents_url(self, collection_id: str) -> str:
        """URL of a collection's document listing."""
        return f"{self.endpoint}/databases/{self.database_id}/collections/{collection_id}/documents"

    def _parse_documents(self, collection_id: str, data: Any) -> list[dict[str, Any]]:
        """Extract the document list from a listing response."""
        if not isinstance(data, dict) or not isinstance(data.get("documents"), list):
            raise StoreError(collection_id, "Malformed listing response: missing 'documents'")
        return data["documents"]

    async def list(
        self,
        collection_id: str,
        filters: Optional[Sequence[FilterExpression]] = None,
    ) -> list[dict[str, Any]]:
        """
        List all documents of a collection, following pages.

        A caller-supplied limit disables paging and returns a single page.
        """
        filters = list(filters or [])
        caller_limited = any(f.kind == FilterKind.LIMIT for f in filters)

        client = await self._get_client()
        url = self.documents_url(collection_id)

        documents: list[dict[str, Any]] = []
        cursor: Optional[str] = None

        try:
            for page in range(MAX_PAGES_PER_COLLECTION):
                page_filters = list(filters)
                if not caller_limited:
                    page_filters.append(Query.limit(self.page_size))
                    if cursor is not None:
                        page_filters.append(Query.cursor_after(cursor))

                params = [("queries[]", json.dumps(f.to_query())) for f in page_filters]
                response = await client.get(url, params=params)
                response.raise_for_status()
                batch = self._parse_documents(collection_id, response.json())
                documents.extend(batch)

                if caller_limited or len(batch) < self.page_size:
                    break

                cursor = batch[-1].get("$id")
                if cursor is None:
                    logger.warning(f"[{collection_id}] Page without $id, stopping pagination")
                    break

                logger.debug(f"[{collection_id}] Pagination: page {page + 1}, {len(documents)} documents so far")
            else:
                logger.warning(
                    f"[{collection_id}] Stopped after {MAX_PAGES_PER_COLLECTION} pages "
                    f"({len(documents)} documents)"
                )

            return documents

        except httpx.HTTPStatusError as e:
            body = e.response.text[:200] if e.response.text else "no body"
            logger.error(f"[{collection_id}] HTTP error {e.response.status_code}: {body}")
            raise StoreError(collection_id, body, status_code=e.response.status_code) from e
        except httpx.RequestError as e:
            logger.error(f"[{collection_id}] Request failed: {type(e).__name__}: {e}")
            raise StoreError(collection_id, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            # Invalid JSON body
            logger.error(f"[{collection_id}] Invalid response body: {e}")
            raise StoreError(collection_id, f"Invalid response body: {e}") from e
