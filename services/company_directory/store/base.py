"""
Base Record Store

Abstract interface for the document store the aggregator reads from.
A store lists the documents of one collection, optionally filtered and
ordered by store-side FilterExpressions, and raises StoreError on any
transport or authorization failure.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from ..core.types import FilterExpression


class StoreError(Exception):
    """A collection read failed (transport, auth or response format)."""

    def __init__(
        self,
        collection_id: str,
        message: str,
        status_code: Optional[int] = None,
    ):
        self.collection_id = collection_id
        self.message = message
        self.status_code = status_code
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"[{self.collection_id}] HTTP {self.status_code}: {self.message}"
        return f"[{self.collection_id}] {self.message}"


class RecordStore(ABC):
    """
    Abstract base class for record stores.

    Subclasses must implement:
    - list(): Return all documents of a collection matching the filters

    Implementations may hold network resources; close() releases them.
    """

    @abstractmethod
    async def list(
        self,
        collection_id: str,
        filters: Optional[Sequence[FilterExpression]] = None,
    ) -> list[dict[str, Any]]:
        """
        List documents in a collection.

        Args:
            collection_id: Physical collection id in the store
            filters: Ordered filter/order expressions applied store-side

        Returns:
            Raw documents as dicts

        Raises:
            StoreError: If the read fails for any reason
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        return None
