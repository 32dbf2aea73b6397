# Company Directory Record Stores
# Read access to the hosted document database
"""
Record stores the aggregator reads collections from.

Each store:
- Lists the documents of one collection per call
- Applies equality filters and ordering store-side
- Raises StoreError on transport, auth or format failures
"""

from .base import RecordStore, StoreError
from .appwrite import AppwriteRecordStore

__all__ = [
    "RecordStore",
    "StoreError",
    "AppwriteRecordStore",
]
