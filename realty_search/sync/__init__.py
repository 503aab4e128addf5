"""
Index Synchronization
"""

from .cursor import CursorStore, InMemoryCursorStore, SqlCursorStore, SyncCursor
from .documents import UNRANKED_FEATURED_RANK, build_document
from .lease import InMemoryRunLease, RedisRunLease, RunLease
from .primary_store import ListingRow, PrimaryStore, SqlPrimaryStore
from .sync_engine import SyncEngine, SyncState, SyncSummary, check_import_results

__all__ = [
    "SyncCursor",
    "CursorStore",
    "InMemoryCursorStore",
    "SqlCursorStore",
    "RunLease",
    "InMemoryRunLease",
    "RedisRunLease",
    "ListingRow",
    "PrimaryStore",
    "SqlPrimaryStore",
    "build_document",
    "UNRANKED_FEATURED_RANK",
    "SyncEngine",
    "SyncState",
    "SyncSummary",
    "check_import_results",
]
