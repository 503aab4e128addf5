"""
Synchronization Engine
Incremental cursor-based replication of listings into the search index.

Run state machine:
    INIT -> ENSURE_SCHEMA -> (FETCH_BATCH -> IMPORT_BATCH -> ADVANCE_CURSOR)* -> DONE | FAILED
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from ..engine.client import ImportResult
from ..engine.schema import SchemaChange, reconcile_schema, schema_for
from ..errors import ImportRejectedError
from .cursor import CursorStore, SyncCursor
from .documents import build_document
from .lease import RunLease, new_owner_id
from .primary_store import PrimaryStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 200
DEFAULT_LEASE_TTL_SECONDS = 900


class SyncState(Enum):
    INIT = "init"
    ENSURE_SCHEMA = "ensure_schema"
    FETCH_BATCH = "fetch_batch"
    IMPORT_BATCH = "import_batch"
    ADVANCE_CURSOR = "advance_cursor"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SyncSummary:
    """Outcome of one run."""

    ok: bool
    start_cursor: SyncCursor
    end_cursor: SyncCursor
    upserted: int = 0
    batches: int = 0
    skipped: bool = False
    schema_change: Optional[SchemaChange] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "lastCursorTime": self.start_cursor.watermark_time,
            "lastCursorId": self.start_cursor.watermark_id,
            "newLastSyncedAt": self.end_cursor.watermark_time,
            "newLastPropertyId": self.end_cursor.watermark_id,
            "upserted": self.upserted,
            "batches": self.batches,
            "skipped": self.skipped,
        }


def check_import_results(results: List[ImportResult], total: int) -> None:
    """
    Raise if the engine rejected any document of the batch.

    A result list shorter than the batch also counts as a failure: documents
    without a confirmation were not written.

    Raises:
        ImportRejectedError: On any rejected or unconfirmed document
    """
    failures = [r for r in results if not r.success]
    unconfirmed = max(0, total - len(results))
    if failures or unconfirmed:
        first_error = failures[0].error if failures else "missing import results"
        raise ImportRejectedError(len(failures) + unconfirmed, total, first_error or "Unknown error")


class SyncEngine:
    """
    Replicates changed listings from the primary store into the search engine.

    The cursor is persisted after every imported batch, so an aborted run
    resumes from the last confirmed batch on the next invocation.

    Example:
        engine = SyncEngine(store, client, cursors, collection="properties")
        summary = engine.run()
    """

    def __init__(
        self,
        primary_store: PrimaryStore,
        search_client,
        cursor_store: CursorStore,
        collection: str = "properties",
        batch_size: int = DEFAULT_BATCH_SIZE,
        lease: Optional[RunLease] = None,
        lease_ttl_seconds: int = DEFAULT_LEASE_TTL_SECONDS,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.primary_store = primary_store
        self.search_client = search_client
        self.cursor_store = cursor_store
        self.collection = collection
        self.batch_size = batch_size
        self.lease = lease
        self.lease_ttl_seconds = lease_ttl_seconds
        self.state = SyncState.INIT
        self.transitions: List[SyncState] = []

    def _transition(self, state: SyncState) -> None:
        self.state = state
        self.transitions.append(state)
        logger.debug(f"Sync '{self.collection}' -> {state.value}")

    def run(self, force: bool = False) -> SyncSummary:
        """
        Run one sync pass.

        Args:
            force: Start from the beginning instead of the stored cursor

        Returns:
            SyncSummary (skipped=True if another run holds the lease)

        Raises:
            UpstreamError: On any store, engine or schema failure. The cursor
                stays at the last successfully imported batch.
        """
        if self.lease is None:
            return self._run(force)

        owner = new_owner_id()
        lease_name = f"sync:{self.collection}"
        if not self.lease.acquire(lease_name, owner, self.lease_ttl_seconds):
            logger.info(f"Sync '{self.collection}' already running elsewhere, skipping")
            # Report where the stored cursor stands; nothing is read or imported
            cursor = self.cursor_store.load(self.collection)
            return SyncSummary(ok=True, start_cursor=cursor, end_cursor=cursor, skipped=True)

        try:
            return self._run(force)
        finally:
            self.lease.release(lease_name, owner)

    def _run(self, force: bool) -> SyncSummary:
        started = time.monotonic()
        self.transitions = []
        self._transition(SyncState.INIT)

        try:
            start = SyncCursor.initial() if force else self.cursor_store.load(self.collection)
            if force:
                logger.info(f"Forced full resync of '{self.collection}'")

            self._transition(SyncState.ENSURE_SCHEMA)
            schema_change = reconcile_schema(self.search_client, schema_for(self.collection))

            cursor = start
            upserted = 0
            batches = 0

            while True:
                self._transition(SyncState.FETCH_BATCH)
                rows = self.primary_store.fetch_changed(cursor, self.batch_size)
                if not rows:
                    break

                self._transition(SyncState.IMPORT_BATCH)
                docs = [build_document(row) for row in rows]
                results = self.search_client.import_documents(self.collection, docs, action="upsert")
                check_import_results(results, len(docs))

                self._transition(SyncState.ADVANCE_CURSOR)
                last = rows[-1]
                cursor = cursor.advance(last.change_epoch, last.property_id)
                self.cursor_store.save(self.collection, cursor)

                upserted += len(docs)
                batches += 1
                logger.info(
                    f"Sync '{self.collection}' batch {batches}: {len(docs)} documents, "
                    f"cursor=({cursor.watermark_time}, {cursor.watermark_id})"
                )

            if force and batches == 0:
                # Forced run over an empty store still resets the stored cursor
                self.cursor_store.save(self.collection, cursor)

        except Exception:
            self._transition(SyncState.FAILED)
            logger.error(f"Sync '{self.collection}' failed", exc_info=True)
            raise

        self._transition(SyncState.DONE)
        summary = SyncSummary(
            ok=True,
            start_cursor=start,
            end_cursor=cursor,
            upserted=upserted,
            batches=batches,
            schema_change=schema_change,
            duration_seconds=time.monotonic() - started,
        )
        logger.info(
            f"Sync '{self.collection}' done: {upserted} upserted in {batches} batches "
            f"({summary.duration_seconds:.2f}s)"
        )
        return summary
