"""
Sync Cursor
Durable (watermark_time, watermark_id) pair and its stores.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError

from ..db.models import Base, SyncStateRecord
from ..errors import UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class SyncCursor:
    """
    Replication watermark.

    A row is seen iff its change epoch is below watermark_time, or equal to
    it with an id no greater than watermark_id.
    """

    watermark_time: int = 0
    watermark_id: int = 0

    @classmethod
    def initial(cls) -> "SyncCursor":
        return cls(0, 0)

    def has_seen(self, epoch: int, row_id: int) -> bool:
        if epoch < self.watermark_time:
            return True
        return epoch == self.watermark_time and row_id <= self.watermark_id

    def advance(self, epoch: int, row_id: int) -> "SyncCursor":
        """Cursor moved to (epoch, row_id), never backwards."""
        return max(self, SyncCursor(int(epoch), int(row_id)))


class CursorStore:
    """Durable cursor storage keyed by collection name."""

    def load(self, key: str) -> SyncCursor:
        raise NotImplementedError

    def save(self, key: str, cursor: SyncCursor) -> None:
        raise NotImplementedError


class InMemoryCursorStore(CursorStore):
    def __init__(self, initial: Optional[Dict[str, SyncCursor]] = None):
        self.cursors: Dict[str, SyncCursor] = dict(initial or {})
        self.saves = 0

    def load(self, key: str) -> SyncCursor:
        return self.cursors.get(key, SyncCursor.initial())

    def save(self, key: str, cursor: SyncCursor) -> None:
        self.cursors[key] = cursor
        self.saves += 1


class SqlCursorStore(CursorStore):
    """
    Cursor stored in the search_sync_state table.

    Every save commits on its own so a crash mid-run keeps the last
    confirmed batch.
    """

    def __init__(self, session_factory, create_table: bool = True):
        self.session_factory = session_factory
        self._table_ready = not create_table

    def _ensure_table(self, session) -> None:
        if self._table_ready:
            return
        Base.metadata.create_all(bind=session.get_bind(), tables=[SyncStateRecord.__table__])
        self._table_ready = True

    def load(self, key: str) -> SyncCursor:
        session = self.session_factory()
        try:
            self._ensure_table(session)
            record = session.execute(
                select(SyncStateRecord).where(SyncStateRecord.id == key)
            ).scalar_one_or_none()
            if record is None:
                return SyncCursor.initial()
            return SyncCursor(int(record.last_synced_at), int(record.last_property_id or 0))
        except SQLAlchemyError as e:
            logger.error(f"Failed to load sync cursor '{key}': {e}")
            raise UpstreamError(f"Cursor load failed: {e}", service="primary_store") from e
        finally:
            session.close()

    def save(self, key: str, cursor: SyncCursor) -> None:
        session = self.session_factory()
        try:
            self._ensure_table(session)
            stmt = insert(SyncStateRecord).values(
                id=key,
                last_synced_at=cursor.watermark_time,
                last_property_id=cursor.watermark_id,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[SyncStateRecord.id],
                set_={
                    "last_synced_at": stmt.excluded.last_synced_at,
                    "last_property_id": stmt.excluded.last_property_id,
                    "updated_at": func.now(),
                },
            )
            session.execute(stmt)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save sync cursor '{key}': {e}")
            raise UpstreamError(f"Cursor save failed: {e}", service="primary_store") from e
        finally:
            session.close()
