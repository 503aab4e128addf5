"""
Sync Engine Factory
Wire the sync engine to the configured database, engine and lease.
"""

import logging
from typing import Optional

import redis

from ..config import Settings, get_settings
from ..db.session import get_session_factory
from ..engine.client import TypesenseClient
from .cursor import SqlCursorStore
from .lease import RedisRunLease
from .primary_store import SqlPrimaryStore
from .sync_engine import SyncEngine

logger = logging.getLogger(__name__)


def build_sync_engine(
    settings: Optional[Settings] = None,
    batch_size: Optional[int] = None,
    use_lease: Optional[bool] = None,
) -> SyncEngine:
    """
    Build a SyncEngine from settings.

    Args:
        settings: Settings (defaults to the global settings)
        batch_size: Override SYNC_BATCH_SIZE
        use_lease: Override SYNC_USE_LEASE

    Returns:
        SyncEngine
    """
    settings = settings or get_settings()
    session_factory = get_session_factory()

    lease = None
    if settings.sync_use_lease if use_lease is None else use_lease:
        lease = RedisRunLease(redis.Redis.from_url(settings.redis_url))

    return SyncEngine(
        primary_store=SqlPrimaryStore(session_factory),
        search_client=TypesenseClient.from_settings(settings),
        cursor_store=SqlCursorStore(session_factory),
        collection=settings.typesense_collection,
        batch_size=batch_size or settings.sync_batch_size,
        lease=lease,
        lease_ttl_seconds=settings.sync_lease_ttl_seconds,
    )
