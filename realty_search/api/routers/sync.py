"""
Sync Endpoints
Manual trigger for an incremental (or forced full) index sync.
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_sync_engine
from ..models.sync import SyncResponse
from ...sync.sync_engine import SyncEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["sync"])


@router.post("/sync", response_model=SyncResponse, status_code=status.HTTP_200_OK)
def trigger_sync(
    force: bool = Query(False, description="Reset the cursor and resync every listing"),
    engine: SyncEngine = Depends(get_sync_engine),
) -> SyncResponse:
    """
    Run one sync pass and return its summary.

    Safe to call repeatedly: imports are upserts keyed by listing id.
    """
    logger.info(f"Sync triggered via API (force={force})")
    summary = engine.run(force=force)
    return SyncResponse(**summary.to_dict())
