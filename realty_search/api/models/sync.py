"""
Sync Models
"""

from pydantic import BaseModel, Field


class SyncResponse(BaseModel):
    """Summary of one sync run."""

    ok: bool
    last_cursor_time: int = Field(..., alias="lastCursorTime")
    last_cursor_id: int = Field(..., alias="lastCursorId")
    new_last_synced_at: int = Field(..., alias="newLastSyncedAt")
    new_last_property_id: int = Field(..., alias="newLastPropertyId")
    upserted: int
    batches: int = 0
    skipped: bool = False
