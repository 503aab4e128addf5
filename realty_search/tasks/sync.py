"""
Index Sync Tasks
Scheduled incremental sync of listings into the search index.
"""

import logging
from typing import Any, Dict, Optional

from .celery_app import app

logger = logging.getLogger(__name__)


@app.task(bind=True, name="tasks.sync_search_index")
def sync_search_index(self, force: bool = False, batch_size: Optional[int] = None) -> Dict[str, Any]:
    """
    Run one incremental sync pass.

    Failures are not retried here: the cursor stays at the last imported
    batch and the next scheduled run picks up from there.

    Args:
        force: Reset the cursor and resync everything
        batch_size: Override the configured batch size

    Returns:
        Sync summary dict, or {"status": "error", ...} on failure
    """
    from ..errors import RealtySearchError
    from ..sync.factory import build_sync_engine

    try:
        logger.info(f"Starting search index sync (force={force})")
        engine = build_sync_engine(batch_size=batch_size)
        summary = engine.run(force=force)

        result = summary.to_dict()
        result["status"] = "skipped" if summary.skipped else "success"
        return result

    except RealtySearchError as e:
        logger.error(f"Search index sync failed: {e}", exc_info=True)
        return {
            "status": "error",
            "ok": False,
            "error": str(e),
            "retryable": getattr(e, "retryable", False),
        }
