"""
Health Check Endpoints
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from ..dependencies import get_api_settings, get_typesense_client
from ...config import Settings
from ...engine.client import TypesenseClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """
    Basic health check.

    Returns:
        Simple health status
    """
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/status", status_code=status.HTTP_200_OK)
def status_check(
    settings: Settings = Depends(get_api_settings),
    client: TypesenseClient = Depends(get_typesense_client),
) -> Dict[str, Any]:
    """
    Status including search engine reachability.
    """
    engine_ok = client.health()
    if not engine_ok:
        logger.warning("Search engine health check failed")

    return {
        "status": "healthy" if engine_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "components": {
            "search_engine": {
                "status": "healthy" if engine_ok else "unhealthy",
                "collection": settings.typesense_collection,
            }
        },
    }
