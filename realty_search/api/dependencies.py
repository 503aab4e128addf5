"""
Dependency Injection
FastAPI dependencies for the search service and the sync engine.
"""

import logging
from typing import Optional

from ..config import Settings, get_settings
from ..engine.client import TypesenseClient
from ..search.search_service import SearchService
from ..sync.factory import build_sync_engine
from ..sync.sync_engine import SyncEngine

logger = logging.getLogger(__name__)

_typesense_client: Optional[TypesenseClient] = None


def get_typesense_client() -> TypesenseClient:
    """Get Typesense client (singleton)."""
    global _typesense_client
    if _typesense_client is None:
        settings = get_settings()
        _typesense_client = TypesenseClient.from_settings(settings)
        logger.info(f"Typesense client created for {settings.typesense_base_url}")
    return _typesense_client


def get_search_service() -> SearchService:
    """
    Get search service instance.

    Use as FastAPI dependency:
        @router.post("/search")
        def search(service: SearchService = Depends(get_search_service)):
            ...
    """
    settings = get_settings()
    return SearchService(
        client=get_typesense_client(),
        collection=settings.typesense_collection,
        default_purpose=settings.default_purpose,
        default_country_id=settings.default_country_id,
        max_page_size=settings.max_page_size,
    )


def get_sync_engine() -> SyncEngine:
    return build_sync_engine(get_settings())


def get_api_settings() -> Settings:
    return get_settings()
