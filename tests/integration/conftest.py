"""
Integration test fixtures
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from realty_search.api.dependencies import (
    get_search_service,
    get_sync_engine,
    get_typesense_client,
)
from realty_search.api.main import create_app
from realty_search.search.search_service import SearchService
from realty_search.sync.cursor import InMemoryCursorStore
from realty_search.sync.sync_engine import SyncEngine


@pytest.fixture
def listings(fake_engine, doc_factory):
    """3 featured and 12 regular listings in the properties collection."""
    featured = [
        doc_factory(900 + i, updated_at=5000 + i, featured=True, rank=i + 1, title_en=f"Featured {i}")
        for i in range(3)
    ]
    rest = [
        doc_factory(i, updated_at=1000 + i, title_en=f"Listing {i}", title_ar=f"عقار {i}")
        for i in range(1, 13)
    ]
    fake_engine.add("properties", featured + rest)
    return fake_engine


@pytest.fixture
def sync_cursor_store():
    return InMemoryCursorStore()


@pytest.fixture
def app(listings, primary_store, sync_cursor_store):
    """App wired to the in-memory engine, primary store and cursor store."""
    application = create_app()

    health_client = MagicMock()
    health_client.health.return_value = True

    application.dependency_overrides[get_search_service] = lambda: SearchService(
        listings, collection="properties"
    )
    application.dependency_overrides[get_sync_engine] = lambda: SyncEngine(
        primary_store, listings, sync_cursor_store, collection="properties", batch_size=2
    )
    application.dependency_overrides[get_typesense_client] = lambda: health_client
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def test_api_client(app):
    """Test API client."""
    with TestClient(app) as client:
        yield client
