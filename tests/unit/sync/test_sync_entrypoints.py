"""
Tests for the Celery task, the CLI and the engine factory.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from realty_search.config import get_settings
from realty_search.db.session import reset_engine
from realty_search.errors import UpstreamError
from realty_search.scripts import run_sync
from realty_search.sync.cursor import SqlCursorStore, SyncCursor
from realty_search.sync.factory import build_sync_engine
from realty_search.sync.lease import RedisRunLease
from realty_search.sync.primary_store import SqlPrimaryStore
from realty_search.sync.sync_engine import SyncSummary
from realty_search.tasks.celery_app import app as celery_app
from realty_search.tasks.sync import sync_search_index


def _summary(**kwargs):
    defaults = {
        "ok": True,
        "start_cursor": SyncCursor(10, 1),
        "end_cursor": SyncCursor(20, 5),
        "upserted": 4,
        "batches": 2,
    }
    defaults.update(kwargs)
    return SyncSummary(**defaults)


class TestSyncTask:
    def test_registered_and_scheduled(self):
        assert "tasks.sync_search_index" in celery_app.tasks
        entry = celery_app.conf.beat_schedule["sync-search-index"]
        assert entry["task"] == "tasks.sync_search_index"
        assert entry["kwargs"] == {"force": False}

    @patch("realty_search.sync.factory.build_sync_engine")
    def test_success(self, mock_build):
        mock_build.return_value.run.return_value = _summary()

        result = sync_search_index.run(force=True, batch_size=50)

        mock_build.assert_called_once_with(batch_size=50)
        mock_build.return_value.run.assert_called_once_with(force=True)
        assert result["status"] == "success"
        assert result["newLastSyncedAt"] == 20
        assert result["upserted"] == 4

    @patch("realty_search.sync.factory.build_sync_engine")
    def test_skipped(self, mock_build):
        mock_build.return_value.run.return_value = _summary(skipped=True, upserted=0, batches=0)

        assert sync_search_index.run()["status"] == "skipped"

    @patch("realty_search.sync.factory.build_sync_engine")
    def test_failure_is_reported(self, mock_build):
        mock_build.return_value.run.side_effect = UpstreamError("db down", service="primary_store")

        result = sync_search_index.run()

        assert result["status"] == "error"
        assert result["ok"] is False
        assert result["retryable"] is True
        assert "db down" in result["error"]


class TestCli:
    @patch("realty_search.scripts.run_sync.build_sync_engine")
    def test_prints_summary(self, mock_build, capsys):
        mock_build.return_value.run.return_value = _summary()

        assert run_sync.main(["--force", "--batch-size", "25", "--no-lease"]) == 0

        _, kwargs = mock_build.call_args
        assert kwargs == {"batch_size": 25, "use_lease": False}
        mock_build.return_value.run.assert_called_once_with(force=True)
        printed = json.loads(capsys.readouterr().out)
        assert printed["newLastPropertyId"] == 5

    @patch("realty_search.scripts.run_sync.build_sync_engine")
    def test_failure_exit_code(self, mock_build):
        mock_build.return_value.run.side_effect = UpstreamError("engine down", service="search_engine")

        assert run_sync.main([]) == 1

    def test_invalid_batch_size(self):
        assert run_sync.main(["--batch-size", "0"]) == 2

    def test_missing_configuration(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL")

        assert run_sync.main([]) == 2


class TestFactory:
    @pytest.fixture(autouse=True)
    def _dispose_engine(self):
        yield
        reset_engine()

    def test_wires_sql_stores(self):
        engine = build_sync_engine(get_settings(), batch_size=7, use_lease=False)

        assert isinstance(engine.primary_store, SqlPrimaryStore)
        assert isinstance(engine.cursor_store, SqlCursorStore)
        assert engine.batch_size == 7
        assert engine.lease is None
        assert engine.collection == "properties"

    @patch("realty_search.sync.factory.redis.Redis.from_url")
    def test_redis_lease(self, mock_from_url, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")
        mock_from_url.return_value = MagicMock()

        engine = build_sync_engine(get_settings(), use_lease=True)

        assert isinstance(engine.lease, RedisRunLease)
        assert engine.batch_size == 200
        mock_from_url.assert_called_once_with("redis://cache:6379/1")
