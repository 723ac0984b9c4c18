"""Tests for Settings.validate_startup and store selection."""

from unittest.mock import patch

import pytest

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from liftbook.config import Settings
from liftbook.stores import InMemoryBookingStore, create_store


class TestValidateStartup:
    def test_memory_backend_warns(self):
        warnings = Settings(_env_file=None).validate_startup()
        assert any("in-memory" in w for w in warnings)
        assert any("ADMIN_API_KEY" in w for w in warnings)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, store_backend="mongo").validate_startup()

    def test_firestore_needs_credentials(self):
        with pytest.raises(ValueError, match="SERVICE_ACCOUNT"):
            Settings(_env_file=None, store_backend="firestore",
                     firestore_project_id="demo").validate_startup()

    def test_firestore_placeholder_credentials(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, store_backend="firestore",
                     google_service_account_json="path/to/service-account.json",
                     firestore_project_id="demo").validate_startup()

    def test_firestore_needs_project(self):
        with pytest.raises(ValueError, match="PROJECT_ID"):
            Settings(_env_file=None, store_backend="firestore",
                     google_service_account_json="/keys/sa.json").validate_startup()

    def test_firestore_configured(self):
        warnings = Settings(_env_file=None, store_backend="firestore",
                            google_service_account_json="/keys/sa.json",
                            firestore_project_id="demo",
                            admin_api_key="k").validate_startup()
        assert warnings == []

    def test_negative_max_visible(self):
        with pytest.raises(ValueError, match="max_visible_per_day"):
            Settings(_env_file=None, max_visible_per_day=-1).validate_startup()

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("LIFTBOOK_ADVANCE_DAYS", "14")
        assert Settings(_env_file=None).advance_days == 14


class TestCreateStore:
    def test_memory(self):
        assert isinstance(create_store(Settings(_env_file=None)), InMemoryBookingStore)

    def test_firestore(self):
        config = Settings(_env_file=None, store_backend="firestore",
                          google_service_account_json="/keys/sa.json",
                          firestore_project_id="demo", firestore_collection="lifts")
        with patch("liftbook.stores.firestore.Credentials"), patch(
            "liftbook.stores.firestore.build"
        ):
            store = create_store(config)
        assert store._parent == "projects/demo/databases/(default)/documents"
        assert store._collection == "lifts"
