"""Tests for local key/value stores."""

from __future__ import annotations

from pathlib import Path

import pytest

from docsync.client.store import (
    MemoryStore,
    SqliteStore,
    load_json,
    load_json_object,
    save_json,
)


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SqliteStore:
    """Create a SqliteStore instance."""
    store = SqliteStore(tmp_path / "store.db")
    yield store
    store.close()


class TestMemoryStore:
    """Tests for MemoryStore."""

    def test_get_set_remove(self) -> None:
        """Values can be stored, read and removed."""
        store = MemoryStore({"a": "1"})

        store.set("b", "2")
        store.remove("a")
        store.remove("missing")

        assert store.get("a") is None
        assert store.get("b") == "2"
        assert store.keys() == ["b"]


class TestSqliteStore:
    """Tests for SqliteStore."""

    def test_get_missing(self, sqlite_store: SqliteStore) -> None:
        """Missing keys return None."""
        assert sqlite_store.get("nope") is None

    def test_overwrite(self, sqlite_store: SqliteStore) -> None:
        """Setting a key twice keeps the last value."""
        sqlite_store.set("key", "one")
        sqlite_store.set("key", "two")

        assert sqlite_store.get("key") == "two"
        assert sqlite_store.keys() == ["key"]

    def test_remove(self, sqlite_store: SqliteStore) -> None:
        """Removed keys are gone."""
        sqlite_store.set("key", "value")
        sqlite_store.remove("key")

        assert sqlite_store.get("key") is None

    def test_persistence(self, tmp_path: Path) -> None:
        """Values survive reopening the database."""
        db_path = tmp_path / "nested" / "store.db"
        with SqliteStore(db_path) as store:
            store.set("key", "value")
            assert store.path == db_path

        with SqliteStore(db_path) as store:
            assert store.get("key") == "value"


class TestJsonHelpers:
    """Tests for load_json / save_json."""

    def test_round_trip_unicode(self) -> None:
        """Non-ASCII text is stored as-is."""
        store = MemoryStore()

        save_json(store, "doc", {"title": "Café"})

        assert "Café" in store.get("doc")
        assert load_json(store, "doc") == {"title": "Café"}

    def test_missing_returns_default(self) -> None:
        """A missing key yields the default."""
        assert load_json(MemoryStore(), "doc") is None
        assert load_json(MemoryStore(), "doc", []) == []

    def test_malformed_returns_default(self, caplog: pytest.LogCaptureFixture) -> None:
        """Malformed JSON yields the default and logs a warning."""
        store = MemoryStore({"doc": "{broken"})

        assert load_json(store, "doc", "fallback") == "fallback"
        assert "malformed JSON under doc" in caplog.text

    def test_load_json_object_rejects_other_shapes(self) -> None:
        """Only objects are accepted as maps."""
        store = MemoryStore({"map": "[1, 2]", "ok": '{"a": 1}'})

        assert load_json_object(store, "map") == {}
        assert load_json_object(store, "ok") == {"a": 1}
        assert load_json_object(store, "missing") == {}
