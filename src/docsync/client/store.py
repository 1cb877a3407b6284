"""Local key/value storage for documents, shadows and auth state.

This module provides:
- KeyValueStore: Protocol for the synchronous string key/value store
- MemoryStore: Dict-backed store (tests, embedding)
- SqliteStore: SQLite-based persistent store
- load_json / save_json: JSON helpers that never fail on malformed data

Architecture:
    Every value is JSON-encoded text under a caller-chosen key. A value that
    fails to decode is treated as absent, never as a fatal error, because the
    embedding application owns the data and may have written anything.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Protocol for the synchronous key/value store."""

    def get(self, key: str) -> str | None:
        """Return the raw value for key, or None if absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a raw value under key."""
        ...

    def remove(self, key: str) -> None:
        """Delete key if present."""
        ...


class MemoryStore:
    """In-memory key/value store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        """List stored keys in insertion order."""
        with self._lock:
            return list(self._data)


class SqliteStore:
    """SQLite-based key/value store.

    A single table holds every key; each write commits immediately so a
    whole-map write (e.g. the shadow snapshot) is atomic for readers.
    """

    def __init__(self, db_path: Path) -> None:
        """Open (or create) the store database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Lock for thread-safe database access
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row

        # Enable WAL mode for better concurrency
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
        """)

    @property
    def path(self) -> Path:
        """Path of the database file."""
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> SqliteStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def get(self, key: str) -> str | None:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT value FROM kv_store WHERE key = ?",
                (key,),
            )
            row = cursor.fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
                (key, value),
            )

    def remove(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def keys(self) -> list[str]:
        """List stored keys in sorted order."""
        with self._lock:
            rows = self._conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [row["key"] for row in rows]


def load_json(store: KeyValueStore, key: str, default: Any = None) -> Any:
    """Read and decode a JSON value.

    Args:
        store: Store to read from.
        key: Key to read.
        default: Value returned when the key is absent or malformed.

    Returns:
        Decoded value, or default.
    """
    raw = store.get(key)
    if not raw:
        return default

    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed JSON under %s", key)
        return default


def save_json(store: KeyValueStore, key: str, value: Any) -> None:
    """Encode a value as JSON and store it."""
    store.set(key, json.dumps(value, ensure_ascii=False))


def load_json_object(store: KeyValueStore, key: str) -> dict[str, Any]:
    """Read a JSON object, treating any other shape as empty."""
    value = load_json(store, key, {})
    if not isinstance(value, dict):
        logger.warning("Expected a JSON object under %s, found %s", key, type(value).__name__)
        return {}
    return value
