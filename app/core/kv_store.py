"""Key-value persistence port for client-side state.

Values are strings, like browser local storage. Every operation may raise
StorageError; callers treat failures as absent state.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from typing import Protocol

logger = logging.getLogger(__name__)

META_CACHE_KEY = "teum_meta_cache_v1"
LIKES_KEY = "teum_likes_v1"
QUOTE_IDX_KEY = "teum_quote_idx_v1"

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS kv_store (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL,
  updated_at TEXT DEFAULT (datetime('now'))
);
"""


class StorageError(Exception):
    """Reading or writing persisted state failed."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKVStore:
    """Process-local store. Nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SQLiteKVStore:
    """Store backed by a ``kv_store`` table. Thread-safe."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    def init(self) -> None:
        try:
            with self._lock:
                self._conn.executescript(SCHEMA_SQL)
                self._conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Could not initialize kv_store: {e}") from e

    def get(self, key: str) -> str | None:
        try:
            with self._lock:
                cur = self._conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
                row = cur.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Could not read {key}: {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, datetime('now'))
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value),
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Could not write {key}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            with self._lock:
                self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                self._conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Could not remove {key}: {e}") from e


def open_sqlite_store(db_path: str) -> SQLiteKVStore:
    """Open (creating if needed) the database file and its kv_store table."""
    if db_path != ":memory:":
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False)
    store = SQLiteKVStore(conn)
    store.init()
    return store


# Global store instance
_store: KeyValueStore | None = None


def init_kv_store(db_path: str) -> KeyValueStore:
    """Initialize the global store. Falls back to memory if the file is unusable."""
    global _store
    try:
        _store = open_sqlite_store(db_path)
    except (OSError, sqlite3.Error, StorageError) as e:
        logger.warning(f"Persistent store unavailable at {db_path} ({e}); using memory")
        _store = MemoryKVStore()
    return _store


def get_kv_store() -> KeyValueStore:
    """Get the global store. Must call init_kv_store first."""
    if _store is None:
        raise RuntimeError("KeyValueStore not initialized. Call init_kv_store first.")
    return _store
