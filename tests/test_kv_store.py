"""Tests for kv_store.py"""

import sqlite3

import pytest

from app.core.kv_store import (
    MemoryKVStore,
    SQLiteKVStore,
    StorageError,
    get_kv_store,
    init_kv_store,
    open_sqlite_store,
)


@pytest.fixture
def sqlite_store():
    return open_sqlite_store(":memory:")


class TestSQLiteKVStore:
    """Tests for SQLiteKVStore."""

    def test_roundtrip(self, sqlite_store):
        assert sqlite_store.get("k") is None
        sqlite_store.set("k", "v1")
        sqlite_store.set("k", "v2")
        assert sqlite_store.get("k") == "v2"
        sqlite_store.remove("k")
        assert sqlite_store.get("k") is None

    def test_persists_across_connections(self, tmp_path):
        path = str(tmp_path / "data" / "teum.db")
        open_sqlite_store(path).set("teum_likes_v1", '{"a": true}')
        assert open_sqlite_store(path).get("teum_likes_v1") == '{"a": true}'

    def test_errors_are_wrapped(self):
        conn = sqlite3.connect(":memory:", check_same_thread=False)
        store = SQLiteKVStore(conn)
        # table never created
        with pytest.raises(StorageError):
            store.get("k")
        with pytest.raises(StorageError):
            store.set("k", "v")
        conn.close()
        with pytest.raises(StorageError):
            store.remove("k")


class TestMemoryKVStore:
    """Tests for MemoryKVStore."""

    def test_roundtrip(self):
        store = MemoryKVStore({"a": "1"})
        assert store.get("a") == "1"
        store.set("b", "2")
        store.remove("a")
        store.remove("missing")
        assert store.get("a") is None
        assert store.get("b") == "2"


class TestGlobalStore:
    """Tests for init_kv_store / get_kv_store."""

    def test_init_sqlite(self, tmp_path):
        store = init_kv_store(str(tmp_path / "teum.db"))
        assert isinstance(store, SQLiteKVStore)
        assert get_kv_store() is store

    def test_falls_back_to_memory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        store = init_kv_store(str(blocker / "teum.db"))
        assert isinstance(store, MemoryKVStore)
