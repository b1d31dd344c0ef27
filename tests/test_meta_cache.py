"""Tests for meta_cache.py"""

import json

import pytest

from app.core.kv_store import META_CACHE_KEY, MemoryKVStore, StorageError
from app.core.meta_cache import MetaCache
from app.providers.content_types import EntryMeta, EntryType

T0 = 1_700_000_000.0


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class BrokenStore:
    def get(self, key):
        raise StorageError("disk gone")

    def set(self, key, value):
        raise StorageError("disk full")

    def remove(self, key):
        raise StorageError("disk gone")


@pytest.fixture
def entries():
    return [
        EntryMeta(id="a", author="Seneca", page_title="On brevity"),
        EntryMeta(id="b", type=EntryType.JOURNAL, date="2024-01-01"),
    ]


class TestMetaCache:
    """Tests for TTL handling and corruption tolerance."""

    def test_roundtrip(self, entries):
        store = MemoryKVStore()
        cache = MetaCache(store, clock=FakeClock(T0))
        cache.save(entries)
        assert cache.load() == entries
        payload = json.loads(store.get(META_CACHE_KEY))
        assert payload["at"] == int(T0 * 1000)
        assert payload["meta"][0]["pageTitle"] == "On brevity"

    def test_ttl(self, entries):
        clock = FakeClock(T0)
        cache = MetaCache(MemoryKVStore(), clock=clock)
        cache.save(entries)

        clock.now = T0 + 9 * 60
        assert cache.load() == entries

        clock.now = T0 + 11 * 60
        assert cache.load() is None

    def test_missing(self):
        assert MetaCache(MemoryKVStore()).load() is None

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[]",
            json.dumps({"meta": []}),
            json.dumps({"at": 0, "meta": []}),
            json.dumps({"at": "yesterday", "meta": []}),
            json.dumps({"at": T0 * 1000, "meta": {"a": 1}}),
        ],
    )
    def test_malformed_payload_is_absent(self, raw):
        store = MemoryKVStore({META_CACHE_KEY: raw})
        assert MetaCache(store, clock=FakeClock(T0)).load() is None

    def test_storage_failures_are_swallowed(self, entries):
        cache = MetaCache(BrokenStore())
        cache.save(entries)
        assert cache.load() is None
