"""Time-limited cache of the entry metadata list."""

from __future__ import annotations

import json
import logging
import time
from typing import Callable

from app.core.kv_store import META_CACHE_KEY, KeyValueStore, StorageError
from app.providers.content_types import EntryMeta, entries_from_dicts

logger = logging.getLogger(__name__)

META_CACHE_TTL = 10 * 60  # seconds


class MetaCache:
    """Persists ``{"at": epoch_ms, "meta": [...]}`` under one key."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        key: str = META_CACHE_KEY,
        ttl: float = META_CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._key = key
        self._ttl_ms = ttl * 1000
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def load(self) -> list[EntryMeta] | None:
        """Return the cached list, or None if missing, malformed or expired."""
        try:
            raw = self._store.get(self._key)
            if not raw:
                return None
            payload = json.loads(raw)
        except (StorageError, ValueError) as e:
            logger.warning(f"Ignoring unreadable metadata cache: {e}")
            return None

        if not isinstance(payload, dict):
            return None
        at = payload.get("at")
        meta = payload.get("meta")
        if not at or not isinstance(at, (int, float)) or not isinstance(meta, list):
            return None
        if self._now_ms() - at > self._ttl_ms:
            logger.debug("Metadata cache expired")
            return None
        return entries_from_dicts(meta)

    def save(self, meta: list[EntryMeta]) -> None:
        payload = {"at": self._now_ms(), "meta": [m.to_dict() for m in meta]}
        try:
            self._store.set(self._key, json.dumps(payload, ensure_ascii=False))
        except StorageError as e:
            logger.warning(f"Could not persist metadata cache: {e}")
