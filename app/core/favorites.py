"""Persisted set of liked entry ids."""

from __future__ import annotations

import json
import logging

from app.core.kv_store import LIKES_KEY, KeyValueStore, StorageError

logger = logging.getLogger(__name__)


class FavoritesStore:
    """Liked ids stored as a JSON object of id -> true, saved on every change."""

    def __init__(self, store: KeyValueStore, key: str = LIKES_KEY) -> None:
        self._store = store
        self._key = key
        self._liked: dict[str, bool] = self._load()

    def _load(self) -> dict[str, bool]:
        try:
            raw = self._store.get(self._key)
            data = json.loads(raw) if raw else {}
        except (StorageError, ValueError) as e:
            logger.warning(f"Ignoring unreadable favorites: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): True for k, v in data.items() if v}

    def _save(self) -> None:
        try:
            self._store.set(self._key, json.dumps(self._liked, ensure_ascii=False))
        except StorageError as e:
            logger.warning(f"Could not persist favorites: {e}")

    @property
    def liked_ids(self) -> frozenset[str]:
        return frozenset(self._liked)

    def is_liked(self, entry_id: str) -> bool:
        return self._liked.get(entry_id, False)

    def toggle_like(self, entry_id: str) -> bool:
        """Flip membership; returns whether the id is liked afterwards."""
        if entry_id in self._liked:
            del self._liked[entry_id]
        else:
            self._liked[entry_id] = True
        self._save()
        return entry_id in self._liked
