"""Wrap-around cursor over a list whose content loads incrementally."""

from __future__ import annotations

import logging
import math
from typing import Callable

from app.core.kv_store import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

PREFETCH_STEP = 5


def wrap_index(idx: int, total: int) -> int:
    if total <= 0:
        return 0
    return ((idx % total) + total) % total


class Pager:
    """Cursor with prefetch-ahead.

    The raw index is never wrapped on write, so any number of prev() calls
    stays well-defined; ``idx`` wraps on read. Counts are read through
    callables so the pager follows the current list and load window.
    """

    def __init__(
        self,
        total: Callable[[], int],
        loaded: Callable[[], int],
        ensure_loaded: Callable[[int], None],
        *,
        store: KeyValueStore | None = None,
        persist_key: str | None = None,
    ) -> None:
        self._total = total
        self._loaded = loaded
        self._ensure_loaded = ensure_loaded
        self._store = store
        self._persist_key = persist_key
        self._raw = self._load_idx()

    def _load_idx(self) -> int:
        if self._store is None or not self._persist_key:
            return 0
        try:
            raw = self._store.get(self._persist_key)
            n = float(raw) if raw else 0.0
        except (StorageError, ValueError) as e:
            logger.debug(f"Ignoring stored cursor {self._persist_key}: {e}")
            return 0
        return int(n) if math.isfinite(n) else 0

    def _save_idx(self) -> None:
        if self._store is None or not self._persist_key:
            return
        try:
            self._store.set(self._persist_key, str(self.idx))
        except StorageError as e:
            logger.warning(f"Could not persist cursor {self._persist_key}: {e}")

    @property
    def idx(self) -> int:
        return wrap_index(self._raw, self._total())

    @property
    def can_show(self) -> bool:
        return self.idx < self._loaded()

    @property
    def position(self) -> str:
        total = self._total()
        return f"{self.idx + 1}/{total}" if total else ""

    def refresh(self) -> None:
        """Persist the cursor and prefetch ahead if it nears the loaded window."""
        self._save_idx()
        total = self._total()
        if total == 0:
            return
        loaded = self._loaded()
        need_more = loaded - (self.idx + 1) <= 1
        if need_more and loaded < total:
            self._ensure_loaded(min(loaded + PREFETCH_STEP, total))

    def next(self) -> None:
        if self._total() == 0:
            return
        self._raw += 1
        self.refresh()

    def prev(self) -> None:
        if self._total() == 0:
            return
        self._raw -= 1
        self.refresh()
