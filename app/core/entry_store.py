"""Entry metadata and content state for one viewer session.

Provides:
- cached startup with a background metadata refresh
- quote and journal views over the metadata list
- incremental content loading per kind (ensure_loaded)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, Iterable

from app.core.content_cache import CHUNK_SIZE, ContentCache
from app.core.meta_cache import MetaCache
from app.providers.content_types import EntryMeta, EntryType, sort_journals
from app.providers.notion import NotionError

logger = logging.getLogger(__name__)

INITIAL_WINDOW = 5


class EntryStore:
    """Holds the metadata list, the content cache and per-kind load counts.

    The metadata list is only ever replaced wholesale. The initial window is
    primed once, on the first non-empty list; later replacements keep the
    load counts and backfill text for entries that moved into the loaded
    window. Work that finishes after close() does not touch state.
    """

    def __init__(
        self,
        list_meta: Callable[[], Awaitable[list[EntryMeta]]],
        fetch_text: Callable[[str], Awaitable[str]],
        meta_cache: MetaCache,
        *,
        initial_window: int = INITIAL_WINDOW,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        self._list_meta = list_meta
        self._meta_cache = meta_cache
        self._initial_window = initial_window
        self.content = ContentCache(fetch_text, chunk_size=chunk_size)

        self._meta: list[EntryMeta] = []
        self._quotes: list[EntryMeta] = []
        self._journals: list[EntryMeta] = []
        self.loaded_count: dict[EntryType, int] = {EntryType.QUOTE: 0, EntryType.JOURNAL: 0}
        self.loading = False
        self.error: str | None = None
        self._active = True
        self._primed = False
        self._tasks: set[asyncio.Task[Any]] = set()

    # --- Metadata ---

    @property
    def meta(self) -> list[EntryMeta]:
        return list(self._meta)

    @property
    def quotes_meta(self) -> list[EntryMeta]:
        return self._quotes

    @property
    def journals_meta(self) -> list[EntryMeta]:
        return self._journals

    def meta_for(self, kind: EntryType) -> list[EntryMeta]:
        return self._quotes if kind == EntryType.QUOTE else self._journals

    def _set_meta(self, meta: list[EntryMeta]) -> None:
        self._meta = list(meta)
        self._quotes = [m for m in self._meta if m.type == EntryType.QUOTE]
        self._journals = sort_journals(m for m in self._meta if m.type == EntryType.JOURNAL)
        if not self._meta:
            return
        if self._primed:
            self._spawn(self._backfill())
        else:
            self._primed = True
            self._spawn(self._prime())

    async def start(self) -> None:
        """Restore cached metadata, then refresh it in the background."""
        cached = self._meta_cache.load()
        if cached is not None:
            logger.debug(f"Using {len(cached)} cached entries")
            self._set_meta(cached)
        else:
            self.loading = True
        self._spawn(self.refresh())

    async def refresh(self) -> None:
        """Fetch metadata; on failure keep what we have and record the error."""
        self.loading = True
        try:
            data = await self._list_meta()
            if not self._active:
                return
            self._set_meta(data)
            self._meta_cache.save(data)
            self.error = None
            logger.info(f"Loaded {len(data)} entries")
        except NotionError as e:
            if not self._active:
                return
            logger.warning(f"Metadata refresh failed: {e}")
            self.error = str(e) or "Failed to load entries"
        except Exception as e:
            if not self._active:
                return
            logger.exception("Unexpected error refreshing metadata")
            self.error = str(e) or "Failed to load entries"
        finally:
            self.loading = False

    # --- Content ---

    async def _prime(self) -> None:
        await self.ensure_loaded(EntryType.QUOTE, self._initial_window)
        await self.ensure_loaded(EntryType.JOURNAL, self._initial_window)

    async def _backfill(self) -> None:
        ids = [m.id for kind in EntryType for m in self.meta_for(kind)[: self.loaded_count[kind]]]
        await self.content.ensure_content_by_ids(ids)

    async def ensure_loaded(self, kind: EntryType, want_count: int) -> None:
        """Make sure the first want_count entries of kind have content."""
        kind = EntryType(kind)
        already = self.loaded_count[kind]
        if want_count <= already:
            return

        items = self.meta_for(kind)
        next_count = min(want_count, len(items))
        target = [m.id for m in items[already:next_count]]
        if not target:
            return

        await self.content.fetch_batch(target)
        if not self._active:
            return
        self.loaded_count[kind] = max(self.loaded_count[kind], next_count)

    def request_more(self, kind: EntryType, want_count: int) -> None:
        """Schedule ensure_loaded without waiting for it."""
        self._spawn(self.ensure_loaded(kind, want_count))

    def get_text(self, entry_id: str) -> str | None:
        return self.content.get(entry_id)

    async def ensure_content_by_ids(self, ids: Iterable[str]) -> None:
        await self.content.ensure_content_by_ids(ids)

    async def favorite_entries(self, liked_ids: Iterable[str]) -> list[EntryMeta]:
        """Liked entries (quotes, then journals) with their content fetched."""
        liked = set(liked_ids)
        favorites = [m for m in self._quotes + self._journals if m.id in liked]
        if favorites:
            await self.ensure_content_by_ids(m.id for m in favorites)
        return favorites

    # --- Lifecycle ---

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        if not self._active:
            coro.close()
            return
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait until no background work is pending."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Mark the store inactive and cancel pending background work."""
        self._active = False
        self.content.close()
        for task in list(self._tasks):
            task.cancel()
