"""Per-entry body text cache with bounded-concurrency batch fetching.

Ids are fetched in chunks: all fetches of a chunk run concurrently, chunks
run one after another, and each chunk's results are committed before the
next chunk starts. A failing id is left unfetched and never stops the batch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable

logger = logging.getLogger(__name__)

CHUNK_SIZE = 5


class ContentCache:
    """Session cache of id -> plain text.

    An empty string means "loaded, but blank"; a missing key means "not
    fetched yet".
    """

    def __init__(
        self,
        fetch_text: Callable[[str], Awaitable[str]],
        *,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self._fetch_text = fetch_text
        self._chunk_size = chunk_size
        self._content: dict[str, str] = {}
        self._inflight: set[str] = set()
        self._active = True

    def get(self, entry_id: str) -> str | None:
        return self._content.get(entry_id)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._content

    def __len__(self) -> int:
        return len(self._content)

    @property
    def inflight(self) -> frozenset[str]:
        return frozenset(self._inflight)

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        """Stop committing results; fetches still running are discarded."""
        self._active = False

    async def _fetch_one(self, entry_id: str) -> tuple[str, str] | None:
        if entry_id in self._inflight:
            return None
        self._inflight.add(entry_id)
        try:
            text = await self._fetch_text(entry_id)
            return entry_id, text
        except Exception as e:
            logger.warning(f"Content fetch failed for {entry_id}: {e}")
            return None
        finally:
            self._inflight.discard(entry_id)

    async def fetch_batch(self, ids: Iterable[str]) -> None:
        ids = list(ids)
        chunks = [ids[i : i + self._chunk_size] for i in range(0, len(ids), self._chunk_size)]

        for n, chunk in enumerate(chunks, start=1):
            results = await asyncio.gather(*(self._fetch_one(i) for i in chunk))
            if not self._active:
                logger.debug("Content cache closed; dropping batch results")
                return
            committed = 0
            for result in results:
                if result is not None:
                    entry_id, text = result
                    self._content[entry_id] = text
                    committed += 1
            logger.debug(f"Chunk {n}/{len(chunks)}: {committed}/{len(chunk)} fetched")

    async def ensure_content_by_ids(self, ids: Iterable[str]) -> None:
        """Fetch only ids that have no cached value (blank text counts as cached)."""
        need = [i for i in ids if i not in self._content]
        if need:
            await self.fetch_batch(need)
