"""Read operations over Notion record maps: table rows and page text."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from app.core.record_map import extract_page_text, extract_rows, resolve_schema
from app.providers.content_types import EntryMeta, entries_from_dicts
from app.providers.notion import SchemaNotFoundError

logger = logging.getLogger(__name__)


class RecordMapSource(Protocol):
    async def get_record_map(self, page_id: str) -> dict[str, Any]: ...


class NotionReader:
    """Turns record maps into flat rows, entry metadata and plain text.

    Errors from the source propagate as NotionError.
    """

    def __init__(self, source: RecordMapSource) -> None:
        self._source = source

    async def list_rows(self, db_id: str) -> list[dict[str, str]]:
        record_map = await self._source.get_record_map(db_id)
        schema = resolve_schema(record_map)
        if schema is None:
            raise SchemaNotFoundError()
        rows = extract_rows(record_map, schema)
        logger.debug(f"Extracted {len(rows)} rows from {db_id}")
        return rows

    async def list_entry_meta(self, db_id: str) -> list[EntryMeta]:
        return entries_from_dicts(await self.list_rows(db_id))

    async def fetch_text(self, page_id: str) -> str:
        record_map = await self._source.get_record_map(page_id)
        return extract_page_text(record_map, page_id)
