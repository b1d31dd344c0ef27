"""Notion client for the unofficial v3 API (the one notion.so itself uses)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from app.core.record_map import collection_blocks, to_dashed_id

logger = logging.getLogger(__name__)

NOTION_BASE_URL = "https://www.notion.so/api/v3"

# Chunks of 100 blocks; quote pages and small databases fit in one or two.
MAX_PAGE_CHUNKS = 10
PAGE_CHUNK_LIMIT = 100
COLLECTION_QUERY_LIMIT = 999


class NotionError(Exception):
    """Base exception for document-store failures. The message is user-facing."""


class NotionRateLimitError(NotionError):
    """Rate limit exceeded after all retries."""


class SchemaNotFoundError(NotionError):
    """The page holds no collection schema, so it cannot be read as a table."""

    def __init__(self, message: str = "No collection schema found") -> None:
        super().__init__(message)


def merge_record_maps(target: dict[str, Any], source: Any) -> None:
    """Merge every record table (block, collection, ...) of source into target."""
    if not isinstance(source, dict):
        return
    for table, records in source.items():
        if isinstance(records, dict):
            target.setdefault(table, {}).update(records)


class NotionClient:
    """Async client returning full record maps for page ids."""

    def __init__(
        self,
        base_url: str = NOTION_BASE_URL,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        cookies = {"token_v2": token} if token else None
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            cookies=cookies,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "NotionClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def _post_with_retry(
        self,
        path: str,
        payload: dict[str, Any],
        *,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
    ) -> dict[str, Any]:
        """POST with exponential backoff on 429, decoded as a JSON object.

        Raises:
            NotionRateLimitError: If rate limited after all retries
            NotionError: On transport failures, other non-2xx statuses or
                a body that is not a JSON object
        """
        delay = base_delay

        for attempt in range(max_retries + 1):
            try:
                resp = await self._client.post(path, json=payload)
            except httpx.RequestError as e:
                raise NotionError(f"Notion request failed: {e}") from e

            if resp.status_code == 429:
                if attempt == max_retries:
                    raise NotionRateLimitError(
                        f"Rate limit exceeded after {max_retries} retries"
                    )
                retry_after = resp.headers.get("Retry-After")
                try:
                    wait_time = float(retry_after) if retry_after else delay
                except ValueError:
                    wait_time = delay
                wait_time = min(wait_time, max_delay)
                logger.warning(
                    f"Rate limited (429) on {path}. Waiting {wait_time:.1f}s "
                    f"(attempt {attempt + 1}/{max_retries + 1})"
                )
                await asyncio.sleep(wait_time)
                delay = min(delay * 2, max_delay)
                continue

            if resp.status_code >= 400:
                raise NotionError(f"Notion {path} failed: {resp.status_code}")

            try:
                data = resp.json()
            except ValueError as e:
                raise NotionError(f"Notion {path} returned invalid JSON") from e
            if not isinstance(data, dict):
                raise NotionError(f"Notion {path} returned an unexpected payload")
            return data

        raise NotionRateLimitError("Rate limit handling failed")

    async def get_record_map(self, page_id: str) -> dict[str, Any]:
        """Fetch the document tree of a page, including database rows.

        Args:
            page_id: Page id, dashed or compact

        Returns:
            Record map with ``block`` and, for databases, ``collection`` and
            ``collection_query``
        """
        dashed = to_dashed_id(page_id)
        record_map: dict[str, Any] = {"block": {}}
        cursor: dict[str, Any] = {"stack": []}

        for chunk_number in range(MAX_PAGE_CHUNKS):
            data = await self._post_with_retry(
                "/loadPageChunk",
                {
                    "pageId": dashed,
                    "limit": PAGE_CHUNK_LIMIT,
                    "cursor": cursor,
                    "chunkNumber": chunk_number,
                    "verticalColumns": False,
                },
            )
            if not isinstance(data.get("recordMap"), dict):
                raise NotionError("Notion page response is malformed")
            merge_record_maps(record_map, data["recordMap"])

            cursor = data.get("cursor")
            if not isinstance(cursor, dict) or not cursor.get("stack"):
                break

        for block in collection_blocks(record_map):
            for view_id in block.view_ids:
                await self._query_collection(record_map, block.collection_id, view_id)

        logger.debug(f"Loaded {len(record_map['block'])} blocks for page {dashed}")
        return record_map

    async def _query_collection(
        self, record_map: dict[str, Any], collection_id: str, view_id: str
    ) -> None:
        data = await self._post_with_retry(
            "/queryCollection",
            {
                "collection": {"id": collection_id},
                "collectionView": {"id": view_id},
                "loader": {
                    "type": "reducer",
                    "reducers": {
                        "collection_group_results": {
                            "type": "results",
                            "limit": COLLECTION_QUERY_LIMIT,
                        }
                    },
                    "searchQuery": "",
                    "userTimeZone": "UTC",
                },
            },
        )
        result = data.get("result")
        reducer_results = result.get("reducerResults") if isinstance(result, dict) else None
        if not isinstance(reducer_results, dict):
            raise NotionError("Notion collection response is malformed")

        record_map.setdefault("collection_query", {}).setdefault(collection_id, {})[
            view_id
        ] = reducer_results
        merge_record_maps(record_map, data.get("recordMap"))
