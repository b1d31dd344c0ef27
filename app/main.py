from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.core.entry_store import EntryStore
from app.core.favorites import FavoritesStore
from app.core.kv_store import QUOTE_IDX_KEY, KeyValueStore, init_kv_store
from app.core.meta_cache import MetaCache
from app.core.notion_reader import NotionReader, RecordMapSource
from app.core.pager import Pager
from app.core.settings import Settings
from app.providers.content_types import EntryMeta, EntryType
from app.providers.notion import NotionClient, NotionError

logger = logging.getLogger(__name__)

PAGE_ID_RE = re.compile(r"^[a-f0-9-]+$")

app = FastAPI(title="teum")


@dataclass
class Services:
    settings: Settings
    reader: NotionReader
    entries: EntryStore
    favorites: FavoritesStore
    pagers: dict[EntryType, Pager]
    client: NotionClient | None = None


_services: Services | None = None


def configure(
    settings: Settings,
    *,
    source: RecordMapSource | None = None,
    store: KeyValueStore | None = None,
) -> Services:
    """Wire the reader, caches and controllers. Tests pass a fake source and store."""
    global _services

    client = None
    if source is None:
        client = NotionClient(
            base_url=settings.notion_api_base,
            token=settings.notion_token or None,
            timeout=settings.request_timeout,
        )
        source = client
    if store is None:
        store = init_kv_store(settings.db_path)

    reader = NotionReader(source)

    async def list_meta() -> list[EntryMeta]:
        if not settings.notion_page_id:
            raise NotionError("NOTION_PAGE_ID is not configured")
        return await reader.list_entry_meta(settings.notion_page_id)

    entries = EntryStore(list_meta, reader.fetch_text, MetaCache(store))
    pagers = {
        EntryType.QUOTE: Pager(
            total=lambda: len(entries.quotes_meta),
            loaded=lambda: entries.loaded_count[EntryType.QUOTE],
            ensure_loaded=lambda want: entries.request_more(EntryType.QUOTE, want),
            store=store,
            persist_key=QUOTE_IDX_KEY,
        ),
        EntryType.JOURNAL: Pager(
            total=lambda: len(entries.journals_meta),
            loaded=lambda: entries.loaded_count[EntryType.JOURNAL],
            ensure_loaded=lambda want: entries.request_more(EntryType.JOURNAL, want),
        ),
    }
    _services = Services(
        settings=settings,
        reader=reader,
        entries=entries,
        favorites=FavoritesStore(store),
        pagers=pagers,
        client=client,
    )
    return _services


def get_services() -> Services:
    assert _services is not None, "Services not configured"
    return _services


@app.on_event("startup")
async def _startup() -> None:
    if _services is None:
        configure(Settings.from_env())
    await get_services().entries.start()


@app.on_event("shutdown")
async def _shutdown() -> None:
    global _services
    s = _services
    if s is None:
        return
    s.entries.close()
    if s.client is not None:
        await s.client.close()
    _services = None


def _error(message: str, status: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status)


def _entry_json(meta: EntryMeta, s: Services) -> dict[str, Any]:
    return {
        **meta.to_dict(),
        "text": s.entries.get_text(meta.id),
        "liked": s.favorites.is_liked(meta.id),
    }


# --- Document store proxy ---


@app.get("/api/notion/table/{page_id}")
async def api_notion_table(page_id: str):
    """Flat rows of a Notion database page."""
    if not PAGE_ID_RE.match(page_id):
        return _error("Invalid page id", 400)
    try:
        return await get_services().reader.list_rows(page_id)
    except NotionError as e:
        return _error(str(e), 500)
    except Exception:
        logger.exception(f"Unexpected error reading table {page_id}")
        return _error("Unknown error", 500)


@app.get("/api/notion/page/{page_id}")
async def api_notion_page(page_id: str):
    """Plain text of a Notion page."""
    if not PAGE_ID_RE.match(page_id):
        return _error("Invalid page id", 400)
    try:
        text = await get_services().reader.fetch_text(page_id)
    except NotionError as e:
        return _error(str(e), 500)
    except Exception:
        logger.exception(f"Unexpected error reading page {page_id}")
        return _error("Unknown error", 500)
    return {"text": text}


# --- Viewer state ---


@app.get("/api/entries")
def api_entries():
    s = get_services()
    entries = s.entries
    return {
        "loading": entries.loading,
        "error": entries.error,
        "quotes": [m.to_dict() for m in entries.quotes_meta],
        "journals": [m.to_dict() for m in entries.journals_meta],
        "loaded_count": {k.value: v for k, v in entries.loaded_count.items()},
    }


@app.post("/api/entries/refresh")
async def api_entries_refresh():
    """Re-fetch metadata and wait for the initial content window."""
    s = get_services()
    await s.entries.refresh()
    await s.entries.drain()
    return api_entries()


def _feed_json(kind: EntryType, s: Services) -> dict[str, Any]:
    pager = s.pagers[kind]
    items = s.entries.meta_for(kind)
    current = items[pager.idx] if items else None
    return {
        "kind": kind.value,
        "idx": pager.idx,
        "position": pager.position,
        "can_show": pager.can_show,
        "entry": _entry_json(current, s) if current else None,
    }


@app.get("/api/feed/{kind}")
async def api_feed(kind: EntryType):
    s = get_services()
    s.pagers[kind].refresh()
    return _feed_json(kind, s)


@app.post("/api/feed/{kind}/next")
async def api_feed_next(kind: EntryType):
    s = get_services()
    s.pagers[kind].next()
    return _feed_json(kind, s)


@app.post("/api/feed/{kind}/prev")
async def api_feed_prev(kind: EntryType):
    s = get_services()
    s.pagers[kind].prev()
    return _feed_json(kind, s)


# --- Favorites ---


@app.get("/api/favorites")
async def api_favorites():
    s = get_services()
    favorites = await s.entries.favorite_entries(s.favorites.liked_ids)
    return {
        "loading": s.entries.loading,
        "error": s.entries.error,
        "entries": [_entry_json(m, s) for m in favorites],
    }


@app.post("/api/favorites/{entry_id}/toggle")
def api_favorites_toggle(entry_id: str):
    s = get_services()
    liked = s.favorites.toggle_like(entry_id)
    return {"id": entry_id, "liked": liked}
