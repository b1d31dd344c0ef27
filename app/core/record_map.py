"""Normalization of Notion record maps (document trees).

A record map holds ``block``, and for database pages ``collection`` and
``collection_query``. Entries come in two nesting depths:

    database row:  block[id] = {"spaceId": ..., "value": {"value": {...}, "role": ...}}
    content page:  block[id] = {"value": {"id": ..., "type": ...}, "role": ...}

Decoding tries the double-wrapped form first. Anything that does not decode
is treated as missing, never as an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from app.core.rich_text import extract_date, flatten_rich_text

TITLE_KEY = "title"

_HEX32_RE = re.compile(r"^[0-9a-fA-F]{32}$")
_MANY_NEWLINES_RE = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class BlockValue:
    """Normalized block: id, type, rich-text properties and child ids."""

    id: str
    type: str = ""
    properties: dict[str, Any] = field(default_factory=dict)
    content: tuple[str, ...] = ()
    collection_id: str = ""
    view_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class SchemaInfo:
    """Collection schema plus a lowercased column name -> key index."""

    schema: dict[str, dict[str, Any]]
    name_to_key: dict[str, str]

    def key_for(self, name: str) -> str | None:
        return self.name_to_key.get(name.lower())


def _decode_block(obj: Any) -> BlockValue | None:
    if not isinstance(obj, dict) or not obj.get("id"):
        return None
    properties = obj.get("properties")
    content = obj.get("content")
    view_ids = obj.get("view_ids")
    collection_id = obj.get("collection_id")
    if not collection_id:
        fmt = obj.get("format")
        pointer = fmt.get("collection_pointer") if isinstance(fmt, dict) else None
        collection_id = pointer.get("id") if isinstance(pointer, dict) else None
    return BlockValue(
        id=str(obj["id"]),
        type=obj.get("type") if isinstance(obj.get("type"), str) else "",
        properties=properties if isinstance(properties, dict) else {},
        content=tuple(c for c in content if isinstance(c, str)) if isinstance(content, list) else (),
        collection_id=collection_id if isinstance(collection_id, str) else "",
        view_ids=tuple(v for v in view_ids if isinstance(v, str)) if isinstance(view_ids, list) else (),
    )


def _unwrap(entry: Any) -> dict[str, Any] | None:
    """Return the innermost record dict of a wrapped entry, or None."""
    if not isinstance(entry, dict):
        return None
    outer = entry.get("value")
    if not isinstance(outer, dict):
        return None
    inner = outer.get("value")
    if isinstance(inner, dict) and inner.get("id"):
        return inner
    return outer


def decode_block_entry(entry: Any) -> BlockValue | None:
    """Decode one ``block`` map entry, double-wrapped form first."""
    record = _unwrap(entry)
    return _decode_block(record) if record is not None else None


def resolve_block(tree: Any, block_id: str) -> BlockValue | None:
    if not isinstance(tree, dict):
        return None
    blocks = tree.get("block")
    if not isinstance(blocks, dict):
        return None
    return decode_block_entry(blocks.get(block_id))


def resolve_schema(tree: Any) -> SchemaInfo | None:
    """Return the schema of the first collection that has one.

    Iteration follows the source mapping's order; with several collections in
    one tree the winner depends on that order.
    """
    collections = tree.get("collection") if isinstance(tree, dict) else None
    if not isinstance(collections, dict):
        return None

    for entry in collections.values():
        schema = None
        outer = entry.get("value") if isinstance(entry, dict) else None
        if isinstance(outer, dict):
            inner = outer.get("value")
            if isinstance(inner, dict) and isinstance(inner.get("schema"), dict):
                schema = inner["schema"]
            elif isinstance(outer.get("schema"), dict):
                schema = outer["schema"]
        if schema is None:
            continue

        name_to_key: dict[str, str] = {}
        for key, column in schema.items():
            if isinstance(column, dict) and isinstance(column.get("name"), str):
                name_to_key[column["name"].lower()] = key
        return SchemaInfo(schema=schema, name_to_key=name_to_key)
    return None


def row_block_ids(tree: Any) -> list[str]:
    """First non-empty ``blockIds`` list across all collection views."""
    queries = tree.get("collection_query") if isinstance(tree, dict) else None
    if not isinstance(queries, dict):
        return []
    for views in queries.values():
        if not isinstance(views, dict):
            continue
        for view in views.values():
            if not isinstance(view, dict):
                continue
            results = view.get("collection_group_results")
            ids = results.get("blockIds") if isinstance(results, dict) else None
            if isinstance(ids, list) and ids:
                return [i for i in ids if isinstance(i, str)]
    return []


def extract_rows(tree: Any, schema: SchemaInfo | None = None) -> list[dict[str, str]]:
    """Materialize every database row into a flat record.

    Rows whose block cannot be resolved are skipped.
    """
    if schema is None:
        schema = resolve_schema(tree)
    type_key = schema.key_for("type") if schema else None
    author_key = schema.key_for("author") if schema else None
    date_key = schema.key_for("date") if schema else None

    rows = []
    for block_id in row_block_ids(tree):
        block = resolve_block(tree, block_id)
        if block is None:
            continue
        props = block.properties
        entry_type = flatten_rich_text(props.get(type_key)) if type_key else ""
        rows.append(
            {
                "id": (block.id or block_id).replace("-", ""),
                "type": entry_type or "quote",
                "author": flatten_rich_text(props.get(author_key)) if author_key else "",
                "date": extract_date(props.get(date_key)) if date_key else "",
                "pageTitle": flatten_rich_text(props.get(TITLE_KEY)),
            }
        )
    return rows


def to_dashed_id(raw: str) -> str:
    """Regroup a 32-hex id as 8-4-4-4-12; other ids come back unchanged."""
    compact = raw.replace("-", "")
    if not _HEX32_RE.match(compact):
        return raw
    return f"{compact[:8]}-{compact[8:12]}-{compact[12:16]}-{compact[16:20]}-{compact[20:]}"


def extract_page_text(tree: Any, page_id: str) -> str:
    """Plain text of a page: one line per titled child block."""
    page = resolve_block(tree, to_dashed_id(page_id)) or resolve_block(tree, page_id)
    if page is None:
        return ""

    lines = []
    for child_id in page.content:
        child = resolve_block(tree, child_id)
        if child is None:
            continue
        text = flatten_rich_text(child.properties.get(TITLE_KEY))
        if text:
            lines.append(text)
    return _MANY_NEWLINES_RE.sub("\n\n", "\n".join(lines)).strip()


def collection_blocks(tree: Any) -> list[BlockValue]:
    """Blocks that embed a collection view (database pages and inline tables)."""
    blocks = tree.get("block") if isinstance(tree, dict) else None
    if not isinstance(blocks, dict):
        return []
    found = []
    for entry in blocks.values():
        block = decode_block_entry(entry)
        if block and block.type in ("collection_view", "collection_view_page") and block.collection_id:
            found.append(block)
    return found
