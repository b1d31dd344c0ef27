"""Entry types shared by the reader, the caches and the HTTP surface."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable


class EntryType(str, Enum):
    """Kind of entry shown to the user."""

    QUOTE = "quote"
    JOURNAL = "journal"


def _norm_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _norm_type(value: Any) -> EntryType:
    return EntryType.JOURNAL if _norm_str(value) == EntryType.JOURNAL.value else EntryType.QUOTE


@dataclass(frozen=True)
class EntryMeta:
    """One quote or journal row, without its body text."""

    id: str
    type: EntryType = EntryType.QUOTE
    author: str = ""
    date: str = ""
    page_title: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> EntryMeta | None:
        """Build from a provider row or a cached payload.

        Unknown types fall back to quote. Returns None when the row has no id.
        """
        if not isinstance(data, dict):
            return None
        entry_id = _norm_str(data.get("id"))
        if not entry_id:
            return None
        return cls(
            id=entry_id,
            type=_norm_type(data.get("type")),
            author=_norm_str(data.get("author")),
            date=_norm_str(data.get("date")),
            page_title=_norm_str(data.get("pageTitle")),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "type": self.type.value,
            "author": self.author,
            "date": self.date,
            "pageTitle": self.page_title,
        }


def entries_from_dicts(rows: Iterable[Any]) -> list[EntryMeta]:
    """Normalize rows, dropping those without an id."""
    entries = []
    for row in rows:
        meta = EntryMeta.from_dict(row)
        if meta is not None:
            entries.append(meta)
    return entries


def sort_journals(entries: Iterable[EntryMeta]) -> list[EntryMeta]:
    """Newest first by date string; undated entries go last."""
    return sorted(entries, key=lambda m: m.date, reverse=True)
