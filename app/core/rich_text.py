"""Flattening of Notion rich-text property arrays.

A property value is a list of segments. Each segment is a list whose first
element is the text chunk and whose second element, when present, is a list
of formatting annotations such as ``["b"]`` or ``["d", {"start_date": ...}]``.
"""

from __future__ import annotations

from typing import Any

DATE_TAG = "d"


def flatten_rich_text(prop: Any) -> str:
    """Concatenate the text chunk of every segment and trim the result."""
    if not isinstance(prop, list):
        return ""
    parts = []
    for segment in prop:
        if isinstance(segment, list) and segment and isinstance(segment[0], str):
            parts.append(segment[0])
    return "".join(parts).strip()


def extract_date(prop: Any) -> str:
    """Return the first ``start_date`` found in a date annotation, or ""."""
    if not isinstance(prop, list):
        return ""
    for segment in prop:
        if not isinstance(segment, list) or len(segment) < 2:
            continue
        annotations = segment[1]
        if not isinstance(annotations, list):
            continue
        for annotation in annotations:
            if (
                isinstance(annotation, list)
                and len(annotation) >= 2
                and annotation[0] == DATE_TAG
                and isinstance(annotation[1], dict)
            ):
                start = annotation[1].get("start_date")
                if start:
                    return str(start)
    return ""
