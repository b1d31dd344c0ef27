"""Shared record-map fixtures shaped like Notion v3 responses."""

import pytest

ROW_A = "11111111-1111-1111-1111-111111111111"
ROW_B = "22222222-2222-2222-2222-222222222222"
ROW_C = "33333333-3333-3333-3333-333333333333"
ROW_MISSING = "44444444-4444-4444-4444-444444444444"
DB_PAGE = "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"


def row_block(row_id, title, type_=None, author=None, date=None):
    props = {"title": [[title]]}
    if type_ is not None:
        props["t%9e"] = [[type_]]
    if author is not None:
        props["au;x"] = [[author]]
    if date is not None:
        props["dt<q"] = [["‣", [["d", {"type": "date", "start_date": date}]]]]
    # database rows come double-wrapped
    return {
        "spaceId": "space-1",
        "value": {
            "value": {"id": row_id, "type": "page", "properties": props},
            "role": "reader",
        },
    }


def text_block(block_id, text):
    props = {"title": [[text]]} if text is not None else {}
    return {"value": {"id": block_id, "type": "text", "properties": props}, "role": "reader"}


@pytest.fixture
def database_tree():
    """A database page with three rows (one tombstoned) and a schema."""
    return {
        "block": {
            DB_PAGE: {
                "value": {
                    "id": DB_PAGE,
                    "type": "collection_view_page",
                    "collection_id": "col-1",
                    "view_ids": ["view-1"],
                },
                "role": "reader",
            },
            ROW_A: row_block(ROW_A, "First quote", type_="quote", author="Seneca", date="2024-01-01"),
            ROW_B: row_block(ROW_B, "A morning", type_="journal", author="me", date="2023-05-02"),
            ROW_C: row_block(ROW_C, "No type", type_="", author=" Rilke "),
        },
        "collection": {
            "col-1": {
                "value": {
                    "value": {
                        "id": "col-1",
                        "schema": {
                            "title": {"name": "Name", "type": "title"},
                            "t%9e": {"name": "Type", "type": "select"},
                            "au;x": {"name": "Author", "type": "text"},
                            "dt<q": {"name": "Date", "type": "date"},
                        },
                    },
                    "role": "reader",
                }
            }
        },
        "collection_query": {
            "col-1": {
                "view-1": {
                    "collection_group_results": {
                        "type": "results",
                        "blockIds": [ROW_A, ROW_MISSING, ROW_B, ROW_C],
                    }
                }
            }
        },
    }


@pytest.fixture
def page_tree():
    """A content page (single-wrapped) with text children."""
    page_id = ROW_A
    return {
        "block": {
            page_id: {
                "value": {
                    "id": page_id,
                    "type": "page",
                    "properties": {"title": [["First quote"]]},
                    "content": ["c1", "c2", "c3", "c-missing"],
                },
                "role": "reader",
            },
            "c1": text_block("c1", "a"),
            "c2": text_block("c2", ""),
            "c3": text_block("c3", "b"),
        }
    }
