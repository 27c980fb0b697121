from __future__ import annotations

import asyncio

import pytest

from app.services.pagination import fetch_all
from app.services.store import Page, StoreUnavailableError


def test_fetch_all_follows_cursors_until_exhausted() -> None:
    pages = {
        None: Page(items=[{"id": 1}, {"id": 2}], next_cursor={"k": "a"}),
        "a": Page(items=[], next_cursor={"k": "b"}),
        "b": Page(items=[{"id": 3}], next_cursor=None),
    }
    seen: list[str | None] = []

    async def query_fn(cursor):
        key = cursor["k"] if cursor else None
        seen.append(key)
        return pages[key]

    items = asyncio.run(fetch_all(query_fn))

    assert [item["id"] for item in items] == [1, 2, 3]
    assert seen == [None, "a", "b"]


def test_fetch_all_single_empty_page() -> None:
    async def query_fn(cursor):
        return Page(items=[])

    assert asyncio.run(fetch_all(query_fn)) == []


def test_fetch_all_propagates_store_errors() -> None:
    calls = 0

    async def query_fn(cursor):
        nonlocal calls
        calls += 1
        if cursor:
            raise StoreUnavailableError("throttled")
        return Page(items=[{"id": 1}], next_cursor={"k": "next"})

    with pytest.raises(StoreUnavailableError):
        asyncio.run(fetch_all(query_fn))
    assert calls == 2
