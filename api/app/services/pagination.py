from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from app.services.store import Cursor, Page

QueryFn = Callable[[Cursor | None], Awaitable[Page]]


async def fetch_all(query_fn: QueryFn) -> list[dict[str, Any]]:
    """Follow continuation cursors until the store reports no further page.

    Pages are requested one after another since each cursor comes from the
    previous response. Store errors propagate unchanged.
    """
    items: list[dict[str, Any]] = []
    cursor: Cursor | None = None
    while True:
        page = await query_fn(cursor)
        items.extend(page.items)
        if not page.next_cursor:
            return items
        cursor = page.next_cursor
