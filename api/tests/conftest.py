from __future__ import annotations

import asyncio
from collections import Counter, defaultdict
from typing import Any

import pytest

from app.core.config import Settings
from app.services.store import BatchResult, Cursor, Key, Page, StoreUnavailableError

_DEFAULTS = Settings(otel_enabled=False)

# Key schemas of the deployed tables; batch gets must name all of them.
DEFAULT_KEY_SCHEMAS = {
    _DEFAULTS.profiles_table: ("userSub",),
    _DEFAULTS.negotiations_table: ("applicationId", "negotiationId"),
}


class FakeStore:
    """In-memory stand-in for DynamoStore with call accounting."""

    def __init__(self, page_size: int = 2) -> None:
        self.page_size = page_size
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.calls: Counter[str] = Counter()
        self.batch_requests: list[tuple[str, list[Any]]] = []
        self.key_schemas: dict[str, tuple[str, ...]] = dict(DEFAULT_KEY_SCHEMAS)
        self.query_requests: list[tuple[str, dict[str, str], str | None]] = []
        self.unprocessed_once: dict[str, set[str]] = defaultdict(set)
        self.always_unprocessed: dict[str, set[str]] = defaultdict(set)
        self.failing_tables: set[str] = set()
        self.failing_indexes: set[str] = set()
        self.delay_seconds = 0.0

    def add(self, table: str, *items: dict[str, Any]) -> None:
        self.tables[table].extend(items)

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def close(self) -> None:
        return None

    async def query_page(
        self,
        table: str,
        *,
        key_values: dict[str, str],
        index_name: str | None = None,
        cursor: Cursor | None = None,
    ) -> Page:
        self.calls["query"] += 1
        self.query_requests.append((table, dict(key_values), index_name))
        await self._maybe_wait()
        if table in self.failing_tables or (index_name and index_name in self.failing_indexes):
            raise StoreUnavailableError(f"query failed for {table}")
        matches = [
            item for item in self.tables[table] if all(item.get(key) == value for key, value in key_values.items())
        ]
        return self._page(matches, cursor)

    async def scan_page(
        self,
        table: str,
        *,
        filters: dict[str, str] | None = None,
        cursor: Cursor | None = None,
    ) -> Page:
        self.calls["scan"] += 1
        await self._maybe_wait()
        if table in self.failing_tables:
            raise StoreUnavailableError(f"scan failed for {table}")
        matches = [
            item for item in self.tables[table] if all(item.get(key) == value for key, value in (filters or {}).items())
        ]
        return self._page(matches, cursor)

    async def batch_get(self, table: str, key_attributes: tuple[str, ...], keys: list[Key]) -> BatchResult:
        self.calls["batch_get"] += 1
        key_attributes = tuple(key_attributes)
        single = len(key_attributes) == 1
        self.batch_requests.append((table, [key[0] if single else tuple(key) for key in keys]))
        await self._maybe_wait()
        if table in self.failing_tables:
            raise StoreUnavailableError(f"batch_get failed for {table}")
        schema = self.key_schemas.get(table)
        if schema is not None and key_attributes != schema:
            # DynamoDB rejects the whole request when a key misses part of the schema.
            raise StoreUnavailableError(f"ValidationException: key {key_attributes} does not match schema {schema}")

        def public(key: Key) -> str | Key:
            return key[0] if single else tuple(key)

        pending = self.unprocessed_once[table]
        unprocessed = [
            tuple(key) for key in keys if public(key) in pending or public(key) in self.always_unprocessed[table]
        ]
        pending.difference_update(public(key) for key in unprocessed)
        wanted = {tuple(key) for key in keys} - set(unprocessed)
        items = [
            item
            for item in self.tables[table]
            if tuple(item.get(attribute) for attribute in key_attributes) in wanted
        ]
        return BatchResult(items=items, unprocessed=unprocessed)

    def _page(self, matches: list[dict[str, Any]], cursor: Cursor | None) -> Page:
        start = int(cursor["offset"]) if cursor else 0
        end = start + self.page_size
        next_cursor = {"offset": end} if end < len(matches) else None
        return Page(items=matches[start:end], next_cursor=next_cursor)

    async def _maybe_wait(self) -> None:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def settings() -> Settings:
    return Settings(otel_enabled=False)
