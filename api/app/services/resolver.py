from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import partial
from typing import Any

from opentelemetry import trace

from app.services.concurrency import gather_bounded
from app.services.records import text
from app.services.store import MAX_BATCH_GET_KEYS, DynamoStore, Key

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(slots=True, frozen=True)
class TableRef:
    """A table addressed by its full primary key.

    ``key_attributes`` lists the partition key and, for composite tables, the
    sort key. Single-attribute tables are resolved by plain string ids; composite
    tables by tuples holding one value per key attribute.
    """

    name: str
    key_attributes: tuple[str, ...]
    decode: Callable[[dict[str, Any]], Any | None]
    kind: str = "record"

    @property
    def composite(self) -> bool:
        return len(self.key_attributes) > 1

    def key_of(self, raw: dict[str, Any]) -> Key:
        return tuple(text(raw.get(attribute)) for attribute in self.key_attributes)

    def normalize(self, value: str | Key | None) -> Key | None:
        key = tuple(value) if isinstance(value, tuple) else (value,)
        if len(key) != len(self.key_attributes):
            return None
        if not all(isinstance(part, str) and part for part in key):
            return None
        return key

    def public(self, key: Key) -> str | Key:
        return key if self.composite else key[0]


class BatchedResolver:
    """Resolve distinct ids to records with chunked batched fetches.

    Each chunk gets one batched fetch plus exactly one retry for whatever keys
    the store reports as unprocessed. Ids still missing afterwards are left out
    of the mapping. A chunk that fails outright fails the whole call.
    """

    def __init__(
        self,
        store: DynamoStore,
        *,
        chunk_size: int = MAX_BATCH_GET_KEYS,
        max_concurrency: int = 10,
    ) -> None:
        self.store = store
        self.chunk_size = min(max(1, chunk_size), MAX_BATCH_GET_KEYS)
        self.max_concurrency = max(1, max_concurrency)

    async def resolve(self, ids: Iterable[str | Key], table: TableRef) -> dict[str | Key, Any]:
        ordered = sorted({key for key in map(table.normalize, ids) if key is not None})
        if not ordered:
            return {}

        chunks = [ordered[start : start + self.chunk_size] for start in range(0, len(ordered), self.chunk_size)]
        with tracer.start_as_current_span("resolver.resolve") as span:
            span.set_attribute("resolver.table", table.name)
            span.set_attribute("resolver.ids", len(ordered))
            span.set_attribute("resolver.chunks", len(chunks))
            chunk_results = await gather_bounded(
                [partial(self._resolve_chunk, chunk, table) for chunk in chunks],
                self.max_concurrency,
            )

        resolved: dict[str | Key, Any] = {}
        for chunk_result in chunk_results:
            resolved.update(chunk_result)

        missing = len(ordered) - len(resolved)
        if missing:
            logger.info("unresolved %s ids table=%s missing=%s of=%s", table.kind, table.name, missing, len(ordered))
        return resolved

    async def _resolve_chunk(self, chunk: list[Key], table: TableRef) -> dict[str | Key, Any]:
        first = await self.store.batch_get(table.name, table.key_attributes, chunk)
        raw_items = list(first.items)

        requested = set(chunk)
        retry_keys = [key for key in dict.fromkeys(map(tuple, first.unprocessed)) if key in requested]
        if retry_keys:
            logger.warning("retrying unprocessed keys table=%s count=%s", table.name, len(retry_keys))
            second = await self.store.batch_get(table.name, table.key_attributes, retry_keys)
            raw_items.extend(second.items)
            if second.unprocessed:
                logger.warning(
                    "keys still unprocessed after retry table=%s count=%s",
                    table.name,
                    len(second.unprocessed),
                )

        found: dict[str | Key, Any] = {}
        dropped = 0
        for raw in raw_items:
            key = table.key_of(raw)
            if key not in requested:
                continue
            record = table.decode(raw)
            if record is None:
                dropped += 1
                continue
            found[table.public(key)] = record
        if dropped:
            logger.warning("dropped malformed %s records table=%s count=%s", table.kind, table.name, dropped)
        return found
