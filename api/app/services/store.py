from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

import boto3
from boto3.dynamodb.types import TypeDeserializer
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# DynamoDB rejects BatchGetItem requests with more keys than this.
MAX_BATCH_GET_KEYS = 100

Cursor = dict[str, Any]
Key = tuple[str, ...]

_DESERIALIZER = TypeDeserializer()


class StoreError(Exception):
    """Base store error."""


class StoreUnavailableError(StoreError):
    """Raised when a query, scan or batched fetch fails outright."""


@dataclass(slots=True)
class Page:
    items: list[dict[str, Any]]
    next_cursor: Cursor | None = None


@dataclass(slots=True)
class BatchResult:
    items: list[dict[str, Any]]
    unprocessed: list[Key] = field(default_factory=list)


def deserialize_item(raw: dict[str, Any]) -> dict[str, Any]:
    return {key: _DESERIALIZER.deserialize(value) for key, value in raw.items()}


def _equality_expression(
    attributes: dict[str, str],
    *,
    prefix: str,
) -> tuple[str, dict[str, str], dict[str, dict[str, str]]]:
    names: dict[str, str] = {}
    values: dict[str, dict[str, str]] = {}
    conditions: list[str] = []
    for position, (attribute, value) in enumerate(attributes.items()):
        name_token = f"#{prefix}{position}"
        value_token = f":{prefix}{position}"
        names[name_token] = attribute
        values[value_token] = {"S": value}
        conditions.append(f"{name_token} = {value_token}")
    return " AND ".join(conditions), names, values


class DynamoStore:
    """Read-only access to the DynamoDB tables behind the applicant views.

    Every call runs the blocking boto3 operation in a worker thread so that
    independent fetches can be awaited concurrently. One client is shared by
    all of them.
    """

    def __init__(
        self,
        region: str,
        endpoint_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.region = region
        self.endpoint_url = endpoint_url
        self._client = client

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    async def query_page(
        self,
        table: str,
        *,
        key_values: dict[str, str],
        index_name: str | None = None,
        cursor: Cursor | None = None,
    ) -> Page:
        expression, names, values = _equality_expression(key_values, prefix="k")
        request: dict[str, Any] = {
            "TableName": table,
            "KeyConditionExpression": expression,
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
        }
        if index_name:
            request["IndexName"] = index_name
        if cursor:
            request["ExclusiveStartKey"] = cursor

        response = await self._call("query", request)
        return Page(
            items=[deserialize_item(raw) for raw in response.get("Items", [])],
            next_cursor=response.get("LastEvaluatedKey") or None,
        )

    async def scan_page(
        self,
        table: str,
        *,
        filters: dict[str, str] | None = None,
        cursor: Cursor | None = None,
    ) -> Page:
        request: dict[str, Any] = {"TableName": table}
        if filters:
            expression, names, values = _equality_expression(filters, prefix="f")
            request["FilterExpression"] = expression
            request["ExpressionAttributeNames"] = names
            request["ExpressionAttributeValues"] = values
        if cursor:
            request["ExclusiveStartKey"] = cursor

        response = await self._call("scan", request)
        return Page(
            items=[deserialize_item(raw) for raw in response.get("Items", [])],
            next_cursor=response.get("LastEvaluatedKey") or None,
        )

    async def batch_get(self, table: str, key_attributes: Sequence[str], keys: list[Key]) -> BatchResult:
        """Fetch items by full primary key.

        ``key_attributes`` must name the table's whole key schema (partition key,
        then sort key if any); each entry of ``keys`` holds one value per attribute.
        """
        if not keys:
            return BatchResult(items=[])
        if len(keys) > MAX_BATCH_GET_KEYS:
            raise ValueError(f"batch_get accepts at most {MAX_BATCH_GET_KEYS} keys, got {len(keys)}")
        for key in keys:
            if len(key) != len(key_attributes):
                raise ValueError(f"key {key!r} does not match key schema {tuple(key_attributes)!r}")

        request = {
            "RequestItems": {
                table: {
                    "Keys": [
                        {attribute: {"S": value} for attribute, value in zip(key_attributes, key)} for key in keys
                    ]
                }
            }
        }
        response = await self._call("batch_get_item", request)

        items = [deserialize_item(raw) for raw in response.get("Responses", {}).get(table, [])]
        unprocessed_keys = response.get("UnprocessedKeys", {}).get(table, {}).get("Keys", [])
        unprocessed: list[Key] = []
        for raw_key in unprocessed_keys:
            plain = deserialize_item(raw_key)
            values = tuple(plain.get(attribute) for attribute in key_attributes)
            if all(isinstance(value, str) and value for value in values):
                unprocessed.append(values)
        return BatchResult(items=items, unprocessed=unprocessed)

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "dynamodb",
                region_name=self.region,
                endpoint_url=self.endpoint_url,
                config=Config(retries={"max_attempts": 3, "mode": "standard"}),
            )
        return self._client

    async def _call(self, operation: str, request: dict[str, Any]) -> dict[str, Any]:
        method = getattr(self._get_client(), operation)
        try:
            return await asyncio.to_thread(method, **request)
        except (ClientError, BotoCoreError) as exc:
            logger.error("dynamodb %s failed: %s", operation, exc)
            raise StoreUnavailableError(f"dynamodb {operation} failed: {exc}") from exc


@lru_cache
def get_store() -> DynamoStore:
    settings = get_settings()
    return DynamoStore(region=settings.aws_region, endpoint_url=settings.dynamodb_endpoint_url)
