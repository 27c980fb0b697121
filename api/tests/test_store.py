from __future__ import annotations

import asyncio

import pytest

from app.services.store import DynamoStore


class RecordingClient:
    def __init__(self, response: dict) -> None:
        self.response = response
        self.requests: list[dict] = []

    def batch_get_item(self, **request):
        self.requests.append(request)
        return self.response

    def close(self) -> None:
        return None


def test_batch_get_sends_full_composite_key() -> None:
    client = RecordingClient(
        {
            "Responses": {
                "negotiations": [
                    {"applicationId": {"S": "app-1"}, "negotiationId": {"S": "N1"}, "status": {"S": "pending"}},
                ]
            },
            "UnprocessedKeys": {
                "negotiations": {"Keys": [{"applicationId": {"S": "app-2"}, "negotiationId": {"S": "N2"}}]}
            },
        }
    )
    store = DynamoStore(region="us-east-1", client=client)

    result = asyncio.run(
        store.batch_get("negotiations", ("applicationId", "negotiationId"), [("app-1", "N1"), ("app-2", "N2")])
    )

    [request] = client.requests
    assert request["RequestItems"]["negotiations"]["Keys"] == [
        {"applicationId": {"S": "app-1"}, "negotiationId": {"S": "N1"}},
        {"applicationId": {"S": "app-2"}, "negotiationId": {"S": "N2"}},
    ]
    assert result.items == [{"applicationId": "app-1", "negotiationId": "N1", "status": "pending"}]
    assert result.unprocessed == [("app-2", "N2")]


def test_batch_get_rejects_keys_that_do_not_match_schema() -> None:
    client = RecordingClient({})
    store = DynamoStore(region="us-east-1", client=client)

    with pytest.raises(ValueError):
        asyncio.run(store.batch_get("negotiations", ("applicationId", "negotiationId"), [("N1",)]))
    assert client.requests == []
