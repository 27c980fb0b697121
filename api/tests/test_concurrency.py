from __future__ import annotations

import asyncio

import pytest

from app.services.concurrency import gather_bounded


def test_gather_bounded_returns_results_in_submission_order() -> None:
    async def value(result: int, delay: float) -> int:
        await asyncio.sleep(delay)
        return result

    results = asyncio.run(
        gather_bounded(
            [
                lambda: value(1, 0.03),
                lambda: value(2, 0.0),
                lambda: value(3, 0.01),
            ],
            limit=3,
        )
    )

    assert results == [1, 2, 3]


def test_gather_bounded_respects_limit() -> None:
    in_flight = 0
    peak = 0

    async def work() -> None:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1

    asyncio.run(gather_bounded([work for _ in range(8)], limit=2))

    assert peak == 2


def test_gather_bounded_cancels_siblings_on_first_failure() -> None:
    cancelled = []

    async def slow() -> None:
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    async def boom() -> None:
        await asyncio.sleep(0.01)
        raise RuntimeError("store down")

    with pytest.raises(RuntimeError, match="store down"):
        asyncio.run(gather_bounded([slow, boom, slow], limit=3))

    assert cancelled == [True, True]


def test_gather_bounded_with_nothing_to_do() -> None:
    assert asyncio.run(gather_bounded([], limit=4)) == []
