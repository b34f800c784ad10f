import asyncio

import pytest

from astria.executor import FromSequencer
from astria.sequencer_sync import RequestError, SyncError, run


def _drain(queue: asyncio.Queue) -> list:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


@pytest.mark.asyncio
async def test_blocks_are_forwarded_in_height_order():
    async def fetch(height):
        await asyncio.sleep(0.001 * (20 - height))
        return ("block", height)

    queue = asyncio.Queue()
    await asyncio.wait_for(run(3, 15, fetch, queue), timeout=5)

    items = _drain(queue)
    assert all(isinstance(item, FromSequencer) for item in items)
    assert [item.block for item in items] == [("block", h) for h in range(3, 15)]


@pytest.mark.asyncio
async def test_empty_range_forwards_nothing():
    calls = []

    async def fetch(height):
        calls.append(height)
        return height

    queue = asyncio.Queue()
    await run(7, 7, fetch, queue)
    assert queue.empty()
    assert calls == []


@pytest.mark.asyncio
async def test_failed_requests_are_retried_in_place():
    attempts = {}

    async def fetch(height):
        attempts[height] = attempts.get(height, 0) + 1
        if height == 3 and attempts[height] == 1:
            raise RequestError("transient")
        return height

    queue = asyncio.Queue()
    await asyncio.wait_for(run(1, 6, fetch, queue), timeout=5)

    assert [item.block for item in _drain(queue)] == list(range(1, 6))
    assert attempts[3] == 2
    assert attempts[4] == 1


@pytest.mark.asyncio
async def test_other_errors_abort_the_sync():
    failure = LookupError("pool closed")

    async def fetch(height):
        if height == 2:
            raise failure
        return height

    queue = asyncio.Queue()
    with pytest.raises(SyncError) as info:
        await run(0, 5, fetch, queue)
    assert info.value.__cause__ is failure
    assert [item.block for item in _drain(queue)] == [0, 1]


@pytest.mark.asyncio
async def test_forwarding_failure_aborts_the_sync():
    async def fetch(height):
        return height

    queue = asyncio.Queue(maxsize=1)
    with pytest.raises(SyncError, match="failed forwarding block to executor"):
        await run(0, 4, fetch, queue)
    assert [item.block for item in _drain(queue)] == [0]


@pytest.mark.asyncio
async def test_number_of_requests_in_flight_is_bounded():
    in_flight = 0
    peak = 0

    async def fetch(height):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.005)
        in_flight -= 1
        return height

    queue = asyncio.Queue()
    await asyncio.wait_for(run(0, 60, fetch, queue), timeout=10)

    assert peak <= 21
    assert queue.qsize() == 60