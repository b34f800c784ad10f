"""Fetches a range of sequencer blocks and forwards them to the executor in order."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable

from .executor import FromSequencer

logger = logging.getLogger(__name__)

# A new request is started while at most this many are pending.
_MAX_PENDING = 20


class RequestError(Exception):
    """Getting a block from the sequencer failed; the request may be retried."""


class SyncError(RuntimeError):
    """Syncing was aborted."""


async def run(
    start: int,
    end: int,
    fetch_block: Callable[[int], Awaitable[Any]],
    executor_queue: Any,
) -> None:
    """Fetch the blocks at heights ``start`` up to but excluding ``end``.

    Blocks are forwarded to ``executor_queue`` in height order, each wrapped in
    ``FromSequencer``. A ``RequestError`` from ``fetch_block`` reschedules that
    height; any other error, or a failure to enqueue, raises ``SyncError``.
    """
    heights = iter(range(start, end))
    exhausted = False
    pending: deque[tuple[int, asyncio.Task]] = deque()
    try:
        while True:
            while not exhausted and len(pending) <= _MAX_PENDING:
                height = next(heights, None)
                if height is None:
                    exhausted = True
                    break
                pending.append((height, asyncio.ensure_future(fetch_block(height))))
            if not pending:
                logger.info("sync finished")
                return

            height, task = pending.popleft()
            try:
                block = await task
            except RequestError as err:
                logger.warning(
                    "failed getting sequencer block at height %d; rescheduling: %s", height, err
                )
                pending.appendleft((height, asyncio.ensure_future(fetch_block(height))))
                continue
            except Exception as err:
                logger.error(
                    "failed getting a client at height %d; aborting sync: %s", height, err
                )
                raise SyncError("failed getting a client from the pool") from err

            try:
                executor_queue.put_nowait(FromSequencer(block=block))
            except Exception as err:
                logger.error(
                    "failed forwarding block at height %d to executor; aborting sync", height
                )
                raise SyncError("failed forwarding block to executor") from err
    finally:
        for _, task in pending:
            task.cancel()