"""Order-preserving async map with a fixed concurrency budget."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def bounded_map(
    items: Sequence[T],
    limit: int,
    fn: Callable[[T], Awaitable[R]],
) -> list[R]:
    """Apply ``fn`` to every item with at most ``limit`` calls in flight.

    Results come back in input order regardless of completion order. Workers
    share one cursor over ``items``; each claims the next index, awaits
    ``fn`` and stores the result in that index's slot.

    Fails fast: the first exception cancels the remaining workers, waits for
    them to wind down, then is re-raised as-is. No work is left running in
    the background once this returns or raises.
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")
    if not items:
        return []

    results: list[R] = [None] * len(items)  # type: ignore[list-item]
    cursor = 0

    async def worker() -> None:
        nonlocal cursor
        while cursor < len(items):
            # Claim and advance happen without an await in between.
            index = cursor
            cursor += 1
            results[index] = await fn(items[index])

    workers = [asyncio.create_task(worker()) for _ in range(min(limit, len(items)))]
    try:
        done, pending = await asyncio.wait(workers, return_when=asyncio.FIRST_EXCEPTION)
    except BaseException:
        # Caller was cancelled; take the workers down with it.
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise

    failed = next((t for t in done if not t.cancelled() and t.exception() is not None), None)
    if failed is not None:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        logger.debug("bounded_map aborted after a worker failed: %r", failed.exception())
        raise failed.exception()

    return results
