"""Staggered, bounded fan-out of independent units of work."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from .retry import Sleep

log = getLogger(__name__)


async def run_paced[T, R](
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    *,
    stagger: float,
    max_concurrency: int | None = None,
    sleep: Sleep = asyncio.sleep,
) -> list[R | None]:
    """Start ``worker(items[n])`` after ``n * stagger`` seconds and wait for all.

    Units run concurrently; a unit only waits for its own start delay and, when
    ``max_concurrency`` is set, for a free slot. It never waits for earlier
    units to finish. A unit that raises is logged and yields ``None`` in the
    result list without disturbing its siblings.
    """

    results: list[R | None] = [None] * len(items)
    slots = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def unit(index: int, item: T) -> None:
        if index and stagger:
            await sleep(index * stagger)
        try:
            if slots is None:
                results[index] = await worker(item)
            else:
                async with slots:
                    results[index] = await worker(item)
        except Exception:  # noqa: BLE001
            log.exception("Unit %s failed", index)

    async with asyncio.TaskGroup() as group:
        for index, item in enumerate(items):
            group.create_task(unit(index, item), name=f"paced-unit-{index}")

    return results
