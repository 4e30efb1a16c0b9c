"""Concurrency helpers for rate-limited fan-out.

Bedrock and OpenRouter throttle hard when a burst of requests lands in the
same instant.  :func:`staggered_gather` behaves like ``asyncio.gather`` with
``return_exceptions=True`` but delays the start of each awaitable by
``stagger_delay * position`` so requests within a chunk trickle out.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

_T = TypeVar("_T")

logger = structlog.get_logger(logger_name=__name__)


async def staggered_gather(
    factories: list[Callable[[], Awaitable[_T]]],
    stagger_delay: float = 0.0,
) -> list[_T | BaseException]:
    """Run coroutine factories concurrently, staggering their start times.

    Parameters
    ----------
    factories:
        Zero-argument callables each returning an awaitable.  Factories are
        used instead of bare coroutines so nothing starts before its delay.
    stagger_delay:
        Seconds multiplied by the item's position in *factories*.  The first
        item starts immediately.

    Returns
    -------
    list
        Results in input order.  Failed items hold their exception.
    """

    async def _delayed(position: int, factory: Callable[[], Awaitable[_T]]) -> _T:
        if position and stagger_delay > 0:
            await asyncio.sleep(stagger_delay * position)
        return await factory()

    tasks = [_delayed(i, f) for i, f in enumerate(factories)]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    failures = sum(1 for r in results if isinstance(r, BaseException))
    if failures:
        logger.debug("staggered_gather_failures", failed=failures, total=len(results))
    return results
