"""Bounded retry for idempotent async reads (chain mapping lookups).

Only transient transport failures are retried; typed domain errors such as
"not found" or "parse error" propagate on the first attempt.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


async def retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    delay_s: float,
    retry_on: tuple[type[Exception], ...],
    backoff: float = 2.0,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Call `func` up to `attempts` times, sleeping between failures.

    Re-raises the last exception once attempts are exhausted.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")
    delay = delay_s
    for attempt in range(1, attempts + 1):
        try:
            return await func()
        except retry_on as e:
            if attempt == attempts:
                logger.warning("All %d attempts failed: %s", attempts, e)
                raise
            logger.warning(
                "Attempt %d/%d failed, retrying in %.2fs: %s", attempt, attempts, delay, e
            )
            await sleep(delay)
            delay *= backoff
    raise RuntimeError("unreachable")  # pragma: no cover
