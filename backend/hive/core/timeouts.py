"""Timeouts and Retry: deadline and backoff wrappers for awaited operations.

Invariants:
    - with_timeout raises OperationTimeoutError (never asyncio.TimeoutError) on expiry
    - with_retry re-raises the last error after max_attempts
    - Delays grow by multiplier and never exceed max_delay
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from hive.core.errors import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Timeouts:
    """Deadline presets in seconds."""
    DEFAULT = 30
    SHORT = 10
    LONG = 60
    WEBHOOK = 30
    AI_REQUEST = 120
    DATABASE = 15


async def with_timeout(
    awaitable: Awaitable[T],
    seconds: float,
    message: str = "Operation timed out",
) -> T:
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        raise OperationTimeoutError(
            f"{message} after {seconds}s", timeout_seconds=seconds,
        )


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    multiplier: float = 2.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Call fn until it succeeds, backing off exponentially between attempts.

    The error from the final attempt propagates unchanged.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
    delay = initial_delay
    for attempt in range(1, max_attempts + 1):
        try:
            return await fn()
        except retry_on as e:
            if attempt == max_attempts:
                raise
            logger.warning(
                f"Attempt {attempt} failed, retrying in {delay}s: {e}",
                extra={"attempt": attempt},
            )
            await sleep(delay)
            delay = min(delay * multiplier, max_delay)
