"""Backoff and timeout helpers for async generation attempts."""

import asyncio
from typing import Awaitable, Optional, TypeVar

from .errors import AttemptTimedOut

T = TypeVar('T')


def backoff_delay(retry_number: int, base_delay: float = 1.0) -> float:
    """
    Delay before the given retry (1 for the first retry, 2 for the second...).

    Linear in the retry number, so every wait is longer than the last.
    There is never a delay before the first attempt.

    Example:
        >>> backoff_delay(1), backoff_delay(2)
        (1.0, 2.0)
    """
    if retry_number < 1:
        return 0.0
    return base_delay * retry_number


async def timeout_async(coro: Awaitable[T], seconds: Optional[float]) -> T:
    """
    Run an async coroutine with an optional timeout.

    Args:
        coro: Coroutine to run
        seconds: Timeout in seconds, None for no limit

    Returns:
        Result of the coroutine

    Raises:
        AttemptTimedOut: If timeout is exceeded
    """
    if seconds is None:
        return await coro
    try:
        return await asyncio.wait_for(coro, timeout=seconds)
    except asyncio.TimeoutError:
        raise AttemptTimedOut(f"Operation timed out after {seconds} seconds")
