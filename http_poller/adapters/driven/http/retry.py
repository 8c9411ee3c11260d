"""Automatic retries for transient transport errors."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TypeVar

import aiohttp

__all__ = ["retry", "RETRYABLE_ERRORS"]

logger = logging.getLogger(__name__)

# Exceptions considered transient and eligible for retry
RETRYABLE_ERRORS = (
    aiohttp.ClientConnectionError,  # Connection refused, DNS failed, reset
    aiohttp.ClientPayloadError,  # Streaming error
    asyncio.TimeoutError,  # Request, connect or socket timeout
)

T = TypeVar("T")
AsyncFn = Callable[..., Awaitable[T]]


def retry(
    times: int = 2,
    delay_sec: tuple[float, ...] = (0.2, 0.5, 1.0),
) -> Callable[[AsyncFn[T]], AsyncFn[T]]:
    """Decorate async transport function with backoff retry.

    Retries on transient errors (connection, timeout) but not permanent
    errors (invalid requests). The wrapped function receives the zero-based
    ``attempt`` number as keyword argument, so it can report how many
    retries preceded its result.

    Args:
        times: Number of attempts (1 = no retry).
        delay_sec: Delays between attempts in seconds.

    Returns:
        Decorator function.

    Example:
        @retry(times=3, delay_sec=(0.2, 0.5, 1.0))
        async def fetch(url, *, attempt=0):
            ...
    """
    if times < 1:
        raise ValueError(f"times must be at least 1 (got: {times})")

    def decorator(func: AsyncFn[T]) -> AsyncFn[T]:
        @wraps(func)
        async def wrapper(*args: object, **kwargs: object) -> T:
            for attempt in range(times):
                try:
                    return await func(*args, attempt=attempt, **kwargs)
                except RETRYABLE_ERRORS as e:
                    if attempt == times - 1:
                        logger.debug(f"Retry exhausted after {times} attempts: {e!r}")
                        raise
                    delay_idx = min(attempt, len(delay_sec) - 1)
                    logger.debug(
                        f"Transient error on attempt {attempt + 1}/{times}: {e!r}, "
                        f"retrying in {delay_sec[delay_idx]}s"
                    )
                    await asyncio.sleep(delay_sec[delay_idx])

            raise RuntimeError("Retry wrapper exhausted")

        return wrapper

    return decorator
