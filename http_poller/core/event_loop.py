"""Fixed-interval, non-overlapping poll scheduler."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

__all__ = ["start_poll_loop", "get_now_time", "STOP_POLL_SEC"]

logger = logging.getLogger(__name__)

# Upper bound on how long a stop request can go unnoticed
STOP_POLL_SEC = 0.5


def get_now_time() -> float:
    """Get current monotonic time in seconds.

    Uses event loop's monotonic clock for accurate scheduling
    without wall-clock drift.

    Returns:
        Current time in seconds (monotonic).
    """
    return asyncio.get_running_loop().time()


async def start_poll_loop(
    interval_in_sec: float,
    on_cycle: Callable[[], Awaitable[Any]],
    stop_fn: Callable[[], bool],
) -> asyncio.Task[Any] | None:
    """Run poll cycles until stop_fn() returns True.

    Periodically:
    1. Start one cycle as a background task.
    2. Wait for it to finish; cycles never overlap.
    3. Sleep until ``interval_in_sec`` after the cycle's start. A cycle
       that ran longer than the interval is followed immediately.
    4. Repeat until stop_fn() returns True.

    Args:
        interval_in_sec: Seconds between the starts of two cycles.
        on_cycle: Async function running one full cycle.
        stop_fn: Callable that returns True when loop should exit.

    Returns:
        The cycle still in flight when the stop was noticed, or None.

    Notes:
        - stop_fn is polled at least every STOP_POLL_SEC, also while a
          cycle is in flight.
        - On shutdown the in-flight cycle is not cancelled: it keeps
          running on the event loop and is returned so the caller can let
          it drain before closing the transport.
        - An exception escaping a cycle is logged; the schedule goes on.
    """
    loop = asyncio.get_running_loop()
    next_tick: float = get_now_time()
    cycle_no = 0

    while not stop_fn():
        cycle_no += 1
        logger.debug(f"Starting poll cycle #{cycle_no}")
        cycle: asyncio.Task[Any] = loop.create_task(on_cycle())

        while not cycle.done():
            await asyncio.wait({cycle}, timeout=STOP_POLL_SEC)
            if not cycle.done() and stop_fn():
                logger.info(f"Stop requested while cycle #{cycle_no} is in flight; leaving it to drain")
                return cycle

        if not cycle.cancelled() and cycle.exception() is not None:
            logger.error(
                f"Unexpected error in poll cycle #{cycle_no}: {cycle.exception()}",
                exc_info=cycle.exception(),
            )

        next_tick = max(next_tick + interval_in_sec, get_now_time())
        while not stop_fn():
            sleep_duration = next_tick - get_now_time()
            if sleep_duration <= 0:
                break
            await asyncio.sleep(min(sleep_duration, STOP_POLL_SEC))

    logger.info(f"Poll loop stopped after {cycle_no} cycles")
    return None
