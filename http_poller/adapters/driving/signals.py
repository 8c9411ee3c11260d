"""Signal handling for graceful shutdown."""

import asyncio
import logging
import signal
from collections.abc import Callable

__all__ = ["make_stop_on_sigterm"]

logger = logging.getLogger(__name__)


def make_stop_on_sigterm() -> Callable[[], bool]:
    """Create SIGTERM-based stop flag for the poll loop.

    Registers SIGTERM/SIGINT handlers that set an asyncio.Event, returning
    an is_set-style callable for the poll loop to check.

    Returns:
        Callable that returns True when a termination signal was received.
    """
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_signal(sig: signal.Signals) -> None:
        """Set the stop event; a second signal is only logged."""
        if stop.is_set():
            logger.info(f"{sig.name} received again, shutdown already in progress")
            return
        logger.info(f"{sig.name} received, no new poll cycles will start")
        stop.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal, sig)

    return stop.is_set
