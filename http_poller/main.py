"""Application entrypoint."""

import asyncio
import logging
import os
import socket

from http_poller.adapters.driven.codec.codecs import make_codec
from http_poller.adapters.driven.config.settings import Settings, load_settings
from http_poller.adapters.driven.http.client import HttpClient
from http_poller.adapters.driven.logging.logging_config import configure_logs
from http_poller.adapters.driven.metrics.poll_metrics import Metrics
from http_poller.adapters.driven.sink.sinks import StdoutSink
from http_poller.adapters.driving.signals import make_stop_on_sigterm
from http_poller.core.dispatcher import Dispatcher
from http_poller.core.event_loop import start_poll_loop
from http_poller.core.request_table import build_request_table
from http_poller.core.response_handler import ResponseHandler
from http_poller.ports.settings import SettingsPort

__all__ = ["main", "cli", "drain_in_flight", "SHUTDOWN_GRACE_SEC"]

logger = logging.getLogger(__name__)

# Upper bound on how long an in-flight cycle may run on after a stop
SHUTDOWN_GRACE_SEC = 10.0


async def main() -> int:
    """Start the HTTP poller service.

    Startup sequence:
    1. Configure logging.
    2. Load and validate configuration, including every named request.
    3. Open the shared HTTP session.
    4. Run poll cycles until SIGTERM/SIGINT.
    5. Let the in-flight cycle drain, then close the session.

    Returns:
        Process exit code: 0 after a clean stop, 1 on configuration error.
    """
    configure_logs(os.getenv("LOG_LEVEL", "INFO"))
    logger.info("Starting HTTP poller service...")

    try:
        config = load_settings()
        # Wrap config into port so core depends on interface (hexagonal)
        settings_port = SettingsPort(
            interval_in_sec=config.interval_in_sec,
            requests=build_request_table(config.urls),
            metadata_target=config.metadata_target,
            target=config.target,
        )
    except (RuntimeError, ValueError) as exc:
        logger.error(
            "Configuration error: %s\n"
            "Hint: check POLL_INTERVAL_SECONDS, POLL_URLS_FILE and that every "
            "request in the URLs file has a valid absolute URL and complete auth.",
            exc,
        )
        return 1

    metrics = Metrics()
    handler = ResponseHandler(
        codec=make_codec(config.codec),
        sink=StdoutSink(),
        host=socket.gethostname(),
        metadata_target=settings_port.metadata_target,
        target=settings_port.target,
        metrics=metrics,
    )

    async with make_http_client(config) as http:
        dispatcher = Dispatcher(request_fn=http.request, handler=handler, metrics=metrics)
        in_flight = None
        try:
            in_flight = await start_poll_loop(
                interval_in_sec=settings_port.interval_in_sec,
                on_cycle=lambda: dispatcher.dispatch_cycle(settings_port.requests),
                stop_fn=make_stop_on_sigterm(),
            )
        except Exception as e:
            logger.error(f"Unhandled exception in poll loop: {e}", exc_info=True)
        if in_flight is not None:
            await drain_in_flight(in_flight, SHUTDOWN_GRACE_SEC)

    logger.info("HTTP poller stopped.")
    return 0


async def drain_in_flight(cycle: asyncio.Future, timeout: float) -> bool:
    """Give a cycle left running by the scheduler time to finish.

    The shared session is closed right after this returns, so any request
    still pending past ``timeout`` fails with a transport error.

    Args:
        cycle: Cycle task returned by start_poll_loop().
        timeout: Seconds to wait.

    Returns:
        True if the cycle finished in time.
    """
    done, _ = await asyncio.wait({cycle}, timeout=timeout)
    if not done:
        logger.warning(f"In-flight cycle still running after {timeout}s; closing the HTTP session")
        return False
    logger.info("In-flight cycle drained")
    return True


def make_http_client(config: Settings) -> HttpClient:
    """Build the shared HTTP transport from settings.

    Args:
        config: Validated settings.

    Returns:
        Unopened HTTP client.
    """
    return HttpClient(
        request_timeout=config.request_timeout,
        connect_timeout=config.connect_timeout,
        socket_timeout=config.socket_timeout,
        automatic_retries=config.automatic_retries,
        pool_max=config.pool_max,
        pool_max_per_route=config.pool_max_per_route,
        keepalive=config.keepalive,
        user=config.user,
        password=config.password,
        proxy=config.proxy,
    )


def cli() -> None:
    """Console script entrypoint."""
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user (Ctrl+C).")


if __name__ == "__main__":
    cli()
