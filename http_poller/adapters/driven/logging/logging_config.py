"""Console logging setup for the poller."""

import logging
import sys

__all__ = ["configure_logs"]


def configure_logs(level: str | int = logging.INFO) -> None:
    """Configure console logging.

    Sets up:
    - Root logger at INFO level, writing to stderr (stdout carries records).
    - Framework loggers (aiohttp, asyncio) at WARNING level.
    - Application loggers (http_poller) at the requested level.
    - Structured format with timestamp, level, module, and line number.

    Args:
        level: Level name or number for the application loggers.
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
    date_format = "%d/%m/%y %H:%M:%S"

    formatter = logging.Formatter(log_format, date_format)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    # Root logger
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(handler)

    # Suppress verbose framework loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    # Application loggers
    if isinstance(level, str):
        level = level.upper()
    logging.getLogger("http_poller").setLevel(level)
