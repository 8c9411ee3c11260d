"""Configuration check for container orchestration and CI."""

import logging

from http_poller.adapters.driven.config.settings import load_settings
from http_poller.adapters.driven.logging.logging_config import configure_logs
from http_poller.core.request_table import build_request_table

__all__ = ["main"]

logger = logging.getLogger(__name__)


def main() -> int:
    """Check that the poller would start with the current configuration.

    Validates:
    - Required environment variables are set.
    - The URLs file exists and is a valid JSON object.
    - Every named request has a valid URL, method and auth block.

    No request is sent.

    Returns:
        0 if valid, 1 if invalid.
    """
    configure_logs()

    try:
        settings = load_settings()
        requests = build_request_table(settings.urls)
    except Exception as exc:
        logger.error(f"Poller configuration check FAILED: {exc}")
        return 1

    logger.info(f"Poller configuration check OK ({len(requests)} requests)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
