"""Request/response metadata attached to every emitted record."""

from typing import Any

from http_poller.ports.http import HttpResponseDto
from http_poller.ports.requests import RequestContext

__all__ = ["build_metadata"]


def build_metadata(
    context: RequestContext,
    host: str,
    finished_at_sec: float,
    response: HttpResponseDto | None = None,
) -> dict[str, Any]:
    """Build the metadata attachment for one terminal outcome.

    Pure function: the same inputs always give the same output.

    Args:
        context: The dispatch that produced the outcome.
        host: Name of the polling host.
        finished_at_sec: Monotonic time of the terminal outcome.
        response: The HTTP response, on the success path only.

    Returns:
        Metadata mapping. Response fields are only present when a
        response is supplied.
    """
    metadata: dict[str, Any] = {
        "name": context.name,
        "host": host,
        "url": context.spec.url,
        "issued_at": context.issued_at.isoformat(),
        "runtime_seconds": finished_at_sec - context.issued_at_sec,
    }

    if response is not None:
        metadata["code"] = response.code
        metadata["response_headers"] = dict(response.headers)
        metadata["response_message"] = response.message
        metadata["times_retried"] = response.times_retried

    return metadata
