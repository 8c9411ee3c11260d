"""HTTP port definition (interface and DTO)."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from http_poller.ports.requests import RequestSpec

__all__ = ["HttpResponseDto", "RequestFn"]


@dataclass(slots=True, frozen=True)
class HttpResponseDto:
    """Fully read HTTP response handed from the transport to the core.

    Decouples response handling from the HTTP implementation.

    Attributes:
        code: HTTP status code.
        message: HTTP reason phrase.
        headers: Response headers.
        body: Raw response body.
        times_retried: Retries the transport needed before this response.
    """

    code: int
    message: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    times_retried: int = 0


RequestFn = Callable[[RequestSpec], Awaitable[HttpResponseDto]]
