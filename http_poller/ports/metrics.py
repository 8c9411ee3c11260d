"""Metrics port definition (interface and DTO)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

__all__ = ["PollAttemptDto", "MetricsPort"]


@dataclass(slots=True, frozen=True)
class PollAttemptDto:
    """Immutable snapshot of a single poll attempt's terminal outcome.

    Attributes:
        name: Name of the polled request.
        runtime_seconds: Time from issue to terminal outcome.
        is_failed: True if considered failed (transport error, 4xx/5xx).
        status_code: HTTP status code when response arrived; None otherwise.
    """

    name: str
    runtime_seconds: float
    is_failed: bool = False
    status_code: int | None = None


class MetricsPort(Protocol):
    """Interface for recording poll metrics.

    Implementations must be async-safe and non-blocking.
    Core calls update() after each attempt and record_decode_error()
    for each body that could not be decoded; presentation layers call
    __str__() to render summaries.
    """

    def update(self, attempt: PollAttemptDto, /) -> None:
        """Record a finished poll attempt.

        Args:
            attempt: The attempt to record.
        """
        ...

    def record_decode_error(self, name: str, /) -> None:
        """Record a response whose body could not be decoded.

        Args:
            name: Name of the polled request.
        """
        ...

    def __str__(self) -> str:
        """Return concise textual summary for humans.

        Returns:
            Formatted metrics string.
        """
        ...
