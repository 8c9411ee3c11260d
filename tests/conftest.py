"""Shared fakes for poller tests."""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest

from http_poller.ports.metrics import PollAttemptDto
from http_poller.ports.requests import RequestContext, RequestSpec


class ListSink:
    """Sink collecting records in memory."""

    def __init__(self) -> None:
        self.records: list[dict[str, Any]] = []

    def append(self, record: dict[str, Any]) -> None:
        """Collect record."""
        self.records.append(record)


class DummyMetrics:
    """Metrics implementation for testing."""

    def __init__(self) -> None:
        self.attempts: list[PollAttemptDto] = []
        self.decode_errors: list[str] = []

    def update(self, attempt: PollAttemptDto) -> None:
        """Record attempt."""
        self.attempts.append(attempt)

    def record_decode_error(self, name: str) -> None:
        """Record decode error."""
        self.decode_errors.append(name)

    def __str__(self) -> str:
        """Return string representation."""
        return f"Recorded {len(self.attempts)} attempts"


@pytest.fixture
def sink() -> ListSink:
    return ListSink()


@pytest.fixture
def metrics() -> DummyMetrics:
    return DummyMetrics()


@pytest.fixture
def make_context() -> Callable[..., RequestContext]:
    """Build a RequestContext issued at monotonic time 100.0."""

    def _make(name: str = "a", url: str = "http://x/1", **options: Any) -> RequestContext:
        issued = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        return RequestContext(
            spec=RequestSpec(name=name, method="get", url=url, options=options),
            attempt_id="attempt-1",
            batch_started_at=issued,
            issued_at=issued,
            issued_at_sec=100.0,
        )

    return _make
