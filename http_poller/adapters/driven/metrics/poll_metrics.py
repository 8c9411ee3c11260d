"""In-memory sliding-window metrics for poll attempts."""

from __future__ import annotations

import statistics
from collections import deque
from dataclasses import dataclass

from http_poller.ports.metrics import MetricsPort, PollAttemptDto

__all__ = ["Metrics"]


@dataclass(slots=True, frozen=True)
class _Sample:
    """Internal record for one poll attempt."""

    runtime_ms: float
    failed: bool
    status_code: int


class Metrics(MetricsPort):
    """Fast, lock-free metrics for async context.

    Tracks:
    - Average runtime (issue to terminal outcome).
    - Failure rate (transport failures or 4xx/5xx responses).
    - Last status code.
    - Total attempts seen.
    - Decode errors, kept apart from transport failures.

    Not thread-safe; create one instance per event loop.
    """

    def __init__(self, *, window_size: int = 100) -> None:
        """Initialize metrics collector.

        Args:
            window_size: Number of recent attempts to keep for statistics.
        """
        self._window: deque[_Sample] = deque(maxlen=window_size)
        self._total_seen: int = 0
        self._decode_errors: int = 0

    def update(self, attempt: PollAttemptDto) -> None:
        """Record a finished poll attempt.

        Args:
            attempt: Poll attempt with timing and result info.
        """
        self._window.append(
            _Sample(
                runtime_ms=attempt.runtime_seconds * 1_000.0,
                failed=attempt.is_failed,
                status_code=attempt.status_code or 0,
            )
        )
        self._total_seen += 1

    def record_decode_error(self, name: str) -> None:
        """Count a response body that could not be decoded.

        Args:
            name: Name of the polled request.
        """
        self._decode_errors += 1

    @property
    def decode_errors(self) -> int:
        return self._decode_errors

    def __str__(self) -> str:
        """Return human-readable one-line summary for logging.

        Returns:
            Formatted metrics string.
        """
        if not self._window:
            return "Metrics: waiting for data …"

        n_window = len(self._window)
        failures = sum(1 for s in self._window if s.failed)
        fail_pct = (failures / n_window) * 100
        avg_runtime = statistics.fmean(s.runtime_ms for s in self._window)
        last = self._window[-1]

        return (
            f"runtime={avg_runtime:7.1f} ms | "
            f"status={last.status_code:3d} | "
            f"fail={fail_pct:5.1f}% | "
            f"decode_errors={self._decode_errors} | "
            f"win={n_window}/{self._window.maxlen} | "
            f"total={self._total_seen}"
        )
