"""Sink port definition (interface)."""

from typing import Any, Protocol

__all__ = ["SinkPort"]


class SinkPort(Protocol):
    """Downstream consumer of output records.

    Implementations must not block the event loop.
    """

    def append(self, record: dict[str, Any], /) -> None:
        """Push one record downstream.

        Args:
            record: Output record.
        """
        ...
