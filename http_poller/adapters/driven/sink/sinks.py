"""Output record sinks."""

import asyncio
import json
import sys
from typing import Any, TextIO

__all__ = ["StdoutSink", "QueueSink"]


class StdoutSink:
    """Write each record as one JSON document per line."""

    def __init__(self, stream: TextIO | None = None) -> None:
        """Initialize sink.

        Args:
            stream: Text stream to write to; defaults to stdout.
        """
        self.stream = stream or sys.stdout

    def append(self, record: dict[str, Any]) -> None:
        self.stream.write(json.dumps(record, default=str) + "\n")
        self.stream.flush()


class QueueSink:
    """Hand records to an in-process asyncio queue.

    A full bounded queue raises asyncio.QueueFull instead of blocking.
    """

    def __init__(self, queue: asyncio.Queue[dict[str, Any]] | None = None) -> None:
        if queue is None:
            queue = asyncio.Queue()
        self.queue: asyncio.Queue[dict[str, Any]] = queue

    def append(self, record: dict[str, Any]) -> None:
        self.queue.put_nowait(record)
