"""Codec port definition (interface)."""

from collections.abc import Iterator
from typing import Any, Protocol

__all__ = ["CodecPort"]


class CodecPort(Protocol):
    """Turns a raw response body into structured records."""

    def decode(self, body: bytes, /) -> Iterator[dict[str, Any]]:
        """Lazily decode ``body``.

        Args:
            body: Raw response body.

        Returns:
            Finite, possibly empty iterator of records. Malformed input
            raises from the iterator.
        """
        ...
