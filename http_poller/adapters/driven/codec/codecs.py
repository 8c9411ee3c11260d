"""Response body codecs."""

import json
import logging
from collections.abc import Iterator
from typing import Any

from http_poller.ports.codec import CodecPort

__all__ = ["JsonCodec", "JsonLinesCodec", "PlainCodec", "make_codec", "CODECS"]

logger = logging.getLogger(__name__)


def _as_record(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {"message": value}


class JsonCodec:
    """Decode a JSON body.

    An object yields one record, an array yields one record per element.
    Scalars and non-object elements are kept under ``message``.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def decode(self, body: bytes) -> Iterator[dict[str, Any]]:
        text = body.decode(self.encoding)
        if not text.strip():
            return
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Response body is not valid JSON: {e}") from e

        if isinstance(data, list):
            for item in data:
                yield _as_record(item)
        else:
            yield _as_record(data)


class JsonLinesCodec:
    """Decode one JSON document per non-blank line."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def decode(self, body: bytes) -> Iterator[dict[str, Any]]:
        for lineno, line in enumerate(body.decode(self.encoding).splitlines(), start=1):
            if not line.strip():
                continue
            try:
                yield _as_record(json.loads(line))
            except json.JSONDecodeError as e:
                raise ValueError(f"Line {lineno} is not valid JSON: {e}") from e


class PlainCodec:
    """Keep the whole body as text under ``message``."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def decode(self, body: bytes) -> Iterator[dict[str, Any]]:
        yield {"message": body.decode(self.encoding, errors="replace")}


CODECS: dict[str, type[CodecPort]] = {
    "json": JsonCodec,
    "json_lines": JsonLinesCodec,
    "plain": PlainCodec,
}


def make_codec(name: str) -> CodecPort:
    """Instantiate a codec by name.

    Args:
        name: One of CODECS.

    Returns:
        The codec.

    Raises:
        ValueError: If the codec is unknown.
    """
    try:
        codec_cls = CODECS[name]
    except KeyError as e:
        raise ValueError(f"Unknown codec '{name}', expected one of {sorted(CODECS)}") from e
    logger.debug(f"Using {codec_cls.__name__} for response bodies")
    return codec_cls()
