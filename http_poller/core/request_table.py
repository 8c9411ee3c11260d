"""Validated, read-only table of the named requests to poll."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from yarl import URL

from http_poller.ports.requests import RequestSpec

__all__ = ["ConfigurationError", "RequestTable", "build_request_table", "HTTP_METHODS"]

logger = logging.getLogger(__name__)

_HTTP_SCHEMES = frozenset({"http", "https"})

HTTP_METHODS = frozenset({"get", "head", "post", "put", "patch", "delete", "options"})
DEFAULT_METHOD = "get"


class ConfigurationError(ValueError):
    """Raised when the request set cannot be polled as configured."""


class RequestTable(Mapping[str, RequestSpec]):
    """Ordered, name-keyed view over validated RequestSpecs.

    Built once at startup and never mutated, so it can be shared across
    cycles without locking.
    """

    def __init__(self, specs: list[RequestSpec]) -> None:
        self._specs: Mapping[str, RequestSpec] = MappingProxyType({s.name: s for s in specs})

    def __getitem__(self, name: str) -> RequestSpec:
        return self._specs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def specs(self) -> list[RequestSpec]:
        """Return the specs in configuration order."""
        return list(self._specs.values())

    def __repr__(self) -> str:
        return f"RequestTable({list(self._specs)!r})"


def build_request_table(raw: Mapping[str, Any]) -> RequestTable:
    """Normalize and validate the configured request set.

    Each value is either a bare URL string (polled with GET) or a mapping
    with a required ``url``, an optional ``method`` and any transport
    options (``headers``, ``auth``, ``body``, timeouts, ...).

    Args:
        raw: Mapping of request name to URL string or request spec.

    Returns:
        The validated request table.

    Raises:
        ConfigurationError: If any entry is invalid. Nothing is polled
            unless every entry is valid.
    """
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Requests must be a mapping of name to URL or request spec")
    if not raw:
        raise ConfigurationError("At least one request must be configured")

    specs = [_normalize_request(str(name), value) for name, value in raw.items()]
    logger.debug(f"Built request table with {len(specs)} requests: {[s.name for s in specs]}")
    return RequestTable(specs)


def _normalize_request(name: str, url_or_spec: Any) -> RequestSpec:
    if isinstance(url_or_spec, str):
        return RequestSpec(name=name, method=DEFAULT_METHOD, url=_validate_url(name, url_or_spec))

    if not isinstance(url_or_spec, Mapping):
        raise ConfigurationError(
            f"Invalid URL or request spec for '{name}': {url_or_spec!r}, "
            "expected a string or a mapping"
        )

    options = {str(k): v for k, v in url_or_spec.items()}
    method = str(options.pop("method", None) or DEFAULT_METHOD).lower()
    if method not in HTTP_METHODS:
        raise ConfigurationError(f"Unsupported HTTP method for '{name}': {method}")

    url = options.pop("url", None)
    if not url:
        raise ConfigurationError(f"No URL provided for request '{name}': {url_or_spec!r}")

    headers = options.get("headers")
    if headers is not None and not isinstance(headers, Mapping):
        raise ConfigurationError(f"Headers for '{name}' must be a mapping")

    if "auth" in options:
        options["auth"] = _validate_auth(name, options["auth"])

    return RequestSpec(
        name=name,
        method=method,
        url=_validate_url(name, url),
        options=MappingProxyType(options),
    )


def _validate_url(name: str, url: Any) -> str:
    """Check that ``url`` is an absolute http(s) URL and return it unchanged.

    The configured string is checked as-is: it is sent to the transport
    verbatim, so surrounding whitespace is an error rather than trimmed.
    """
    if not isinstance(url, str):
        raise ConfigurationError(f"URL for '{name}' must be a string, got {url!r}")
    if url != url.strip():
        raise ConfigurationError(f"Invalid URL for '{name}': {url!r}")
    try:
        parsed = URL(url)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"Invalid URL for '{name}': {url!r}") from e
    if parsed.scheme not in _HTTP_SCHEMES or not parsed.host:
        raise ConfigurationError(f"Invalid URL for '{name}': {url!r}")
    return url


def _validate_auth(name: str, auth: Any) -> dict[str, str]:
    if not isinstance(auth, Mapping):
        raise ConfigurationError(f"Auth for '{name}' must be a mapping with user and password")
    user = auth.get("user")
    password = auth.get("password", auth.get("pass"))
    if not user or not password:
        raise ConfigurationError(
            f"Auth for '{name}' requires both a non-empty user and password"
        )
    return {"user": str(user), "password": str(password)}
