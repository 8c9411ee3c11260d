"""HTTP transport adapter backed by a shared aiohttp session."""

import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any

import aiohttp
from aiohttp import BasicAuth, ClientTimeout, TCPConnector
from multidict import CIMultiDictProxy

from http_poller.adapters.driven.http.retry import retry
from http_poller.ports.http import HttpResponseDto
from http_poller.ports.requests import RequestSpec

__all__ = ["HttpClient", "request_kwargs", "flatten_headers"]

logger = logging.getLogger(__name__)

# Defaults match the configuration defaults
REQUEST_TIMEOUT = 60.0
CONNECT_TIMEOUT = 10.0
SOCKET_TIMEOUT = 10.0
AUTOMATIC_RETRIES = 1
POOL_MAX = 50
POOL_MAX_PER_ROUTE = 25

# Request spec option name -> aiohttp keyword
_OPTION_KEYWORDS = {
    "body": "data",
    "query": "params",
    "follow_redirects": "allow_redirects",
}


class HttpClient:
    """HTTP client shared by every request of every cycle.

    Features:
    - One connection pool for the whole process.
    - Automatic retries on transient errors, reported as times_retried.
    - Per-request options (headers, auth, body, timeout) from the RequestSpec.
    - Context manager for proper resource cleanup.
    """

    def __init__(
        self,
        *,
        request_timeout: float = REQUEST_TIMEOUT,
        connect_timeout: float = CONNECT_TIMEOUT,
        socket_timeout: float = SOCKET_TIMEOUT,
        automatic_retries: int = AUTOMATIC_RETRIES,
        pool_max: int = POOL_MAX,
        pool_max_per_route: int = POOL_MAX_PER_ROUTE,
        keepalive: bool = True,
        user: str | None = None,
        password: str | None = None,
        proxy: str | None = None,
    ) -> None:
        """Initialize HTTP client.

        Args:
            request_timeout: Total timeout of one request in seconds.
            connect_timeout: Timeout to establish a connection in seconds.
            socket_timeout: Timeout between two reads in seconds.
            automatic_retries: Retries on transient errors (0 = no retry).
            pool_max: Maximum open connections.
            pool_max_per_route: Maximum open connections per host.
            keepalive: Reuse connections between requests.
            user: Basic auth user applied to every request.
            password: Basic auth password applied to every request.
            proxy: Proxy URL applied to every request.
        """
        self.timeout = ClientTimeout(
            total=request_timeout,
            connect=connect_timeout,
            sock_read=socket_timeout,
        )
        self.pool_max = pool_max
        self.pool_max_per_route = pool_max_per_route
        self.keepalive = keepalive
        self.auth = BasicAuth(user, password) if user and password else None
        self.proxy = proxy
        self.session: aiohttp.ClientSession | None = None
        self._send = retry(times=automatic_retries + 1)(self._raw_request)

    async def __aenter__(self) -> "HttpClient":
        """Enter async context manager (start session).

        Returns:
            Self for use in async with statement.
        """
        connector = TCPConnector(
            limit=self.pool_max,
            limit_per_host=self.pool_max_per_route,
            force_close=not self.keepalive,
        )
        self.session = aiohttp.ClientSession(
            connector=connector,
            timeout=self.timeout,
            auth=self.auth,
        )
        logger.debug(
            f"HTTP session opened: pool_max={self.pool_max}, "
            f"pool_max_per_route={self.pool_max_per_route}, keepalive={self.keepalive}"
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Exit async context manager (close session).

        Args:
            exc_type: Exception type if raised in context.
            exc: Exception instance if raised in context.
            tb: Traceback if raised in context.
        """
        if self.session:
            await self.session.close()

    async def _raw_request(self, spec: RequestSpec, *, attempt: int = 0) -> HttpResponseDto:
        """Single HTTP request (with retry via decorator).

        Args:
            spec: Request to send.
            attempt: Zero-based attempt number, set by the retry decorator.

        Returns:
            Fully read response.

        Raises:
            RuntimeError: If session not initialized.
            aiohttp exceptions: Network/timeout errors (retried by decorator).
        """
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with' context manager")

        kwargs = request_kwargs(spec.options)
        if self.proxy:
            kwargs.setdefault("proxy", self.proxy)

        async with self.session.request(spec.method.upper(), spec.url, **kwargs) as resp:
            body = await resp.read()
            return HttpResponseDto(
                code=resp.status,
                message=resp.reason or "",
                headers=flatten_headers(resp.headers),
                body=body,
                times_retried=attempt,
            )

    async def request(self, spec: RequestSpec) -> HttpResponseDto:
        """Send one request, retrying transient errors.

        Any HTTP status is a successful result; only errors that prevent
        a response from being read are raised.

        Args:
            spec: Request to send.

        Returns:
            Fully read response.
        """
        return await self._send(spec)


def request_kwargs(options: Mapping[str, Any]) -> dict[str, Any]:
    """Translate request spec options into aiohttp request keywords.

    Unknown options are passed through unchanged.

    Args:
        options: Options of a RequestSpec.

    Returns:
        Keyword arguments for ``ClientSession.request``.
    """
    kwargs: dict[str, Any] = {}
    for key, value in options.items():
        if key == "auth":
            kwargs["auth"] = BasicAuth(value["user"], value["password"])
        elif key in ("request_timeout", "timeout"):
            kwargs["timeout"] = ClientTimeout(total=float(value))
        elif key == "headers":
            kwargs["headers"] = dict(value)
        else:
            kwargs[_OPTION_KEYWORDS.get(key, key)] = value
    return kwargs


def flatten_headers(headers: CIMultiDictProxy[str]) -> dict[str, str]:
    """Collapse multi-value response headers into one string per name.

    Repeated headers (``Set-Cookie``, ``Via``, ...) are joined with ", "
    in the order received.
    """
    return {name: ", ".join(headers.getall(name)) for name in headers.keys()}
