"""Tests for the aiohttp transport adapter."""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from aiohttp import BasicAuth, ClientTimeout
from multidict import CIMultiDict, CIMultiDictProxy

from http_poller.adapters.driven.http.client import HttpClient, request_kwargs
from http_poller.core.request_table import build_request_table
from http_poller.ports.http import HttpResponseDto

__all__ = []


def make_response_cm(
    status: int = 200,
    body: bytes = b"{}",
    reason: str = "OK",
    headers: list[tuple[str, str]] | None = None,
) -> MagicMock:
    """Fake ``session.request(...)`` async context manager."""
    resp = MagicMock()
    resp.status = status
    resp.reason = reason
    resp.headers = CIMultiDictProxy(CIMultiDict(headers or [("Content-Type", "application/json")]))
    resp.read = AsyncMock(return_value=body)
    cm = MagicMock()
    cm.__aenter__.return_value = resp
    return cm


@pytest.mark.asyncio
async def test_http_client_context_manager() -> None:
    """HTTP client should initialize and close session."""
    client = HttpClient()
    assert client.session is None

    async with client as c:
        assert c.session is not None
        assert c is client

    assert client.session.closed


@pytest.mark.asyncio
async def test_request_returns_fully_read_response() -> None:
    """request() should read the body and map status, reason and headers."""
    client = HttpClient()
    client.session = MagicMock()
    client.session.request.return_value = make_response_cm(200, b'{"k":1}')
    spec = build_request_table({"a": "http://x/1"})["a"]

    resp = await client.request(spec)

    assert resp == HttpResponseDto(
        code=200,
        message="OK",
        headers={"Content-Type": "application/json"},
        body=b'{"k":1}',
        times_retried=0,
    )
    client.session.request.assert_called_once_with("GET", "http://x/1")


@pytest.mark.asyncio
async def test_request_keeps_every_value_of_repeated_headers() -> None:
    """Repeated response headers are joined instead of overwritten."""
    client = HttpClient()
    client.session = MagicMock()
    client.session.request.return_value = make_response_cm(
        headers=[
            ("Content-Type", "application/json"),
            ("Set-Cookie", "a=1"),
            ("Set-Cookie", "b=2"),
        ]
    )
    spec = build_request_table({"a": "http://x/1"})["a"]

    resp = await client.request(spec)

    assert resp.headers == {"Content-Type": "application/json", "Set-Cookie": "a=1, b=2"}


@pytest.mark.asyncio
async def test_request_forwards_spec_options() -> None:
    """Method, headers, auth and body from the spec reach aiohttp."""
    client = HttpClient()
    client.session = MagicMock()
    client.session.request.return_value = make_response_cm(201)
    spec = build_request_table(
        {
            "a": {
                "method": "post",
                "url": "http://x/1",
                "headers": {"Accept": "application/json"},
                "auth": {"user": "alice", "password": "secret"},
                "body": "payload",
            }
        }
    )["a"]

    resp = await client.request(spec)

    assert resp.code == 201
    client.session.request.assert_called_once_with(
        "POST",
        "http://x/1",
        headers={"Accept": "application/json"},
        auth=BasicAuth("alice", "secret"),
        data="payload",
    )


@pytest.mark.asyncio
async def test_error_status_is_not_raised() -> None:
    """HTTP error statuses are responses, not transport failures."""
    client = HttpClient()
    client.session = MagicMock()
    client.session.request.return_value = make_response_cm(503, b"down", "Service Unavailable")
    spec = build_request_table({"a": "http://x/1"})["a"]

    resp = await client.request(spec)

    assert resp.code == 503
    assert resp.message == "Service Unavailable"


@pytest.mark.asyncio
async def test_request_reports_times_retried() -> None:
    """A response after a transient error reports one retry."""
    client = HttpClient(automatic_retries=2)
    client.session = MagicMock()
    client.session.request.side_effect = [
        aiohttp.ClientConnectionError("connection reset"),
        make_response_cm(200),
    ]
    spec = build_request_table({"a": "http://x/1"})["a"]

    with patch("http_poller.adapters.driven.http.retry.asyncio.sleep", new=AsyncMock()):
        resp = await client.request(spec)

    assert resp.times_retried == 1
    assert client.session.request.call_count == 2


@pytest.mark.asyncio
async def test_request_raises_when_retries_exhausted() -> None:
    """Transient errors propagate once automatic retries are used up."""
    client = HttpClient(automatic_retries=1)
    client.session = MagicMock()
    client.session.request.side_effect = aiohttp.ClientConnectionError("refused")
    spec = build_request_table({"a": "http://x/1"})["a"]

    with (
        patch("http_poller.adapters.driven.http.retry.asyncio.sleep", new=AsyncMock()),
        pytest.raises(aiohttp.ClientConnectionError),
    ):
        await client.request(spec)

    assert client.session.request.call_count == 2


@pytest.mark.asyncio
async def test_request_applies_global_proxy() -> None:
    """A configured proxy is used unless the spec sets its own."""
    client = HttpClient(proxy="http://proxy:3128")
    client.session = MagicMock()
    client.session.request.return_value = make_response_cm()
    spec = build_request_table({"a": "http://x/1"})["a"]

    await client.request(spec)

    client.session.request.assert_called_once_with("GET", "http://x/1", proxy="http://proxy:3128")


@pytest.mark.asyncio
async def test_request_raises_if_session_not_initialized() -> None:
    """request() should raise if used outside the context manager."""
    client = HttpClient()
    spec = build_request_table({"a": "http://x/1"})["a"]

    with pytest.raises(RuntimeError, match="Session not initialized"):
        await client.request(spec)


def test_request_kwargs_translates_options() -> None:
    """Known options are renamed, unknown ones pass through."""
    kwargs = request_kwargs(
        {
            "request_timeout": 5,
            "follow_redirects": False,
            "query": {"q": "1"},
            "json": {"k": 1},
            "ssl": False,
        }
    )

    assert kwargs == {
        "timeout": ClientTimeout(total=5.0),
        "allow_redirects": False,
        "params": {"q": "1"},
        "json": {"k": 1},
        "ssl": False,
    }


def test_global_credentials_become_session_auth() -> None:
    """User and password configure basic auth for every request."""
    assert HttpClient(user="u", password="p").auth == BasicAuth("u", "p")
    assert HttpClient().auth is None
