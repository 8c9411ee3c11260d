"""Tests for the transport retry decorator."""

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from http_poller.adapters.driven.http.retry import RETRYABLE_ERRORS, retry

__all__ = []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc",
    [
        aiohttp.ClientConnectionError("refused"),
        aiohttp.ServerDisconnectedError(),
        aiohttp.ClientPayloadError("truncated"),
        TimeoutError("read timeout"),
    ],
)
async def test_retry_decorator_retries_on_transient_errors(exc: BaseException) -> None:
    """Retry decorator should retry on transient errors."""
    assert isinstance(exc, RETRYABLE_ERRORS)
    mock_fn = AsyncMock(side_effect=exc)
    wrapped = retry(times=3)(mock_fn)

    with (
        patch("http_poller.adapters.driven.http.retry.asyncio.sleep", new=AsyncMock()),
        pytest.raises(type(exc)),
    ):
        await wrapped()

    # Should attempt 3 times
    assert mock_fn.call_count == 3


@pytest.mark.asyncio
async def test_retry_decorator_first_call_success() -> None:
    """Retry decorator should not retry on first call success."""
    mock_fn = AsyncMock(return_value="response")
    wrapped = retry(times=3)(mock_fn)

    result = await wrapped("spec")

    assert result == "response"
    mock_fn.assert_awaited_once_with("spec", attempt=0)


@pytest.mark.asyncio
async def test_retry_decorator_passes_attempt_number() -> None:
    """The wrapped function learns which attempt it is running."""
    attempts: list[int] = []

    async def fetch(*, attempt: int = 0) -> int:
        attempts.append(attempt)
        if attempt < 2:
            raise aiohttp.ClientConnectionError("reset")
        return attempt

    wrapped = retry(times=3)(fetch)

    with patch("http_poller.adapters.driven.http.retry.asyncio.sleep", new=AsyncMock()):
        result = await wrapped()

    assert result == 2
    assert attempts == [0, 1, 2]


@pytest.mark.asyncio
async def test_retry_decorator_does_not_retry_permanent_errors() -> None:
    """Retry decorator should not retry non-transient errors."""
    mock_fn = AsyncMock(side_effect=ValueError("Invalid request"))
    wrapped = retry(times=3)(mock_fn)

    with pytest.raises(ValueError):
        await wrapped()

    # Should only try once
    assert mock_fn.call_count == 1


@pytest.mark.asyncio
async def test_retry_decorator_delays_between_attempts() -> None:
    """Retry decorator should back off between retry attempts."""
    mock_fn = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
    wrapped = retry(times=3, delay_sec=(0.1, 0.2, 0.3))(mock_fn)

    mock_sleep = AsyncMock()
    with (
        patch("http_poller.adapters.driven.http.retry.asyncio.sleep", mock_sleep),
        pytest.raises(aiohttp.ClientConnectionError),
    ):
        await wrapped()

    # 2 sleeps for 3 attempts, following the delay schedule
    assert [c.args[0] for c in mock_sleep.call_args_list] == [0.1, 0.2]


def test_retry_decorator_requires_one_attempt() -> None:
    """At least one attempt must be allowed."""
    with pytest.raises(ValueError):
        retry(times=0)
