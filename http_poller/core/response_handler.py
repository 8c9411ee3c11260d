"""Turns transport outcomes into output records pushed to the sink."""

import logging
import time
import traceback
from collections.abc import Callable
from typing import Any

from http_poller.core.metadata import build_metadata
from http_poller.ports.codec import CodecPort
from http_poller.ports.http import HttpResponseDto
from http_poller.ports.metrics import MetricsPort, PollAttemptDto
from http_poller.ports.requests import RequestContext
from http_poller.ports.sink import SinkPort

__all__ = ["ResponseHandler", "FAILURE_TAG", "FIRST_FAILING_HTTP_CODE"]

logger = logging.getLogger(__name__)

FAILURE_TAG = "_http_request_failure"
FIRST_FAILING_HTTP_CODE = 400
SNAPSHOT_BODY_BYTES = 512


class ResponseHandler:
    """Success and failure continuations for dispatched requests.

    Nothing raised while handling one outcome escapes the handler: errors
    are logged and the poll cycle carries on.
    """

    def __init__(
        self,
        codec: CodecPort,
        sink: SinkPort,
        *,
        host: str,
        metadata_target: str | None = "@metadata",
        target: str | None = None,
        metrics: MetricsPort | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the handler.

        Args:
            codec: Decoder for response bodies.
            sink: Destination of output records.
            host: Name of the polling host, reported in metadata.
            metadata_target: Field receiving metadata; falsy disables it.
            target: Field wrapping decoded content; falsy merges at top level.
            metrics: Optional metrics collector.
            clock: Monotonic clock used to time outcomes.
        """
        self.codec = codec
        self.sink = sink
        self.host = host
        self.metadata_target = metadata_target or None
        self.target = target or None
        self.metrics = metrics
        self._clock = clock

    def on_success(self, context: RequestContext, response: HttpResponseDto) -> None:
        """Decode the response body and emit one record per decoded item.

        Args:
            context: The dispatch that produced the response.
            response: The HTTP response.
        """
        finished = self._clock()
        logger.debug(
            f"Fetched {context.name} ({context.spec.url}): status={response.code}, "
            f"attempt={context.attempt_id}"
        )

        try:
            for decoded in self.codec.decode(response.body):
                self._handle_decoded(context, response, decoded, finished)
        except Exception as e:  # noqa: BLE001
            logger.error(
                f"Error decoding response for {context.name} ({context.spec.url}): {e}; "
                f"response={_snapshot(response)}"
            )
            if self.metrics:
                self.metrics.record_decode_error(context.name)

        self._record_attempt(
            PollAttemptDto(
                name=context.name,
                runtime_seconds=finished - context.issued_at_sec,
                is_failed=response.code >= FIRST_FAILING_HTTP_CODE,
                status_code=response.code,
            )
        )

    def _handle_decoded(
        self,
        context: RequestContext,
        response: HttpResponseDto,
        decoded: Any,
        finished: float,
    ) -> None:
        try:
            if self.target:
                record = {self.target: decoded}
            elif isinstance(decoded, dict):
                record = decoded
            else:
                raise TypeError(f"Decoded value is not a record: {decoded!r}")

            self._apply_metadata(record, context, finished, response)
            self.sink.append(record)
        except Exception as e:  # noqa: BLE001
            logger.error(
                f"Error eventifying response for {context.name} ({context.spec.url}): {e}; "
                f"response={_snapshot(response)}",
                exc_info=True,
            )

    def on_failure(self, context: RequestContext, error: BaseException) -> None:
        """Emit a tagged failure record in place of the missing response.

        Args:
            context: The dispatch that failed.
            error: Why no response was delivered.
        """
        finished = self._clock()
        runtime = finished - context.issued_at_sec
        logger.warning(
            f"Request {context.name} ({context.spec.url}) failed after {runtime:.3f}s: "
            f"{_describe(error)}"
        )

        try:
            record: dict[str, Any] = {"tags": [FAILURE_TAG]}
            self._apply_metadata(record, context, finished)

            # Duplicated from metadata so the error survives when metadata is dropped
            failure: dict[str, Any] = {
                "url": context.spec.url,
                "name": context.name,
                "error": _describe(error),
                "runtime_seconds": runtime,
            }
            if error.__traceback__ is not None:
                failure["backtrace"] = traceback.format_tb(error.__traceback__)
            record[FAILURE_TAG] = failure

            self.sink.append(record)
        except Exception as secondary:  # noqa: BLE001
            logger.error(
                f"Cannot read URL or send the error as a record! name={context.name}, "
                f"url={context.spec.url}, error={_describe(error)}, "
                f"secondary_error={_describe(secondary)}"
            )

        self._record_attempt(
            PollAttemptDto(name=context.name, runtime_seconds=runtime, is_failed=True)
        )

    def _apply_metadata(
        self,
        record: dict[str, Any],
        context: RequestContext,
        finished: float,
        response: HttpResponseDto | None = None,
    ) -> None:
        if not self.metadata_target:
            return
        record[self.metadata_target] = build_metadata(context, self.host, finished, response)

    def _record_attempt(self, attempt: PollAttemptDto) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.update(attempt)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Failed to record metrics for {attempt.name}: {e}")


def _describe(error: BaseException) -> str:
    """Render an error as a non-empty string."""
    return str(error) or repr(error)


def _snapshot(response: HttpResponseDto) -> dict[str, Any]:
    """Loggable summary of a response."""
    return {
        "code": response.code,
        "message": response.message,
        "headers": response.headers,
        "body": response.body[:SNAPSHOT_BODY_BYTES],
    }
