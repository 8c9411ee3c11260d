"""Concurrent dispatch of one poll cycle with outcome reconciliation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import datetime, timezone

from http_poller.core.request_table import RequestTable
from http_poller.core.response_handler import ResponseHandler
from http_poller.ports.http import HttpResponseDto, RequestFn
from http_poller.ports.metrics import MetricsPort
from http_poller.ports.requests import RequestContext, RequestSpec

__all__ = ["Dispatcher", "CycleReport"]

logger = logging.getLogger(__name__)

_SUCCEEDED = "succeeded"
_FAILED = "failed"


@dataclass(slots=True, frozen=True)
class CycleReport:
    """Terminal outcomes of one cycle.

    Attributes:
        dispatched: Requests issued.
        succeeded: Requests whose response reached the success path.
        failed: Requests that produced a failure record.
        reconciled: Failures only found by the reconciliation pass
            (included in ``failed``).
    """

    dispatched: int
    succeeded: int
    failed: int
    reconciled: int


@dataclass(slots=True)
class _Handle:
    """Completion handle binding one in-flight request to its context."""

    context: RequestContext
    task: asyncio.Task[None] | None = None
    issue_error: BaseException | None = None
    outcome: str | None = None


class Dispatcher:
    """Issues every request of the table concurrently, once per cycle.

    Dispatch happens in two phases:
    1. Issue: one task per request, whose continuation hands the outcome
       to the ResponseHandler.
    2. Reconcile: await the whole batch and turn every request whose
       continuation never ran (raised while being issued, cancelled,
       crashed outside the continuation) into a regular failure.

    Every dispatched request therefore ends in exactly one terminal outcome.
    """

    def __init__(
        self,
        request_fn: RequestFn,
        handler: ResponseHandler,
        metrics: MetricsPort | None = None,
    ) -> None:
        """Initialize dispatcher.

        Args:
            request_fn: Transport used to send one request.
            handler: Success/failure continuations.
            metrics: Optional metrics collector, summarized after each cycle.
        """
        self.request_fn = request_fn
        self.handler = handler
        self.metrics = metrics

    async def dispatch_cycle(self, table: RequestTable) -> CycleReport:
        """Poll every request of ``table`` once.

        Args:
            table: Requests to poll.

        Returns:
            Counts of the cycle's terminal outcomes.
        """
        batch_started_at = datetime.now(timezone.utc)
        handles = [self._issue(spec, batch_started_at) for spec in table.specs()]
        reconciled = await self._reconcile(handles)

        report = CycleReport(
            dispatched=len(handles),
            succeeded=sum(1 for h in handles if h.outcome == _SUCCEEDED),
            failed=sum(1 for h in handles if h.outcome == _FAILED),
            reconciled=reconciled,
        )
        logger.info(
            f"Cycle started at {batch_started_at.isoformat()} done: "
            f"dispatched={report.dispatched}, succeeded={report.succeeded}, "
            f"failed={report.failed}, reconciled={report.reconciled}"
        )
        if self.metrics:
            logger.info(f"Poll metrics: {self.metrics}")
        return report

    def _issue(self, spec: RequestSpec, batch_started_at: datetime) -> _Handle:
        handle = _Handle(context=RequestContext.issue(spec, batch_started_at))
        logger.debug(
            f"Fetching {spec.name}: {spec.method.upper()} {spec.url} "
            f"(attempt={handle.context.attempt_id})"
        )
        try:
            pending = self.request_fn(spec)
            handle.task = asyncio.ensure_future(self._complete(handle, pending))
        except Exception as e:  # noqa: BLE001
            # Left for the reconciliation pass
            handle.issue_error = e
        return handle

    async def _complete(self, handle: _Handle, pending: Awaitable[HttpResponseDto]) -> None:
        """Continuation: deliver the request's outcome to the handler."""
        try:
            response = await pending
        except Exception as e:  # noqa: BLE001
            handle.outcome = _FAILED
            self.handler.on_failure(handle.context, e)
        else:
            handle.outcome = _SUCCEEDED
            self.handler.on_success(handle.context, response)

    async def _reconcile(self, handles: list[_Handle]) -> int:
        """Await the batch and fail every request left without an outcome.

        Returns:
            Number of failures produced by this pass.
        """
        tasks = [h.task for h in handles if h.task is not None]
        results = iter(await asyncio.gather(*tasks, return_exceptions=True))

        reconciled = 0
        for handle in handles:
            # Results are positional: one per issued task, in issue order
            error = handle.issue_error if handle.task is None else next(results)
            if handle.outcome is not None:
                continue
            if not isinstance(error, BaseException):
                error = RuntimeError(f"No outcome delivered for request '{handle.context.name}'")

            logger.warning(f"Reconciling lost outcome of {handle.context.name}: {error!r}")
            handle.outcome = _FAILED
            reconciled += 1
            self.handler.on_failure(handle.context, error)

        return reconciled
