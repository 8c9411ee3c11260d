"""Request port definitions (DTOs)."""

from __future__ import annotations

import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

__all__ = ["RequestSpec", "RequestContext"]


@dataclass(slots=True, frozen=True)
class RequestSpec:
    """One named request of the poll set.

    Attributes:
        name: Unique request name, also used as log and metadata label.
        method: Lower-case HTTP verb.
        url: Absolute URL exactly as configured.
        options: Read-only transport options (headers, auth, body, ...).
    """

    name: str
    method: str
    url: str
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(slots=True, frozen=True)
class RequestContext:
    """Identity of a single dispatch of a RequestSpec within one cycle.

    Attributes:
        spec: The request being dispatched.
        attempt_id: Random identifier, only used for traceability.
        batch_started_at: Wall-clock start of the cycle, shared by the batch.
        issued_at: Wall-clock time this request was issued.
        issued_at_sec: Monotonic time this request was issued.
    """

    spec: RequestSpec
    attempt_id: str
    batch_started_at: datetime
    issued_at: datetime
    issued_at_sec: float

    @property
    def name(self) -> str:
        return self.spec.name

    @classmethod
    def issue(cls, spec: RequestSpec, batch_started_at: datetime) -> RequestContext:
        """Create a fresh context for dispatching ``spec`` now."""
        return cls(
            spec=spec,
            attempt_id=uuid.uuid4().hex,
            batch_started_at=batch_started_at,
            issued_at=datetime.now(timezone.utc),
            issued_at_sec=time.monotonic(),
        )
