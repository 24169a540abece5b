from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from items_service.observability.tracing import current_trace_ids

STATE_KEY = "request_context"


@dataclass
class RequestContext:
    request_id: str
    logger: Any
    trace_id: str | None = None
    span_id: str | None = None
    # Matched route pattern, filled in by the routing layer once a route matches.
    route: str | None = None

    def log_fields(self) -> dict[str, str]:
        fields = {"request_id": self.request_id}
        if self.trace_id is not None:
            fields["trace_id"] = self.trace_id
        if self.span_id is not None:
            fields["span_id"] = self.span_id
        return fields


class RequestContextBuilder:
    """Creates the per-request context: id, trace correlation, bound logger."""

    def __init__(
        self,
        logger_name: str = "items_service.request",
        get_logger: Callable[..., Any] = structlog.get_logger,
        trace_ids: Callable[[], tuple[str | None, str | None]] = current_trace_ids,
    ) -> None:
        self._logger_name = logger_name
        self._get_logger = get_logger
        self._trace_ids = trace_ids

    def build(self) -> RequestContext:
        request_id = str(uuid.uuid4())
        trace_id, span_id = self._trace_ids()
        ctx = RequestContext(request_id=request_id, logger=None, trace_id=trace_id, span_id=span_id)
        ctx.logger = self._get_logger(self._logger_name).bind(**ctx.log_fields())
        return ctx


def attach(scope: dict[str, Any], ctx: RequestContext) -> None:
    scope.setdefault("state", {})[STATE_KEY] = ctx


def from_scope(scope: dict[str, Any]) -> RequestContext | None:
    return scope.get("state", {}).get(STATE_KEY)
