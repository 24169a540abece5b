from __future__ import annotations

from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import URL, Headers, MutableHeaders
from starlette.responses import JSONResponse

from items_service.observability.context import RequestContext, RequestContextBuilder, attach
from items_service.observability.metrics import MetricsRegistry


def completion_level(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warning"
    return "info"


class RequestObservation:
    """In-flight observation of a single request.

    Entering increments the in-flight gauge and starts the timer; leaving the
    block records the latency histogram, decrements the gauge and emits the
    completion log. Finalization happens once, whichever way the block exits.
    """

    def __init__(self, metrics: MetricsRegistry, ctx: RequestContext, scope: dict[str, Any]) -> None:
        self._metrics = metrics
        self._ctx = ctx
        self._scope = scope
        self.method: str = scope.get("method", "GET")
        self.path: str = scope.get("path", "")
        # Nothing was sent if the client went away or the app crashed before responding.
        self.status_code: int = 500
        self.content_type: str | None = None
        self.content_length: str | None = None
        self._start = 0.0
        self._finished = False

    def __enter__(self) -> RequestObservation:
        self._metrics.request_started(self.method)
        self._start = perf_counter()

        client = self._scope.get("client") or (None, None)
        self._ctx.logger.debug(
            "request.started",
            method=self.method,
            path=self.path,
            client_host=client[0],
            client_port=client[1],
            user_agent=Headers(scope=self._scope).get("user-agent"),
        )
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.finish()

    def response_started(self, status_code: int, headers: MutableHeaders) -> None:
        self.status_code = status_code
        self.content_type = headers.get("content-type")
        self.content_length = headers.get("content-length")

    def finish(self) -> None:
        if self._finished:
            return
        self._finished = True

        elapsed_s = perf_counter() - self._start
        # Route pattern keeps label cardinality bounded; unmatched requests fall back to the path.
        route = self._ctx.route or self.path

        # Update metrics first so they update even if logging misbehaves.
        self._metrics.request_finished(self.method, route, self.status_code, elapsed_s)

        fields: dict[str, Any] = {
            "method": self.method,
            "url": str(URL(scope=self._scope)),
            "route": route,
            "status_code": self.status_code,
            "duration_ms": round(elapsed_s * 1000.0, 2),
        }
        if self.content_type is not None:
            fields["content_type"] = self.content_type
        if self.content_length is not None:
            fields["content_length"] = self.content_length

        getattr(self._ctx.logger, completion_level(self.status_code))("request.completed", **fields)


class RequestContextMiddleware:
    """Adds request/trace context, leveled access logs, and HTTP metrics."""

    def __init__(
        self,
        app: Callable[..., Any],
        metrics: MetricsRegistry,
        context_builder: RequestContextBuilder | None = None,
    ) -> None:
        self.app = app
        self.metrics = metrics
        self.context_builder = context_builder or RequestContextBuilder()

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        ctx = self.context_builder.build()
        attach(scope, ctx)

        with structlog.contextvars.bound_contextvars(**ctx.log_fields()):
            with RequestObservation(self.metrics, ctx, scope) as observation:
                response_started = False

                async def send_wrapper(message: dict[str, Any]) -> None:
                    nonlocal response_started

                    if message.get("type") == "http.response.start":
                        response_started = True
                        headers = MutableHeaders(scope=message)
                        headers["X-Request-ID"] = ctx.request_id
                        if ctx.trace_id is not None:
                            headers["X-Trace-ID"] = ctx.trace_id
                        observation.response_started(int(message.get("status", 500)), headers)

                    await send(message)

                try:
                    await self.app(scope, receive, send_wrapper)
                except Exception as exc:
                    if response_started:
                        raise
                    ctx.logger.exception("request.unhandled_error", error=str(exc))
                    response = JSONResponse({"detail": "Internal server error"}, status_code=500)
                    await response(scope, receive, send_wrapper)
