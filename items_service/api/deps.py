from __future__ import annotations

from fastapi import Request

from items_service.observability.context import RequestContext, from_scope
from items_service.runtime import ServiceRuntime
from items_service.services.item_store import ItemStore


def get_runtime(request: Request) -> ServiceRuntime:
    return request.app.state.runtime


def get_store(request: Request) -> ItemStore:
    return get_runtime(request).store


def get_request_context(request: Request) -> RequestContext:
    ctx = from_scope(request.scope)
    if ctx is None:
        raise RuntimeError("RequestContextMiddleware is not installed")
    return ctx


def record_route(request: Request) -> None:
    """Store the matched route pattern on the request context for metric labels."""

    ctx = from_scope(request.scope)
    route = request.scope.get("route")
    if ctx is not None and route is not None:
        ctx.route = getattr(route, "path", None)
