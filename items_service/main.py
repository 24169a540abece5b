from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from items_service.api.items import router as items_router
from items_service.api.system import router as system_router
from items_service.config import Settings, get_settings
from items_service.observability.context import from_scope
from items_service.observability.middleware import RequestContextMiddleware
from items_service.observability.tracing import instrument_app, instrument_engine
from items_service.runtime import ServiceRuntime


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    runtime: ServiceRuntime = app.state.runtime
    # The store is bootstrapped before the server accepts its first request.
    runtime.startup()
    try:
        yield
    finally:
        runtime.shutdown()


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    ctx = from_scope(request.scope)
    if ctx is not None:
        ctx.logger.warning("request.invalid_body", errors=jsonable_encoder(exc.errors()))
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def create_app(settings: Settings | None = None, runtime: ServiceRuntime | None = None) -> FastAPI:
    settings = settings or get_settings()
    runtime = runtime or ServiceRuntime(settings)

    app = FastAPI(title="Items Service", version=settings.service_version, lifespan=lifespan)
    app.state.runtime = runtime
    app.include_router(items_router)
    app.include_router(system_router)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_middleware(RequestContextMiddleware, metrics=runtime.metrics)

    # Instrumented last so the server span is already active when the request context is built.
    provider = runtime.setup_tracing()
    if provider is not None:
        instrument_app(app, provider)
        instrument_engine(runtime.store.engine, provider)
    return app
