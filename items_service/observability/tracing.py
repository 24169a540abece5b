from __future__ import annotations

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from sqlalchemy.engine import Engine

from items_service.config import Settings

logger = structlog.get_logger(__name__)


def setup_tracing(settings: Settings) -> TracerProvider | None:
    """Build a tracer provider exporting over OTLP/HTTP.

    Returns None when no exporter endpoint is configured.
    """

    if not settings.tracing_enabled:
        logger.info("tracing.disabled", reason="no OTEL_EXPORTER_OTLP_ENDPOINT configured")
        return None

    resource = Resource.create(
        attributes={
            "service.name": settings.service_name,
            "service.version": settings.service_version,
            "deployment.environment": settings.app_env,
        }
    )
    provider = TracerProvider(resource=resource)
    endpoint = settings.otel_exporter_otlp_endpoint.rstrip("/")
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces")))
    logger.info("tracing.enabled", endpoint=endpoint)
    return provider


def instrument_app(app: FastAPI, provider: TracerProvider) -> None:
    """Run every HTTP request inside a server span."""

    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)


def instrument_engine(engine: Engine, provider: TracerProvider) -> None:
    """Record each SQL statement as a client span under the active request span."""

    SQLAlchemyInstrumentor().instrument(engine=engine, tracer_provider=provider)


def current_trace_ids() -> tuple[str | None, str | None]:
    """Return (trace_id, span_id) of the active span as hex strings, or (None, None)."""

    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None, None
    return format(span_context.trace_id, "032x"), format(span_context.span_id, "016x")
