from __future__ import annotations

import structlog
from opentelemetry.sdk.trace import TracerProvider

from items_service.config import Settings
from items_service.observability.logging import configure_logging
from items_service.observability.metrics import MetricsRegistry
from items_service.observability.tracing import setup_tracing
from items_service.services.item_store import ItemStore

logger = structlog.get_logger(__name__)


class ServiceRuntime:
    """Process-wide state shared by every request.

    Built once when the application is created; `startup()` runs before the
    first request is served and `shutdown()` when the server stops.
    """

    def __init__(
        self,
        settings: Settings,
        store: ItemStore | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self.settings = settings
        self.store = store or ItemStore(settings)
        self.metrics = metrics or MetricsRegistry()
        self.tracer_provider: TracerProvider | None = None

    def setup_tracing(self) -> TracerProvider | None:
        if self.tracer_provider is None:
            self.tracer_provider = setup_tracing(self.settings)
        return self.tracer_provider

    def startup(self) -> None:
        configure_logging(self.settings)
        logger.info("service.starting", database=self.store.engine.url.render_as_string(hide_password=True))
        # BootstrapFailure propagates: the server must not start without a schema.
        self.store.bootstrap()
        logger.info("service.started")

    def shutdown(self) -> None:
        logger.info("service.stopping")
        self.store.dispose()
        if self.tracer_provider is not None:
            self.tracer_provider.shutdown()
            self.tracer_provider = None
        logger.info("service.stopped")
