import json
import logging

import pytest
import structlog
from httpx import ASGITransport, AsyncClient
from structlog.testing import capture_logs

from items_service import main as main_module
from items_service.errors import BootstrapFailure
from items_service.main import create_app
from items_service.observability import tracing
from items_service.observability.logging import _JSONHandler, configure_logging
from items_service.observability.tracing import setup_tracing
from items_service.runtime import ServiceRuntime


def test_startup_bootstraps_store_and_shutdown_releases_it(settings) -> None:
    runtime = ServiceRuntime(settings)
    assert not runtime.store.ready

    runtime.startup()
    assert runtime.store.ready
    assert runtime.store.list() == []

    runtime.shutdown()
    assert not runtime.store.ready
    assert runtime.tracer_provider is None


async def test_bootstrap_failure_aborts_startup(settings, tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    broken = settings.model_copy(update={"database_url": f"sqlite:///{blocker / 'items.db'}"})
    app = create_app(broken, ServiceRuntime(broken))

    with pytest.raises(BootstrapFailure):
        async with app.router.lifespan_context(app):
            pass


async def test_requests_are_served_only_after_lifespan_startup(app) -> None:
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            resp = await client.post("/items", json={"name": "Ready"})
    assert resp.status_code == 201


def test_configure_logging_installs_one_json_handler(settings) -> None:
    configure_logging(settings)
    configure_logging(settings)

    handlers = [h for h in logging.getLogger().handlers if isinstance(h, _JSONHandler)]
    assert len(handlers) == 1

    record = logging.LogRecord("tests", logging.WARNING, __file__, 1, "disk almost full", None, None)
    rendered = json.loads(handlers[0].format(record))
    assert rendered["event"] == "disk almost full"
    assert rendered["level"] == "warning"
    assert rendered["service"] == settings.service_name
    assert rendered["logger"] == "tests"


def test_tracing_disabled_without_endpoint(settings) -> None:
    assert setup_tracing(settings) is None


def test_tracing_provider_carries_service_identity(settings, monkeypatch) -> None:
    traced = settings.model_copy(update={"otel_exporter_otlp_endpoint": "http://localhost:4318/"})
    with capture_logs() as logs:
        # Fresh proxy: the module logger may already be cached from an earlier configuration.
        monkeypatch.setattr(tracing, "logger", structlog.get_logger(tracing.__name__))
        provider = setup_tracing(traced)
    assert provider is not None
    try:
        attributes = provider.resource.attributes
        assert attributes["service.name"] == traced.service_name
        assert attributes["service.version"] == traced.service_version
        assert attributes["deployment.environment"] == "test"

        enabled = [entry for entry in logs if entry["event"] == "tracing.enabled"]
        assert len(enabled) == 1
        assert enabled[0]["endpoint"] == "http://localhost:4318"
        assert "service" not in enabled[0]
    finally:
        provider.shutdown()


def test_importing_main_builds_no_application() -> None:
    assert callable(main_module.create_app)
    assert not hasattr(main_module, "app")
