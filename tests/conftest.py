from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from items_service.config import Settings, get_settings
from items_service.main import create_app
from items_service.runtime import ServiceRuntime
from items_service.services.item_store import ItemStore


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'db' / 'items.db'}")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("APP_ENV", "test")
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def store(settings: Settings) -> Iterator[ItemStore]:
    item_store = ItemStore(settings)
    item_store.bootstrap()
    yield item_store
    item_store.dispose()


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings, ServiceRuntime(settings))


@pytest.fixture
async def api_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    # ASGITransport does not send lifespan events; run startup/shutdown explicitly.
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
