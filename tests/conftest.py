from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from shop.config import get_settings
from shop.db.store import Store
from shop.main import create_app


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    monkeypatch.setenv("DATABASE_DSN", f"sqlite:///{tmp_path / 'shop.db'}")
    monkeypatch.setenv("ENABLE_TRACING", "false")
    monkeypatch.setenv("ENABLE_PROFILING", "false")
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter) -> Iterator[TracerProvider]:
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def store(tracer_provider: TracerProvider) -> Iterator[Store]:
    store = Store(get_settings().database_dsn, tracer_provider=tracer_provider)
    store.initialize()
    yield store
    store.shutdown()


@pytest.fixture
def app(store: Store, tracer_provider: TracerProvider) -> FastAPI:
    return create_app(settings=get_settings(), store=store, tracer_provider=tracer_provider)


@pytest.fixture
async def api_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
