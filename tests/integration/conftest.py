"""Shared fixtures for integration tests.

The application is built with ``create_app`` and driven through httpx's
ASGI transport. The database is replaced by ``FakeStore`` through FastAPI
dependency overrides, so these tests need no running PostgreSQL.
"""

from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from loguru import logger
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from killboard.api.main import create_app
from killboard.core.config import (
    ObservabilityConfig,
    Settings,
    StreamConfig,
    get_settings,
)
from killboard.core.context import RequestContext
from killboard.core.logging import _state
from killboard.infrastructure.database.dependencies import get_store
from tests.integration.fakes import FakeStore


@pytest.fixture(autouse=True)
def reset_logging_and_context() -> Generator[None]:
    """Keep app creation from installing stdout sinks; reset shared state."""
    logger.remove()
    _state.configured = True
    get_settings.cache_clear()
    RequestContext.clear()

    yield

    logger.remove()
    get_settings.cache_clear()
    RequestContext.clear()
    if FastAPIInstrumentor().is_instrumented_by_opentelemetry:
        FastAPIInstrumentor().uninstrument()


@pytest.fixture
def settings() -> Settings:
    """Settings for a fast, untraced test app."""
    return Settings(
        app_name="Killboard Test",
        app_version="9.9.9",
        environment="development",
        debug=False,
        observability_config=ObservabilityConfig(enable_tracing=False),
        stream_config=StreamConfig(diagnostic_close_delay_seconds=0, retry_ms=1500),
    )


@pytest.fixture
def store() -> FakeStore:
    """Store injected into every request of the test app."""
    return FakeStore()


@pytest.fixture
def app(settings: Settings, store: FakeStore) -> FastAPI:
    """Application with the store and settings overridden."""
    application = create_app(settings)
    application.dependency_overrides[get_store] = lambda: store
    application.dependency_overrides[get_settings] = lambda: settings
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Client that turns unhandled exceptions into 500 responses."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def log_records() -> Generator[list[dict[str, Any]]]:
    """Capture Loguru records emitted during the test."""
    records: list[dict[str, Any]] = []
    handler_id = logger.add(lambda message: records.append(message.record))
    yield records
    logger.remove(handler_id)
