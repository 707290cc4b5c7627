"""Shared fixtures for unit tests."""

import os
from collections.abc import Generator
from typing import Any

import pytest
from pytest_mock import MockerFixture, MockType

from killboard.core.config import LogConfig, Settings, get_settings
from killboard.core.context import RequestContext
from killboard.core.error_context import _get_sensitive_fields


@pytest.fixture
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Provide a real Settings object built from test environment variables."""
    monkeypatch.setenv("APP_NAME", "TestApp")
    monkeypatch.setenv("APP_VERSION", "1.0.0")
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("API_HOST", "127.0.0.1")
    monkeypatch.setenv("API_PORT", "3000")
    return Settings()


@pytest.fixture
def mock_get_settings(mocker: MockerFixture) -> MockType:
    """Patch get_settings in error_context with custom sensitive fields."""
    settings = mocker.Mock(spec=Settings)
    log_config = mocker.Mock(spec=LogConfig)
    log_config.sensitive_fields = ["custom_secret", "my_password", "api_token"]
    settings.log_config = log_config

    patched = mocker.patch("killboard.core.error_context.get_settings")
    patched.return_value = settings
    _get_sensitive_fields.cache_clear()
    return patched


@pytest.fixture
def asgi_messages() -> list[dict[str, Any]]:
    """Collect the ASGI messages sent by a response."""
    return []


@pytest.fixture
def asgi_send(asgi_messages: list[dict[str, Any]]) -> Any:
    """ASGI send callable appending every message to ``asgi_messages``."""

    async def send(message: dict[str, Any]) -> None:
        asgi_messages.append(message)

    return send


@pytest.fixture(autouse=True)
def clean_lru_cache() -> Generator[None]:
    """Clear cached settings and sensitive fields around each test."""
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()
    yield
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()


@pytest.fixture(autouse=True)
def clean_request_context() -> Generator[None]:
    """Reset correlation and request IDs around each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove app-specific environment variables that might interfere.

    Cloud detection variables are kept; tests that need them set them.
    """
    env_prefixes = [
        "APP_",
        "API_",
        "ENVIRONMENT",
        "DEBUG",
        "LOG_CONFIG__",
        "OBSERVABILITY_CONFIG__",
        "DATABASE_CONFIG__",
        "STREAM_CONFIG__",
    ]
    for key in list(os.environ):
        if any(key.startswith(prefix) for prefix in env_prefixes):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("PORT", raising=False)
    return monkeypatch
