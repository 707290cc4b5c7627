"""FastAPI application factory and lifecycle.

Middleware executes in reverse order of registration, so the security
headers middleware (registered last) sees every request first.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from killboard.api.middleware.error_handler import register_exception_handlers
from killboard.api.middleware.request_context import RequestContextMiddleware
from killboard.api.middleware.request_logging import RequestLoggingMiddleware
from killboard.api.middleware.security_headers import SecurityHeadersMiddleware
from killboard.api.routes import api_router
from killboard.api.utils.responses import ORJSONResponse
from killboard.core.config import Settings, get_settings
from killboard.core.logging import setup_logging
from killboard.core.observability import instrument_app, setup_tracing
from killboard.infrastructure.database.session import (
    check_database_connection,
    close_database,
)


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Verify the database on startup and dispose of the engine on shutdown.

    Raises:
        RuntimeError: If the database is unreachable during startup.
    """
    is_healthy, error_msg = await check_database_connection()
    if not is_healthy:
        logger.error("Database connection failed during startup: {}", error_msg)
        msg = f"Database connection failed: {error_msg}"
        raise RuntimeError(msg)

    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )

    yield

    logger.info("Application shutdown initiated")
    await close_database()
    logger.info("Application shutdown complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use get_settings().

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    register_exception_handlers(application)

    # 3. Request logging (innermost, runs with the correlation ID bound)
    application.add_middleware(RequestLoggingMiddleware, log_config=settings.log_config)
    # 2. Request context (correlation ID)
    application.add_middleware(RequestContextMiddleware)
    # 1. Security headers (outermost)
    application.add_middleware(SecurityHeadersMiddleware)

    application.include_router(api_router)

    instrument_app(application, settings)

    return application


app = create_app()
