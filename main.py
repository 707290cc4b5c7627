"""Main entry point for running the Killboard API."""

import os

import uvicorn
from loguru import logger

from killboard.core.config import get_settings
from killboard.core.logging import setup_logging

APP_IMPORT_PATH = "killboard.api.main:app"


def build_log_config() -> dict[str, object]:
    """Route uvicorn's loggers through the Loguru intercept handler."""
    intercepted = {"handlers": ["default"], "level": "INFO", "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "default": {"class": "killboard.core.logging.InterceptHandler"},
        },
        "loggers": {
            "uvicorn": intercepted,
            "uvicorn.error": intercepted,
            "uvicorn.access": intercepted,
        },
    }


def main() -> None:
    """Start uvicorn with auto-reload in debug mode."""
    settings = get_settings()
    setup_logging(settings)

    # Container platforms set PORT for the port to listen on
    port = int(os.environ.get("PORT", settings.api_port))

    logger.info(
        "Starting Uvicorn on http://{}:{} ({})",
        settings.api_host,
        port,
        "development mode with auto-reload" if settings.debug else "production mode",
    )
    uvicorn.run(
        APP_IMPORT_PATH,
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        log_config=build_log_config(),
    )


if __name__ == "__main__":
    main()
