"""HTTP request/response logging with performance monitoring.

Every request outside ``log_config.excluded_paths`` gets a start and a
completion record carrying method, path, status and duration. Requests
slower than ``log_config.slow_request_threshold_ms`` get an extra warning.
For event streams the completion record is written when the stream ends.
"""

import time

from loguru import logger
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from killboard.api.constants import (
    MAX_USER_AGENT_LENGTH,
    REQUEST_ID_HEADER,
)
from killboard.core.config import LogConfig, get_settings
from killboard.core.constants import MILLISECONDS_PER_SECOND
from killboard.core.context import RequestContext, generate_request_id


class RequestLoggingMiddleware:
    """Middleware for logging HTTP requests and responses.

    Args:
        app: The ASGI application.
        log_config: Logging configuration.
    """

    def __init__(self, app: ASGIApp, *, log_config: LogConfig) -> None:
        self.app = app
        self.log_config = log_config
        self.excluded_paths = set(log_config.excluded_paths)
        self.trust_proxy_headers = get_settings().environment == "production"

    def _get_client_ip(self, scope: Scope, headers: Headers) -> str:
        """Extract the client IP, honouring proxy headers in production."""
        if self.trust_proxy_headers:
            if forwarded_for := headers.get("x-forwarded-for"):
                return forwarded_for.split(",")[0].strip()
            if real_ip := headers.get("x-real-ip"):
                return real_ip.strip()

        client = scope.get("client")
        return client[0] if client else "unknown"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] in self.excluded_paths:
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        request_id = headers.get(REQUEST_ID_HEADER) or generate_request_id()
        RequestContext.set_request_id(request_id)
        status_code = 500

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        with logger.contextualize(
            request_id=request_id,
            method=scope["method"],
            path=scope["path"],
            client_host=self._get_client_ip(scope, headers),
            user_agent=headers.get("user-agent", "unknown")[:MAX_USER_AGENT_LENGTH],
        ):
            logger.info(
                "Request started",
                query_string=scope.get("query_string", b"").decode("latin-1") or None,
            )
            start_time = time.perf_counter()

            try:
                await self.app(scope, receive, send_with_request_id)
            except Exception as exc:
                logger.error(
                    "Request failed",
                    duration_ms=self._elapsed_ms(start_time),
                    error_type=type(exc).__name__,
                )
                raise

            duration_ms = self._elapsed_ms(start_time)
            logger.info(
                "Request completed",
                status_code=status_code,
                duration_ms=duration_ms,
            )
            if duration_ms > self.log_config.slow_request_threshold_ms:
                logger.warning(
                    "Slow request detected",
                    duration_ms=duration_ms,
                    threshold_ms=self.log_config.slow_request_threshold_ms,
                )

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return round((time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND, 2)
