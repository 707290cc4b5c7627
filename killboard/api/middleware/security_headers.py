"""Security headers middleware for adding common security headers to responses."""

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from killboard.core.constants import DEFAULT_HSTS_MAX_AGE


class SecurityHeadersMiddleware:
    """Add security headers to every HTTP response.

    Headers are written onto the response start message, so streamed bodies
    pass through untouched:
    - X-Content-Type-Options: nosniff
    - X-Frame-Options: DENY
    - X-XSS-Protection: 1; mode=block
    - Strict-Transport-Security (if HSTS enabled)

    Args:
        app: The ASGI application to wrap.
        hsts_enabled: Whether to include the HSTS header.
        hsts_max_age: Max age for HSTS in seconds.
        hsts_include_subdomains: Whether to include subdomains in HSTS.
        hsts_preload: Whether to include the preload directive.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        hsts_enabled: bool = True,
        hsts_max_age: int = DEFAULT_HSTS_MAX_AGE,
        hsts_include_subdomains: bool = True,
        hsts_preload: bool = False,
    ) -> None:
        self.app = app
        self.hsts_enabled = hsts_enabled
        self.hsts_header = self._build_hsts_header(
            hsts_max_age, hsts_include_subdomains, hsts_preload
        )

    @staticmethod
    def _build_hsts_header(
        max_age: int, include_subdomains: bool, preload: bool
    ) -> str:
        parts = [f"max-age={max_age}"]
        if include_subdomains:
            parts.append("includeSubDomains")
        if preload:
            parts.append("preload")
        return "; ".join(parts)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers["X-Content-Type-Options"] = "nosniff"
                headers["X-Frame-Options"] = "DENY"
                headers["X-XSS-Protection"] = "1; mode=block"
                if self.hsts_enabled:
                    headers["Strict-Transport-Security"] = self.hsts_header
            await send(message)

        await self.app(scope, receive, send_with_headers)
