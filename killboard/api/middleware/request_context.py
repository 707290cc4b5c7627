"""Request context middleware for correlation IDs.

The correlation ID is taken from the ``X-Correlation-ID`` request header or
generated, stored in a contextvar, bound to every log record of the request
with ``logger.contextualize`` and echoed on the response.
"""

from loguru import logger
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from killboard.api.constants import CORRELATION_ID_HEADER
from killboard.core.context import RequestContext, generate_correlation_id


class RequestContextMiddleware:
    """Manage the correlation ID of each HTTP request.

    Args:
        app: The ASGI application to wrap.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        correlation_id = (
            Headers(scope=scope).get(CORRELATION_ID_HEADER) or generate_correlation_id()
        )
        RequestContext.set_correlation_id(correlation_id)

        async def send_with_correlation_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[CORRELATION_ID_HEADER] = correlation_id
            await send(message)

        with logger.contextualize(correlation_id=correlation_id):
            await self.app(scope, receive, send_with_correlation_id)
