"""Starlette response running an event stream producer."""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable, Mapping

from loguru import logger
from starlette.background import BackgroundTask
from starlette.responses import Response

from killboard.core.types import AsgiReceive, AsgiScope, AsgiSend
from killboard.streaming.stream import (
    TRANSPORT_ERRORS,
    StreamHandle,
    StreamMessage,
    open_event_stream,
)

type StreamProducer = Callable[[StreamHandle], Awaitable[None]]

GENERIC_ERROR_FRAME = StreamMessage(
    {"statusMessage": "Internal Server Error"}, event="error"
)


class EventStreamResponse(Response):
    """Response that hands an open ``StreamHandle`` to ``producer``.

    The handle is closed when the producer returns, raises or is cancelled.
    A client disconnect closes the handle without writing, which also wakes
    a producer blocked in ``wait_closed``. Producer failures are logged and
    reported to the client as a generic ``error`` event.

    Args:
        producer: Coroutine function writing frames to the handle.
        status_code: HTTP status of the response.
        headers: Extra response headers.
        background: Task run after the stream is closed.
    """

    media_type = "text/event-stream"

    def __init__(
        self,
        producer: StreamProducer,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
        background: BackgroundTask | None = None,
    ) -> None:
        self.producer = producer
        self.status_code = status_code
        self.background = background
        self.stream_headers = dict(headers or {})
        self.init_headers(headers)

    async def __call__(
        self, scope: AsgiScope, receive: AsgiReceive, send: AsgiSend
    ) -> None:
        async with open_event_stream(
            send, status_code=self.status_code, headers=self.stream_headers
        ) as handle:
            watcher = asyncio.create_task(
                self._watch_disconnect(receive, handle),
                name=f"{handle.stream_id}-watcher",
            )
            try:
                await self.producer(handle)
            except Exception:
                logger.exception("Event stream producer failed")
                if not handle.closed:
                    await handle.push(GENERIC_ERROR_FRAME)
            finally:
                watcher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await watcher

        if self.background is not None:
            await self.background()

    @staticmethod
    async def _watch_disconnect(receive: AsgiReceive, handle: StreamHandle) -> None:
        while not handle.closed:
            try:
                message = await receive()
            except TRANSPORT_ERRORS:
                handle.mark_disconnected()
                return
            if message["type"] == "http.disconnect":
                handle.mark_disconnected()
                return
