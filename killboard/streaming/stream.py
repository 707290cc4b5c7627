"""Server-Sent Event stream handles with a single, race-safe release.

A ``StreamHandle`` wraps the ASGI ``send`` callable of one response. Frames
are written under a per-handle lock so they never interleave. ``close`` is
the only way a handle releases the transport and the first caller wins:
the state flips from OPEN to CLOSED with no suspension point in between, so
concurrent callers (a handler, a timer, a disconnect watcher) cannot both
send the terminal body.

Use ``open_event_stream`` rather than building handles by hand; it closes
the handle on every exit path, including cancellation::

    async with open_event_stream(send) as handle:
        await handle.push(StreamMessage({"type": "connected"}))
"""

import asyncio
import re
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import Final

import orjson
from loguru import logger
from starlette.requests import ClientDisconnect

from killboard.core.context import generate_stream_id
from killboard.core.exceptions import StreamStateError
from killboard.core.types import AsgiSend, JsonValue

SSE_HEADERS: Final[dict[str, str]] = {
    "content-type": "text/event-stream; charset=utf-8",
    "cache-control": "no-cache",
    "x-accel-buffering": "no",
}

# Line terminators of the event stream format
LINE_BREAK: Final = re.compile(r"\r\n|\r|\n")

# Write failures that mean the client is gone
TRANSPORT_ERRORS: Final = (OSError, ClientDisconnect)


class StreamState(StrEnum):
    """Lifecycle of a stream handle. CLOSED is terminal."""

    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class StreamMessage:
    """One event stream frame.

    ``data`` may be text or any JSON value; non-text payloads are encoded
    with orjson. Multi-line text is split into one ``data:`` line per line.
    """

    data: JsonValue = None
    event: str | None = None
    id: str | int | None = None
    retry: int | None = None
    comment: str | None = None

    @classmethod
    def keepalive(cls) -> "StreamMessage":
        """Build a comment frame that keeps idle connections open."""
        return cls(comment="keepalive")

    def encode(self) -> bytes:
        """Render the frame in the ``text/event-stream`` wire format."""
        lines: list[str] = []
        if self.comment is not None:
            lines.append(f": {self.comment}")
        if self.event is not None:
            lines.append(f"event: {self.event}")
        if self.id is not None:
            lines.append(f"id: {self.id}")
        if self.retry is not None:
            lines.append(f"retry: {self.retry}")

        if self.data is not None or not lines:
            payload = (
                self.data
                if isinstance(self.data, str)
                else orjson.dumps(self.data).decode("utf-8")
            )
            lines.extend(f"data: {line}" for line in LINE_BREAK.split(payload))

        return ("\n".join(lines) + "\n\n").encode("utf-8")


class StreamHandle:
    """Write side of one event stream response.

    Args:
        send: The ASGI send callable of the response.
        stream_id: Identifier used in logs; generated when omitted.
    """

    def __init__(self, send: AsgiSend, stream_id: str | None = None) -> None:
        self._send = send
        self._stream_id = stream_id or generate_stream_id()
        self._state = StreamState.OPEN
        self._lock = asyncio.Lock()
        self._closed = asyncio.Event()
        self._close_timer: asyncio.Task[bool] | None = None
        self._started = False
        self._disconnected = False
        self._frames_sent = 0

    @property
    def stream_id(self) -> str:
        return self._stream_id

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is StreamState.CLOSED

    @property
    def frames_sent(self) -> int:
        return self._frames_sent

    async def open(
        self, status_code: int = 200, headers: Mapping[str, str] | None = None
    ) -> bool:
        """Send the response start with the event stream framing headers.

        Args:
            status_code: HTTP status of the response.
            headers: Extra headers; keys are matched case-insensitively.

        Returns:
            bool: False if the handle was closed or the client already left.
        """
        if self.closed:
            self._reject("open")
            return False

        merged = {**SSE_HEADERS, **{k.lower(): v for k, v in (headers or {}).items()}}
        raw_headers = [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in merged.items()
        ]
        async with self._lock:
            try:
                await self._send(
                    {
                        "type": "http.response.start",
                        "status": status_code,
                        "headers": raw_headers,
                    }
                )
            except TRANSPORT_ERRORS:
                self.mark_disconnected()
                return False
            self._started = True

        logger.info("Event stream opened", stream_id=self._stream_id)
        return True

    async def push(self, message: StreamMessage | str) -> bool:
        """Write one frame.

        Args:
            message: The frame, or plain text sent as a data-only frame.

        Returns:
            bool: True if the frame was written, False if the handle is closed
            or the transport failed.
        """
        if isinstance(message, str):
            message = StreamMessage(message)
        frame = message.encode()

        if self.closed:
            self._reject("push")
            return False

        async with self._lock:
            # close() may have won while this push waited for the lock
            if self.closed:
                self._reject("push")
                return False
            try:
                await self._send(
                    {"type": "http.response.body", "body": frame, "more_body": True}
                )
            except TRANSPORT_ERRORS as exc:
                logger.info(
                    "Event stream transport failed: {}",
                    type(exc).__name__,
                    stream_id=self._stream_id,
                )
                self.mark_disconnected()
                return False
            self._frames_sent += 1

        return True

    async def close(self) -> bool:
        """Release the stream. Only the first call has an effect.

        Waits for an in-flight write to finish, then sends the terminal empty
        body unless the client already disconnected. Later callers wait until
        the first one has finished releasing the stream.

        Returns:
            bool: True for the call that closed the handle, False otherwise.
        """
        if self.closed:
            await self._closed.wait()
            return False
        self._state = StreamState.CLOSED
        self._cancel_timer()

        try:
            async with self._lock:
                if self._started and not self._disconnected:
                    try:
                        await self._send(
                            {
                                "type": "http.response.body",
                                "body": b"",
                                "more_body": False,
                            }
                        )
                    except TRANSPORT_ERRORS:
                        self._disconnected = True
        finally:
            self._closed.set()
            logger.info(
                "Event stream closed",
                stream_id=self._stream_id,
                frames_sent=self._frames_sent,
                disconnected=self._disconnected,
            )

        return True

    def close_after(self, delay: float) -> asyncio.Task[bool] | None:
        """Schedule a close after ``delay`` seconds.

        At most one timer exists per handle; later calls return it unchanged.
        The timer is cancelled if the handle closes first by another path.

        Returns:
            The timer task, or None if the handle is already closed.
        """
        if self.closed:
            return None
        if self._close_timer is None:
            self._close_timer = asyncio.create_task(
                self._close_later(delay), name=f"{self._stream_id}-close"
            )
        return self._close_timer

    async def _close_later(self, delay: float) -> bool:
        await asyncio.sleep(delay)
        return await self.close()

    def mark_disconnected(self) -> None:
        """Close the handle without writing, after the client went away."""
        self._disconnected = True
        if self.closed:
            return
        self._state = StreamState.CLOSED
        self._cancel_timer()
        self._closed.set()
        logger.info(
            "Event stream client disconnected",
            stream_id=self._stream_id,
            frames_sent=self._frames_sent,
        )

    async def wait_closed(self) -> None:
        """Suspend until the handle is closed by any path."""
        await self._closed.wait()

    def _cancel_timer(self) -> None:
        timer = self._close_timer
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()

    def _reject(self, operation: str) -> None:
        error = StreamStateError(operation, self._stream_id)
        logger.warning(
            "{}",
            error.message,
            stream_id=self._stream_id,
            error_code=error.error_code,
        )


@asynccontextmanager
async def open_event_stream(
    send: AsgiSend,
    *,
    status_code: int = 200,
    headers: Mapping[str, str] | None = None,
    stream_id: str | None = None,
) -> AsyncIterator[StreamHandle]:
    """Open an event stream and close it on every exit path.

    Args:
        send: The ASGI send callable of the response.
        status_code: HTTP status of the response.
        headers: Extra response headers.
        stream_id: Identifier used in logs; generated when omitted.

    Yields:
        StreamHandle: The open handle.
    """
    handle = StreamHandle(send, stream_id=stream_id)
    with logger.contextualize(stream_id=handle.stream_id):
        await handle.open(status_code, headers)
        try:
            yield handle
        finally:
            await handle.close()
