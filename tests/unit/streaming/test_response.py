"""Unit tests for EventStreamResponse."""

import asyncio
from typing import Any

import pytest

from killboard.streaming import EventStreamResponse, StreamHandle, StreamMessage

SCOPE: dict[str, Any] = {"type": "http", "method": "GET", "path": "/stream"}


def _receive_never_disconnects() -> Any:
    async def receive() -> dict[str, Any]:
        await asyncio.Event().wait()
        return {"type": "http.disconnect"}

    return receive


def _frames(messages: list[dict[str, Any]]) -> list[bytes]:
    return [
        m["body"]
        for m in messages
        if m["type"] == "http.response.body" and m["more_body"]
    ]


@pytest.mark.unit
class TestEventStreamResponse:
    """Test producer lifecycle and error reporting."""

    @pytest.mark.timeout(5)
    async def test_producer_frames_then_close(
        self, asgi_send: Any, asgi_messages: list[dict[str, Any]]
    ) -> None:
        """Frames are sent in order and the stream ends once."""

        async def produce(handle: StreamHandle) -> None:
            await handle.push(StreamMessage({"type": "connected"}))
            await handle.push(StreamMessage({"type": "done"}))

        response = EventStreamResponse(produce)
        await response(SCOPE, _receive_never_disconnects(), asgi_send)

        assert asgi_messages[0]["type"] == "http.response.start"
        assert _frames(asgi_messages) == [
            b'data: {"type":"connected"}\n\n',
            b'data: {"type":"done"}\n\n',
        ]
        assert asgi_messages[-1] == {
            "type": "http.response.body",
            "body": b"",
            "more_body": False,
        }

    @pytest.mark.timeout(5)
    async def test_producer_failure_sends_error_event(
        self, asgi_send: Any, asgi_messages: list[dict[str, Any]]
    ) -> None:
        """A failing producer yields a generic error frame, not a traceback."""

        async def produce(handle: StreamHandle) -> None:
            await handle.push("first")
            msg = "database password leaked"
            raise RuntimeError(msg)

        response = EventStreamResponse(produce)
        await response(SCOPE, _receive_never_disconnects(), asgi_send)

        frames = _frames(asgi_messages)
        assert frames[0] == b"data: first\n\n"
        assert frames[1].startswith(b"event: error\n")
        assert b"password" not in frames[1]
        assert asgi_messages[-1]["more_body"] is False

    @pytest.mark.timeout(5)
    async def test_disconnect_wakes_waiting_producer(
        self, asgi_send: Any, asgi_messages: list[dict[str, Any]]
    ) -> None:
        """A client disconnect closes the handle without a terminal write."""

        async def receive() -> dict[str, Any]:
            await asyncio.sleep(0)
            return {"type": "http.disconnect"}

        async def produce(handle: StreamHandle) -> None:
            await handle.push("hello")
            await handle.wait_closed()

        response = EventStreamResponse(produce)
        await response(SCOPE, receive, asgi_send)

        bodies = [m for m in asgi_messages if m["type"] == "http.response.body"]
        assert all(m["more_body"] for m in bodies)

    @pytest.mark.timeout(5)
    async def test_timer_close_finishes_before_response_returns(self) -> None:
        """A slow terminal write by the close timer completes inside the call."""
        messages: list[dict[str, Any]] = []

        async def slow_send(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.body":
                await asyncio.sleep(0.05)
            messages.append(message)

        async def produce(handle: StreamHandle) -> None:
            handle.close_after(0)
            await asyncio.sleep(0.01)

        response = EventStreamResponse(produce)
        await response(SCOPE, _receive_never_disconnects(), slow_send)

        assert messages[-1] == {
            "type": "http.response.body",
            "body": b"",
            "more_body": False,
        }

    @pytest.mark.timeout(5)
    async def test_receive_failure_counts_as_disconnect(
        self, asgi_send: Any, asgi_messages: list[dict[str, Any]]
    ) -> None:
        """A failing receive channel is treated as a disconnect."""

        async def receive() -> dict[str, Any]:
            msg = "connection reset"
            raise OSError(msg)

        async def produce(handle: StreamHandle) -> None:
            await handle.wait_closed()

        response = EventStreamResponse(produce)
        await response(SCOPE, receive, asgi_send)

        bodies = [m for m in asgi_messages if m["type"] == "http.response.body"]
        assert bodies == []

    @pytest.mark.timeout(5)
    async def test_watcher_is_finished_on_return(self, asgi_send: Any) -> None:
        """No disconnect watcher outlives the response."""

        async def produce(handle: StreamHandle) -> None:
            await handle.push("x")

        response = EventStreamResponse(produce)
        await response(SCOPE, _receive_never_disconnects(), asgi_send)

        watchers = [
            task for task in asyncio.all_tasks() if task.get_name().endswith("-watcher")
        ]
        assert watchers == []

    def test_headers_are_exposed(self) -> None:
        """Extra headers are visible on the response object."""

        async def produce(handle: StreamHandle) -> None:
            await handle.close()

        response = EventStreamResponse(produce, headers={"X-Stream": "diag"})

        assert response.headers["x-stream"] == "diag"
        assert response.headers["content-type"].startswith("text/event-stream")
