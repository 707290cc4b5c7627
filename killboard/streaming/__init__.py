"""Server-Sent Event streams."""

from killboard.streaming.response import EventStreamResponse, StreamProducer
from killboard.streaming.stream import (
    SSE_HEADERS,
    StreamHandle,
    StreamMessage,
    StreamState,
    open_event_stream,
)

__all__ = [
    "SSE_HEADERS",
    "EventStreamResponse",
    "StreamHandle",
    "StreamMessage",
    "StreamProducer",
    "StreamState",
    "open_event_stream",
]
