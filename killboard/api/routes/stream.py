"""Diagnostic event stream.

Lets operators check that event streams reach the browser through every
proxy in between. The stream sends three frames and then closes itself
after ``stream_config.diagnostic_close_delay_seconds``.
"""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from killboard.core.config import Settings, get_settings
from killboard.streaming import EventStreamResponse, StreamHandle, StreamMessage

router = APIRouter(tags=["Streaming"])


@router.get(
    "/api/stream/test",
    response_class=EventStreamResponse,
    summary="Diagnostic event stream",
)
async def stream_test(
    settings: Annotated[Settings, Depends(get_settings)],
) -> EventStreamResponse:
    """Send ``connected``, ``message`` and ``done`` frames, then close."""
    stream_config = settings.stream_config

    async def produce(handle: StreamHandle) -> None:
        await handle.push(
            StreamMessage({"type": "connected"}, retry=stream_config.retry_ms)
        )
        await handle.push(
            StreamMessage(
                {
                    "type": "message",
                    "message": "Event stream is working",
                    "timestamp": datetime.now(UTC).isoformat(),
                }
            )
        )
        await handle.push(StreamMessage({"type": "done"}))

        # TODO: replace the fixed delay with an explicit end-of-data signal
        # once clients stop reconnecting on a server-side close
        handle.close_after(stream_config.diagnostic_close_delay_seconds)
        await handle.wait_closed()

    return EventStreamResponse(produce)
