"""Server-Sent Events (SSE) endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from issueboard.api.dependencies import EventManagerDep, StreamUserDep

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from issueboard.api.events import EventManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


async def _sse_frames(event_manager: EventManager, user_id: str) -> AsyncGenerator[str, None]:
    """Subscribe for user_id and drain the queue as SSE frames until the client goes away."""
    subscriber = event_manager.subscribe(user_id=user_id)
    logger.info("Event stream opened for user %s", user_id)
    try:
        while True:
            try:
                event = await asyncio.wait_for(
                    subscriber.queue.get(), timeout=event_manager._heartbeat_interval
                )
            except TimeoutError:
                event = event_manager.create_heartbeat_event()
            yield event.to_sse()
    except asyncio.CancelledError:
        # Client disconnected
        pass
    finally:
        event_manager.unsubscribe(subscriber.id)
        logger.info(
            "Event stream closed for user %s (%d remaining)",
            user_id,
            event_manager.subscriber_count,
        )


@router.get("/stream")
async def event_stream(event_manager: EventManagerDep, user: StreamUserDep) -> StreamingResponse:
    """Subscribe to the live board stream.

    Every subscriber receives `issueUpdated`; `notification` hints only reach
    the users they are addressed to. Missed events are not replayed, so
    clients re-fetch their baseline after (re)connecting. A heartbeat is sent
    whenever the stream has been idle for the heartbeat interval.
    """
    return StreamingResponse(
        _sse_frames(event_manager, user.id),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
