"""Server-Sent Events (SSE) endpoint."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from groupbuy.api.dependencies import EventManagerDep

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/stream")
async def event_stream(
    event_manager: EventManagerDep,
    lesson_id: str | None = Query(default=None, description="Filter by lesson ID"),
) -> StreamingResponse:
    """Subscribe to the lifecycle event stream.

    Settlement and notification services listen here for enrollments,
    cancellations, refund requests and lesson status changes. Events are
    filtered by lesson_id if provided. A heartbeat is sent every 30 seconds.
    """
    em = event_manager
    subscriber = em.subscribe(lesson_id)

    async def generate() -> AsyncGenerator[str, None]:
        try:
            while True:
                try:
                    event = await asyncio.wait_for(
                        subscriber.queue.get(),
                        timeout=em._heartbeat_interval,
                    )
                    yield event.to_sse()
                except TimeoutError:
                    yield em.create_heartbeat_event().to_sse()
        finally:
            # Client disconnected
            em.unsubscribe(subscriber.id)

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
