"""Server-Sent-Events endpoint for the push channel."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.core.config import settings
from app.core.dependencies import get_current_user
from models import User

from .broker import event_broker


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])


async def event_stream(request: Request, subscription, heartbeat: float):
    """Yield SSE frames until the client disconnects."""
    try:
        yield ": connected\n\n"
        while True:
            if await request.is_disconnected():
                break
            event = await subscription.get(timeout=heartbeat)
            if event is None:
                yield ": heartbeat\n\n"
            else:
                yield event.to_sse()
    finally:
        subscription.close()


@router.get("/stream")
async def stream_events(request: Request, current_user: User = Depends(get_current_user)):
    """Stream push events for the current user."""
    subscription = event_broker.subscribe(current_user.id)
    logger.info(f"User {current_user.id} connected to the event stream")
    return StreamingResponse(
        event_stream(request, subscription, settings.event_stream_heartbeat_interval),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
