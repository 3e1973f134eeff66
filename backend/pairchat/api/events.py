"""
Event stream endpoints - Server-Sent Events over the change feed.

One stream per participant (matched / session ended / own updates) and one
per session (new messages, session ended).
"""

import json
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ..config import settings
from ..core import MatchmakingService, get_matchmaking_service
from ..feed import Subscription
from ..models import participant_key, session_key

router = APIRouter(prefix="/events", tags=["events"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


def format_sse(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


async def stream_events(
    subscription: Subscription,
    keepalive: Optional[float] = None
) -> AsyncIterator[str]:
    """
    Yield SSE frames for a subscription until it is closed.

    A comment frame is sent whenever ``keepalive`` seconds pass without an
    event, so proxies keep the connection open.
    """
    try:
        while True:
            event = await subscription.get(timeout=keepalive)
            if event is None:
                if getattr(subscription, "closed", False):
                    return
                yield ": keep-alive\n\n"
                continue
            yield format_sse(event.model_dump(mode="json"))
    finally:
        await subscription.close()


@router.get("/participants/{participant_id}")
async def participant_events(
    participant_id: str,
    service: MatchmakingService = Depends(get_matchmaking_service)
):
    """Push channel for "my binding changed" notifications."""
    await service.get_participant(participant_id)
    subscription = await service.feed.subscribe(participant_key(participant_id))
    return StreamingResponse(
        stream_events(subscription, keepalive=settings.heartbeat_interval_seconds),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/sessions/{session_id}")
async def session_events(
    session_id: str,
    service: MatchmakingService = Depends(get_matchmaking_service)
):
    """Push channel for new messages and the end of the session."""
    await service.get_session(session_id)
    subscription = await service.feed.subscribe(session_key(session_id))
    return StreamingResponse(
        stream_events(subscription, keepalive=settings.heartbeat_interval_seconds),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
