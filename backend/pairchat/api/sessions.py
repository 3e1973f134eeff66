"""
Session API endpoints - session state, skip and messages.
"""

from fastapi import APIRouter, Depends, status

from ..core import MatchmakingService, get_matchmaking_service
from ..models import (
    Message, MessageList, ReapResult, SendMessageRequest, SessionDetail, SkipRequest, SkipResult,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("/{session_id}", response_model=SessionDetail)
async def get_session(
    session_id: str,
    service: MatchmakingService = Depends(get_matchmaking_service)
):
    return await service.get_session_detail(session_id)


@router.post("/{session_id}/skip", response_model=SkipResult)
async def skip(
    session_id: str,
    request: SkipRequest,
    service: MatchmakingService = Depends(get_matchmaking_service)
):
    """
    End the chat and start searching for someone new.
    The partner is notified and searches on its own.
    """
    return await service.skip(session_id, request.participant_id)


@router.post(
    "/{session_id}/messages",
    response_model=Message,
    status_code=status.HTTP_201_CREATED
)
async def send_message(
    session_id: str,
    request: SendMessageRequest,
    service: MatchmakingService = Depends(get_matchmaking_service)
):
    """
    Send a message to the session.

    Supplying client_message_id makes retries safe: the same key returns the
    original message instead of posting it twice.
    """
    return await service.send_message(
        session_id,
        request.participant_id,
        request.content,
        client_message_id=request.client_message_id,
    )


@router.get("/{session_id}/messages", response_model=MessageList)
async def get_history(
    session_id: str,
    service: MatchmakingService = Depends(get_matchmaking_service)
):
    """Full ordered history, used once to hydrate a client joining the session."""
    return MessageList(messages=await service.history(session_id))


admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.post("/reap", response_model=ReapResult)
async def reap(service: MatchmakingService = Depends(get_matchmaking_service)):
    """Run one stale-session sweep now."""
    return await service.reap()
