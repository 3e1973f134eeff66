"""
Participant API endpoints - join the pool, heartbeat, search and stop.
"""

from fastapi import APIRouter, Depends, status

from ..core import MatchmakingService, get_matchmaking_service
from ..models import ChatMode, Participant, SeekResult, StartSeekingRequest

router = APIRouter(prefix="/participants", tags=["participants"])


@router.post("", response_model=SeekResult, status_code=status.HTTP_201_CREATED)
async def start_seeking(
    request: StartSeekingRequest,
    service: MatchmakingService = Depends(get_matchmaking_service)
):
    """
    Register as a seeker and try to match right away.

    Returns:
        SeekResult with session and partner set if a match was found,
        otherwise the participant keeps searching.
    """
    return await service.start_seeking(
        name=request.name,
        gender=request.gender,
        preferred_gender=request.preferred_gender,
        mode=request.mode,
    )


@router.get("/{participant_id}", response_model=Participant)
async def get_participant(
    participant_id: str,
    service: MatchmakingService = Depends(get_matchmaking_service)
):
    return await service.get_participant(participant_id)


@router.post("/{participant_id}/heartbeat")
async def heartbeat(
    participant_id: str,
    service: MatchmakingService = Depends(get_matchmaking_service)
):
    """Keep the participant live. Clients call this every heartbeat interval."""
    await service.heartbeat(participant_id)
    return {"ok": True}


@router.post("/{participant_id}/search", response_model=SeekResult)
async def search(
    participant_id: str,
    mode: ChatMode = ChatMode.TEXT,
    service: MatchmakingService = Depends(get_matchmaking_service)
):
    """
    Look for a partner again, e.g. after the partner skipped or on a poll.
    Returns the current session unchanged if the participant is already matched.
    """
    return await service.search(participant_id, mode)


@router.post("/{participant_id}/stop")
async def stop(
    participant_id: str,
    service: MatchmakingService = Depends(get_matchmaking_service)
):
    """Leave for good. Ends the current session, if any."""
    await service.stop(participant_id)
    return {"ok": True}
