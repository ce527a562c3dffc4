from fastapi import APIRouter, Depends, Request

from constants import ICE_SERVERS
from dependencies import get_session_handler
from logging_config import get_logger
from schemas.room import ClientConfigResponse, IceServer, RoomDetailsResponse
from session import SessionHandler

logger = get_logger(__name__)

room_router = APIRouter(prefix="/room", tags=["room"])


@room_router.get("", response_model=RoomDetailsResponse)
async def get_room_details(request: Request, handler: SessionHandler = Depends(get_session_handler)):
    """
    Current occupancy of the room.

    Returns:
    - maxParticipants: capacity of the room
    - onlineCount: number of admitted members
    - participants: admitted members in arrival order
    - isFull: whether a new member would be rejected for capacity
    """
    client_host = request.client.host if request.client else "unknown"
    registry = handler.registry
    logger.info(f"Room details request from {client_host}: {len(registry)}/{registry.max_participants} members")

    return RoomDetailsResponse(
        max_participants=registry.max_participants,
        online_count=len(registry),
        participants=registry.snapshot(),
        is_full=registry.is_full,
    )


@room_router.get("/config", response_model=ClientConfigResponse)
async def get_client_config(handler: SessionHandler = Depends(get_session_handler)):
    # What the browser needs before opening the socket
    return ClientConfigResponse(
        ice_servers=[IceServer(urls=url) for url in ICE_SERVERS],
        max_participants=handler.registry.max_participants,
        chat_max_length=handler.relay.chat_max_length,
    )
