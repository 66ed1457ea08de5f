from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from structlog import get_logger

from app.config import settings
from app.dependencies.rate_limit import rate_limit
from app.dependencies.services import get_chat_service
from app.errors import UnexpectedError
from app.schemas.chat import RoomRequest, SendMessageRequest
from app.services.chat import ChatService

logger = get_logger()
router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("/rooms/get-or-create", response_model=dict)
async def get_or_create_room(request: RoomRequest, service: ChatService = Depends(get_chat_service)):
    other = request.other_user_id or request.other_identifier
    try:
        room_id = await service.get_or_create_room(request.user_id, other)
    except SQLAlchemyError as e:
        logger.error("Opening chat room failed", user_id=request.user_id, error=str(e))
        raise UnexpectedError(str(e))
    return {"success": True, "chatRoomId": room_id}


@router.get("/rooms/{user_id}", response_model=dict)
async def list_rooms(user_id: str, service: ChatService = Depends(get_chat_service)):
    try:
        rooms = await service.list_rooms(user_id)
    except SQLAlchemyError as e:
        logger.error("Fetching chat rooms failed", user_id=user_id, error=str(e))
        raise UnexpectedError(str(e))
    return {"success": True, "rooms": rooms}


@router.get("/messages/{room_id}", response_model=dict)
async def list_messages(
    room_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    service: ChatService = Depends(get_chat_service),
):
    try:
        messages = await service.list_messages(room_id, user_id)
    except SQLAlchemyError as e:
        logger.error("Fetching messages failed", room_id=room_id, error=str(e))
        raise UnexpectedError(str(e))
    return {"success": True, "messages": messages}


@router.post(
    "/messages",
    response_model=dict,
    dependencies=[Depends(rate_limit(settings.MESSAGE_RATE_LIMIT, settings.MESSAGE_RATE_WINDOW_SECONDS))],
)
async def send_message(request: SendMessageRequest, service: ChatService = Depends(get_chat_service)):
    try:
        message = await service.send_message(request.room_id, request.user_id, request.message_text)
    except SQLAlchemyError as e:
        logger.error("Sending message failed", room_id=request.room_id, error=str(e))
        raise UnexpectedError(str(e))
    return {"success": True, "message": message}
