from typing import Any, List

from structlog import get_logger

from app.errors import (
    AuthorizationError,
    NotFoundError,
    SchemaUnavailableError,
    ValidationError,
)
from app.services.identity import IdentifierResolver
from app.services.realtime import chat_room
from app.utils.params import is_missing, parse_int

logger = get_logger()

CHAT_UNAVAILABLE = (
    "Chat endpoints are not available: chat tables (chat_rooms/messages) are missing. "
    "Run migrations to add them."
)


class ChatService:
    def __init__(self, chat, users, resolver: IdentifierResolver, notifier=None, available: bool = True):
        self.chat = chat
        self.users = users
        self.resolver = resolver
        self.notifier = notifier
        self.available = available

    def _require_tables(self) -> None:
        if not self.available:
            raise SchemaUnavailableError(CHAT_UNAVAILABLE)

    async def _require_participant(self, room_id: int, user_id: int) -> None:
        if not await self.chat.is_participant(room_id, user_id):
            raise AuthorizationError("Access denied to this chat room")

    async def _resolve_pair(self, user_id: Any, other: Any) -> tuple:
        try:
            first = await self.resolver.get_or_create(user_id)
            second = await self.resolver.get_or_create(other)
        except (NotFoundError, ValidationError):
            raise ValidationError("Could not resolve userId and otherUserId to numeric user ids")
        return first, second

    async def get_or_create_room(self, user_id: Any, other: Any) -> int:
        if is_missing(user_id) or is_missing(other):
            raise ValidationError("userId and otherUserId/otherIdentifier required")
        self._require_tables()

        first, second = await self._resolve_pair(user_id, other)
        if await self.chat.count_users([first, second]) < len({first, second}):
            raise NotFoundError("One or both users not found")

        user1, user2 = sorted((first, second))
        room_id = await self.chat.get_room_id(user1, user2)
        if room_id is not None:
            return room_id

        room_id = await self.chat.create_room(user1, user2)
        if room_id is None:
            # Another request created it in between
            return await self.chat.get_room_id(user1, user2)

        logger.info("Chat room created", room_id=room_id, users=[user1, user2])
        await self._publish(chat_room(room_id), "room_created", {"roomId": room_id, "users": [user1, user2]})
        return room_id

    async def list_rooms(self, user_id: Any) -> List[dict]:
        numeric_user_id = parse_int(user_id)
        if numeric_user_id is None:
            raise ValidationError("userId must be numeric")
        self._require_tables()
        if await self.users.get_id(numeric_user_id) is None:
            raise NotFoundError("User not found")
        return await self.chat.list_rooms(numeric_user_id)

    async def list_messages(self, room_id: Any, user_id: Any) -> List[dict]:
        self._require_tables()
        numeric_room_id = parse_int(room_id)
        numeric_user_id = parse_int(user_id)
        if numeric_room_id is None or numeric_user_id is None:
            raise ValidationError("roomId and userId must be numeric")
        await self._require_participant(numeric_room_id, numeric_user_id)
        return await self.chat.list_messages(numeric_room_id)

    async def send_message(self, room_id: Any, user_id: Any, text: Any) -> dict:
        if is_missing(room_id) or is_missing(user_id) or not text:
            raise ValidationError("Missing roomId, userId, or messageText")
        self._require_tables()
        numeric_room_id = parse_int(room_id)
        numeric_user_id = parse_int(user_id)
        if numeric_room_id is None or numeric_user_id is None:
            raise ValidationError("roomId and userId must be numeric")
        await self._require_participant(numeric_room_id, numeric_user_id)

        message = await self.chat.add_message(numeric_room_id, numeric_user_id, str(text))
        await self._broadcast_message(numeric_room_id, message)
        return message

    async def _broadcast_message(self, room_id: int, message: dict) -> None:
        if self.notifier is None:
            return
        try:
            names = await self.users.get_names([message["sender_id"]])
        except Exception as e:
            # The message is stored; a missing sender name only degrades the push
            logger.warning("Could not load sender name", room_id=room_id, error=str(e))
            names = {}
        payload = {**message, "sender_name": names.get(message["sender_id"])}
        await self._publish(chat_room(room_id), "new_message", {"roomId": room_id, "message": payload})

    async def _publish(self, room: str, event: str, data: dict) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.publish(room, event, data)
        except Exception as e:
            logger.warning("Chat broadcast failed", room=room, chat_event=event, error=str(e))
