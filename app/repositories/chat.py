from typing import List, Optional

from sqlalchemy import case, or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.models.chat import ChatRoom, Message
from app.models.user import User


def build_room_insert(user1_id: int, user2_id: int):
    """Create the room for an ordered pair unless it already exists."""
    return (
        insert(ChatRoom)
        .values(user1_id=user1_id, user2_id=user2_id)
        .on_conflict_do_nothing(index_elements=[ChatRoom.user1_id, ChatRoom.user2_id])
        .returning(ChatRoom.chat_room_id)
    )


class ChatRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_users(self, user_ids: List[int]) -> int:
        result = await self.session.execute(select(User.user_id).where(User.user_id.in_(user_ids)))
        return len(result.all())

    async def get_room_id(self, user1_id: int, user2_id: int) -> Optional[int]:
        stmt = select(ChatRoom.chat_room_id).where(ChatRoom.user1_id == user1_id, ChatRoom.user2_id == user2_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def create_room(self, user1_id: int, user2_id: int) -> Optional[int]:
        """Returns the new room id, or None if the pair already had one."""
        result = await self.session.execute(build_room_insert(user1_id, user2_id))
        room_id = result.scalar_one_or_none()
        await self.session.commit()
        return room_id

    async def is_participant(self, room_id: int, user_id: int) -> bool:
        stmt = select(ChatRoom.chat_room_id).where(
            ChatRoom.chat_room_id == room_id,
            or_(ChatRoom.user1_id == user_id, ChatRoom.user2_id == user_id),
        )
        return (await self.session.execute(stmt)).first() is not None

    async def list_rooms(self, user_id: int) -> List[dict]:
        u1 = aliased(User)
        u2 = aliased(User)
        is_first = ChatRoom.user1_id == user_id
        stmt = (
            select(
                ChatRoom.chat_room_id,
                ChatRoom.user1_id,
                ChatRoom.user2_id,
                ChatRoom.created_at,
                u1.name.label("user1_name"),
                u2.name.label("user2_name"),
                case((is_first, u2.name), else_=u1.name).label("other_user_name"),
                case((is_first, ChatRoom.user2_id), else_=ChatRoom.user1_id).label("other_user_id"),
            )
            .join(u1, ChatRoom.user1_id == u1.user_id)
            .join(u2, ChatRoom.user2_id == u2.user_id)
            .where(or_(ChatRoom.user1_id == user_id, ChatRoom.user2_id == user_id))
            .order_by(ChatRoom.created_at.desc(), ChatRoom.chat_room_id.desc())
        )
        return [dict(r) for r in (await self.session.execute(stmt)).mappings().all()]

    async def list_messages(self, room_id: int) -> List[dict]:
        stmt = (
            select(
                Message.message_id,
                Message.sender_id,
                Message.message_text,
                Message.created_at,
                User.name.label("sender_name"),
            )
            .join(User, Message.sender_id == User.user_id)
            .where(Message.chat_room_id == room_id)
            .order_by(Message.created_at.asc(), Message.message_id.asc())
        )
        return [dict(r) for r in (await self.session.execute(stmt)).mappings().all()]

    async def add_message(self, room_id: int, sender_id: int, text: str) -> dict:
        message = Message(chat_room_id=room_id, sender_id=sender_id, message_text=text)
        self.session.add(message)
        await self.session.commit()
        await self.session.refresh(message)
        return {
            "message_id": message.message_id,
            "sender_id": message.sender_id,
            "message_text": message.message_text,
            "created_at": message.created_at,
        }
