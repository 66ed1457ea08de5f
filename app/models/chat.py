from datetime import datetime
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from .base import Base


class ChatRoom(Base):
    __tablename__ = "chat_rooms"
    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_chat_rooms_pair"),
        # Lower user id is always stored first
        CheckConstraint("user1_id <= user2_id", name="ck_chat_rooms_ordered"),
    )

    chat_room_id = Column(Integer, primary_key=True)
    user1_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    user2_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class Message(Base):
    __tablename__ = "messages"

    message_id = Column(Integer, primary_key=True)
    chat_room_id = Column(Integer, ForeignKey("chat_rooms.chat_room_id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    message_text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    room = relationship("ChatRoom", backref="messages")
