from .base import Base
from .user import User
from .resident import Resident
from .roommate import Roommate
from .match import Match, MatchStatus
from .chat import ChatRoom, Message

__all__ = [
    "Base",
    "User",
    "Resident",
    "Roommate",
    "Match",
    "MatchStatus",
    "ChatRoom",
    "Message",
]
