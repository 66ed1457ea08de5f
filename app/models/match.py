import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from .base import Base


class MatchStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("resident_id", "roommate_id", name="uq_matches_pair"),
        CheckConstraint("status IN ('pending', 'accepted', 'rejected')", name="ck_matches_status"),
    )

    match_id = Column(Integer, primary_key=True)
    resident_id = Column(Integer, ForeignKey("residents.resident_id", ondelete="CASCADE"), nullable=False)
    roommate_id = Column(Integer, ForeignKey("roommates.roommate_id", ondelete="CASCADE"), nullable=False)
    compatibility_score = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=MatchStatus.pending.value)
    matched_on = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    resident = relationship("Resident", backref="matches")
    roommate = relationship("Roommate", backref="matches")
