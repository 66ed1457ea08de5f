from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base


class Roommate(Base):
    """Profile of a user looking for a room. Stores own habits, not tolerances."""

    __tablename__ = "roommates"

    roommate_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), unique=True, nullable=False)
    current_location = Column(String(255))
    cultural_pref = Column(String(100))
    food_type = Column(String(20))
    smokes = Column(Boolean)
    drinks = Column(Boolean)
    dietary_restrictions = Column(Text)
    roommate_smokes_ok = Column(Boolean)
    roommate_drinks_ok = Column(Boolean)
    roommate_age_pref = Column(String(50))
    roommate_gender_pref = Column(String(20))
    environment_pref = Column(String(20))
    curfew_time = Column(String(50))
    owns_pets = Column(Boolean)
    pet_details = Column(Text)
    profession = Column(String(100))
    work_study_schedule = Column(String(20))
    roommate_night_ok = Column(Boolean)
    relationship_status = Column(String(20))
    profession_pref = Column(String(20))
    cleanliness = Column(String(20))
    cooking_pref = Column(String(20))
    extra_expectations = Column(Text)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    user = relationship("User", backref="roommate_profile")
