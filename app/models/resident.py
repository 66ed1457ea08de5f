from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base


class Resident(Base):
    """Profile of a user listing a property and looking for a roommate."""

    __tablename__ = "residents"

    resident_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), unique=True, nullable=False)
    property_location = Column(String(255))
    rent = Column(Numeric(10, 2))
    description = Column(Text)
    religious_pref = Column(String(100))
    roommate_food_pref = Column(String(20))
    smokes = Column(Boolean)
    drinks = Column(Boolean)
    roommate_smokes_ok = Column(Boolean)
    roommate_drinks_ok = Column(Boolean)
    roommate_age_pref = Column(String(50))
    roommate_gender_pref = Column(String(20))
    environment_pref = Column(String(20))
    curfew_time = Column(String(50))
    works = Column(Boolean)
    roommate_night_ok = Column(Boolean)
    profession = Column(String(100))
    relationship_status = Column(String(20))
    roommate_pets_ok = Column(Boolean)
    cleanliness = Column(String(20))
    roommate_cooking_pref = Column(String(20))
    roommate_guests_ok = Column(Boolean)
    extra_requirements = Column(Text)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    user = relationship("User", backref="resident_profile")
