from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index, func
from .base import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255))
    firebase_uid = Column(String(128), unique=True)
    password = Column(String(255))  # legacy, auth lives with the identity provider
    phone = Column(String(20))
    aadhar_no = Column(String(12), unique=True, nullable=False)
    aadhar_image_url = Column(String)
    aadhar_verified = Column(Boolean, default=False)
    user_type = Column(String(20))
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)


# Emails are unique regardless of case
Index("uq_users_email_lower", func.lower(User.email), unique=True)
