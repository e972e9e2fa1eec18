# jym/models/user_profile.py
from sqlalchemy import Column, String, DateTime, Boolean, BigInteger, Text
from sqlalchemy.sql import func
from jym.models.base import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False, unique=True, index=True)
    platform = Column(String(20), nullable=False)  # telegram, whatsapp, loopmessage
    channel_handle = Column(String(64), nullable=False)  # chat id or phone number
    telegram_id = Column(BigInteger, index=True)
    display_name = Column(String(120))

    onboarding_complete = Column(Boolean, nullable=False, default=False)
    fitness_level = Column(Text, nullable=False, default="")
    goals = Column(Text, nullable=False, default="")
    equipment = Column(Text, nullable=False, default="")
    injuries = Column(Text, nullable=False, default="")
    measuring_system = Column(String(10), nullable=False, default="metric")
    last_workout_date = Column(String(10))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
