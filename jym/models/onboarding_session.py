# jym/models/onboarding_session.py
from sqlalchemy import Column, String, DateTime, JSON, Integer
from sqlalchemy.sql import func
from jym.models.base import Base


class OnboardingSession(Base):
    """Durable state of one user's in-progress onboarding flow"""
    __tablename__ = "onboarding_sessions"

    owner_id = Column(String(64), primary_key=True)
    current_question_index = Column(Integer, nullable=False, default=0)
    conversation_history = Column(JSON, nullable=False, default=list)
    last_response_id = Column(String(120))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
