# jym/models/conversation.py
from sqlalchemy import Column, String, DateTime, JSON, Index
from sqlalchemy.sql import func
from jym.models.base import Base


class Conversation(Base):
    __tablename__ = "conversations"

    conversation_id = Column(String(120), primary_key=True)
    user_key = Column(String(64), nullable=False)
    chat_key = Column(String(64), nullable=False)
    type = Column(String(30), nullable=False)  # onboarding, fitness_chat, quick_challenge
    status = Column(String(20), nullable=False, default="active")  # active, completed, cancelled
    current_step = Column(String(50))

    # session / llm / user sub-documents
    context = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_conversations_owner_type_status", "user_key", "type", "status"),
    )


class ConversationSnapshot(Base):
    __tablename__ = "conversation_snapshots"

    id = Column(String(36), primary_key=True)
    conversation_id = Column(String(120), nullable=False, index=True)
    step = Column(String(50), nullable=False)
    snapshot_data = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
