# jym/models/trigger.py
from sqlalchemy import Column, String, DateTime, JSON, Text, Index
from sqlalchemy.sql import func
from jym.models.base import Base


class Trigger(Base):
    __tablename__ = "triggers"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False)
    channel = Column(String(20), nullable=False)
    recipient = Column(String(64), nullable=False)  # phone number or chat id

    # Internal instruction for the agent, never sent to the user as-is
    trigger_message = Column(Text, nullable=False)
    scheduled_time = Column(DateTime(timezone=True), nullable=False)
    thread_id = Column(String(120))
    trigger_metadata = Column(JSON, default=dict)

    status = Column(String(20), nullable=False, default="pending")  # pending, executing, completed, failed, cancelled
    scheduled_task_id = Column(String(200))  # Celery task ID
    error = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_triggers_user_status", "user_id", "status"),
        Index("ix_triggers_scheduled_time", "scheduled_time"),
    )
