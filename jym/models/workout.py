# jym/models/workout.py
from sqlalchemy import Column, String, DateTime, JSON, Boolean, Integer, Index
from sqlalchemy.sql import func
from jym.models.base import Base


class Workout(Base):
    __tablename__ = "workouts"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False)
    thread_id = Column(String(120), nullable=False)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    exercises = Column(JSON, nullable=False, default=list)
    completed = Column(Boolean, nullable=False, default=False)
    current_exercise_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_workouts_user_active", "user_id", "completed"),
        Index("ix_workouts_user_date", "user_id", "date"),
    )
