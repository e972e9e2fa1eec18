# jym/schemas/trigger.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


class TriggerStatus(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TriggerDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    channel: str
    recipient: str
    trigger_message: str
    scheduled_time: datetime
    status: TriggerStatus
    thread_id: Optional[str] = None
    trigger_metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None


class CancelTriggerRequest(BaseModel):
    user_id: str = Field(..., description="Owner of the trigger")


class OnboardingStatusDTO(BaseModel):
    user_id: str
    onboarding_complete: bool
    current_question_index: Optional[int] = None
    fitness_level: str = ""
    goals: str = ""
    equipment: str = ""
    injuries: str = ""
