# jym/schemas/conversation_context.py
from __future__ import annotations
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any, List
from enum import Enum
import time


def now_ms() -> int:
    return int(time.time() * 1000)


class ConversationType(str, Enum):
    ONBOARDING = "onboarding"
    FITNESS_CHAT = "fitness_chat"
    QUICK_CHALLENGE = "quick_challenge"


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class SessionContext(BaseModel):
    """Timing and waiting state of a conversation"""
    start_time: int = Field(default_factory=now_ms, description="Epoch ms")
    last_activity: int = Field(default_factory=now_ms, description="Epoch ms, never decreases")
    message_count: int = Field(0)
    is_waiting: bool = Field(False)
    waiting_for: Optional[str] = Field(None, description="What the bot is waiting on, e.g. challenge_result")
    current_phase: Optional[str] = Field(None)


class LLMMessage(BaseModel):
    """One entry of the model-facing message log"""
    role: MessageRole
    content: str
    timestamp: int = Field(default_factory=now_ms)
    tool_calls: Optional[List[Dict[str, Any]]] = Field(None, description="Serialized ToolCall models")
    tool_results: Optional[List[Dict[str, Any]]] = Field(None, description="Serialized tool results")


class ConversationMemory(BaseModel):
    summary: str = ""
    key_points: List[str] = Field(default_factory=list)
    user_mood: Optional[str] = None
    last_workout_type: Optional[str] = None


class LLMContext(BaseModel):
    last_response_id: Optional[str] = None
    messages: List[LLMMessage] = Field(default_factory=list)
    conversation_memory: Optional[ConversationMemory] = None


class UserPreferences(BaseModel):
    equipment: List[str] = Field(default_factory=list)
    injuries: List[str] = Field(default_factory=list)


class UserContext(BaseModel):
    fitness_level: Optional[str] = None
    current_goals: List[str] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)

    @field_validator("current_goals")
    @classmethod
    def dedupe_goals(cls, v: List[str]) -> List[str]:
        # set semantics, first occurrence wins
        return list(dict.fromkeys(v))


class ConversationContext(BaseModel):
    """The `context` document stored on a conversation row"""
    session: SessionContext = Field(default_factory=SessionContext)
    llm: LLMContext = Field(default_factory=LLMContext)
    user: UserContext = Field(default_factory=UserContext)


class ConversationSummary(BaseModel):
    conversation_id: str
    type: ConversationType
    status: ConversationStatus
    message_count: int
    duration_ms: int
    current_phase: Optional[str] = None
