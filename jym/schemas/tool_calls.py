# jym/schemas/tool_calls.py
"""Typed tool calls the coach model may request, and their results"""
from __future__ import annotations
import json
import logging
from pydantic import BaseModel, Field, TypeAdapter
from typing import Optional, Literal, List, Union, Annotated

logger = logging.getLogger(__name__)


# --- arguments ------------------------------------------------------------

class GenerateChallengeArgs(BaseModel):
    """Generate a quick fitness challenge for the user"""
    difficulty: Optional[Literal["easy", "medium", "hard"]] = Field(
        None, description="Difficulty level of the challenge; defaults to the user's fitness level"
    )
    context: str = Field("", description="User's current state or mood")


class ExerciseSpec(BaseModel):
    name: str
    slug: str
    sets: Optional[int] = None
    reps: Optional[int] = None
    weight: Optional[float] = None
    duration: Optional[int] = Field(None, description="Seconds")
    unit: Optional[str] = None


class StartWorkoutArgs(BaseModel):
    """Start a workout session made of an ordered list of exercises"""
    exercises: List[ExerciseSpec] = Field(..., min_length=1)


class CompleteExerciseArgs(BaseModel):
    """Mark the current exercise of the active workout as done"""
    feedback: Optional[str] = Field(None, description="How the exercise felt")


class UpdateOnboardingArgs(BaseModel):
    """Update one or more onboarding fields for the user"""
    fitness_level: Optional[str] = None
    goals: Optional[str] = None
    equipment: Optional[str] = None
    injuries: Optional[str] = None


class CreateTriggerArgs(BaseModel):
    """Schedule a proactive message to the user"""
    trigger_message: str = Field(..., min_length=1, description="Instruction for yourself when the trigger fires")
    delay_minutes: int = Field(..., ge=1, le=60 * 24 * 30, description="Minutes from now")
    type: Optional[str] = Field(None, description="e.g. workout_reminder, check_in")
    context: Optional[str] = Field(None, description="Additional context for the trigger")


# --- calls ----------------------------------------------------------------

class GenerateChallengeCall(BaseModel):
    name: Literal["generate_challenge"] = "generate_challenge"
    call_id: str
    arguments: GenerateChallengeArgs


class StartWorkoutCall(BaseModel):
    name: Literal["start_workout"] = "start_workout"
    call_id: str
    arguments: StartWorkoutArgs


class CompleteExerciseCall(BaseModel):
    name: Literal["complete_exercise"] = "complete_exercise"
    call_id: str
    arguments: CompleteExerciseArgs


class UpdateOnboardingCall(BaseModel):
    name: Literal["update_onboarding"] = "update_onboarding"
    call_id: str
    arguments: UpdateOnboardingArgs


class CreateTriggerCall(BaseModel):
    name: Literal["create_trigger"] = "create_trigger"
    call_id: str
    arguments: CreateTriggerArgs


ToolCall = Annotated[
    Union[
        GenerateChallengeCall,
        StartWorkoutCall,
        CompleteExerciseCall,
        UpdateOnboardingCall,
        CreateTriggerCall,
    ],
    Field(discriminator="name"),
]

TOOL_CALL_TYPES = (
    GenerateChallengeCall,
    StartWorkoutCall,
    CompleteExerciseCall,
    UpdateOnboardingCall,
    CreateTriggerCall,
)

_tool_call_adapter = TypeAdapter(ToolCall)


def parse_tool_call(name: str, call_id: str, raw_arguments: Optional[str]) -> Optional[ToolCall]:
    """Validate a raw function call from the model.

    Returns None for unknown tools or arguments that do not match the tool's
    schema; such calls never reach the executor.
    """
    try:
        arguments = json.loads(raw_arguments) if raw_arguments else {}
        return _tool_call_adapter.validate_python(
            {"name": name, "call_id": call_id, "arguments": arguments}
        )
    except ValueError as e:
        logger.warning(f"⚠️ Rejected tool call {name} ({call_id}): {e}")
        return None


# --- results --------------------------------------------------------------

class ChallengeResult(BaseModel):
    exercise: str
    amount: int
    unit: str
    difficulty: str
    message: str


class StartWorkoutResult(BaseModel):
    workout_id: str
    exercise_count: int
    first_exercise: ExerciseSpec


class CompleteExerciseResult(BaseModel):
    next_exercise: Optional[ExerciseSpec] = None
    is_workout_complete: bool
    progress: str


class UpdateOnboardingResult(BaseModel):
    success: bool
    updated_fields: List[str] = Field(default_factory=list)


class CreateTriggerResult(BaseModel):
    trigger_id: str
    scheduled_time: str


class ToolFailure(BaseModel):
    error: str


ToolResult = Union[
    ChallengeResult,
    StartWorkoutResult,
    CompleteExerciseResult,
    UpdateOnboardingResult,
    CreateTriggerResult,
    ToolFailure,
]
