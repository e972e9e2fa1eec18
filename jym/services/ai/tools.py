# jym/services/ai/tools.py
"""Tool definitions for the coach and their executor"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, List, Any

from sqlalchemy.orm import Session

from jym.schemas.tool_calls import (
    TOOL_CALL_TYPES,
    ToolCall,
    ToolResult,
    ToolFailure,
    ChallengeResult,
    GenerateChallengeCall,
    StartWorkoutCall,
    CompleteExerciseCall,
    UpdateOnboardingCall,
    CreateTriggerCall,
    StartWorkoutResult,
    CompleteExerciseResult,
    UpdateOnboardingResult,
    CreateTriggerResult,
    ExerciseSpec,
)
from jym.services.coaching.challenge_service import ChallengeService
from jym.services.trigger.trigger_service import TriggerService
from jym.services.user.user_profile_service import UserProfileService
from jym.services.workout.workout_service import WorkoutService

logger = logging.getLogger(__name__)


def _definition(call_type) -> Dict[str, Any]:
    args_model = call_type.model_fields["arguments"].annotation
    return {
        "type": "function",
        "name": call_type.model_fields["name"].default,
        "description": (args_model.__doc__ or "").strip(),
        "parameters": args_model.model_json_schema(),
    }


TOOL_DEFINITIONS: List[Dict[str, Any]] = [_definition(t) for t in TOOL_CALL_TYPES]


class ToolExecutor:
    """Runs validated tool calls on behalf of one user in one thread"""

    def __init__(
            self,
            db: Session,
            user_id: str,
            channel: str,
            recipient: str,
            thread_id: str,
            fitness_level: Optional[str] = None,
            challenge_service: Optional[ChallengeService] = None,
            trigger_service: Optional[TriggerService] = None
    ):
        self.db = db
        self.user_id = user_id
        self.channel = channel
        self.recipient = recipient
        self.thread_id = thread_id
        self.fitness_level = fitness_level
        self.challenge_service = challenge_service or ChallengeService()
        self.trigger_service = trigger_service or TriggerService(db)

    def execute(self, call: ToolCall) -> ToolResult:
        logger.info(f"🔧 Executing tool {call.name} ({call.call_id}) for {self.user_id}")
        try:
            if isinstance(call, GenerateChallengeCall):
                return self._generate_challenge(call)
            elif isinstance(call, StartWorkoutCall):
                return self._start_workout(call)
            elif isinstance(call, CompleteExerciseCall):
                return self._complete_exercise(call)
            elif isinstance(call, UpdateOnboardingCall):
                return self._update_onboarding(call)
            elif isinstance(call, CreateTriggerCall):
                return self._create_trigger(call)
            raise TypeError(f"Unhandled tool call type: {type(call).__name__}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Tool {call.name} failed for {self.user_id}: {e}", exc_info=True)
            return ToolFailure(error=str(e) or e.__class__.__name__)

    def _generate_challenge(self, call: GenerateChallengeCall) -> ChallengeResult:
        difficulty = call.arguments.difficulty or self.challenge_service.difficulty_for_level(self.fitness_level)
        return self.challenge_service.generate(difficulty)

    def _start_workout(self, call: StartWorkoutCall) -> StartWorkoutResult:
        workout = WorkoutService.create_workout(
            self.db,
            user_id=self.user_id,
            thread_id=self.thread_id,
            exercises=call.arguments.exercises,
        )
        return StartWorkoutResult(
            workout_id=workout.id,
            exercise_count=len(call.arguments.exercises),
            first_exercise=call.arguments.exercises[0],
        )

    def _complete_exercise(self, call: CompleteExerciseCall) -> ToolResult:
        current = WorkoutService.get_current_exercise(self.db, self.thread_id)
        if not current:
            return ToolFailure(error="no active workout")

        result = WorkoutService.mark_exercise_complete(
            self.db,
            workout_id=current["workout_id"],
            exercise_index=current["exercise_index"],
            feedback=call.arguments.feedback,
        )
        next_exercise = result["next_exercise"]
        return CompleteExerciseResult(
            next_exercise=ExerciseSpec.model_validate(next_exercise) if next_exercise else None,
            is_workout_complete=result["is_workout_complete"],
            progress=result["progress"],
        )

    def _update_onboarding(self, call: UpdateOnboardingCall) -> UpdateOnboardingResult:
        fields = call.arguments.model_dump(exclude_none=True)
        if not fields:
            return UpdateOnboardingResult(success=True)
        profile = UserProfileService.update_fields(self.db, self.user_id, fields)
        return UpdateOnboardingResult(success=profile is not None, updated_fields=list(fields))

    def _create_trigger(self, call: CreateTriggerCall) -> CreateTriggerResult:
        args = call.arguments
        scheduled_time = datetime.now(timezone.utc) + timedelta(minutes=args.delay_minutes)
        metadata = {k: v for k, v in {"type": args.type, "context": args.context}.items() if v}
        trigger = self.trigger_service.create_trigger(
            user_id=self.user_id,
            channel=self.channel,
            recipient=self.recipient,
            trigger_message=args.trigger_message,
            scheduled_time=scheduled_time,
            thread_id=self.thread_id,
            metadata=metadata,
        )
        return CreateTriggerResult(trigger_id=trigger.id, scheduled_time=scheduled_time.isoformat())
