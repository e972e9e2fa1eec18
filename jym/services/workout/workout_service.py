# jym/services/workout/workout_service.py
"""Workout session tracking"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, List, Any

from sqlalchemy.orm import Session

from jym.models.user_profile import UserProfile
from jym.models.workout import Workout
from jym.schemas.tool_calls import ExerciseSpec

logger = logging.getLogger(__name__)


class WorkoutService:
    """Handles workout sessions made of ordered exercises"""

    @staticmethod
    def create_workout(
            db: Session,
            user_id: str,
            thread_id: str,
            exercises: List[ExerciseSpec],
            date: Optional[str] = None
    ) -> Workout:
        workout = Workout(
            id=str(uuid.uuid4()),
            user_id=user_id,
            thread_id=thread_id,
            date=date or datetime.now(timezone.utc).strftime("%Y-%m-%d"),
            exercises=[
                {**exercise.model_dump(exclude_none=True), "completed": False}
                for exercise in exercises
            ],
            completed=False,
            current_exercise_index=0,
        )
        db.add(workout)
        db.commit()
        db.refresh(workout)
        logger.info(f"🏋️ Started workout {workout.id} with {len(exercises)} exercises for {user_id}")
        return workout

    @staticmethod
    def get_current_workout(db: Session, thread_id: str) -> Optional[Workout]:
        return db.query(Workout).filter(
            Workout.thread_id == thread_id,
            Workout.completed.is_(False)
        ).order_by(Workout.created_at.desc()).first()

    @staticmethod
    def get_current_exercise(db: Session, thread_id: str) -> Optional[Dict[str, Any]]:
        workout = WorkoutService.get_current_workout(db, thread_id)
        if not workout or workout.current_exercise_index >= len(workout.exercises):
            return None

        index = workout.current_exercise_index
        return {
            "exercise": workout.exercises[index],
            "workout_id": workout.id,
            "exercise_index": index,
            "progress": f"{index + 1}/{len(workout.exercises)}",
        }

    @staticmethod
    def mark_exercise_complete(
            db: Session,
            workout_id: str,
            exercise_index: int,
            feedback: Optional[str] = None
    ) -> Dict[str, Any]:
        """Complete one exercise and advance; finishing the last one completes the workout"""
        workout = db.query(Workout).filter(Workout.id == workout_id).first()
        if not workout:
            raise ValueError(f"Workout not found: {workout_id}")
        if not 0 <= exercise_index < len(workout.exercises):
            raise ValueError(f"Exercise index out of range: {exercise_index}")

        exercises = [dict(e) for e in workout.exercises]
        exercises[exercise_index]["completed"] = True
        if feedback:
            exercises[exercise_index]["feedback"] = feedback

        next_index = exercise_index + 1
        is_workout_complete = next_index >= len(exercises)

        workout.exercises = exercises
        workout.current_exercise_index = len(exercises) if is_workout_complete else next_index
        workout.completed = all(e.get("completed") for e in exercises)

        if workout.completed:
            profile = db.query(UserProfile).filter(UserProfile.user_id == workout.user_id).first()
            if profile:
                profile.last_workout_date = workout.date
            logger.info(f"🏁 Workout {workout_id} completed")

        db.commit()

        return {
            "next_exercise": None if is_workout_complete else exercises[next_index],
            "is_workout_complete": is_workout_complete,
            "progress": f"{next_index}/{len(exercises)}",
        }
