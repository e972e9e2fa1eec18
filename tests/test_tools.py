from __future__ import annotations

import random

import pytest

from jym.models import Trigger, Workout
from jym.schemas.tool_calls import (
    ChallengeResult,
    CompleteExerciseArgs,
    CompleteExerciseCall,
    CreateTriggerCall,
    ExerciseSpec,
    StartWorkoutArgs,
    StartWorkoutCall,
    ToolFailure,
    UpdateOnboardingArgs,
    UpdateOnboardingCall,
    parse_tool_call,
)
from jym.services.ai.tools import TOOL_DEFINITIONS, ToolExecutor
from jym.services.coaching.challenge_service import CHALLENGES, ChallengeService
from jym.services.trigger.trigger_service import TriggerService
from jym.services.workout.workout_service import WorkoutService


@pytest.fixture()
def executor(db, scheduler) -> ToolExecutor:
    return ToolExecutor(
        db,
        user_id="telegram_42",
        channel="telegram",
        recipient="42",
        thread_id="thread-1",
        challenge_service=ChallengeService(random.Random(7)),
        trigger_service=TriggerService(db, scheduler=scheduler),
    )


def workout_call(*names: str) -> StartWorkoutCall:
    exercises = [ExerciseSpec(name=name, slug=name.replace(" ", "-"), sets=3, reps=10) for name in names]
    return StartWorkoutCall(call_id="w1", arguments=StartWorkoutArgs(exercises=exercises))


def test_definitions_cover_every_tool():
    names = [d["name"] for d in TOOL_DEFINITIONS]

    assert names == ["generate_challenge", "start_workout", "complete_exercise", "update_onboarding", "create_trigger"]
    assert all(d["type"] == "function" and d["description"] for d in TOOL_DEFINITIONS)
    assert "delay_minutes" in TOOL_DEFINITIONS[-1]["parameters"]["properties"]


def test_parse_valid_call():
    call = parse_tool_call("create_trigger", "c1", '{"trigger_message": "check in", "delay_minutes": 30}')

    assert isinstance(call, CreateTriggerCall)
    assert call.arguments.delay_minutes == 30


@pytest.mark.parametrize(
    "name, raw",
    [
        ("launch_rocket", "{}"),
        ("create_trigger", '{"trigger_message": "x", "delay_minutes": 0}'),
        ("generate_challenge", '{"difficulty": "insane"}'),
        ("start_workout", '{"exercises": []}'),
        ("generate_challenge", "not json"),
    ],
)
def test_parse_rejects_bad_calls(name, raw):
    assert parse_tool_call(name, "c1", raw) is None


def test_workout_progresses_to_completion(db, executor, make_profile):
    profile = make_profile()
    started = executor.execute(workout_call("pushups", "squats"))

    assert started.exercise_count == 2
    assert started.first_exercise.name == "pushups"

    first = executor.execute(CompleteExerciseCall(call_id="c1", arguments=CompleteExerciseArgs(feedback="easy")))
    assert first.next_exercise.name == "squats"
    assert not first.is_workout_complete
    assert first.progress == "1/2"

    second = executor.execute(CompleteExerciseCall(call_id="c2", arguments=CompleteExerciseArgs()))
    assert second.is_workout_complete
    assert second.next_exercise is None

    workout = db.query(Workout).one()
    assert workout.completed
    assert workout.exercises[0]["feedback"] == "easy"
    db.refresh(profile)
    assert profile.last_workout_date == workout.date


def test_complete_without_workout(executor):
    result = executor.execute(CompleteExerciseCall(call_id="c1", arguments=CompleteExerciseArgs()))

    assert result == ToolFailure(error="no active workout")


def test_update_onboarding(executor, make_profile):
    profile = make_profile()

    result = executor.execute(
        UpdateOnboardingCall(call_id="c1", arguments=UpdateOnboardingArgs(goals="run a 5k"))
    )

    assert result.success
    assert result.updated_fields == ["goals"]
    assert profile.goals == "run a 5k"


def test_update_onboarding_without_profile(executor):
    result = executor.execute(
        UpdateOnboardingCall(call_id="c1", arguments=UpdateOnboardingArgs(goals="run a 5k"))
    )

    assert not result.success


def test_create_trigger(db, executor, scheduler):
    call = parse_tool_call(
        "create_trigger", "c1", '{"trigger_message": "ask about sleep", "delay_minutes": 90, "context": "slept badly"}'
    )

    result = executor.execute(call)

    trigger = db.query(Trigger).one()
    assert result.trigger_id == trigger.id
    assert trigger.thread_id == "thread-1"
    assert trigger.trigger_metadata == {"context": "slept badly"}
    assert scheduler.scheduled[0][0] == trigger.id


def test_failing_tool_returns_failure(db, scheduler):
    class BrokenScheduler:
        def schedule(self, trigger_id, eta):
            raise ConnectionError("broker down")

    executor = ToolExecutor(
        db, "telegram_42", "telegram", "42", "thread-1",
        trigger_service=TriggerService(db, scheduler=BrokenScheduler()),
    )
    call = parse_tool_call("create_trigger", "c1", '{"trigger_message": "x", "delay_minutes": 5}')

    result = executor.execute(call)

    assert isinstance(result, ToolFailure)
    assert "broker down" in result.error


def test_challenge_matches_difficulty():
    service = ChallengeService(random.Random(1))

    for difficulty in ("easy", "medium", "hard"):
        result = service.generate(difficulty)
        assert isinstance(result, ChallengeResult)
        assert result.difficulty == difficulty
        assert result.exercise in {c["name"] for c in CHALLENGES[difficulty]}
        assert result.message.startswith("alright, let's do ")


@pytest.mark.parametrize(
    "level, difficulty",
    [("advanced lifter", "hard"), ("Intermediate", "medium"), ("never trained", "easy"), (None, "easy")],
)
def test_difficulty_for_level(level, difficulty):
    assert ChallengeService.difficulty_for_level(level) == difficulty


def test_mark_exercise_complete_validates_input(db):
    workout = WorkoutService.create_workout(db, "telegram_42", "thread-1", [ExerciseSpec(name="plank", slug="plank", duration=60)])

    with pytest.raises(ValueError):
        WorkoutService.mark_exercise_complete(db, "missing", 0)
    with pytest.raises(ValueError):
        WorkoutService.mark_exercise_complete(db, workout.id, 3)

    assert WorkoutService.get_current_exercise(db, "thread-1")["progress"] == "1/1"


@pytest.mark.parametrize("level, difficulty", [("advanced", "hard"), ("intermediate", "medium"), (None, "easy")])
def test_challenge_defaults_to_the_users_level(db, scheduler, level, difficulty):
    executor = ToolExecutor(
        db, "telegram_42", "telegram", "42", "thread-1",
        fitness_level=level,
        trigger_service=TriggerService(db, scheduler=scheduler),
    )
    call = parse_tool_call("generate_challenge", "c1", "{}")

    assert executor.execute(call).difficulty == difficulty


def test_explicit_difficulty_wins_over_level(db, scheduler):
    executor = ToolExecutor(
        db, "telegram_42", "telegram", "42", "thread-1",
        fitness_level="advanced",
        trigger_service=TriggerService(db, scheduler=scheduler),
    )
    call = parse_tool_call("generate_challenge", "c1", '{"difficulty": "easy"}')

    assert executor.execute(call).difficulty == "easy"
