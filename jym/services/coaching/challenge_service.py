# jym/services/coaching/challenge_service.py
"""Quick challenges: the first-contact warm-up and level-based picks"""
import random
from typing import Optional, Dict, List

from jym.schemas.tool_calls import ChallengeResult

WARM_UP_CHALLENGE = (
    "yo! i'm jym, your new fitness coach\n"
    "before anything else let's get you moving\n"
    "<multiline>10 pushups right now\n"
    "knees on the floor is totally fine</multiline>\n"
    "text me when you're done"
)

CHALLENGES: Dict[str, List[Dict]] = {
    "easy": [
        {"name": "pushups", "count": 10, "unit": "reps"},
        {"name": "squats", "count": 15, "unit": "reps"},
        {"name": "jumping jacks", "count": 20, "unit": "reps"},
        {"name": "high knees", "count": 20, "unit": "reps"},
    ],
    "medium": [
        {"name": "pushups", "count": 15, "unit": "reps"},
        {"name": "squats", "count": 25, "unit": "reps"},
        {"name": "burpees", "count": 10, "unit": "reps"},
        {"name": "plank", "count": 45, "unit": "seconds"},
        {"name": "lunges", "count": 20, "unit": "reps"},
    ],
    "hard": [
        {"name": "pushups", "count": 25, "unit": "reps"},
        {"name": "burpees", "count": 15, "unit": "reps"},
        {"name": "jump squats", "count": 20, "unit": "reps"},
        {"name": "plank", "count": 60, "unit": "seconds"},
        {"name": "mountain climbers", "count": 30, "unit": "reps"},
    ],
}

DIFFICULTY_LINES = {
    "easy": "nice and easy to get started",
    "medium": "let's get that heart rate up",
    "hard": "time to push yourself",
}


class ChallengeService:

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    @staticmethod
    def difficulty_for_level(fitness_level: Optional[str]) -> str:
        level = (fitness_level or "").lower()
        if "advanced" in level or "experienced" in level:
            return "hard"
        if "intermediate" in level or "regular" in level:
            return "medium"
        return "easy"

    def generate(self, difficulty: str = "easy") -> ChallengeResult:
        options = CHALLENGES.get(difficulty) or CHALLENGES["easy"]
        picked = self.rng.choice(options)

        if picked["unit"] == "seconds":
            what = f"{picked['name']} for {picked['count']} seconds"
        else:
            what = f"{picked['count']} {picked['name']}"

        return ChallengeResult(
            exercise=picked["name"],
            amount=picked["count"],
            unit=picked["unit"],
            difficulty=difficulty,
            message=f"alright, let's do {what}. {DIFFICULTY_LINES.get(difficulty, DIFFICULTY_LINES['easy'])}",
        )
