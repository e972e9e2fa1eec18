# jym/services/onboarding/questions.py
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class OnboardingQuestion:
    key: str
    question: str
    context: str
    follow_up: str

    @property
    def fallback_text(self) -> str:
        return f"{self.question}\n{self.context}"


ONBOARDING_QUESTIONS: Tuple[OnboardingQuestion, ...] = (
    OnboardingQuestion(
        key="fitness_level",
        question="what's your fitness experience like?",
        context="are you completely new to working out, been doing it for a while, or pretty experienced?",
        follow_up="just give me the real talk - beginner, intermediate, or advanced?",
    ),
    OnboardingQuestion(
        key="goals",
        question="what do you want to get out of this?",
        context="lose weight? get stronger? build muscle? just feel better?",
        follow_up="what's driving you to start working out?",
    ),
    OnboardingQuestion(
        key="equipment",
        question="what equipment do you have access to?",
        context="home gym, commercial gym, just bodyweight, or something else?",
        follow_up="where are you planning to work out most of the time?",
    ),
    OnboardingQuestion(
        key="injuries",
        question="any injuries or things i should know about?",
        context="bad knee, back issues, shoulder problems - anything that might affect workouts?",
        follow_up="or are you good to go with everything?",
    ),
)

ONBOARDING_KEYS = tuple(q.key for q in ONBOARDING_QUESTIONS)

COMPLETION_FALLBACK = "awesome! we're all set up. ready to get you moving with some personalized workouts!"
