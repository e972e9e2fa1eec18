# jym/models/__init__.py
from .base import Base
from .conversation import Conversation, ConversationSnapshot
from .onboarding_session import OnboardingSession
from .user_profile import UserProfile
from .trigger import Trigger
from .workout import Workout

__all__ = [
    "Base",
    "Conversation",
    "ConversationSnapshot",
    "OnboardingSession",
    "UserProfile",
    "Trigger",
    "Workout",
]
