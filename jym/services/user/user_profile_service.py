# jym/services/user/user_profile_service.py
"""User profile persistence"""
import logging
import uuid
from typing import Optional, Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jym.core.errors import ErrorKind, Outcome, PersistenceError
from jym.models.user_profile import UserProfile
from jym.services.onboarding.questions import ONBOARDING_KEYS

logger = logging.getLogger(__name__)


class UserProfileService:
    """Service layer for user profile operations."""

    @staticmethod
    def get_profile(db: Session, user_id: str) -> Optional[UserProfile]:
        return db.query(UserProfile).filter(UserProfile.user_id == user_id).first()

    @staticmethod
    def get_or_create_profile(
            db: Session,
            user_id: str,
            platform: str,
            channel_handle: str,
            display_name: Optional[str] = None,
            telegram_id: Optional[int] = None
    ) -> UserProfile:
        """
        Fetch the profile for `user_id`, creating an empty one on first contact.
        Raises PersistenceError if the row cannot be written.
        """
        profile = UserProfileService.get_profile(db, user_id)
        if profile:
            if display_name and not profile.display_name:
                profile.display_name = display_name
                db.commit()
            return profile

        profile = UserProfile(
            id=str(uuid.uuid4()),
            user_id=user_id,
            platform=platform,
            channel_handle=channel_handle,
            display_name=display_name,
            telegram_id=telegram_id,
            onboarding_complete=False,
            fitness_level="",
            goals="",
            equipment="",
            injuries="",
            measuring_system="metric",
        )
        try:
            db.add(profile)
            db.commit()
            db.refresh(profile)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Failed to create profile for {user_id}: {e}")
            raise PersistenceError(f"could not create profile: {e}", cause=e) from e

        logger.info(f"👤 Created profile for {user_id} on {platform}")
        return profile

    @staticmethod
    def update_fields(db: Session, user_id: str, fields: Dict[str, Any]) -> Optional[UserProfile]:
        profile = UserProfileService.get_profile(db, user_id)
        if not profile:
            return None
        for key, value in fields.items():
            setattr(profile, key, value)
        db.commit()
        db.refresh(profile)
        return profile

    @staticmethod
    def get_onboarding_info(db: Session, user_id: str) -> Optional[Dict[str, Any]]:
        profile = UserProfileService.get_profile(db, user_id)
        if not profile:
            return None
        return {
            "user_id": profile.user_id,
            "onboarding_complete": profile.onboarding_complete,
            **{key: getattr(profile, key) or "" for key in ONBOARDING_KEYS},
        }


class UserProfileWriter:
    """Best-effort profile writes used by the onboarding flow.

    Failures are logged and returned as Outcome.failure so the conversation
    keeps going.
    """

    def __init__(self, db: Session):
        self.db = db

    def _write(self, owner_id: str, fields: Dict[str, Any]) -> Outcome:
        try:
            profile = UserProfileService.update_fields(self.db, owner_id, fields)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Profile write failed for {owner_id}: {e}")
            return Outcome.failure(ErrorKind.PERSISTENCE, e)
        if profile is None:
            return Outcome.failure(ErrorKind.PERSISTENCE, f"no profile for {owner_id}")
        return Outcome.success(list(fields))

    def update_onboarding_field(self, owner_id: str, key: str, value: str) -> Outcome:
        if key not in ONBOARDING_KEYS:
            return Outcome.failure(ErrorKind.PERSISTENCE, f"unknown onboarding field: {key}")
        return self._write(owner_id, {key: value})

    def complete_onboarding(self, owner_id: str) -> Outcome:
        return self._write(owner_id, {"onboarding_complete": True})
