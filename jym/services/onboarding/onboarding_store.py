# jym/services/onboarding/onboarding_store.py
"""Durable storage for in-progress onboarding flows"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jym.core.errors import PersistenceError
from jym.models.onboarding_session import OnboardingSession
from jym.services.ai.ai_service import AIService
from jym.services.onboarding.onboarding_flow import OnboardingFlow, ProfileWriter

logger = logging.getLogger(__name__)


class OnboardingSessionStore:
    """Rebuilds an OnboardingFlow at the start of a turn and saves it at the end"""

    def __init__(self, db: Session):
        self.db = db

    def _get(self, owner_id: str) -> Optional[OnboardingSession]:
        return self.db.query(OnboardingSession).filter(
            OnboardingSession.owner_id == owner_id
        ).first()

    def exists(self, owner_id: str) -> bool:
        return self._get(owner_id) is not None

    def load(self, owner_id: str, ai_service: AIService, profile_writer: ProfileWriter) -> Optional[OnboardingFlow]:
        row = self._get(owner_id)
        if not row:
            return None
        return OnboardingFlow.from_state(
            {
                "owner_id": row.owner_id,
                "current_question_index": row.current_question_index,
                "conversation_history": row.conversation_history,
                "last_response_id": row.last_response_id,
            },
            ai_service=ai_service,
            profile_writer=profile_writer,
        )

    def save(self, flow: OnboardingFlow) -> None:
        state = flow.to_state()
        try:
            row = self._get(flow.owner_id)
            if not row:
                row = OnboardingSession(owner_id=flow.owner_id)
                self.db.add(row)
            row.current_question_index = state["current_question_index"]
            row.conversation_history = state["conversation_history"]
            row.last_response_id = state["last_response_id"]
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save onboarding session for {flow.owner_id}: {e}")
            raise PersistenceError(f"could not save onboarding session: {e}", cause=e) from e

    def delete(self, owner_id: str) -> None:
        try:
            row = self._get(owner_id)
            if row:
                self.db.delete(row)
                self.db.commit()
                logger.info(f"🗑️ Removed onboarding session for {owner_id}")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to delete onboarding session for {owner_id}: {e}")
            raise PersistenceError(f"could not delete onboarding session: {e}", cause=e) from e
