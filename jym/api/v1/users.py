# jym/api/v1/users.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from jym.api.dependencies import require_internal_api_key
from jym.config.database import get_db
from jym.models.onboarding_session import OnboardingSession
from jym.schemas.trigger import OnboardingStatusDTO
from jym.services.user.user_profile_service import UserProfileService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/onboarding", response_model=OnboardingStatusDTO)
async def get_onboarding_status(
    user_id: str,
    _: None = Depends(require_internal_api_key),
    db: Session = Depends(get_db)
):
    """Onboarding answers so far and, while in progress, the current question"""
    info = UserProfileService.get_onboarding_info(db, user_id)
    if not info:
        raise HTTPException(status_code=404, detail="User not found")

    session = db.query(OnboardingSession).filter(OnboardingSession.owner_id == user_id).first()
    return OnboardingStatusDTO(
        **info,
        current_question_index=session.current_question_index if session else None,
    )
