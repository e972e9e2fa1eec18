# jym/api/v1/triggers.py
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from jym.api.dependencies import require_internal_api_key
from jym.config.database import get_db
from jym.schemas.trigger import TriggerDTO, TriggerStatus, CancelTriggerRequest
from jym.services.trigger.trigger_service import TriggerService

router = APIRouter(prefix="/triggers", tags=["triggers"])


@router.get("", response_model=List[TriggerDTO])
async def list_triggers(
    user_id: str = Query(..., description="Owner of the triggers"),
    status: Optional[TriggerStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    _: None = Depends(require_internal_api_key),
    db: Session = Depends(get_db)
):
    """List a user's triggers, newest scheduled time first"""
    triggers = TriggerService(db).get_user_triggers(
        user_id, status=status.value if status else None, limit=limit
    )
    return [TriggerDTO.model_validate(t) for t in triggers]


@router.post("/{trigger_id}/cancel")
async def cancel_trigger(
    trigger_id: str,
    body: CancelTriggerRequest,
    _: None = Depends(require_internal_api_key),
    db: Session = Depends(get_db)
):
    result = TriggerService(db).cancel_trigger(trigger_id, body.user_id)
    if not result["success"]:
        if result["message"] == "Trigger not found":
            raise HTTPException(status_code=404, detail=result["message"])
        if result["message"] == "Unauthorized":
            raise HTTPException(status_code=403, detail=result["message"])
        raise HTTPException(status_code=409, detail=result["message"])
    return result
