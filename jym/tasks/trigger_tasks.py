"""Trigger execution tasks"""
import logging
from datetime import datetime
from typing import Optional

from jym.config.celery_config import celery_app
from jym.config.database import get_db
from jym.services.trigger.trigger_service import TriggerService

logger = logging.getLogger(__name__)


@celery_app.task(bind=True)
def execute_trigger(self, trigger_id: str, correlation_id: Optional[str] = None):
    """Fire a scheduled trigger. Never retried: a retry could message the user twice."""
    logger.info(f"[{correlation_id or self.request.id}] Firing trigger {trigger_id}")

    db = next(get_db())
    try:
        return TriggerService(db).execute_trigger(trigger_id)
    finally:
        db.close()


def schedule_trigger(trigger_id: str, eta: datetime) -> str:
    """Queue execute_trigger to run at `eta`, returning the Celery task id"""
    result = execute_trigger.apply_async(args=[trigger_id], eta=eta)
    return result.id


def revoke_trigger(task_id: str) -> None:
    celery_app.control.revoke(task_id)
    logger.info(f"Revoked trigger task {task_id}")
