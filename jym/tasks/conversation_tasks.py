"""Conversation processing tasks"""
import logging
from typing import Dict, Any

from jym.config.celery_config import celery_app
from jym.config.database import get_db
from jym.schemas.webhook_events import InboundMessage
from jym.services.coaching.turn_service import TurnService
from jym.services.messaging.channels import get_channel

logger = logging.getLogger(__name__)


@celery_app.task(bind=True)
def process_inbound_message(self, message: Dict[str, Any], correlation_id: str = "unknown"):
    """Run one conversation turn for an inbound message.

    Not retried: part of the reply may already have been delivered.
    """
    inbound = InboundMessage.model_validate(message)
    logger.info(f"[{correlation_id}] Processing {inbound.channel} message from {inbound.user_key}")

    db = next(get_db())
    try:
        return TurnService(db, correlation_id=correlation_id).handle_message(inbound)
    finally:
        db.close()


@celery_app.task(bind=True, max_retries=3)
def send_channel_message(self, channel: str, recipient: str, text: str, correlation_id: str = "unknown"):
    """Send a single fixed message, retrying on delivery failure"""
    with get_channel(channel) as adapter:
        outcome = adapter.send_message(recipient, text)
    if not outcome.ok:
        logger.warning(f"[{correlation_id}] Send to {recipient} via {channel} failed: {outcome.error}")
        raise self.retry(countdown=2 ** self.request.retries)
    return {"success": True}
