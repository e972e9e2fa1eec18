# jym/webhooks/loopmessage_handler.py
"""LoopMessage (iMessage) webhook handler - queuing only"""
import logging

from fastapi import APIRouter, Request

from jym.schemas.webhook_events import LoopMessageWebhook, InboundMessage
from jym.tasks.conversation_tasks import process_inbound_message

router = APIRouter()
logger = logging.getLogger(__name__)


def log_alert(webhook: LoopMessageWebhook, correlation_id: str) -> None:
    alert = webhook.alert_type
    if alert == "message_sent":
        logger.info(f"[{correlation_id}] LoopMessage {webhook.message_id} delivered to {webhook.recipient}")
    elif alert == "message_failed":
        logger.error(f"[{correlation_id}] LoopMessage {webhook.message_id} to {webhook.recipient} failed (code {webhook.error_code})")
    elif alert == "message_reaction":
        logger.info(f"[{correlation_id}] {webhook.recipient} reacted {webhook.reaction} to {webhook.message_id}")
    elif alert == "conversation_inited":
        logger.info(f"[{correlation_id}] Conversation started by {webhook.recipient}")
    elif alert == "message_timeout":
        logger.warning(f"[{correlation_id}] LoopMessage {webhook.message_id} timed out")
    else:
        logger.info(f"[{correlation_id}] Unhandled LoopMessage alert: {alert}")


@router.post("")
async def handle_loopmessage_webhook(request: Request):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    try:
        webhook = LoopMessageWebhook.model_validate(await request.json())
    except ValueError as e:
        logger.warning(f"[{correlation_id}] Malformed LoopMessage payload: {e}")
        return {"success": False}

    if webhook.alert_type != "message_inbound":
        log_alert(webhook, correlation_id)
        return {"success": True}

    if not webhook.recipient:
        logger.warning(f"[{correlation_id}] LoopMessage inbound without sender")
        return {"success": False}

    try:
        inbound = InboundMessage(
            channel="loopmessage",
            user_key=f"loopmessage_{webhook.recipient}",
            chat_id=webhook.recipient,
            text=webhook.text or "",
            message_id=webhook.message_id,
        )
    except ValueError as e:
        logger.warning(f"[{correlation_id}] Rejected LoopMessage inbound: {e}")
        return {"success": False}

    process_inbound_message.delay(inbound.model_dump(), correlation_id=correlation_id)
    logger.info(f"[{correlation_id}] Queued LoopMessage {webhook.message_id} from {webhook.recipient}")

    # Ask LoopMessage to show typing and mark the message read
    return {"success": True, "typing": 3, "read": True}
