# jym/webhooks/telegram_handler.py
"""Telegram webhook handler - queuing only"""
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Request, HTTPException, Header

from jym.config.settings import get_settings
from jym.schemas.webhook_events import TelegramUpdate, InboundMessage
from jym.tasks.conversation_tasks import process_inbound_message

router = APIRouter()
logger = logging.getLogger(__name__)
settings = get_settings()


@router.post("")
async def handle_telegram_update(
        request: Request,
        x_telegram_bot_api_secret_token: Optional[str] = Header(None)
):
    """Validate a Telegram update and queue the text message for a worker"""
    if settings.TELEGRAM_WEBHOOK_SECRET and not hmac.compare_digest(
            x_telegram_bot_api_secret_token or "", settings.TELEGRAM_WEBHOOK_SECRET
    ):
        logger.warning("Rejected Telegram update with a bad secret token")
        raise HTTPException(status_code=403, detail="Invalid secret token")

    correlation_id = getattr(request.state, "correlation_id", "unknown")

    try:
        update = TelegramUpdate.model_validate(await request.json())
    except ValueError as e:
        logger.warning(f"[{correlation_id}] Malformed Telegram update: {e}")
        return {"success": False}

    message = update.message
    if message is None or message.text is None:
        logger.info(f"[{correlation_id}] Ignoring non-text Telegram update {update.update_id}")
        return {"success": True, "ignored": True}

    if message.from_user is None:
        logger.warning(f"[{correlation_id}] Telegram message without sender in update {update.update_id}")
        return {"success": False}

    try:
        inbound = InboundMessage(
            channel="telegram",
            user_key=f"telegram_{message.from_user.id}",
            chat_id=str(message.chat.id),
            text=message.text,
            message_id=str(message.message_id),
            sender_name=message.from_user.first_name,
            telegram_id=message.from_user.id,
        )
    except ValueError as e:
        logger.warning(f"[{correlation_id}] Rejected Telegram message: {e}")
        return {"success": False}

    process_inbound_message.delay(inbound.model_dump(), correlation_id=correlation_id)
    logger.info(f"[{correlation_id}] Queued Telegram message {message.message_id} from {inbound.user_key}")
    return {"success": True}
