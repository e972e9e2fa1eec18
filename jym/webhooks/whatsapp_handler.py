# jym/webhooks/whatsapp_handler.py
"""WhatsApp Business webhook handler - queuing only"""
import logging
from typing import Optional

from fastapi import APIRouter, Request, HTTPException, Query
from fastapi.responses import PlainTextResponse

from jym.config.settings import get_settings
from jym.schemas.webhook_events import WhatsAppWebhook, InboundMessage, is_valid_phone_number
from jym.tasks.conversation_tasks import process_inbound_message, send_channel_message

router = APIRouter()
logger = logging.getLogger(__name__)
settings = get_settings()

NON_TEXT_REPLY = "sorry, i can only read text messages for now! 📱"


@router.get("")
async def verify_whatsapp_webhook(
        mode: Optional[str] = Query(None, alias="hub.mode"),
        token: Optional[str] = Query(None, alias="hub.verify_token"),
        challenge: Optional[str] = Query(None, alias="hub.challenge")
):
    """Meta subscription handshake"""
    if mode == "subscribe" and settings.WHATSAPP_VERIFY_TOKEN and token == settings.WHATSAPP_VERIFY_TOKEN:
        logger.info("✅ WhatsApp webhook verified")
        return PlainTextResponse(challenge or "")
    logger.warning("WhatsApp webhook verification failed")
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("")
async def handle_whatsapp_webhook(request: Request):
    """Log status updates, answer non-text messages, queue text messages"""
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    try:
        webhook = WhatsAppWebhook.model_validate(await request.json())
    except ValueError as e:
        logger.warning(f"[{correlation_id}] Malformed WhatsApp payload: {e}")
        return {"success": False}

    queued = 0
    malformed = 0

    for entry in webhook.entry:
        for change in entry.changes:
            value = change.value

            for status in value.statuses:
                if status.status == "failed":
                    logger.warning(f"[{correlation_id}] WhatsApp message {status.id} failed: {status.errors}")
                else:
                    logger.info(f"[{correlation_id}] WhatsApp message {status.id} is {status.status}")

            names = {
                contact.wa_id: contact.profile.name
                for contact in value.contacts
                if contact.wa_id and contact.profile
            }

            for message in value.messages:
                if not is_valid_phone_number(message.sender):
                    logger.warning(f"[{correlation_id}] Ignoring message from invalid number {message.sender}")
                    continue

                if message.type != "text":
                    logger.info(f"[{correlation_id}] Non-text ({message.type}) message from {message.sender}")
                    send_channel_message.delay("whatsapp", message.sender, NON_TEXT_REPLY, correlation_id=correlation_id)
                    continue

                try:
                    inbound = InboundMessage(
                        channel="whatsapp",
                        user_key=f"whatsapp_{message.sender}",
                        chat_id=message.sender,
                        text=message.text.body if message.text else "",
                        message_id=message.id,
                        sender_name=names.get(message.sender),
                    )
                except ValueError as e:
                    logger.warning(f"[{correlation_id}] Rejected WhatsApp message {message.id}: {e}")
                    malformed += 1
                    continue

                process_inbound_message.delay(inbound.model_dump(), correlation_id=correlation_id)
                queued += 1
                logger.info(f"[{correlation_id}] Queued WhatsApp message {message.id} from {message.sender}")

    if malformed and not queued:
        return {"success": False}
    return {"success": True}
