# jym/services/messaging/whatsapp_service.py
"""WhatsApp Cloud API adapter"""
import logging
from typing import Optional

from jym.config.settings import get_settings
from jym.core.errors import Outcome
from jym.services.messaging.base import MessageChannel
from jym.services.messaging.splitter import WHATSAPP_PROFILE

logger = logging.getLogger(__name__)
settings = get_settings()


class WhatsAppService(MessageChannel):
    name = "whatsapp"
    profile = WHATSAPP_PROFILE

    def is_configured(self) -> bool:
        return bool(settings.WHATSAPP_ACCESS_TOKEN and settings.WHATSAPP_PHONE_NUMBER_ID)

    @property
    def messages_url(self) -> str:
        return (
            f"{settings.WHATSAPP_API_URL}/{settings.WHATSAPP_API_VERSION}"
            f"/{settings.WHATSAPP_PHONE_NUMBER_ID}/messages"
        )

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {settings.WHATSAPP_ACCESS_TOKEN}",
            "Content-Type": "application/json",
        }

    def send_message(self, recipient: str, text: str) -> Outcome:
        outcome = self._post(
            self.messages_url,
            {
                "messaging_product": "whatsapp",
                "recipient_type": "individual",
                "to": recipient,
                "type": "text",
                "text": {"preview_url": True, "body": text},
            },
            headers=self._headers(),
        )
        if outcome.ok:
            message_id = (outcome.value.get("messages") or [{}])[0].get("id")
            logger.info(f"📤 WhatsApp message sent to {recipient}: {message_id}")
        return outcome

    def mark_as_read(self, message_id: Optional[str]) -> None:
        if not message_id:
            return None
        outcome = self._post(
            self.messages_url,
            {"messaging_product": "whatsapp", "status": "read", "message_id": message_id},
            headers=self._headers(),
        )
        if not outcome.ok:
            logger.warning(f"⚠️ Could not mark WhatsApp message {message_id} as read: {outcome.error}")
