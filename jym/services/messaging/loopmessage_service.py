# jym/services/messaging/loopmessage_service.py
"""LoopMessage (iMessage) adapter"""
import logging

from jym.config.settings import get_settings
from jym.core.errors import Outcome
from jym.services.messaging.base import MessageChannel
from jym.services.messaging.splitter import LOOPMESSAGE_PROFILE

logger = logging.getLogger(__name__)
settings = get_settings()


class LoopMessageService(MessageChannel):
    """Typing and read receipts are requested in the webhook response instead"""

    name = "loopmessage"
    profile = LOOPMESSAGE_PROFILE

    def is_configured(self) -> bool:
        return bool(settings.LOOPMESSAGE_AUTH_KEY and settings.LOOPMESSAGE_SECRET_KEY)

    def send_message(self, recipient: str, text: str) -> Outcome:
        outcome = self._post(
            settings.LOOPMESSAGE_API_URL,
            {
                "recipient": recipient,
                "text": text,
                "sender_name": settings.LOOPMESSAGE_SENDER_NAME,
            },
            headers={
                "Authorization": settings.LOOPMESSAGE_AUTH_KEY,
                "Loop-Secret-Key": settings.LOOPMESSAGE_SECRET_KEY,
                "Content-Type": "application/json",
            },
        )
        if outcome.ok:
            logger.info(f"📤 LoopMessage sent to {recipient}")
        return outcome
