# jym/services/messaging/telegram_service.py
"""Telegram Bot API adapter"""
import logging
from typing import Optional

from jym.config.settings import get_settings
from jym.core.errors import Outcome
from jym.services.messaging.base import MessageChannel
from jym.services.messaging.splitter import TELEGRAM_PROFILE

logger = logging.getLogger(__name__)
settings = get_settings()


class TelegramService(MessageChannel):
    name = "telegram"
    profile = TELEGRAM_PROFILE
    supports_typing = True

    def is_configured(self) -> bool:
        return bool(settings.TELEGRAM_BOT_TOKEN)

    def _url(self, method: str) -> str:
        return f"{settings.TELEGRAM_API_URL}/bot{settings.TELEGRAM_BOT_TOKEN}/{method}"

    def send_message(self, recipient: str, text: str) -> Outcome:
        outcome = self._post(
            self._url("sendMessage"),
            {
                "chat_id": recipient,
                "text": text,
                "link_preview_options": {"is_disabled": True},
            },
        )
        if outcome.ok:
            logger.info(f"📤 Telegram message sent to {recipient}")
        return outcome

    def show_typing(self, recipient: str) -> None:
        outcome = self._post(self._url("sendChatAction"), {"chat_id": recipient, "action": "typing"})
        if not outcome.ok:
            logger.warning(f"⚠️ Could not show typing in chat {recipient}: {outcome.error}")

    def mark_as_read(self, message_id: Optional[str]) -> None:
        # Bots cannot send read receipts on Telegram
        return None
