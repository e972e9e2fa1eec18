# jym/services/messaging/channels.py
from typing import Dict, Type

from jym.services.messaging.base import MessageChannel
from jym.services.messaging.loopmessage_service import LoopMessageService
from jym.services.messaging.telegram_service import TelegramService
from jym.services.messaging.whatsapp_service import WhatsAppService

CHANNELS: Dict[str, Type[MessageChannel]] = {
    "telegram": TelegramService,
    "whatsapp": WhatsAppService,
    "loopmessage": LoopMessageService,
}


def get_channel(name: str) -> MessageChannel:
    try:
        return CHANNELS[name]()
    except KeyError:
        raise ValueError(f"Unknown channel: {name}")
