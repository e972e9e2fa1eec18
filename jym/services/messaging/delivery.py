# jym/services/messaging/delivery.py
"""Human-like multi-bubble delivery of one reply"""
import logging
import time
from typing import Callable, List

from jym.core.errors import Outcome
from jym.services.messaging.base import MessageChannel
from jym.services.messaging.splitter import parse_response_into_messages

logger = logging.getLogger(__name__)


class NaturalDelivery:
    """Send a reply as ordered units with simulated typing delays"""

    def __init__(self, sleep: Callable[[float], None] = time.sleep):
        self.sleep = sleep

    def deliver(self, channel: MessageChannel, recipient: str, text: str) -> List[Outcome]:
        try:
            units = parse_response_into_messages(text)
        except Exception as e:
            logger.error(f"❌ Failed to split reply, sending as one message: {e}", exc_info=True)
            units = [text] if text and text.strip() else []

        logger.info(f"💬 Sending {len(units)} message(s) to {recipient} via {channel.name}")

        outcomes: List[Outcome] = []
        for i, unit in enumerate(units):
            if i > 0:
                self.sleep(channel.profile.delay_for(units[i - 1]))

            if channel.supports_typing:
                channel.show_typing(recipient)

            outcome = channel.send_message(recipient, unit)
            if not outcome.ok:
                logger.error(f"❌ Failed to send message {i + 1}/{len(units)} to {recipient}: {outcome.error}")
            outcomes.append(outcome)

        return outcomes
