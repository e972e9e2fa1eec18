# jym/services/messaging/splitter.py
"""Split one generated reply into chat-sized delivery units"""
from dataclasses import dataclass
from typing import List

MULTILINE_OPEN = "<multiline>"
MULTILINE_CLOSE = "</multiline>"


def _split_lines(text: str) -> List[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]


def parse_response_into_messages(response_text: str) -> List[str]:
    """Turn a reply into ordered message units.

    Each non-empty line becomes its own unit, except text wrapped in
    <multiline>...</multiline>, which is kept together (trimmed) as a single
    unit. An opening tag without a closing tag is treated as plain text from
    that point on. Blocks do not nest.
    """
    if not response_text or not response_text.strip():
        return []

    messages: List[str] = []
    current = 0

    while current < len(response_text):
        block_start = response_text.find(MULTILINE_OPEN, current)

        if block_start == -1:
            messages.extend(_split_lines(response_text[current:]))
            break

        if block_start > current:
            messages.extend(_split_lines(response_text[current:block_start]))

        block_end = response_text.find(MULTILINE_CLOSE, block_start)
        if block_end == -1:
            # Unterminated block, the rest is ordinary lines
            messages.extend(_split_lines(response_text[block_start:]))
            break

        content = response_text[block_start + len(MULTILINE_OPEN):block_end].strip()
        if content:
            messages.append(content)

        current = block_end + len(MULTILINE_CLOSE)

    return messages


@dataclass(frozen=True)
class DeliveryProfile:
    """Per-channel typing simulation parameters, all in milliseconds"""
    ms_per_char: int
    min_delay_ms: int
    max_delay_ms: int
    pause_ms: int = 0

    def delay_for(self, previous_unit: str) -> float:
        """Seconds to wait before sending the unit that follows `previous_unit`"""
        typing_ms = len(previous_unit) * self.ms_per_char
        typing_ms = max(self.min_delay_ms, min(typing_ms, self.max_delay_ms))
        return (typing_ms + self.pause_ms) / 1000.0


TELEGRAM_PROFILE = DeliveryProfile(ms_per_char=40, min_delay_ms=500, max_delay_ms=2000, pause_ms=300)
WHATSAPP_PROFILE = DeliveryProfile(ms_per_char=5, min_delay_ms=0, max_delay_ms=300)
LOOPMESSAGE_PROFILE = DeliveryProfile(ms_per_char=5, min_delay_ms=0, max_delay_ms=300)
