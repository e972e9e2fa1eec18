# jym/services/messaging/base.py
"""Shared outbound channel contract"""
import logging
from typing import Optional, Dict, Any

import httpx

from jym.config.settings import get_settings
from jym.core.errors import ErrorKind, Outcome
from jym.services.messaging.splitter import DeliveryProfile

logger = logging.getLogger(__name__)
settings = get_settings()


class MessageChannel:
    """Outbound adapter for one chat channel.

    send_message never raises: transport errors and non-2xx responses come
    back as a failed Outcome with kind DELIVERY.
    """

    name: str = "base"
    profile: DeliveryProfile
    supports_typing: bool = False

    def __init__(self, http_client: Optional[httpx.Client] = None):
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.Client(
            timeout=settings.CHANNEL_HTTP_TIMEOUT_SECONDS,
            follow_redirects=True,
        )

    def close(self) -> None:
        """Release the connection pool, unless the client was passed in"""
        if self._owns_client:
            self.http_client.close()

    def __enter__(self) -> "MessageChannel":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def is_configured(self) -> bool:
        return True

    def send_message(self, recipient: str, text: str) -> Outcome:
        raise NotImplementedError

    def show_typing(self, recipient: str) -> None:
        """Present a typing indicator; no-op where the channel has none"""
        return None

    def mark_as_read(self, message_id: Optional[str]) -> None:
        return None

    def _post(self, url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Outcome:
        if not self.is_configured():
            logger.error(f"❌ {self.name} credentials not configured")
            return Outcome.failure(ErrorKind.DELIVERY, f"{self.name} not configured")

        try:
            response = self.http_client.post(url, json=payload, headers=headers or {})
        except httpx.TimeoutException:
            logger.error(f"❌ {self.name} request timed out")
            return Outcome.failure(ErrorKind.DELIVERY, "request timeout")
        except httpx.RequestError as e:
            logger.error(f"❌ {self.name} request error: {e}")
            return Outcome.failure(ErrorKind.DELIVERY, f"request error: {str(e)[:200]}")

        if not 200 <= response.status_code < 300:
            logger.error(f"❌ {self.name} API error: {response.status_code} - {response.text[:200]}")
            return Outcome.failure(ErrorKind.DELIVERY, f"HTTP {response.status_code}: {response.text[:200]}")

        try:
            body = response.json()
        except ValueError:
            body = {}
        return Outcome.success(body)
