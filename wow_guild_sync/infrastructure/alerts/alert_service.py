"""
Alert Service

Posts operational alerts to a webhook. Alerting must never break the caller,
so delivery failures are only logged.
"""

import logging
from typing import Optional

import httpx

from ...core.utils import redact_secrets

logger = logging.getLogger(__name__)


class AlertLevel:
    """Alert severities."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AlertService:
    """Webhook alert sender; disabled when no URL is configured."""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send_alert(
        self,
        title: str,
        message: str,
        level: str = AlertLevel.ERROR,
        source: str = "worker"
    ) -> bool:
        """
        Send one alert.

        Returns:
            True if the webhook accepted it
        """
        if not self.enabled:
            logger.debug(f"Alerts disabled, dropping alert: {title}")
            return False

        payload = {
            "title": title,
            "message": redact_secrets(message),
            "level": level,
            "source": source,
        }

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    self.webhook_url, json=payload, timeout=self.timeout
                )
                response.raise_for_status()
            return True
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Failed to deliver alert '{title}': {e}")
            return False
