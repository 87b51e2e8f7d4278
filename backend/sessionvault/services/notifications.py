"""Outbound notifications (sign-in alerts and similar).

Senders may raise; session flows call them best-effort and discard errors.
"""

import logging
from datetime import UTC, datetime
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

# Short timeout for webhook calls - don't block the caller
_WEBHOOK_TIMEOUT = 5.0


class NotificationSender(Protocol):
    async def send(self, recipient: str, subject: str, body: str) -> None: ...


class NoOpNotificationSender:
    """Logs notifications instead of delivering them."""

    async def send(self, recipient: str, subject: str, body: str) -> None:
        logger.debug("Notification suppressed (no sender configured): %s", subject)


class WebhookNotificationSender:
    """Delivers notifications as JSON POSTs to a webhook URL."""

    def __init__(self, url: str, timeout: float = _WEBHOOK_TIMEOUT):
        self.url = url
        self.timeout = timeout

    async def send(self, recipient: str, subject: str, body: str) -> None:
        payload = build_payload(recipient, subject, body)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()


def build_payload(recipient: str, subject: str, body: str) -> dict:
    return {
        "recipient": recipient,
        "subject": subject,
        "body": body,
        "timestamp": datetime.now(UTC).isoformat(),
        "source": "sessionvault",
    }


def get_notification_sender(webhook_url: str | None) -> NotificationSender:
    """Pick the sender for the configured webhook URL."""
    if webhook_url:
        return WebhookNotificationSender(webhook_url)
    return NoOpNotificationSender()
