"""Webhook notification provider for generic, ntfy and Gotify webhooks.

Hey future me - this pushes overtime alerts (and friends) to a phone or a
home server while the practice window sits in the background.
Supported formats:
- Generic: Simple JSON POST
- ntfy: plain-text body on the topic URL, metadata in headers
- Gotify: Self-hosted push notification server

Configure via settings.notifications (env PRACTICESYNC_NOTIFICATIONS__*):
- webhook_enabled
- webhook_url
- webhook_format (generic, ntfy, gotify)
- webhook_auth_header (optional, e.g., 'Bearer <token>')
- webhook_timeout
"""

import logging
from typing import Any

import httpx

from practicesync.config.settings import NotificationSettings
from practicesync.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationPriority,
    NotificationResult,
    NotificationType,
)

logger = logging.getLogger(__name__)

USER_AGENT = "PracticeSync/0.1"

# Gotify uses 0-10, 4+ pushes to mobile
_GOTIFY_PRIORITY = {
    NotificationPriority.LOW: 2,
    NotificationPriority.NORMAL: 5,
    NotificationPriority.HIGH: 7,
    NotificationPriority.CRITICAL: 10,
}

# ntfy uses 1 (min) to 5 (max)
_NTFY_PRIORITY = {
    NotificationPriority.LOW: "2",
    NotificationPriority.NORMAL: "3",
    NotificationPriority.HIGH: "4",
    NotificationPriority.CRITICAL: "5",
}

_NTFY_TAGS = {
    NotificationType.PRACTICE_OVERTIME: "alarm_clock",
    NotificationType.SESSION_SAVED: "white_check_mark",
    NotificationType.SYNC_FAILED: "warning",
    NotificationType.CUSTOM: "musical_note",
}


class WebhookNotificationProvider(INotificationProvider):
    """Webhook notification provider for Generic/ntfy/Gotify.

    Generic:
        - Simple JSON POST with notification data
        - Works with n8n, Home Assistant, custom endpoints

    ntfy:
        - URL: https://ntfy.sh/<topic>
        - Body is the message, title/priority/tags go in headers

    Gotify:
        - URL: https://gotify.example.com/message?token=<app-token>
    """

    def __init__(self, settings: NotificationSettings) -> None:
        self._settings = settings

    @property
    def name(self) -> str:
        return "webhook"

    @property
    def supported_types(self) -> list[NotificationType]:
        """Webhook supports all notification types."""
        return []

    @property
    def webhook_format(self) -> str:
        return self._settings.webhook_format.strip().lower() or "generic"

    async def is_configured(self) -> bool:
        url = self._settings.webhook_url
        return bool(self._settings.webhook_enabled and url and url.strip())

    async def send(self, notification: Notification) -> NotificationResult:
        """Send notification via webhook.

        Returns:
            NotificationResult with success status; HTTP failures become a
            failed result instead of an exception
        """
        if not await self.is_configured():
            return NotificationResult(
                success=False,
                provider_name=self.name,
                notification_type=notification.type,
                error="Webhook provider not configured",
            )

        webhook_format = self.webhook_format
        try:
            if webhook_format == "ntfy":
                body, headers = self._build_ntfy_request(notification)
                response = await self._send_request(content=body, extra_headers=headers)
            else:
                payload = self._build_payload(notification, webhook_format)
                response = await self._send_request(payload=payload)
        except httpx.HTTPError as e:
            logger.error(f"[NOTIFICATION] Webhook failed ({webhook_format}): {e}")
            return NotificationResult(
                success=False,
                provider_name=self.name,
                notification_type=notification.type,
                error=str(e),
            )

        logger.info(
            f"[NOTIFICATION] Webhook sent ({webhook_format}): "
            f"{notification.type.value} - {notification.title[:50]}"
        )
        return NotificationResult(
            success=True,
            provider_name=self.name,
            notification_type=notification.type,
            external_id=response,
        )

    def _build_payload(self, notification: Notification, format_type: str) -> dict[str, Any]:
        """Build JSON webhook payload based on format type."""
        if format_type == "gotify":
            return self._build_gotify_payload(notification)
        return self._build_generic_payload(notification)

    def _build_gotify_payload(self, notification: Notification) -> dict[str, Any]:
        message_parts = [notification.message]

        if notification.data:
            details = " | ".join(f"{k}: {v}" for k, v in notification.data.items())
            message_parts.append(f"\nDetails: {details}")

        return {
            "title": notification.title,
            "message": "\n".join(message_parts),
            "priority": _GOTIFY_PRIORITY.get(notification.priority, 5),
        }

    def _build_ntfy_request(self, notification: Notification) -> tuple[str, dict[str, str]]:
        """ntfy takes the raw message as body. Header values must stay ASCII-safe."""
        headers = {
            "Title": notification.title.encode("ascii", "replace").decode("ascii"),
            "Priority": _NTFY_PRIORITY.get(notification.priority, "3"),
            "Tags": _NTFY_TAGS.get(notification.type, "musical_note"),
        }
        return notification.message, headers

    def _build_generic_payload(self, notification: Notification) -> dict[str, Any]:
        """Dumps the notification as JSON."""
        return {
            "type": notification.type.value,
            "title": notification.title,
            "message": notification.message,
            "priority": notification.priority.value,
            "timestamp": (
                notification.timestamp.isoformat()
                if notification.timestamp
                else None
            ),
            "data": notification.data or {},
            "source": "practicesync",
        }

    async def _send_request(
        self,
        payload: dict[str, Any] | None = None,
        content: str | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> str | None:
        """POST to the webhook URL. Returns the start of the response text."""
        headers = {"User-Agent": USER_AGENT}
        if payload is not None:
            headers["Content-Type"] = "application/json"
        else:
            headers["Content-Type"] = "text/plain; charset=utf-8"
        if self._settings.webhook_auth_header:
            headers["Authorization"] = self._settings.webhook_auth_header
        if extra_headers:
            headers.update(extra_headers)

        async with httpx.AsyncClient(timeout=self._settings.webhook_timeout) as client:
            response = await client.post(
                self._settings.webhook_url,
                json=payload,
                content=content.encode("utf-8") if content is not None else None,
                headers=headers,
            )
            response.raise_for_status()

            return response.text[:200] if response.text else None


__all__ = ["WebhookNotificationProvider"]
