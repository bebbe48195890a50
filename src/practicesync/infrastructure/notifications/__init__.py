"""Notification providers package.

Hey future me - each provider sends notifications through one channel:
- webhook_provider: generic JSON, ntfy and Gotify webhooks

Add new providers here and register them in NotificationService.
"""

from practicesync.infrastructure.notifications.webhook_provider import (
    WebhookNotificationProvider,
)

__all__ = [
    "WebhookNotificationProvider",
]
