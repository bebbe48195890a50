"""Notification provider interfaces for the notification service.

Hey future me - this is the PORT (interface) for notification providers!
Each provider implements this interface. The NotificationService fans a
notification out to all configured providers.

Architecture:
- NotificationService (Application Layer) → INotificationProvider (Port)
- WebhookNotificationProvider → implements INotificationProvider
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    """Types of notifications that can be sent."""

    PRACTICE_OVERTIME = "practice_overtime"
    SESSION_SAVED = "session_saved"
    SYNC_FAILED = "sync_failed"
    CUSTOM = "custom"


class NotificationPriority(str, Enum):
    """Priority levels for notifications.

    Providers map this onto their own urgency scale (Gotify 0-10, ntfy 1-5).
    """

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class Notification:
    """Provider-agnostic notification payload.

    Example:
        notif = Notification(
            type=NotificationType.PRACTICE_OVERTIME,
            title="Time's up",
            message="Blackbird: planned 10 min reached",
            data={"item_id": "abc"},
        )
    """

    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if self.timestamp is None:
            self.timestamp = datetime.now(UTC)


@dataclass
class NotificationResult:
    """Result of sending a notification through one provider."""

    success: bool
    provider_name: str
    notification_type: NotificationType
    error: str | None = None
    external_id: str | None = None


class INotificationProvider(ABC):
    """Interface for notification channels.

    Each provider must:
    1. Have a unique name
    2. Declare which notification types it supports (empty = all)
    3. Implement send()
    4. Implement is_configured()
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this provider (e.g., 'webhook')."""
        pass

    @property
    @abstractmethod
    def supported_types(self) -> list[NotificationType]:
        """Notification types this provider handles. Empty list means all."""
        pass

    @abstractmethod
    async def send(self, notification: Notification) -> NotificationResult:
        pass

    @abstractmethod
    async def is_configured(self) -> bool:
        pass

    def supports(self, notification_type: NotificationType) -> bool:
        supported = self.supported_types
        return len(supported) == 0 or notification_type in supported


__all__ = [
    "INotificationProvider",
    "Notification",
    "NotificationPriority",
    "NotificationResult",
    "NotificationType",
]
