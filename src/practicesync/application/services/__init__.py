"""Application services."""

from practicesync.application.services.notification_service import NotificationService
from practicesync.application.services.practice_service import (
    PracticeController,
    PracticePhase,
    format_seconds,
)
from practicesync.application.services.reconciliation_service import (
    PushResult,
    ReconciliationEngine,
)
from practicesync.application.services.session_coordinator import (
    SessionCoordinator,
    SessionViewMode,
)
from practicesync.application.services.stats_service import PracticeStats, StatsService

__all__ = [
    "NotificationService",
    "PracticeController",
    "PracticePhase",
    "PracticeStats",
    "PushResult",
    "ReconciliationEngine",
    "SessionCoordinator",
    "SessionViewMode",
    "StatsService",
    "format_seconds",
]
