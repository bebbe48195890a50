"""Notification service for sending notifications through multiple providers.

Hey future me - this is the MAIN ENTRY POINT for notifications! The practice
controller only knows the IOvertimeAlerter port; this service implements it
and fans each notification out to every configured provider.

The service will:
1. Build a Notification object
2. ALWAYS log it (so a setup without providers still leaves a trace)
3. Send to ALL configured providers (parallel)
4. Log results and return success status

deliver_overtime_alert() is called from the timer's tick callback, which is
synchronous. It schedules the send as a task and returns immediately.
"""

import asyncio
import logging
from typing import Any

from practicesync.config.settings import NotificationSettings
from practicesync.domain.entities import SelectedItem
from practicesync.domain.ports import IOvertimeAlerter
from practicesync.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationPriority,
    NotificationResult,
    NotificationType,
)

logger = logging.getLogger(__name__)


class NotificationService(IOvertimeAlerter):
    """Send notifications through all configured providers.

    Example:
        service = NotificationService(settings=get_settings().notifications)

        await service.send_notification(
            notification_type=NotificationType.CUSTOM,
            title="Custom Event",
            message="Something happened!",
            data={"key": "value"},
        )
    """

    def __init__(
        self,
        providers: list[INotificationProvider] | None = None,
        settings: NotificationSettings | None = None,
    ) -> None:
        """Initialize notification service.

        Args:
            providers: Explicit providers. When omitted they are built from
                ``settings``; with neither the service only logs.
            settings: Notification settings used to build the default providers
        """
        if providers is None:
            providers = self._default_providers(settings)
        self._candidates = providers
        self._providers: list[INotificationProvider] | None = None
        # create_task only keeps weak refs, hold them here until done
        self._pending: set[asyncio.Task[bool]] = set()

    @staticmethod
    def _default_providers(settings: NotificationSettings | None) -> list[INotificationProvider]:
        if settings is None:
            return []
        from practicesync.infrastructure.notifications import WebhookNotificationProvider

        return [WebhookNotificationProvider(settings)]

    async def _init_providers(self) -> list[INotificationProvider]:
        """Filter candidates down to configured providers, once."""
        if self._providers is not None:
            return self._providers

        self._providers = []
        for provider in self._candidates:
            try:
                if await provider.is_configured():
                    self._providers.append(provider)
                    logger.debug(f"[NOTIFICATION] Provider enabled: {provider.name}")
            except Exception as e:
                logger.warning(f"[NOTIFICATION] Failed to check provider {provider.name}: {e}")

        return self._providers

    def invalidate_providers(self) -> None:
        """Re-check provider configuration on the next send."""
        self._providers = None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def send_notification(
        self,
        notification_type: NotificationType,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """Send notification to all configured providers.

        Returns:
            True if at least one provider succeeded, or if there were no
            providers and the notification was only logged
        """
        notification = Notification(
            type=notification_type,
            title=title,
            message=message,
            priority=priority,
            data=data or {},
        )

        logger.info(f"[NOTIFICATION] {notification_type.value}: {title} - {message[:100]}")

        providers = await self._init_providers()
        if not providers:
            logger.debug("[NOTIFICATION] No providers configured, logged only")
            return True

        results = await self._send_to_providers(notification, providers)

        successes = sum(1 for r in results if r.success)
        failures = len(results) - successes
        if failures > 0:
            failed_providers = [r.provider_name for r in results if not r.success]
            logger.warning(
                f"[NOTIFICATION] {successes}/{len(results)} providers succeeded, "
                f"failed: {failed_providers}"
            )

        return successes > 0

    async def _send_to_providers(
        self, notification: Notification, providers: list[INotificationProvider]
    ) -> list[NotificationResult]:
        """Send to every supporting provider in parallel."""
        targets = [p for p in providers if p.supports(notification.type)]
        if not targets:
            return []

        results = await asyncio.gather(
            *(provider.send(notification) for provider in targets),
            return_exceptions=True,
        )

        final_results: list[NotificationResult] = []
        for provider, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.error(f"[NOTIFICATION] Provider {provider.name} error: {result}")
                final_results.append(
                    NotificationResult(
                        success=False,
                        provider_name=provider.name,
                        notification_type=notification.type,
                        error=str(result),
                    )
                )
            elif isinstance(result, NotificationResult):
                final_results.append(result)

        return final_results

    # =========================================================================
    # CONVENIENCE METHODS
    # =========================================================================

    async def send_overtime_notification(self, item: SelectedItem) -> bool:
        """Planned time for ``item`` is up."""
        return await self.send_notification(
            notification_type=NotificationType.PRACTICE_OVERTIME,
            title="Time's up!",
            message=f"{item.item.name}: planned {item.planned_minutes} min reached",
            priority=NotificationPriority.HIGH,
            data={
                "item_id": item.item.id,
                "item_name": item.item.name,
                "planned_minutes": item.planned_minutes,
            },
        )

    async def send_session_saved_notification(self, session_name: str, item_count: int) -> bool:
        return await self.send_notification(
            notification_type=NotificationType.SESSION_SAVED,
            title=f"Saved: {session_name}",
            message=f"{item_count} item(s) written to Notion",
            priority=NotificationPriority.LOW,
            data={"session_name": session_name, "item_count": item_count},
        )

    async def send_sync_failed_notification(self, entity: str, error: str) -> bool:
        return await self.send_notification(
            notification_type=NotificationType.SYNC_FAILED,
            title=f"{entity} sync failed",
            message=error,
            priority=NotificationPriority.NORMAL,
            data={"entity": entity},
        )

    # =========================================================================
    # IOvertimeAlerter
    # =========================================================================

    def deliver_overtime_alert(self, item: SelectedItem) -> None:
        """Fire-and-forget overtime notification. Needs a running event loop."""
        task = asyncio.get_running_loop().create_task(self.send_overtime_notification(item))
        self._pending.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: "asyncio.Task[bool]") -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "[NOTIFICATION] Overtime alert failed", exc_info=task.exception()
            )

    async def drain(self) -> None:
        """Wait for scheduled alerts to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
