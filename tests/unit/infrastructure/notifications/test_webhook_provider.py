"""Tests for the webhook notification provider."""

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from practicesync.config.settings import NotificationSettings
from practicesync.domain.ports.notification import (
    Notification,
    NotificationPriority,
    NotificationType,
)
from practicesync.infrastructure.notifications import WebhookNotificationProvider

URL = "https://hooks.test/practice"


def _settings(**overrides: object) -> NotificationSettings:
    values: dict[str, object] = {"webhook_enabled": True, "webhook_url": URL}
    values.update(overrides)
    return NotificationSettings(**values)  # type: ignore[arg-type]


@pytest.fixture
def notification() -> Notification:
    return Notification(
        type=NotificationType.PRACTICE_OVERTIME,
        title="Time's up!",
        message="Blackbird: planned 5 min reached",
        priority=NotificationPriority.HIGH,
        data={"item_id": "item-blackbird"},
    )


class TestWebhookConfiguration:
    """Test is_configured()."""

    async def test_disabled(self) -> None:
        provider = WebhookNotificationProvider(_settings(webhook_enabled=False))
        assert not await provider.is_configured()

    async def test_blank_url(self) -> None:
        provider = WebhookNotificationProvider(_settings(webhook_url="   "))
        assert not await provider.is_configured()

    async def test_configured(self) -> None:
        provider = WebhookNotificationProvider(_settings())
        assert await provider.is_configured()
        assert provider.supports(NotificationType.SYNC_FAILED)

    async def test_send_unconfigured_fails_without_request(
        self, notification: Notification
    ) -> None:
        provider = WebhookNotificationProvider(_settings(webhook_enabled=False))

        result = await provider.send(notification)

        assert not result.success
        assert result.error == "Webhook provider not configured"


class TestWebhookFormats:
    """Test payloads per format."""

    async def test_generic_payload(
        self, notification: Notification, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(method="POST", url=URL, text="ok")
        provider = WebhookNotificationProvider(_settings(webhook_auth_header="Bearer t0k"))

        result = await provider.send(notification)

        assert result.success
        assert result.external_id == "ok"
        request = httpx_mock.get_requests()[0]
        assert request.headers["Authorization"] == "Bearer t0k"
        body = json.loads(request.content)
        assert body["type"] == "practice_overtime"
        assert body["priority"] == "high"
        assert body["data"] == {"item_id": "item-blackbird"}
        assert body["source"] == "practicesync"

    async def test_gotify_payload(
        self, notification: Notification, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(method="POST", url=URL, json={"id": 1})
        provider = WebhookNotificationProvider(_settings(webhook_format="Gotify"))

        await provider.send(notification)

        body = json.loads(httpx_mock.get_requests()[0].content)
        assert body["title"] == "Time's up!"
        assert body["priority"] == 7
        assert "item_id: item-blackbird" in body["message"]

    async def test_ntfy_request(self, notification: Notification, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="POST", url=URL, json={"id": "abc"})
        provider = WebhookNotificationProvider(_settings(webhook_format="ntfy"))

        await provider.send(notification)

        request = httpx_mock.get_requests()[0]
        assert request.content.decode() == "Blackbird: planned 5 min reached"
        assert request.headers["Title"] == "Time's up!"
        assert request.headers["Priority"] == "4"
        assert request.headers["Tags"] == "alarm_clock"

    async def test_http_error_becomes_failed_result(
        self, notification: Notification, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(method="POST", url=URL, status_code=500)
        provider = WebhookNotificationProvider(_settings())

        result = await provider.send(notification)

        assert not result.success
        assert result.error is not None

    async def test_transport_error_becomes_failed_result(
        self, notification: Notification, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_exception(httpx.ConnectTimeout("timed out"))
        provider = WebhookNotificationProvider(_settings())

        result = await provider.send(notification)

        assert not result.success
        assert "timed out" in (result.error or "")
