"""Fire-and-forget push notifications for booking events."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from fastapi import Depends

from app.core.config import Settings, get_settings
from app.core.document_store import DocumentStore
from app.core.enums import NotificationStatusEnum
from app.core.metrics import NOTIFICATIONS_TOTAL
from app.core.stores import get_document_store
from app.modules.profiles.repository import ProfilesRepository
from app.shared.exceptions import AppException

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    async def notify(self, target_user_id: str, title: str, body: str) -> None:
        """Deliver notification; never raises for delivery problems."""


class LoggingNotificationDispatcher:
    """Dispatcher used when push delivery is disabled."""

    async def notify(self, target_user_id: str, title: str, body: str) -> None:
        logger.info("Notification for %s: %s - %s", target_user_id, title, body)
        NOTIFICATIONS_TOTAL.labels(outcome=NotificationStatusEnum.SKIPPED).inc()


class PushNotificationDispatcher:
    """Send push messages to the device token stored on the user profile."""

    def __init__(
        self,
        profiles_repository: ProfilesRepository,
        *,
        endpoint_url: str,
        server_key: str,
        timeout_seconds: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.profiles_repository = profiles_repository
        self.endpoint_url = endpoint_url
        self.server_key = server_key
        self.timeout_seconds = timeout_seconds
        self.client = client

    async def notify(self, target_user_id: str, title: str, body: str) -> None:
        status = await self._deliver(target_user_id, title, body)
        NOTIFICATIONS_TOTAL.labels(outcome=status).inc()

    async def _deliver(self, target_user_id: str, title: str, body: str) -> NotificationStatusEnum:
        try:
            profile = await self.profiles_repository.get_profile(target_user_id)
        except AppException as exc:
            logger.warning("Cannot load push token for user %s: %s", target_user_id, exc.message)
            return NotificationStatusEnum.FAILED

        if profile is None or not profile.fcm_token:
            logger.warning("No push token found for user %s", target_user_id)
            return NotificationStatusEnum.SKIPPED

        message = {
            "to": profile.fcm_token,
            "notification": {"title": title, "body": body},
            "data": {"click_action": "FLUTTER_NOTIFICATION_CLICK"},
        }
        headers = {"Authorization": f"key={self.server_key}"}

        try:
            if self.client is not None:
                response = await self.client.post(self.endpoint_url, json=message, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(self.endpoint_url, json=message, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Push notification to %s failed: %s", target_user_id, exc)
            return NotificationStatusEnum.FAILED

        logger.info("Push notification sent to %s", target_user_id)
        return NotificationStatusEnum.SENT


def build_notification_dispatcher(settings: Settings, store: DocumentStore) -> NotificationDispatcher:
    if not settings.push_notifications_enabled:
        return LoggingNotificationDispatcher()
    return PushNotificationDispatcher(
        ProfilesRepository(store),
        endpoint_url=settings.push_endpoint_url,
        server_key=settings.push_server_key,
        timeout_seconds=settings.push_timeout_seconds,
    )


async def get_notification_dispatcher(
    store: DocumentStore = Depends(get_document_store),
) -> NotificationDispatcher:
    """Dependency provider for notification dispatcher."""
    return build_notification_dispatcher(get_settings(), store)
