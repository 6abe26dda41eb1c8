"""Notification channel that writes to the structured log.

The default console channel for local runs. Real transports (email,
webhook, in-app) plug in through NotificationChannelProtocol.
"""

from __future__ import annotations

from structlog import get_logger

from moderation_pipeline.application.ports.notifier import (
    Notification,
    NotificationChannelProtocol,
)

logger = get_logger(__name__)


class LoggingNotificationChannel(NotificationChannelProtocol):
    def __init__(self, name: str = "console") -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def send(self, notification: Notification) -> None:
        payload = notification.payload
        logger.info(
            "moderation_notification",
            channel=self._name,
            notification_id=str(notification.id),
            event_type=notification.event_type.value,
            subject=payload.subject,
            content_id=payload.content_id,
            recipient_id=payload.recipient_id,
            **{f"data_{k}": v for k, v in payload.data.items()},
        )
