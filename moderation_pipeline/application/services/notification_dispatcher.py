"""Notification dispatcher.

Fans each notification out to every registered channel. A channel gets
max_retries attempts with linear backoff (backoff_seconds x attempt).
When it still fails, the NotificationDeliveryError is logged and counted
and then dropped. Delivery problems never reach the caller, and one
channel failing does not hold up the others.

dispatch() is fire-and-forget: it schedules delivery as a task and
returns immediately. drain() waits for every scheduled delivery and is
used at shutdown and in tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from structlog import get_logger

from moderation_pipeline.application.ports.notifier import (
    Notification,
    NotificationChannelProtocol,
    NotificationEventType,
    NotificationPayload,
    NotifierProtocol,
)
from moderation_pipeline.domain.errors.delivery import NotificationDeliveryError
from moderation_pipeline.infrastructure.monitoring.metrics import ModerationMetrics

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_SECONDS = 1.0


class NotificationDispatcher(NotifierProtocol):
    """Delivers notifications to channels with per-channel retries."""

    def __init__(
        self,
        channels: Sequence[NotificationChannelProtocol] = (),
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        metrics: ModerationMetrics | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            channels: Initial delivery channels.
            max_retries: Attempts per channel before giving up.
            backoff_seconds: Base delay; attempt n waits n x backoff_seconds.
            metrics: Optional metrics collector.
        """
        self._channels: list[NotificationChannelProtocol] = list(channels)
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds
        self._metrics = metrics
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def channels(self) -> list[NotificationChannelProtocol]:
        return list(self._channels)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def add_channel(self, channel: NotificationChannelProtocol) -> None:
        self._channels.append(channel)

    def configure(
        self,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
    ) -> None:
        if max_retries is not None:
            self._max_retries = max_retries
        if backoff_seconds is not None:
            self._backoff_seconds = backoff_seconds

    async def notify(
        self, event_type: NotificationEventType, payload: NotificationPayload
    ) -> None:
        """Deliver to every channel concurrently; never raises on failure."""
        notification = Notification(event_type=event_type, payload=payload)
        results = await asyncio.gather(
            *(self._deliver(channel, notification) for channel in self._channels),
            return_exceptions=True,
        )
        for channel, result in zip(self._channels, results):
            if isinstance(result, NotificationDeliveryError):
                logger.error(
                    "notification_dropped",
                    notification_id=str(notification.id),
                    event_type=result.event_type,
                    channel=result.channel,
                    attempts=result.attempts,
                    reason=result.reason,
                )
                if self._metrics is not None:
                    self._metrics.record_notification_failure(
                        result.event_type, result.channel
                    )
            elif isinstance(result, BaseException):
                logger.error(
                    "notification_dispatch_error",
                    notification_id=str(notification.id),
                    channel=channel.name,
                    error=f"{type(result).__name__}: {result}",
                )

    async def _deliver(
        self, channel: NotificationChannelProtocol, notification: Notification
    ) -> None:
        last_error: Exception | None = None
        for attempt in range(1, self._max_retries + 1):
            try:
                await channel.send(notification)
                return
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "notification_attempt_failed",
                    notification_id=str(notification.id),
                    channel=channel.name,
                    attempt=attempt,
                    max_retries=self._max_retries,
                    error=str(exc),
                )
                if attempt < self._max_retries:
                    await asyncio.sleep(self._backoff_seconds * attempt)
        raise NotificationDeliveryError(
            channel=channel.name,
            event_type=notification.event_type.value,
            attempts=self._max_retries,
            reason=str(last_error) if last_error else "no attempts made",
        )

    def dispatch(
        self, event_type: NotificationEventType, payload: NotificationPayload
    ) -> None:
        """Schedule delivery and return immediately.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(self.notify(event_type, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait until every scheduled delivery has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
