"""Recording notification channel stub."""

from __future__ import annotations

from moderation_pipeline.application.ports.notifier import (
    Notification,
    NotificationChannelProtocol,
    NotificationEventType,
)


class NotificationChannelStub(NotificationChannelProtocol):
    """Channel that records deliveries and can be told to fail.

    Attributes:
        sent: Successfully delivered notifications.
        attempts: Number of send() calls, successful or not.
    """

    def __init__(self, name: str = "stub", fail_times: int = 0) -> None:
        self._name = name
        self._fail_times = fail_times
        self._always_fail = False
        self.sent: list[Notification] = []
        self.attempts = 0

    @property
    def name(self) -> str:
        return self._name

    def set_failures(self, fail_times: int) -> None:
        """Fail the next fail_times sends, then succeed."""
        self._fail_times = fail_times

    def set_always_fail(self, always_fail: bool = True) -> None:
        self._always_fail = always_fail

    def clear(self) -> None:
        self.sent.clear()
        self.attempts = 0
        self._fail_times = 0
        self._always_fail = False

    async def send(self, notification: Notification) -> None:
        self.attempts += 1
        if self._always_fail:
            raise ConnectionError(f"channel {self._name} unavailable")
        if self._fail_times > 0:
            self._fail_times -= 1
            raise ConnectionError(f"channel {self._name} transient failure")
        self.sent.append(notification)

    def sent_of_type(self, event_type: NotificationEventType) -> list[Notification]:
        return [n for n in self.sent if n.event_type is event_type]
