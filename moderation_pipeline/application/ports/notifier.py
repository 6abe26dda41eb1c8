"""Notification ports.

Delivery transport (console, email, webhook, in-app) is pluggable through
NotificationChannelProtocol. The dispatcher implementing NotifierProtocol
owns retries; channels make a single attempt per send() call.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol
from uuid import UUID, uuid4


class NotificationEventType(str, Enum):
    FLAG = "flag"
    REPORT = "report"
    ESCALATION = "escalation"
    RESOLUTION = "resolution"
    APPEAL = "appeal"


@dataclass(frozen=True)
class NotificationPayload:
    """Structured notification content.

    Attributes:
        subject: Short summary line.
        content_id: Content the notification concerns, if any.
        recipient_id: Intended user, e.g. the reporter for info requests.
        data: Extra structured fields.
    """

    subject: str
    content_id: str | None = None
    recipient_id: str | None = None
    data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class Notification:
    event_type: NotificationEventType
    payload: NotificationPayload
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationChannelProtocol(Protocol):
    """Protocol for one delivery channel."""

    @property
    def name(self) -> str:
        ...

    async def send(self, notification: Notification) -> None:
        """Deliver once.

        Raises:
            Exception: Any delivery failure; the dispatcher retries.
        """
        ...


class NotifierProtocol(Protocol):
    """Protocol the orchestrator uses to announce moderation events."""

    async def notify(
        self, event_type: NotificationEventType, payload: NotificationPayload
    ) -> None:
        """Deliver to every channel; never raises on delivery failure."""
        ...

    def dispatch(
        self, event_type: NotificationEventType, payload: NotificationPayload
    ) -> None:
        """Schedule notify() without waiting for it."""
        ...
