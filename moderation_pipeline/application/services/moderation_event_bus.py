"""In-process moderation event bus.

Observers subscribe with the event classes they care about; delivery is
filtered with isinstance, so subscribing to ModerationEvent receives
everything. Every published event is first persisted as a
ModerationEventRecord for the event log. An observer that raises is
logged and skipped, and the publisher never sees the failure.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from structlog import get_logger

from moderation_pipeline.application.ports.event_observer import (
    ModerationEventObserverProtocol,
)
from moderation_pipeline.application.ports.moderation_storage import (
    ModerationStorageProtocol,
)
from moderation_pipeline.domain.events.moderation import (
    ModerationEvent,
    ModerationEventRecord,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class _Subscription:
    observer: ModerationEventObserverProtocol
    event_types: tuple[type[ModerationEvent], ...]

    def wants(self, event: ModerationEvent) -> bool:
        return isinstance(event, self.event_types)


class ModerationEventBus:
    """Persists and fans out typed moderation events."""

    def __init__(self, storage: ModerationStorageProtocol) -> None:
        self._storage = storage
        self._subscriptions: list[_Subscription] = []

    def subscribe(
        self,
        observer: ModerationEventObserverProtocol,
        event_types: Iterable[type[ModerationEvent]] | None = None,
    ) -> None:
        """Register an observer, optionally limited to some event classes."""
        types = tuple(event_types) if event_types else (ModerationEvent,)
        self._subscriptions.append(_Subscription(observer, types))

    def unsubscribe(self, observer: ModerationEventObserverProtocol) -> bool:
        """Remove every subscription of the observer. Returns True if any existed."""
        before = len(self._subscriptions)
        self._subscriptions = [s for s in self._subscriptions if s.observer is not observer]
        return len(self._subscriptions) != before

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def publish(self, event: ModerationEvent) -> ModerationEventRecord:
        """Persist the event, then deliver it to matching observers."""
        record = ModerationEventRecord.from_event(event)
        await self._storage.save_event(record)

        for subscription in list(self._subscriptions):
            if not subscription.wants(event):
                continue
            try:
                await subscription.observer.on_event(event)
            except Exception as exc:
                logger.error(
                    "event_observer_failed",
                    event_type=event.event_type,
                    observer=type(subscription.observer).__name__,
                    error=f"{type(exc).__name__}: {exc}",
                )
        return record
