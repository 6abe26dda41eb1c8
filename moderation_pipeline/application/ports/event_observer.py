"""Moderation event observer port."""

from __future__ import annotations

from typing import Protocol

from moderation_pipeline.domain.events.moderation import ModerationEvent


class ModerationEventObserverProtocol(Protocol):
    """Receives typed moderation events from the event bus."""

    async def on_event(self, event: ModerationEvent) -> None:
        ...
