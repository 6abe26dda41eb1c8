"""Moderation storage port.

Durable save and lookup for analyses, decisions, appeals and event
records, with range queries by time for analytics.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from moderation_pipeline.domain.events.moderation import ModerationEventRecord
from moderation_pipeline.domain.models.appeal import Appeal
from moderation_pipeline.domain.models.decision import Decision
from moderation_pipeline.domain.models.moderation import Analysis


class ModerationStorageProtocol(Protocol):
    """Protocol for moderation record storage.

    Decisions are append-only: save_decision MUST refuse an id that is
    already stored. Appeals are saved in place as they progress.
    """

    async def save_analysis(self, analysis: Analysis) -> None:
        """Persist an analysis.

        Raises:
            DuplicateRecordError: If the analysis id is already stored.
        """
        ...

    async def get_analysis(self, analysis_id: UUID) -> Analysis | None:
        ...

    async def save_decision(self, decision: Decision) -> None:
        """Append a decision.

        Raises:
            DuplicateRecordError: If the decision id is already stored.
        """
        ...

    async def get_decision(self, decision_id: UUID) -> Decision | None:
        ...

    async def list_decisions(
        self,
        content_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Decision]:
        """Decisions ordered oldest first, optionally filtered.

        Args:
            content_id: Only decisions for this content.
            start: Inclusive lower bound on timestamp.
            end: Inclusive upper bound on timestamp.
        """
        ...

    async def save_appeal(self, appeal: Appeal) -> None:
        ...

    async def get_appeal(self, appeal_id: UUID) -> Appeal | None:
        ...

    async def list_appeals(
        self,
        decision_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Appeal]:
        """Appeals ordered oldest first, optionally filtered."""
        ...

    async def save_event(self, record: ModerationEventRecord) -> None:
        """Append an event record; storage may evict the oldest beyond its cap."""
        ...

    async def list_events(
        self,
        event_type: str | None = None,
        content_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[ModerationEventRecord]:
        """Event records ordered newest first."""
        ...
