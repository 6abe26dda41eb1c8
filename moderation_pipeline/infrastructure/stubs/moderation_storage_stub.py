"""In-memory moderation storage stub.

Holds analyses, decisions, appeals and event records in dictionaries.
Decisions and analyses are append-only; event records are capped and
the oldest are evicted first.
"""

from __future__ import annotations

import asyncio
from collections import deque
from datetime import datetime
from uuid import UUID

from moderation_pipeline.application.ports.moderation_storage import (
    ModerationStorageProtocol,
)
from moderation_pipeline.domain.errors.concurrency import DuplicateRecordError
from moderation_pipeline.domain.events.moderation import ModerationEventRecord
from moderation_pipeline.domain.models.appeal import Appeal
from moderation_pipeline.domain.models.decision import Decision
from moderation_pipeline.domain.models.moderation import Analysis

DEFAULT_MAX_EVENTS = 10_000


def _in_range(instant: datetime, start: datetime | None, end: datetime | None) -> bool:
    if start is not None and instant < start:
        return False
    if end is not None and instant > end:
        return False
    return True


class ModerationStorageStub(ModerationStorageProtocol):
    """In-memory implementation of ModerationStorageProtocol.

    Attributes:
        max_events: Maximum event records retained.
    """

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        self.max_events = max_events
        self._analyses: dict[UUID, Analysis] = {}
        self._decisions: dict[UUID, Decision] = {}
        self._appeals: dict[UUID, Appeal] = {}
        self._events: deque[ModerationEventRecord] = deque(maxlen=max_events)
        self._lock = asyncio.Lock()

    def clear(self) -> None:
        """Clear all stored data (for testing)."""
        self._analyses.clear()
        self._decisions.clear()
        self._appeals.clear()
        self._events.clear()

    # Analyses

    async def save_analysis(self, analysis: Analysis) -> None:
        async with self._lock:
            if analysis.id in self._analyses:
                raise DuplicateRecordError("analysis", analysis.id)
            self._analyses[analysis.id] = analysis

    async def get_analysis(self, analysis_id: UUID) -> Analysis | None:
        return self._analyses.get(analysis_id)

    # Decisions

    async def save_decision(self, decision: Decision) -> None:
        async with self._lock:
            if decision.id in self._decisions:
                raise DuplicateRecordError("decision", decision.id)
            self._decisions[decision.id] = decision

    async def get_decision(self, decision_id: UUID) -> Decision | None:
        return self._decisions.get(decision_id)

    async def list_decisions(
        self,
        content_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Decision]:
        decisions = [
            d
            for d in self._decisions.values()
            if (content_id is None or d.content_id == content_id)
            and _in_range(d.timestamp, start, end)
        ]
        return sorted(decisions, key=lambda d: d.timestamp)

    # Appeals

    async def save_appeal(self, appeal: Appeal) -> None:
        async with self._lock:
            self._appeals[appeal.id] = appeal

    async def get_appeal(self, appeal_id: UUID) -> Appeal | None:
        return self._appeals.get(appeal_id)

    async def list_appeals(
        self,
        decision_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Appeal]:
        appeals = [
            a
            for a in self._appeals.values()
            if (decision_id is None or a.decision_id == decision_id)
            and _in_range(a.created_at, start, end)
        ]
        return sorted(appeals, key=lambda a: a.created_at)

    # Events

    async def save_event(self, record: ModerationEventRecord) -> None:
        async with self._lock:
            self._events.append(record)

    async def list_events(
        self,
        event_type: str | None = None,
        content_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[ModerationEventRecord]:
        records = [
            r
            for r in self._events
            if (event_type is None or r.event_type == event_type)
            and (content_id is None or r.content_id == content_id)
            and _in_range(r.occurred_at, start, end)
        ]
        records.sort(key=lambda r: r.occurred_at, reverse=True)
        if limit is not None:
            records = records[:limit]
        return records

    def event_count(self) -> int:
        return len(self._events)
