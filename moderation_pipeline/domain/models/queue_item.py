"""Review queue item domain model."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from moderation_pipeline.domain.models.moderation import Analysis, ContentType, Priority
from moderation_pipeline.domain.models.report import Report


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class QueueItemStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    ESCALATED = "escalated"


@dataclass(frozen=True, eq=True)
class QueueItem:
    """A unit of pending human-review work.

    Queue items are ordered by (priority desc, created_at asc, sequence asc).
    The sequence number is assigned by the queue on push and breaks ties
    between items created in the same instant.

    Attributes:
        content_id: Content awaiting a decision.
        content_type: Kind of content.
        analysis: Analysis that caused the item to be queued.
        priority: Current review priority.
        report: Report snapshot, for report-backed items.
        status: Queue status.
        escalation_level: Number of escalations applied.
        assigned_to: Moderator holding the item.
        assigned_at: When the item was assigned.
        sequence: Insertion order, set by the queue.
    """

    content_id: str
    content_type: ContentType
    analysis: Analysis
    priority: Priority
    report: Report | None = field(default=None, compare=False)
    status: QueueItemStatus = QueueItemStatus.PENDING
    escalation_level: int = 0
    assigned_to: str | None = None
    assigned_at: datetime | None = None
    sequence: int = 0
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)

    @property
    def is_assigned(self) -> bool:
        return self.assigned_to is not None

    @property
    def report_id(self) -> UUID | None:
        return self.report.id if self.report is not None else None

    @property
    def workflow_id(self) -> UUID | None:
        return self.report.workflow_id if self.report is not None else None

    def sort_key(self) -> tuple[int, datetime, int]:
        """Heap key: highest priority first, then oldest, then first pushed."""
        return (-self.priority.rank, self.created_at, self.sequence)

    def with_sequence(self, sequence: int) -> QueueItem:
        return replace(self, sequence=sequence)

    def with_priority(self, priority: Priority) -> QueueItem:
        return replace(self, priority=priority)

    def with_report(self, report: Report) -> QueueItem:
        return replace(self, report=report)

    def escalated(self) -> QueueItem:
        """Promote priority one level and bump the escalation level."""
        return replace(
            self,
            priority=self.priority.escalated(),
            escalation_level=self.escalation_level + 1,
            status=QueueItemStatus.ESCALATED,
        )

    def released(self) -> QueueItem:
        """Drop the current assignee so the item can be reassigned."""
        return replace(self, assigned_to=None, assigned_at=None)

    def assigned(self, moderator_id: str) -> QueueItem:
        return replace(
            self,
            assigned_to=moderator_id,
            assigned_at=_utc_now(),
            status=QueueItemStatus.IN_REVIEW,
        )
