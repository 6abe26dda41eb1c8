"""User report domain model.

A Report is a user-submitted complaint about a piece of content. Reports
on the same (content_id, content_type) are linked: the newest report
lists its predecessors in related_reports, and the oldest non-rejected
report (the primary) accumulates the ids of every later one.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from moderation_pipeline.domain.models.moderation import (
    Action,
    Analysis,
    ContentType,
    Priority,
    Severity,
    category_value,
)


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class ReportStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    ESCALATED = "escalated"

    def is_terminal(self) -> bool:
        return self in (ReportStatus.RESOLVED, ReportStatus.REJECTED)


class ReportType(str, Enum):
    SPAM = "spam"
    HARASSMENT = "harassment"
    HATE_SPEECH = "hate_speech"
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    COPYRIGHT = "copyright"
    PRIVACY = "privacy"
    VIOLENCE = "violence"
    TERRORISM = "terrorism"
    SELF_HARM = "self_harm"
    FAKE_NEWS = "fake_news"
    BULLYING = "bullying"
    OTHER = "other"


@dataclass(frozen=True, eq=True)
class ResolutionNote:
    note: str
    author: str
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class ReportSubmission:
    """Caller input for a new report, before validation.

    Fields are loosely typed on purpose: validation happens in the intake
    service and reports every missing field at once.
    """

    content: Any
    content_id: str
    content_type: ContentType | None
    reporter_id: str
    reason: str
    type: ReportType = ReportType.OTHER
    severity: Severity = Severity.MEDIUM
    category: str = "custom"
    priority: Priority | None = None
    description: str | None = None
    evidence: tuple[str, ...] = ()
    reported_user_id: str | None = None
    recommended_action: Action | None = None


@dataclass(frozen=True, eq=True)
class Report:
    """A user report about content.

    Attributes:
        content_id: Identifier of the reported content.
        content_type: Kind of reported content.
        content: Snapshot of the reported payload.
        reporter_id: User who filed the report.
        reason: Free-text reason supplied by the reporter.
        type: Report type.
        severity: Current severity; raised by duplicate-threshold escalation.
        category: Moderation category (open string).
        status: Report lifecycle status.
        priority: Review priority.
        evidence: Evidence references supplied by the reporter.
        related_reports: Linked reports on the same content.
        assigned_to: Moderator handling the report.
        workflow_id: Backing review workflow.
        escalated: True only after an explicit escalation.
        resolution_notes: Notes recorded on resolution.
        analysis: Automated analysis of the reported content.
        recommended_action: Action applied if the report is approved.
        description: Optional longer description.
        reported_user_id: Author of the reported content, if known.
    """

    content_id: str
    content_type: ContentType
    reporter_id: str
    reason: str
    type: ReportType
    severity: Severity
    category: str
    priority: Priority
    content: Any = None
    status: ReportStatus = ReportStatus.PENDING
    evidence: tuple[str, ...] = ()
    related_reports: tuple[UUID, ...] = ()
    assigned_to: str | None = None
    workflow_id: UUID | None = None
    escalated: bool = False
    resolution_notes: tuple[ResolutionNote, ...] = ()
    analysis: Analysis | None = field(default=None, compare=False)
    recommended_action: Action | None = None
    description: str | None = None
    reported_user_id: str | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", category_value(self.category))

    def _touch(self, **changes: Any) -> Report:
        return replace(self, **changes, updated_at=_utc_now())

    def with_status(self, status: ReportStatus) -> Report:
        return self._touch(status=status)

    def with_assignee(self, assignee: str | None) -> Report:
        return self._touch(assigned_to=assignee)

    def with_workflow(self, workflow_id: UUID) -> Report:
        return self._touch(workflow_id=workflow_id)

    def with_analysis(self, analysis: Analysis) -> Report:
        return self._touch(analysis=analysis)

    def with_related(self, report_id: UUID) -> Report:
        """Link another report; linking twice is a no-op."""
        if report_id in self.related_reports or report_id == self.id:
            return self
        return self._touch(related_reports=(*self.related_reports, report_id))

    def with_minimum_severity(self, severity: Severity, priority: Priority) -> Report:
        """Raise severity and priority to at least the given levels."""
        new_severity = severity if severity.rank > self.severity.rank else self.severity
        new_priority = priority if priority.rank > self.priority.rank else self.priority
        if new_severity is self.severity and new_priority is self.priority:
            return self
        return self._touch(severity=new_severity, priority=new_priority)

    def with_evidence(self, evidence: tuple[str, ...]) -> Report:
        return self._touch(evidence=(*self.evidence, *evidence))

    def with_resolution_note(self, note: str, author: str) -> Report:
        entry = ResolutionNote(note=note, author=author)
        return self._touch(resolution_notes=(*self.resolution_notes, entry))

    def with_updates(self, **changes: Any) -> Report:
        """Return a copy with arbitrary reviewer-editable fields replaced."""
        return self._touch(**changes)

    def mark_escalated(self) -> Report:
        """Record an explicit escalation; the assignee is cleared."""
        return self._touch(
            escalated=True,
            status=ReportStatus.ESCALATED,
            assigned_to=None,
        )
