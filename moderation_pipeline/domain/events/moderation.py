"""Moderation event payloads.

Each event kind is its own frozen dataclass. Observers subscribe by
event class, and dispatch never depends on matching event-name strings.
Every class also carries an ``event_type`` constant, used only when the
event is persisted as a ModerationEventRecord for the event log.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar
from uuid import UUID, uuid4

from moderation_pipeline.domain.models.moderation import (
    Action,
    ContentType,
    Priority,
    Severity,
)


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def _serialize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): _serialize(v) for k, v in value.items()}
    if isinstance(value, (tuple, list)):
        return [_serialize(v) for v in value]
    return value


class ChangeKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class QueueChange(str, Enum):
    ADDED = "added"
    ASSIGNED = "assigned"
    ESCALATED = "escalated"
    REPRIORITIZED = "reprioritized"
    REMOVED = "removed"
    CANCELLED = "cancelled"


class ModerationEvent:
    """Base class for moderation event payloads."""

    event_type: ClassVar[str] = "moderation.event"
    occurred_at: datetime

    @property
    def content_id(self) -> str | None:
        return getattr(self, "subject_content_id", None)

    def to_dict(self) -> dict[str, Any]:
        """Convert payload to a JSON-compatible dict for event storage."""
        return {
            f.name: _serialize(getattr(self, f.name))
            for f in fields(self)  # type: ignore[arg-type]
        }


@dataclass(frozen=True, eq=True)
class ContentAnalyzedEvent(ModerationEvent):
    event_type: ClassVar[str] = "moderation.content_analyzed"

    analysis_id: UUID
    subject_content_id: str
    content_type: ContentType
    action: Action
    score: float
    severity: Severity
    safe: bool
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class PolicyChangedEvent(ModerationEvent):
    event_type: ClassVar[str] = "moderation.policy_changed"

    policy_id: UUID
    change: ChangeKind
    name: str
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class RuleChangedEvent(ModerationEvent):
    event_type: ClassVar[str] = "moderation.rule_changed"

    rule_id: UUID
    change: ChangeKind
    name: str
    enabled: bool
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class QueueItemChangedEvent(ModerationEvent):
    event_type: ClassVar[str] = "moderation.queue_item_changed"

    item_id: UUID
    subject_content_id: str
    change: QueueChange
    priority: Priority
    assigned_to: str | None = None
    reason: str | None = None
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class ReportSubmittedEvent(ModerationEvent):
    event_type: ClassVar[str] = "moderation.report_submitted"

    report_id: UUID
    workflow_id: UUID
    subject_content_id: str
    reporter_id: str
    severity: Severity
    priority: Priority
    related_reports: tuple[UUID, ...] = ()
    auto_escalated: bool = False
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class ReportUpdatedEvent(ModerationEvent):
    event_type: ClassVar[str] = "moderation.report_updated"

    report_id: UUID
    subject_content_id: str
    changed_fields: tuple[str, ...]
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class ReviewActionProcessedEvent(ModerationEvent):
    event_type: ClassVar[str] = "moderation.review_action_processed"

    workflow_id: UUID
    report_id: UUID
    subject_content_id: str
    action: str
    from_status: str
    to_status: str
    performed_by: str
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class DecisionMadeEvent(ModerationEvent):
    event_type: ClassVar[str] = "moderation.decision_made"

    decision_id: UUID
    subject_content_id: str
    action: Action
    moderator_id: str
    supersedes: UUID | None = None
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class AppealCreatedEvent(ModerationEvent):
    event_type: ClassVar[str] = "moderation.appeal_created"

    appeal_id: UUID
    decision_id: UUID
    subject_content_id: str
    appellant_id: str
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class AppealResolvedEvent(ModerationEvent):
    event_type: ClassVar[str] = "moderation.appeal_resolved"

    appeal_id: UUID
    decision_id: UUID
    subject_content_id: str
    status: str
    resolution_decision_id: UUID | None = None
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class ConfigUpdatedEvent(ModerationEvent):
    event_type: ClassVar[str] = "moderation.config_updated"

    changes: Mapping[str, Any]
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class AnalysisProviderChangedEvent(ModerationEvent):
    event_type: ClassVar[str] = "moderation.analysis_provider_changed"

    provider_name: str
    change: ChangeKind
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class ModerationEventRecord:
    """Persisted form of a published event.

    Attributes:
        event_type: The event class's event_type constant.
        occurred_at: When the event happened.
        data: Serialized payload.
        content_id: Content the event concerns, if any.
        id: Record identifier.
    """

    event_type: str
    occurred_at: datetime
    data: Mapping[str, Any]
    content_id: str | None = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if not isinstance(self.data, MappingProxyType):
            object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @classmethod
    def from_event(cls, event: ModerationEvent) -> ModerationEventRecord:
        return cls(
            event_type=event.event_type,
            occurred_at=event.occurred_at,
            data=event.to_dict(),
            content_id=event.content_id,
        )
