"""Core moderation value types: severities, actions, flags and analyses.

An Analysis is the merged result of automated content evaluation. It is
immutable: every content submission produces a new Analysis, and
re-aggregation (for example when a user report contributes a flag)
returns a fresh instance rather than mutating the original.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class Severity(str, Enum):
    """Severity of a flag or analysis, totally ordered LOW < CRITICAL."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def highest(cls, severities: list[Severity]) -> Severity:
        """Return the maximum severity, LOW for an empty input."""
        if not severities:
            return cls.LOW
        return max(severities, key=lambda s: s.rank)


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class Priority(str, Enum):
    """Review priority, totally ordered LOW < URGENT."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    def escalated(self) -> Priority:
        """Promote one level; URGENT stays URGENT."""
        return _PRIORITY_ESCALATION[self]

    @classmethod
    def for_severity(cls, severity: Severity) -> Priority:
        """Default review priority for a report of the given severity."""
        return _PRIORITY_FOR_SEVERITY[severity]


_PRIORITY_RANK: dict[Priority, int] = {
    Priority.LOW: 0,
    Priority.NORMAL: 1,
    Priority.HIGH: 2,
    Priority.URGENT: 3,
}

_PRIORITY_ESCALATION: dict[Priority, Priority] = {
    Priority.LOW: Priority.NORMAL,
    Priority.NORMAL: Priority.HIGH,
    Priority.HIGH: Priority.URGENT,
    Priority.URGENT: Priority.URGENT,
}

_PRIORITY_FOR_SEVERITY: dict[Severity, Priority] = {
    Severity.LOW: Priority.LOW,
    Severity.MEDIUM: Priority.NORMAL,
    Severity.HIGH: Priority.HIGH,
    Severity.CRITICAL: Priority.URGENT,
}


class ContentType(str, Enum):
    """Kinds of content the pipeline accepts."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    USER_PROFILE = "user_profile"
    COMMENT = "comment"
    MESSAGE = "message"
    POST = "post"
    ATTACHMENT = "attachment"


class Category(str, Enum):
    """Well-known moderation categories.

    Flag and report categories are open strings; these members compare
    equal to their string values, so they can be used interchangeably.
    """

    HATE_SPEECH = "hate_speech"
    HARASSMENT = "harassment"
    SPAM = "spam"
    MISINFORMATION = "misinformation"
    VIOLENCE = "violence"
    ADULT_CONTENT = "adult_content"
    COPYRIGHT_VIOLATION = "copyright_violation"
    PERSONAL_INFO = "personal_info"
    THREATS = "threats"
    SELF_HARM = "self_harm"
    ILLEGAL_CONTENT = "illegal_content"
    POLITICAL = "political"
    RELIGIOUS = "religious"
    CUSTOM = "custom"


class Action(str, Enum):
    """Moderation action taken against content."""

    ALLOW = "allow"
    FLAG = "flag"
    REVIEW = "review"
    BLOCK = "block"
    REMOVE = "remove"
    SUSPEND = "suspend"
    BAN = "ban"
    QUARANTINE = "quarantine"
    ESCALATE = "escalate"

    def requires_human(self) -> bool:
        """True when only a moderator may settle content with this action."""
        return self in HUMAN_ONLY_ACTIONS

    def is_enforcement(self) -> bool:
        """True when the action restricts content or its author."""
        return self in ENFORCEMENT_ACTIONS


HUMAN_ONLY_ACTIONS: frozenset[Action] = frozenset({Action.REVIEW, Action.ESCALATE})

ENFORCEMENT_ACTIONS: frozenset[Action] = frozenset(
    {Action.BLOCK, Action.REMOVE, Action.SUSPEND, Action.BAN, Action.QUARANTINE}
)


def category_value(category: object) -> str:
    """Plain string form of a category given as a Category member or a string."""
    if isinstance(category, Enum):
        return str(category.value)
    return str(category)


class ConfidenceLabel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, eq=True)
class Confidence:
    """Confidence in an analysis or flag.

    Attributes:
        score: Value in [0.0, 1.0].
        label: Coarse label for display.
    """

    score: float
    label: ConfidenceLabel

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Confidence score must be in [0, 1], got {self.score}")

    @classmethod
    def from_score(cls, score: float) -> Confidence:
        """Build a confidence with the label implied by the score."""
        if score >= 0.8:
            label = ConfidenceLabel.HIGH
        elif score >= 0.5:
            label = ConfidenceLabel.MEDIUM
        else:
            label = ConfidenceLabel.LOW
        return cls(score=score, label=label)


@dataclass(frozen=True, eq=True)
class Flag:
    """One signal contributing to an Analysis.

    Attributes:
        type: Signal source, e.g. "keyword", "rule_match", "user_report".
        category: Moderation category (open string).
        severity: Severity of this signal.
        message: Human-readable description.
        evidence: Matched fragments or references.
        confidence: Confidence score in [0.0, 1.0].
        id: Unique flag identifier.
    """

    type: str
    category: str
    severity: Severity
    message: str
    evidence: tuple[str, ...] = ()
    confidence: float = 1.0
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", category_value(self.category))
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Flag confidence must be in [0, 1], got {self.confidence}")


@dataclass(frozen=True, eq=True)
class Analysis:
    """Merged result of automated content evaluation.

    Attributes:
        content_id: Identifier of the analyzed content.
        content_type: Kind of content analyzed.
        category: Plurality category across flags.
        severity: Maximum severity across flags.
        score: Final score in [0.0, 1.0].
        confidence: Overall confidence.
        action: Action chosen by the scoring function.
        flags: Contributing signals, in merge order.
        suggestions: Advisory notes for reviewers.
        processing_time_ms: Wall time spent analyzing.
        metadata: Free-form annotations (read-only).
        id: Unique analysis identifier.
        created_at: When analysis started.
        processed_at: When analysis finished.
    """

    content_id: str
    content_type: ContentType
    category: str
    severity: Severity
    score: float
    confidence: Confidence
    action: Action
    flags: tuple[Flag, ...] = ()
    suggestions: tuple[str, ...] = ()
    processing_time_ms: float = 0.0
    metadata: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), compare=False
    )
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)
    processed_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", category_value(self.category))
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Analysis score must be in [0, 1], got {self.score}")
        if not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def is_safe(self) -> bool:
        """True for the fail-open analysis returned when evaluation is unavailable."""
        return bool(self.metadata.get("safe", False))

    def with_outcome(self, score: float, action: Action) -> Analysis:
        """Return a copy carrying a final score and action."""
        return replace(self, score=min(max(score, 0.0), 1.0), action=action)

    @classmethod
    def safe(
        cls,
        content_id: str,
        content_type: ContentType,
        reason: str,
        started_at: datetime | None = None,
    ) -> Analysis:
        """Build the fail-open analysis: allow, score 0, no flags."""
        now = _utc_now()
        started = started_at or now
        return cls(
            content_id=content_id,
            content_type=content_type,
            category=Category.CUSTOM.value,
            severity=Severity.LOW,
            score=0.0,
            confidence=Confidence(score=1.0, label=ConfidenceLabel.HIGH),
            action=Action.ALLOW,
            processing_time_ms=(now - started).total_seconds() * 1000,
            metadata={"safe": True, "reason": reason},
            created_at=started,
            processed_at=now,
        )
