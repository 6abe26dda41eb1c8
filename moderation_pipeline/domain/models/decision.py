"""Moderation decision domain model.

Decisions are append-only. A retraction or an approved appeal is
recorded as a new decision that references the one it supersedes; the
original is never mutated or deleted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

from moderation_pipeline.domain.models.moderation import Action

DEFAULT_DECISION_TTL_DAYS = 30


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True, eq=True)
class Decision:
    """Immutable record of a moderation action taken against content.

    Attributes:
        content_id: Content the decision applies to.
        action: Action taken.
        reason: Moderator or system rationale.
        confidence: Confidence in [0.0, 1.0].
        moderator_id: Who decided ("auto-moderator" for automatic decisions).
        expires_at: After this instant the decision is lapsed and due for
            re-evaluation. Lapsing never reverses the action by itself.
        analysis_id: Analysis the decision was based on, if any.
        report_id: Report the decision resolves, if any.
        supersedes: Earlier decision this one replaces.
        appeal_id: Appeal that produced this decision, if any.
    """

    content_id: str
    action: Action
    reason: str
    confidence: float
    moderator_id: str
    expires_at: datetime | None = None
    analysis_id: UUID | None = None
    report_id: UUID | None = None
    supersedes: UUID | None = None
    appeal_id: UUID | None = None
    id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Decision confidence must be in [0, 1], got {self.confidence}")
        if self.expires_at is not None and self.expires_at <= self.timestamp:
            raise ValueError("expires_at must be after the decision timestamp")

    def is_lapsed(self, now: datetime | None = None) -> bool:
        """True once expires_at has passed."""
        if self.expires_at is None:
            return False
        return (now or _utc_now()) >= self.expires_at

    @classmethod
    def create(
        cls,
        content_id: str,
        action: Action,
        reason: str,
        confidence: float,
        moderator_id: str,
        ttl_days: int | None = DEFAULT_DECISION_TTL_DAYS,
        **links: UUID | None,
    ) -> Decision:
        """Create a decision stamped now, expiring ttl_days later.

        Args:
            ttl_days: Days until the decision lapses; None for no expiry.
            **links: analysis_id, report_id, supersedes or appeal_id.
        """
        now = _utc_now()
        expires_at = now + timedelta(days=ttl_days) if ttl_days else None
        return cls(
            content_id=content_id,
            action=action,
            reason=reason,
            confidence=confidence,
            moderator_id=moderator_id,
            expires_at=expires_at,
            timestamp=now,
            **links,
        )
