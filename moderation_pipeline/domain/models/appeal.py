"""Appeal domain model.

An appeal asks for a Decision to be reconsidered. Approving it produces
a new superseding decision; rejecting it upholds the original.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from moderation_pipeline.domain.errors.workflow import AppealAlreadyResolvedError


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class AppealStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    ESCALATED = "escalated"

    def is_terminal(self) -> bool:
        return self in (AppealStatus.RESOLVED, AppealStatus.REJECTED)


class AppealAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True, eq=True)
class Appeal:
    """A request to reconsider a decision."""

    decision_id: UUID
    appellant_id: str
    reason: str
    status: AppealStatus = AppealStatus.PENDING
    description: str | None = None
    evidence: tuple[str, ...] = ()
    resolved_by: str | None = None
    resolution_notes: str | None = None
    resolution_decision_id: UUID | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    resolved_at: datetime | None = None

    def _ensure_open(self) -> None:
        if self.status.is_terminal():
            raise AppealAlreadyResolvedError(self.id, self.status)

    def with_details(
        self,
        description: str | None = None,
        evidence: tuple[str, ...] = (),
    ) -> Appeal:
        """Add description or evidence to an open appeal."""
        self._ensure_open()
        return replace(
            self,
            description=description if description is not None else self.description,
            evidence=(*self.evidence, *evidence),
            updated_at=_utc_now(),
        )

    def resolve(
        self,
        action: AppealAction,
        moderator_id: str,
        notes: str | None = None,
        resolution_decision_id: UUID | None = None,
    ) -> Appeal:
        """Close the appeal as approved (resolved) or rejected."""
        self._ensure_open()
        now = _utc_now()
        status = (
            AppealStatus.RESOLVED if action is AppealAction.APPROVE else AppealStatus.REJECTED
        )
        return replace(
            self,
            status=status,
            resolved_by=moderator_id,
            resolution_notes=notes,
            resolution_decision_id=resolution_decision_id,
            updated_at=now,
            resolved_at=now,
        )
