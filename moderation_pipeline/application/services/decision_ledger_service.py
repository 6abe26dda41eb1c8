"""Decision and appeal ledger.

Decisions are written once and never changed. Reversals go through
appeals: approving an appeal appends a new decision that supersedes the
appealed one, so the full history of a piece of content stays readable.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from structlog import get_logger

from moderation_pipeline.application.ports.moderation_storage import (
    ModerationStorageProtocol,
)
from moderation_pipeline.application.services.keyed_lock import KeyedLock
from moderation_pipeline.domain.errors.not_found import (
    AppealNotFoundError,
    DecisionNotFoundError,
)
from moderation_pipeline.domain.errors.validation import ValidationError
from moderation_pipeline.domain.errors.workflow import AppealAlreadyResolvedError
from moderation_pipeline.domain.models.appeal import Appeal, AppealAction
from moderation_pipeline.domain.models.decision import (
    DEFAULT_DECISION_TTL_DAYS,
    Decision,
)
from moderation_pipeline.domain.models.moderation import Action

logger = get_logger(__name__)

APPEAL_DECISION_CONFIDENCE = 1.0


@dataclass(frozen=True)
class AppealResolution:
    """Outcome of processing an appeal.

    Attributes:
        appeal: The closed appeal.
        decision: The superseding decision when the appeal was approved.
    """

    appeal: Appeal
    decision: Decision | None = None


class DecisionLedger:
    """Append-only record of decisions and the appeals against them."""

    def __init__(
        self,
        storage: ModerationStorageProtocol,
        ttl_days: int = DEFAULT_DECISION_TTL_DAYS,
    ) -> None:
        self._storage = storage
        self._ttl_days = ttl_days
        self._appeal_locks = KeyedLock()

    @property
    def ttl_days(self) -> int:
        return self._ttl_days

    def set_ttl_days(self, ttl_days: int) -> None:
        """Applies to decisions recorded from now on."""
        self._ttl_days = ttl_days

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    async def record_decision(
        self,
        content_id: str,
        action: Action,
        reason: str,
        confidence: float,
        moderator_id: str,
        analysis_id: UUID | None = None,
        report_id: UUID | None = None,
        supersedes: UUID | None = None,
        appeal_id: UUID | None = None,
    ) -> Decision:
        """Append a new decision expiring after the configured TTL.

        Raises:
            ValidationError: If required fields are blank or confidence is
                outside [0, 1].
            DecisionNotFoundError: If supersedes names an unknown decision.
        """
        errors = []
        if not content_id or not content_id.strip():
            errors.append("content_id is required")
        if not reason or not reason.strip():
            errors.append("reason must not be blank")
        if not moderator_id or not moderator_id.strip():
            errors.append("moderator_id is required")
        if not 0.0 <= confidence <= 1.0:
            errors.append(f"confidence must be in [0, 1], got {confidence}")
        if errors:
            raise ValidationError(errors)
        if supersedes is not None:
            await self.get_decision(supersedes)

        decision = Decision.create(
            content_id=content_id,
            action=action,
            reason=reason.strip(),
            confidence=confidence,
            moderator_id=moderator_id,
            ttl_days=self._ttl_days,
            analysis_id=analysis_id,
            report_id=report_id,
            supersedes=supersedes,
            appeal_id=appeal_id,
        )
        await self._storage.save_decision(decision)
        logger.info(
            "decision_recorded",
            decision_id=str(decision.id),
            content_id=content_id,
            action=action.value,
            moderator_id=moderator_id,
            supersedes=str(supersedes) if supersedes else None,
        )
        return decision

    async def get_decision(self, decision_id: UUID) -> Decision:
        """Raises DecisionNotFoundError for an unknown id."""
        decision = await self._storage.get_decision(decision_id)
        if decision is None:
            raise DecisionNotFoundError(decision_id)
        return decision

    async def list_decisions(
        self,
        content_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Decision]:
        return await self._storage.list_decisions(content_id, start, end)

    async def current_decision(self, content_id: str) -> Decision | None:
        """Latest decision for the content that nothing supersedes."""
        decisions = await self._storage.list_decisions(content_id)
        superseded = {d.supersedes for d in decisions if d.supersedes is not None}
        live = [d for d in decisions if d.id not in superseded]
        return live[-1] if live else None

    # ------------------------------------------------------------------
    # Appeals
    # ------------------------------------------------------------------

    async def create_appeal(
        self,
        decision_id: UUID,
        appellant_id: str,
        reason: str,
        description: str | None = None,
        evidence: Sequence[str] = (),
    ) -> Appeal:
        """Open an appeal against an existing decision.

        Raises:
            DecisionNotFoundError: If the decision does not exist.
            ValidationError: If appellant or reason is blank.
        """
        errors = []
        if not appellant_id or not appellant_id.strip():
            errors.append("appellant_id is required")
        if not reason or not reason.strip():
            errors.append("reason must not be blank")
        if errors:
            raise ValidationError(errors)
        await self.get_decision(decision_id)

        appeal = Appeal(
            decision_id=decision_id,
            appellant_id=appellant_id,
            reason=reason.strip(),
            description=description,
            evidence=tuple(evidence),
        )
        await self._storage.save_appeal(appeal)
        logger.info(
            "appeal_created",
            appeal_id=str(appeal.id),
            decision_id=str(decision_id),
            appellant_id=appellant_id,
        )
        return appeal

    async def get_appeal(self, appeal_id: UUID) -> Appeal:
        """Raises AppealNotFoundError for an unknown id."""
        appeal = await self._storage.get_appeal(appeal_id)
        if appeal is None:
            raise AppealNotFoundError(appeal_id)
        return appeal

    async def list_appeals(
        self,
        decision_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Appeal]:
        return await self._storage.list_appeals(decision_id, start, end)

    async def update_appeal(
        self,
        appeal_id: UUID,
        description: str | None = None,
        evidence: Sequence[str] = (),
    ) -> Appeal:
        """Add a description or evidence to an open appeal.

        Raises:
            AppealNotFoundError: If the appeal does not exist.
            AppealAlreadyResolvedError: If the appeal is closed.
        """
        async with self._appeal_locks.hold(appeal_id):
            appeal = await self.get_appeal(appeal_id)
            updated = appeal.with_details(description, tuple(evidence))
            await self._storage.save_appeal(updated)
        return updated

    async def process_appeal(
        self,
        appeal_id: UUID,
        action: AppealAction,
        moderator_id: str,
        notes: str | None = None,
        new_action: Action | None = None,
    ) -> AppealResolution:
        """Approve or reject an appeal.

        Approval records a decision superseding the appealed one, with
        new_action (default allow). Rejection upholds the original.

        Raises:
            AppealNotFoundError: If the appeal does not exist.
            AppealAlreadyResolvedError: If the appeal is already closed.
            DecisionNotFoundError: If the appealed decision is gone.
        """
        log = logger.bind(appeal_id=str(appeal_id), action=action.value)

        async with self._appeal_locks.hold(appeal_id):
            appeal = await self.get_appeal(appeal_id)
            if appeal.status.is_terminal():
                raise AppealAlreadyResolvedError(appeal.id, appeal.status)

            decision: Decision | None = None
            if action is AppealAction.APPROVE:
                original = await self.get_decision(appeal.decision_id)
                decision = await self.record_decision(
                    content_id=original.content_id,
                    action=new_action or Action.ALLOW,
                    reason=notes or f"Appeal approved: {appeal.reason}",
                    confidence=APPEAL_DECISION_CONFIDENCE,
                    moderator_id=moderator_id,
                    report_id=original.report_id,
                    supersedes=original.id,
                    appeal_id=appeal.id,
                )

            resolved = appeal.resolve(
                action,
                moderator_id,
                notes,
                resolution_decision_id=decision.id if decision else None,
            )
            await self._storage.save_appeal(resolved)

        log.info(
            "appeal_processed",
            status=resolved.status.value,
            moderator_id=moderator_id,
            resolution_decision_id=str(decision.id) if decision else None,
        )
        return AppealResolution(appeal=resolved, decision=decision)
