"""Unit tests for DecisionLedger.

Tests:
- Decisions are validated and stamped with an expiry
- current_decision skips superseded decisions
- Approving an appeal supersedes the original decision
- Rejecting an appeal upholds it
- Closed appeals cannot be processed or edited again
"""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from moderation_pipeline.application.services.decision_ledger_service import (
    DecisionLedger,
)
from moderation_pipeline.domain.errors import (
    AppealAlreadyResolvedError,
    AppealNotFoundError,
    DecisionNotFoundError,
    ValidationError,
)
from moderation_pipeline.domain.models.appeal import AppealAction, AppealStatus
from moderation_pipeline.domain.models.moderation import Action
from moderation_pipeline.infrastructure.stubs.moderation_storage_stub import (
    ModerationStorageStub,
)


@pytest.fixture
def ledger() -> DecisionLedger:
    return DecisionLedger(ModerationStorageStub(), ttl_days=30)


async def remove_decision(ledger: DecisionLedger, content_id: str = "post-1"):
    return await ledger.record_decision(
        content_id=content_id,
        action=Action.REMOVE,
        reason="hate speech",
        confidence=0.9,
        moderator_id="mod-1",
    )


class TestRecordDecision:
    async def test_decision_expires_after_ttl(self, ledger: DecisionLedger) -> None:
        decision = await remove_decision(ledger)

        assert decision.expires_at - decision.timestamp == timedelta(days=30)
        assert await ledger.get_decision(decision.id) == decision

    async def test_invalid_fields_all_reported(self, ledger: DecisionLedger) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await ledger.record_decision(
                content_id="",
                action=Action.FLAG,
                reason=" ",
                confidence=1.5,
                moderator_id="",
            )

        assert len(exc_info.value.errors) == 4

    async def test_superseding_unknown_decision(self, ledger: DecisionLedger) -> None:
        with pytest.raises(DecisionNotFoundError):
            await ledger.record_decision(
                content_id="post-1",
                action=Action.ALLOW,
                reason="fine",
                confidence=1.0,
                moderator_id="mod-1",
                supersedes=uuid4(),
            )

    async def test_ttl_change_applies_to_new_decisions(self, ledger: DecisionLedger) -> None:
        ledger.set_ttl_days(7)

        decision = await remove_decision(ledger)

        assert decision.expires_at - decision.timestamp == timedelta(days=7)

    async def test_current_decision(self, ledger: DecisionLedger) -> None:
        assert await ledger.current_decision("post-1") is None

        decision = await remove_decision(ledger)
        await remove_decision(ledger, content_id="post-2")

        assert await ledger.current_decision("post-1") == decision


class TestAppeals:
    async def test_create_appeal_requires_decision(self, ledger: DecisionLedger) -> None:
        with pytest.raises(DecisionNotFoundError):
            await ledger.create_appeal(uuid4(), "user-9", "not hateful")

    async def test_approval_supersedes_original(self, ledger: DecisionLedger) -> None:
        original = await remove_decision(ledger)
        appeal = await ledger.create_appeal(original.id, "user-9", "context was quoted")

        resolution = await ledger.process_appeal(appeal.id, AppealAction.APPROVE, "mod-2")

        assert resolution.appeal.status is AppealStatus.RESOLVED
        assert resolution.decision is not None
        assert resolution.decision.action is Action.ALLOW
        assert resolution.decision.confidence == 1.0
        assert resolution.decision.supersedes == original.id
        assert resolution.decision.appeal_id == appeal.id
        assert resolution.appeal.resolution_decision_id == resolution.decision.id
        assert await ledger.current_decision("post-1") == resolution.decision
        # the original stays in the ledger unchanged
        assert await ledger.get_decision(original.id) == original

    async def test_approval_with_new_action(self, ledger: DecisionLedger) -> None:
        original = await remove_decision(ledger)
        appeal = await ledger.create_appeal(original.id, "user-9", "too harsh")

        resolution = await ledger.process_appeal(
            appeal.id, AppealAction.APPROVE, "mod-2", new_action=Action.FLAG
        )

        assert resolution.decision.action is Action.FLAG

    async def test_rejection_upholds_original(self, ledger: DecisionLedger) -> None:
        original = await remove_decision(ledger)
        appeal = await ledger.create_appeal(original.id, "user-9", "please")

        resolution = await ledger.process_appeal(
            appeal.id, AppealAction.REJECT, "mod-2", notes="upheld"
        )

        assert resolution.appeal.status is AppealStatus.REJECTED
        assert resolution.appeal.resolution_notes == "upheld"
        assert resolution.decision is None
        assert await ledger.current_decision("post-1") == original

    async def test_closed_appeal_is_final(self, ledger: DecisionLedger) -> None:
        original = await remove_decision(ledger)
        appeal = await ledger.create_appeal(original.id, "user-9", "please")
        await ledger.process_appeal(appeal.id, AppealAction.REJECT, "mod-2")

        with pytest.raises(AppealAlreadyResolvedError):
            await ledger.process_appeal(appeal.id, AppealAction.APPROVE, "mod-3")
        with pytest.raises(AppealAlreadyResolvedError):
            await ledger.update_appeal(appeal.id, evidence=["late.png"])
        assert len(await ledger.list_decisions("post-1")) == 1

    async def test_update_open_appeal(self, ledger: DecisionLedger) -> None:
        original = await remove_decision(ledger)
        appeal = await ledger.create_appeal(original.id, "user-9", "please")

        updated = await ledger.update_appeal(
            appeal.id, description="more context", evidence=["thread.png"]
        )

        assert updated.description == "more context"
        assert updated.evidence == ("thread.png",)

    async def test_unknown_appeal(self, ledger: DecisionLedger) -> None:
        with pytest.raises(AppealNotFoundError):
            await ledger.get_appeal(uuid4())
