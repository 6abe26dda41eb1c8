"""Unit tests for ModerationOrchestrator.

Tests:
- Analysis outcomes drive queueing and notifications
- Analysis fails open when the engine is down
- Reports are always queued with their workflow
- Assignment resumes the workflow; the first moderator wins
- Approve records a decision and clears the queue
- A rejected approve writes nothing; reassign moves the queue item
- Concurrent approvals produce exactly one decision
- Failing notification channels never block decisions
- Auto-moderation only decides eligible items
- Configuration updates reach every component
- Appeals, providers, events, audit and stats
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, patch

import pytest

from moderation_pipeline.application.ports.notifier import NotificationEventType
from moderation_pipeline.application.services.moderator_assignment import (
    LeastLoadedAssignmentStrategy,
)
from moderation_pipeline.bootstrap.moderation import (
    ModerationContainer,
    build_moderation_container,
)
from moderation_pipeline.config.moderation_config import ModerationConfig
from moderation_pipeline.domain.errors import (
    AnalysisProviderNotFoundError,
    ConfigurationError,
    ValidationError,
    WorkflowAlreadyTerminalError,
)
from moderation_pipeline.domain.models.appeal import AppealStatus
from moderation_pipeline.domain.models.moderation import (
    Action,
    ContentType,
    Flag,
    Priority,
    Severity,
)
from moderation_pipeline.domain.models.report import (
    ReportStatus,
    ReportSubmission,
    ReportType,
)
from moderation_pipeline.domain.models.review_workflow import WorkflowStatus
from moderation_pipeline.infrastructure.stubs.analysis_provider_stub import (
    StaticAnalysisProviderStub,
)
from moderation_pipeline.infrastructure.stubs.notification_channel_stub import (
    NotificationChannelStub,
)


def submission(content_id: str = "post-1", reporter_id: str = "user-1") -> ReportSubmission:
    return ReportSubmission(
        content="a perfectly ordinary post",
        content_id=content_id,
        content_type=ContentType.POST,
        reporter_id=reporter_id,
        reason="looks like spam",
        type=ReportType.SPAM,
        severity=Severity.MEDIUM,
        category="spam",
    )


class TestAnalysis:
    async def test_clean_content_is_not_queued(self, container: ModerationContainer) -> None:
        analysis = await container.orchestrator.analyze_text("lovely weather today", "c-1")

        assert analysis.action is Action.ALLOW
        assert container.queue.depth() == 0
        events = await container.orchestrator.get_events(
            event_type="moderation.content_analyzed"
        )
        assert len(events) == 1
        assert events[0].content_id == "c-1"

    async def test_review_action_is_queued(self, container: ModerationContainer) -> None:
        analysis = await container.orchestrator.analyze_text("I will kill you", "c-1")

        queue = await container.orchestrator.get_queue()
        assert analysis.action is Action.REVIEW
        assert len(queue) == 1
        assert queue[0].priority is Priority.HIGH
        assert queue[0].analysis.id == analysis.id

    async def test_reanalysis_does_not_duplicate_queue_item(
        self, container: ModerationContainer
    ) -> None:
        await container.orchestrator.analyze_text("I will kill you", "c-1")
        await container.orchestrator.analyze_text("I will kill you", "c-1")

        assert container.queue.depth() == 1

    async def test_flag_notifies_and_queues(
        self, container: ModerationContainer, channel: NotificationChannelStub
    ) -> None:
        analysis = await container.orchestrator.analyze_text("you idiot", "c-1")
        await container.orchestrator.drain_notifications()

        assert analysis.action is Action.FLAG
        assert len(channel.sent_of_type(NotificationEventType.FLAG)) == 1
        assert container.queue.depth() == 1

    async def test_flag_without_human_review_is_not_queued(
        self, test_config: ModerationConfig, channel: NotificationChannelStub
    ) -> None:
        container = build_moderation_container(
            config=replace(test_config, human_review_required=False), channels=[channel]
        )

        await container.orchestrator.analyze_text("you idiot", "c-1")

        assert container.queue.depth() == 0

    async def test_engine_failure_fails_open(self, container: ModerationContainer) -> None:
        container.engine.set_failure(RuntimeError("classifier down"))

        analysis = await container.orchestrator.analyze_text("I will kill you", "c-1")

        assert analysis.action is Action.ALLOW
        assert analysis.score == 0.0
        assert analysis.is_safe
        assert container.queue.depth() == 0

    async def test_image_metadata_is_analyzed(self, container: ModerationContainer) -> None:
        analysis = await container.orchestrator.analyze_image(
            {"url": "https://cdn.example/1.png", "caption": "buy now, click here"}, "img-1"
        )

        assert analysis.content_type is ContentType.IMAGE
        assert analysis.flags


class TestReports:
    async def test_report_is_always_queued(
        self, container: ModerationContainer, channel: NotificationChannelStub
    ) -> None:
        result = await container.orchestrator.submit_report(submission())
        await container.orchestrator.drain_notifications()

        queue = await container.orchestrator.get_queue()
        assert len(queue) == 1
        assert queue[0].report_id == result.report.id
        assert queue[0].workflow_id == result.workflow.id
        assert queue[0].priority is Priority.NORMAL
        assert result.report.analysis is not None
        assert any(f.type == "user_report" for f in result.report.analysis.flags)
        assert len(channel.sent_of_type(NotificationEventType.REPORT)) == 1
        assert "report.submitted" in container.audit_log.actions()

    async def test_second_report_shares_queue_item(
        self, container: ModerationContainer
    ) -> None:
        await container.orchestrator.submit_report(submission(reporter_id="a"))
        await container.orchestrator.submit_report(submission(reporter_id="b"))

        assert container.queue.depth() == 1

    async def test_assignment_resumes_workflow(self, container: ModerationContainer) -> None:
        result = await container.orchestrator.submit_report(submission())
        item = (await container.orchestrator.get_queue())[0]

        first = await container.orchestrator.assign_to_moderator(item.id, "mod-1")
        second = await container.orchestrator.assign_to_moderator(item.id, "mod-2")

        assert first.newly_assigned
        assert not second.newly_assigned
        assert second.item.assigned_to == "mod-1"
        workflow = await container.orchestrator.get_workflow(result.workflow.id)
        assert workflow.status is WorkflowStatus.IN_PROGRESS
        assert workflow.assigned_to == "mod-1"
        report = await container.orchestrator.get_report(result.report.id)
        assert report.status is ReportStatus.UNDER_REVIEW

    async def test_blank_moderator_rejected(self, container: ModerationContainer) -> None:
        await container.orchestrator.submit_report(submission())
        item = (await container.orchestrator.get_queue())[0]

        with pytest.raises(ValidationError):
            await container.orchestrator.assign_to_moderator(item.id, " ")


class TestReviewActions:
    async def test_approve_records_decision(self, container: ModerationContainer) -> None:
        result = await container.orchestrator.submit_report(submission())

        outcome = await container.orchestrator.process_review_action(
            result.workflow.id, "approve", performed_by="mod-1"
        )

        decision = outcome.decision
        assert decision is not None
        assert decision.action is Action.REMOVE
        assert decision.confidence == 0.9
        assert decision.reason == "User report validated"
        assert decision.report_id == result.report.id
        assert outcome.report.status is ReportStatus.RESOLVED
        assert container.queue.depth() == 0
        assert await container.orchestrator.current_decision("post-1") == decision

    async def test_concurrent_approvals_make_one_decision(
        self, container: ModerationContainer
    ) -> None:
        result = await container.orchestrator.submit_report(submission())

        outcomes = await asyncio.gather(
            container.orchestrator.process_review_action(
                result.workflow.id, "approve", performed_by="mod-1"
            ),
            container.orchestrator.process_review_action(
                result.workflow.id, "approve", performed_by="mod-2"
            ),
            return_exceptions=True,
        )

        errors = [o for o in outcomes if isinstance(o, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], WorkflowAlreadyTerminalError)
        assert len(await container.orchestrator.list_decisions("post-1")) == 1

    async def test_failing_channel_does_not_block_decision(
        self, container: ModerationContainer, channel: NotificationChannelStub
    ) -> None:
        channel.set_always_fail()
        result = await container.orchestrator.submit_report(submission())

        outcome = await container.orchestrator.process_review_action(
            result.workflow.id, "approve", performed_by="mod-1"
        )
        await container.orchestrator.drain_notifications()

        assert outcome.decision is not None
        assert channel.sent == []
        assert channel.attempts > 0

    async def test_reject_keeps_queue_item(
        self, container: ModerationContainer, channel: NotificationChannelStub
    ) -> None:
        result = await container.orchestrator.submit_report(submission())

        outcome = await container.orchestrator.process_review_action(
            result.workflow.id, "reject", performed_by="mod-1", notes="not spam"
        )
        await container.orchestrator.drain_notifications()

        assert outcome.decision is None
        assert outcome.report.status is ReportStatus.REJECTED
        assert container.queue.depth() == 1
        resolutions = channel.sent_of_type(NotificationEventType.RESOLUTION)
        assert resolutions[-1].payload.recipient_id == "user-1"

    async def test_escalate_raises_queue_item(
        self, container: ModerationContainer, channel: NotificationChannelStub
    ) -> None:
        result = await container.orchestrator.submit_report(submission())
        item = (await container.orchestrator.get_queue())[0]
        await container.orchestrator.assign_to_moderator(item.id, "mod-1")

        await container.orchestrator.process_review_action(
            result.workflow.id, "escalate", performed_by="mod-1"
        )
        await container.orchestrator.drain_notifications()

        escalated = await container.orchestrator.get_queue_item(item.id)
        assert escalated.escalation_level == 1
        assert escalated.priority is Priority.HIGH
        assert escalated.assigned_to is None
        assert escalated.report.escalated
        assert len(channel.sent_of_type(NotificationEventType.ESCALATION)) == 1

    async def test_blank_performer_on_approve_changes_nothing(
        self, container: ModerationContainer
    ) -> None:
        result = await container.orchestrator.submit_report(submission())

        with pytest.raises(ValidationError):
            await container.orchestrator.process_review_action(
                result.workflow.id, "approve", performed_by="   "
            )

        workflow = await container.orchestrator.get_workflow(result.workflow.id)
        report = await container.orchestrator.get_report(result.report.id)
        assert workflow.status is WorkflowStatus.PENDING
        assert report.status is ReportStatus.PENDING
        assert await container.orchestrator.list_decisions("post-1") == []
        assert container.queue.depth() == 1

    async def test_ledger_failure_leaves_review_open(
        self, container: ModerationContainer
    ) -> None:
        result = await container.orchestrator.submit_report(submission())
        failing = AsyncMock(side_effect=RuntimeError("ledger unavailable"))

        with patch.object(container.orchestrator._ledger, "record_decision", failing):
            with pytest.raises(RuntimeError):
                await container.orchestrator.process_review_action(
                    result.workflow.id, "approve", performed_by="mod-1"
                )

        workflow = await container.orchestrator.get_workflow(result.workflow.id)
        assert workflow.status is WorkflowStatus.PENDING
        assert container.queue.depth() == 1

        outcome = await container.orchestrator.process_review_action(
            result.workflow.id, "approve", performed_by="mod-1"
        )
        assert outcome.decision is not None
        assert container.queue.depth() == 0

    async def test_blank_notes_use_default_reason(self, container: ModerationContainer) -> None:
        result = await container.orchestrator.submit_report(submission())

        outcome = await container.orchestrator.process_review_action(
            result.workflow.id, "approve", performed_by="mod-1", notes="  "
        )

        assert outcome.decision is not None
        assert outcome.decision.reason == "User report validated"

    async def test_reassign_moves_queue_item(self, container: ModerationContainer) -> None:
        result = await container.orchestrator.submit_report(submission())
        item = (await container.orchestrator.get_queue())[0]
        await container.orchestrator.assign_to_moderator(item.id, "mod-1")

        outcome = await container.orchestrator.process_review_action(
            result.workflow.id, "reassign", performed_by="mod-1", assignee="mod-2"
        )

        moved = await container.orchestrator.get_queue_item(item.id)
        assert outcome.workflow.assigned_to == "mod-2"
        assert moved.assigned_to == "mod-2"
        assert moved.report.assigned_to == "mod-2"
        assert [i.id for i in await container.orchestrator.get_queue(assigned_to="mod-2")] == [
            item.id
        ]
        assert await container.orchestrator.get_queue(assigned_to="mod-1") == []

        retry = await container.orchestrator.assign_to_moderator(item.id, "mod-2")
        assert not retry.newly_assigned
        assert retry.item.assigned_to == "mod-2"

    async def test_unknown_action(self, container: ModerationContainer) -> None:
        result = await container.orchestrator.submit_report(submission())

        with pytest.raises(ValidationError):
            await container.orchestrator.process_review_action(result.workflow.id, "delete")


class TestAutoModeration:
    @pytest.fixture
    def auto_container(
        self, test_config: ModerationConfig, channel: NotificationChannelStub
    ) -> ModerationContainer:
        return build_moderation_container(
            config=replace(test_config, auto_moderation=True), channels=[channel]
        )

    async def test_only_eligible_items_are_decided(
        self, auto_container: ModerationContainer
    ) -> None:
        orchestrator = auto_container.orchestrator
        await orchestrator.analyze_text("you idiot", "flagged")
        await orchestrator.analyze_text("I will kill you", "needs-review")
        await orchestrator.submit_report(submission(content_id="reported"))

        decisions = await orchestrator.process_queue_once()

        assert [d.content_id for d in decisions] == ["flagged"]
        assert decisions[0].moderator_id == "auto-moderator"
        assert decisions[0].action is Action.FLAG
        remaining = {i.content_id for i in await orchestrator.get_queue()}
        assert remaining == {"needs-review", "reported"}

    async def test_assigned_items_are_left_alone(
        self, auto_container: ModerationContainer
    ) -> None:
        orchestrator = auto_container.orchestrator
        await orchestrator.analyze_text("you idiot", "flagged")
        item = (await orchestrator.get_queue())[0]
        await orchestrator.assign_to_moderator(item.id, "mod-1")

        assert await orchestrator.process_queue_once() == []

    async def test_disabled_auto_moderation_decides_nothing(
        self, container: ModerationContainer
    ) -> None:
        await container.orchestrator.analyze_text("you idiot", "flagged")

        assert await container.orchestrator.process_queue_once() == []
        assert container.queue.depth() == 1

    async def test_processor_follows_config(self, container: ModerationContainer) -> None:
        orchestrator = container.orchestrator

        await orchestrator.update_config(auto_moderation=True)
        assert orchestrator.is_processing

        await orchestrator.update_config(auto_moderation=False)
        assert not orchestrator.is_processing

    async def test_processor_drains_eligible_items(
        self, auto_container: ModerationContainer
    ) -> None:
        orchestrator = auto_container.orchestrator
        await orchestrator.analyze_text("you idiot", "flagged")

        await orchestrator.start_queue_processor()
        for _ in range(200):
            if auto_container.queue.depth() == 0:
                break
            await asyncio.sleep(0.01)
        await orchestrator.shutdown()

        assert auto_container.queue.depth() == 0
        assert not orchestrator.is_processing


class TestConfiguration:
    async def test_threshold_change_applies(self, container: ModerationContainer) -> None:
        await container.orchestrator.update_config(escalation_threshold=2)

        await container.orchestrator.submit_report(submission(reporter_id="a"))
        second = await container.orchestrator.submit_report(submission(reporter_id="b"))

        assert second.auto_escalated

    async def test_pool_change_reaches_assignment(
        self, container: ModerationContainer
    ) -> None:
        await container.orchestrator.update_config(auto_assign=True, moderator_pool=["zed"])

        result = await container.orchestrator.submit_report(submission())

        assert result.report.assigned_to == "zed"

    async def test_injected_strategy_is_shared(
        self, test_config: ModerationConfig, channel: NotificationChannelStub
    ) -> None:
        container = build_moderation_container(
            config=test_config,
            channels=[channel],
            assignment_strategy=LeastLoadedAssignmentStrategy,
        )

        await container.orchestrator.update_config(auto_assign=True, moderator_pool=["zed"])
        result = await container.orchestrator.submit_report(submission())

        assert isinstance(container.assignment_strategy, LeastLoadedAssignmentStrategy)
        assert container.assignment_strategy.moderators == ("zed",)
        assert result.report.assigned_to == "zed"

    async def test_unknown_option_rejected(self, container: ModerationContainer) -> None:
        before = container.orchestrator.get_config()

        with pytest.raises(ConfigurationError):
            await container.orchestrator.update_config(shadow_ban=True)

        assert container.orchestrator.get_config() == before

    async def test_invalid_value_rejected(self, container: ModerationContainer) -> None:
        with pytest.raises(ConfigurationError):
            await container.orchestrator.update_config(decision_ttl_days=0)

    async def test_update_is_audited(self, container: ModerationContainer) -> None:
        await container.orchestrator.update_config(actor="admin", decision_ttl_days=7)

        entries = container.audit_log.get_entries("config.updated")
        assert len(entries) == 1
        events = await container.orchestrator.get_events(event_type="moderation.config_updated")
        assert events[0].data["changes"] == {"decision_ttl_days": 7}


class TestAppeals:
    async def test_approved_appeal_supersedes(
        self, container: ModerationContainer, channel: NotificationChannelStub
    ) -> None:
        orchestrator = container.orchestrator
        decision = await orchestrator.make_decision(
            content_id="post-1", action=Action.REMOVE, reason="spam", moderator_id="mod-1"
        )
        appeal = await orchestrator.create_appeal(decision.id, "author-1", "not spam")

        resolution = await orchestrator.process_appeal(appeal.id, "approve", "mod-2")
        await orchestrator.drain_notifications()

        assert resolution.appeal.status is AppealStatus.RESOLVED
        assert resolution.decision.supersedes == decision.id
        assert await orchestrator.current_decision("post-1") == resolution.decision
        assert len(channel.sent_of_type(NotificationEventType.APPEAL)) == 2

    async def test_unknown_appeal_action(self, container: ModerationContainer) -> None:
        orchestrator = container.orchestrator
        decision = await orchestrator.make_decision(
            content_id="post-1", action=Action.REMOVE, reason="spam", moderator_id="mod-1"
        )
        appeal = await orchestrator.create_appeal(decision.id, "author-1", "not spam")

        with pytest.raises(ValidationError):
            await orchestrator.process_appeal(appeal.id, "maybe", "mod-2")


class TestProviders:
    async def test_register_and_remove(self, container: ModerationContainer) -> None:
        provider = StaticAnalysisProviderStub(
            "vision",
            flags=[
                Flag(
                    type="provider",
                    category="adult_content",
                    severity=Severity.MEDIUM,
                    message="nudity",
                )
            ],
        )

        replaced = await container.orchestrator.add_analysis_provider(provider)
        analysis = await container.orchestrator.analyze_text("hello", "c-1")

        assert not replaced
        assert await container.orchestrator.list_analysis_providers() == ["vision"]
        assert analysis.action is Action.FLAG

        await container.orchestrator.remove_analysis_provider("vision")
        with pytest.raises(AnalysisProviderNotFoundError):
            await container.orchestrator.remove_analysis_provider("vision")


class TestEventsAndStats:
    async def test_full_review_is_recorded(self, container: ModerationContainer) -> None:
        orchestrator = container.orchestrator
        result = await orchestrator.submit_report(submission())
        item = (await orchestrator.get_queue())[0]
        await orchestrator.assign_to_moderator(item.id, "mod-1")
        await orchestrator.process_review_action(result.workflow.id, "approve")

        actions = container.audit_log.actions()
        for action in ("report.submitted", "queue.assigned", "review.approve", "decision.made"):
            assert action in actions
        decisions = await orchestrator.get_events(event_type="moderation.decision_made")
        assert len(decisions) == 1
        related = await orchestrator.get_events(content_id="post-1")
        assert {r.event_type for r in related} >= {
            "moderation.report_submitted",
            "moderation.queue_item_changed",
            "moderation.decision_made",
        }

        stats = await orchestrator.get_stats()
        assert stats.total_decisions == 1
        assert stats.decisions_by_action == {"remove": 1}
        assert stats.reports.total_reports == 1
        assert stats.queue_depth == 0
