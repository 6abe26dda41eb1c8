"""Moderation orchestrator.

Public entry point of the pipeline. It wires content analysis, policy and
rule management, the review queue, report intake, review workflows,
the decision ledger and analytics into one contract. It also carries the
cross-cutting side effects of each operation:

- audit entries for every mutation
- typed events on the event bus
- fire-and-forget notifications
- metrics

The component services stay unaware of each other; all coordination
happens here. Queue items are mutated under a per-item lock. Automated
decisions, manual escalation and assignment are therefore serialized
for any one item.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any
from uuid import UUID

from structlog import get_logger

from moderation_pipeline.application.ports.audit_log import AuditLogProtocol
from moderation_pipeline.application.ports.content_analysis import (
    ContentAnalysisProviderProtocol,
)
from moderation_pipeline.application.ports.moderation_storage import (
    ModerationStorageProtocol,
)
from moderation_pipeline.application.ports.moderator_assignment import (
    ModeratorAssignmentStrategyProtocol,
)
from moderation_pipeline.application.ports.notifier import (
    NotificationEventType,
    NotificationPayload,
)
from moderation_pipeline.application.services.content_analysis_merger import (
    ContentAnalysisMerger,
)
from moderation_pipeline.application.services.decision_ledger_service import (
    AppealResolution,
    DecisionLedger,
)
from moderation_pipeline.application.services.keyed_lock import KeyedLock
from moderation_pipeline.application.services.moderation_analytics_service import (
    ModerationAnalyticsService,
)
from moderation_pipeline.application.services.moderation_event_bus import (
    ModerationEventBus,
)
from moderation_pipeline.application.services.notification_dispatcher import (
    NotificationDispatcher,
)
from moderation_pipeline.application.services.policy_rule_store import PolicyRuleStore
from moderation_pipeline.application.services.report_intake_service import (
    ReportIntakeResult,
    ReportIntakeService,
    ReportListResult,
    ReportQuery,
)
from moderation_pipeline.application.services.review_queue import (
    QueueAssignment,
    ReviewQueue,
)
from moderation_pipeline.application.services.review_workflow_service import (
    ReviewWorkflowService,
)
from moderation_pipeline.config.moderation_config import ModerationConfig
from moderation_pipeline.domain.errors.validation import ValidationError
from moderation_pipeline.domain.events.moderation import (
    AnalysisProviderChangedEvent,
    AppealCreatedEvent,
    AppealResolvedEvent,
    ChangeKind,
    ConfigUpdatedEvent,
    ContentAnalyzedEvent,
    DecisionMadeEvent,
    ModerationEvent,
    ModerationEventRecord,
    PolicyChangedEvent,
    QueueChange,
    QueueItemChangedEvent,
    ReportSubmittedEvent,
    ReportUpdatedEvent,
    ReviewActionProcessedEvent,
    RuleChangedEvent,
)
from moderation_pipeline.domain.models.appeal import Appeal, AppealAction
from moderation_pipeline.domain.models.decision import Decision
from moderation_pipeline.domain.models.moderation import (
    Action,
    Analysis,
    ContentType,
    Priority,
    Severity,
)
from moderation_pipeline.domain.models.policy import Policy, Rule, RuleCondition
from moderation_pipeline.domain.models.queue_item import QueueItem, QueueItemStatus
from moderation_pipeline.domain.models.report import Report, ReportSubmission
from moderation_pipeline.domain.models.review_workflow import (
    ResumeTrigger,
    ReviewAction,
    ReviewWorkflow,
)
from moderation_pipeline.domain.models.statistics import ModerationStats
from moderation_pipeline.domain.services.moderation_scoring import queue_priority
from moderation_pipeline.infrastructure.monitoring.metrics import ModerationMetrics

logger = get_logger(__name__)

AUTO_MODERATOR_ID = "auto-moderator"
REPORT_DECISION_CONFIDENCE = 0.9
DEFAULT_REPORT_ACTION = Action.REMOVE


@dataclass(frozen=True)
class ReviewOutcome:
    """Result of process_review_action.

    Attributes:
        workflow: Workflow after the action.
        report: Report after the action.
        decision: Decision recorded by an approve, otherwise None.
    """

    workflow: ReviewWorkflow
    report: Report
    decision: Decision | None = None


class ModerationOrchestrator:
    """Coordinates the moderation pipeline components."""

    def __init__(
        self,
        config: ModerationConfig,
        merger: ContentAnalysisMerger,
        policy_store: PolicyRuleStore,
        queue: ReviewQueue,
        intake: ReportIntakeService,
        workflow_service: ReviewWorkflowService,
        ledger: DecisionLedger,
        analytics: ModerationAnalyticsService,
        notifier: NotificationDispatcher,
        event_bus: ModerationEventBus,
        storage: ModerationStorageProtocol,
        audit_log: AuditLogProtocol,
        metrics: ModerationMetrics | None = None,
        assignment_strategy: ModeratorAssignmentStrategyProtocol | None = None,
    ) -> None:
        self._config = config
        self._merger = merger
        self._policy_store = policy_store
        self._queue = queue
        self._intake = intake
        self._workflow_service = workflow_service
        self._ledger = ledger
        self._analytics = analytics
        self._notifier = notifier
        self._event_bus = event_bus
        self._storage = storage
        self._audit_log = audit_log
        self._metrics = metrics
        self._assignment_strategy = assignment_strategy
        self._item_locks = KeyedLock()
        self._processing = False
        self._processor_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _publish(self, event: ModerationEvent) -> None:
        await self._event_bus.publish(event)

    async def _audit(
        self, action: str, metadata: Mapping[str, Any], actor: str | None = None
    ) -> None:
        await self._audit_log.log_action(action, metadata, actor)

    def _notify(
        self,
        event_type: NotificationEventType,
        subject: str,
        content_id: str | None = None,
        recipient_id: str | None = None,
        **data: Any,
    ) -> None:
        self._notifier.dispatch(
            event_type,
            NotificationPayload(
                subject=subject,
                content_id=content_id,
                recipient_id=recipient_id,
                data=data,
            ),
        )

    async def _queue_event(
        self, item: QueueItem, change: QueueChange, reason: str | None = None
    ) -> None:
        await self._publish(
            QueueItemChangedEvent(
                item_id=item.id,
                subject_content_id=item.content_id,
                change=change,
                priority=item.priority,
                assigned_to=item.assigned_to,
                reason=reason,
            )
        )

    async def _enqueue(
        self,
        analysis: Analysis,
        priority: Priority,
        report: Report | None = None,
    ) -> QueueItem:
        """Queue content for review, or raise the priority of its existing item."""
        existing = await self._queue.find_by_content(analysis.content_id)
        if existing:
            item = existing[0]
            if report is not None and item.report is None:
                item = await self._queue.replace_report(item.id, report)
            if priority.rank > item.priority.rank:
                item = await self._queue.raise_priority(item.id, priority)
                await self._queue_event(item, QueueChange.REPRIORITIZED)
            return item

        item = await self._queue.push(
            QueueItem(
                content_id=analysis.content_id,
                content_type=analysis.content_type,
                analysis=analysis,
                priority=priority,
                report=report,
            )
        )
        await self._queue_event(item, QueueChange.ADDED)
        return item

    async def _refresh_queued_report(self, report: Report) -> None:
        for item in await self._queue.find_by_content(report.content_id):
            if item.report_id == report.id:
                await self._queue.replace_report(item.id, report)

    async def _reassign_queued(self, report: Report, moderator_id: str | None) -> None:
        if moderator_id is None:
            await self._refresh_queued_report(report)
            return
        for item in await self._queue.find_by_content(report.content_id):
            async with self._item_locks.hold(item.id):
                item = await self._queue.reassign(item.id, moderator_id)
                if item.report_id == report.id:
                    item = await self._queue.replace_report(item.id, report)
            await self._queue_event(item, QueueChange.ASSIGNED, "reassigned")

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def _analyze(
        self, content: Any, content_type: ContentType, content_id: str | None
    ) -> Analysis:
        return await self._merger.analyze(
            content,
            content_type,
            self._policy_store.active_rules(),
            content_id=content_id,
            enabled=self._config.enabled,
            timeout_seconds=self._config.analysis_timeout_seconds,
        )

    async def analyze_content(
        self,
        content: Any,
        content_type: ContentType,
        content_id: str | None = None,
    ) -> Analysis:
        """Analyze content and act on the resulting action.

        flag notifies and queues for review when human review is required;
        review and escalate always queue; enforcement actions notify.
        Analysis never raises; a failure yields the safe analysis.
        """
        analysis = await self._analyze(content, content_type, content_id)
        await self._storage.save_analysis(analysis)
        await self._handle_analysis(analysis)
        await self._publish(
            ContentAnalyzedEvent(
                analysis_id=analysis.id,
                subject_content_id=analysis.content_id,
                content_type=analysis.content_type,
                action=analysis.action,
                score=analysis.score,
                severity=analysis.severity,
                safe=analysis.is_safe,
            )
        )
        return analysis

    async def analyze_text(self, text: str, content_id: str | None = None) -> Analysis:
        return await self.analyze_content(text, ContentType.TEXT, content_id)

    async def analyze_image(
        self, image: Mapping[str, Any] | str, content_id: str | None = None
    ) -> Analysis:
        """Analyze an image given as a URL or a mapping of image metadata."""
        return await self.analyze_content(image, ContentType.IMAGE, content_id)

    async def _handle_analysis(self, analysis: Analysis) -> None:
        action = analysis.action
        priority = queue_priority(analysis.severity, analysis.score)

        if action is Action.FLAG:
            self._notify_flag(analysis)
            if self._config.human_review_required:
                await self._enqueue(analysis, priority)
        elif action.requires_human():
            await self._enqueue(analysis, priority)
        elif action.is_enforcement():
            self._notify_flag(analysis)

    def _notify_flag(self, analysis: Analysis) -> None:
        self._notify(
            NotificationEventType.FLAG,
            f"Content {analysis.content_id} flagged: {analysis.action.value}",
            content_id=analysis.content_id,
            analysis_id=str(analysis.id),
            action=analysis.action.value,
            severity=analysis.severity.value,
            score=analysis.score,
        )

    # ------------------------------------------------------------------
    # Policies and rules
    # ------------------------------------------------------------------

    async def create_policy(
        self,
        name: str,
        rules: Iterable[UUID] = (),
        enabled: bool = True,
        description: str = "",
        actor: str | None = None,
    ) -> Policy:
        policy = self._policy_store.create_policy(name, rules, enabled, description)
        await self._audit(
            "policy.created", {"policy_id": str(policy.id), "name": policy.name}, actor
        )
        await self._publish(
            PolicyChangedEvent(policy_id=policy.id, change=ChangeKind.CREATED, name=policy.name)
        )
        return policy

    async def update_policy(
        self, policy_id: UUID, actor: str | None = None, **changes: Any
    ) -> Policy:
        policy = self._policy_store.update_policy(policy_id, **changes)
        await self._audit(
            "policy.updated",
            {"policy_id": str(policy_id), "fields": sorted(changes)},
            actor,
        )
        await self._publish(
            PolicyChangedEvent(policy_id=policy.id, change=ChangeKind.UPDATED, name=policy.name)
        )
        return policy

    async def delete_policy(self, policy_id: UUID, actor: str | None = None) -> Policy:
        policy = self._policy_store.delete_policy(policy_id)
        await self._audit("policy.deleted", {"policy_id": str(policy_id)}, actor)
        await self._publish(
            PolicyChangedEvent(policy_id=policy.id, change=ChangeKind.DELETED, name=policy.name)
        )
        return policy

    async def get_policy(self, policy_id: UUID) -> Policy:
        return self._policy_store.get_policy(policy_id)

    async def list_policies(self, enabled: bool | None = None) -> list[Policy]:
        return self._policy_store.list_policies(enabled)

    async def create_rule(
        self,
        name: str,
        category: str,
        severity: Severity,
        action: Action,
        conditions: Iterable[RuleCondition] = (),
        enabled: bool = True,
        description: str = "",
        actor: str | None = None,
    ) -> Rule:
        rule = self._policy_store.create_rule(
            name, category, severity, action, conditions, enabled, description
        )
        await self._audit(
            "rule.created",
            {"rule_id": str(rule.id), "name": rule.name, "category": rule.category},
            actor,
        )
        await self._publish(
            RuleChangedEvent(
                rule_id=rule.id, change=ChangeKind.CREATED, name=rule.name, enabled=rule.enabled
            )
        )
        return rule

    async def update_rule(self, rule_id: UUID, actor: str | None = None, **changes: Any) -> Rule:
        rule = self._policy_store.update_rule(rule_id, **changes)
        await self._audit(
            "rule.updated", {"rule_id": str(rule_id), "fields": sorted(changes)}, actor
        )
        await self._publish(
            RuleChangedEvent(
                rule_id=rule.id, change=ChangeKind.UPDATED, name=rule.name, enabled=rule.enabled
            )
        )
        return rule

    async def delete_rule(self, rule_id: UUID, actor: str | None = None) -> Rule:
        rule = self._policy_store.delete_rule(rule_id)
        await self._audit("rule.deleted", {"rule_id": str(rule_id)}, actor)
        await self._publish(
            RuleChangedEvent(
                rule_id=rule.id, change=ChangeKind.DELETED, name=rule.name, enabled=rule.enabled
            )
        )
        return rule

    async def get_rule(self, rule_id: UUID) -> Rule:
        return self._policy_store.get_rule(rule_id)

    async def list_rules(
        self,
        categories: Iterable[str] | None = None,
        severities: Iterable[Severity] | None = None,
        actions: Iterable[Action] | None = None,
        enabled: bool | None = None,
    ) -> list[Rule]:
        return self._policy_store.list_rules(categories, severities, actions, enabled)

    # ------------------------------------------------------------------
    # Review queue
    # ------------------------------------------------------------------

    async def get_queue(
        self,
        status: QueueItemStatus | None = None,
        assigned_to: str | None = None,
    ) -> list[QueueItem]:
        """Queue items in review order."""
        return await self._queue.list_items(status=status, assigned_to=assigned_to)

    async def get_queue_item(self, item_id: UUID) -> QueueItem:
        return await self._queue.get(item_id)

    async def assign_to_moderator(self, item_id: UUID, moderator_id: str) -> QueueAssignment:
        """Assign a queue item; the first caller wins.

        A successful assignment resumes the item's review workflow. A
        caller that loses the race gets newly_assigned=False along with
        the current holder.

        Raises:
            QueueItemNotFoundError: If the item is not queued.
            ValidationError: If moderator_id is blank.
        """
        if not moderator_id or not moderator_id.strip():
            raise ValidationError("moderator_id is required")
        log = logger.bind(item_id=str(item_id), moderator_id=moderator_id)

        async with self._item_locks.hold(item_id):
            assignment = await self._queue.assign(item_id, moderator_id)
            if not assignment.newly_assigned:
                log.info("queue_item_already_assigned", holder=assignment.item.assigned_to)
                return assignment

            item = assignment.item
            if item.workflow_id is not None:
                workflow = await self._workflow_service.get_workflow(item.workflow_id)
                if not workflow.is_terminal:
                    await self._workflow_service.resume(
                        workflow.id,
                        ResumeTrigger.ASSIGNED,
                        performed_by=moderator_id,
                        assignee=moderator_id,
                    )
                    report = await self._intake.get_report(workflow.report_id)
                    item = await self._queue.replace_report(item.id, report)
                    assignment = QueueAssignment(item=item, newly_assigned=True)

        log.info("queue_item_assigned")
        await self._audit(
            "queue.assigned",
            {"item_id": str(item_id), "content_id": item.content_id},
            moderator_id,
        )
        await self._queue_event(item, QueueChange.ASSIGNED)
        return assignment

    async def escalate_item(
        self, item_id: UUID, reason: str, performed_by: str | None = None
    ) -> QueueItem:
        """Escalate a queue item one priority level.

        Raises:
            QueueItemNotFoundError: If the item is not queued.
        """
        async with self._item_locks.hold(item_id):
            item = await self._queue.escalate(item_id, reason)

        self._notify(
            NotificationEventType.ESCALATION,
            f"Queue item for {item.content_id} escalated",
            content_id=item.content_id,
            item_id=str(item.id),
            priority=item.priority.value,
            escalation_level=item.escalation_level,
            reason=reason,
        )
        await self._audit(
            "queue.escalated",
            {"item_id": str(item_id), "reason": reason, "level": item.escalation_level},
            performed_by,
        )
        await self._queue_event(item, QueueChange.ESCALATED, reason)
        return item

    async def cancel_queue_item(self, item_id: UUID, actor: str | None = None) -> QueueItem:
        """Withdraw an unassigned item.

        Raises:
            QueueItemNotFoundError: If the item is not queued.
            QueueItemNotCancellableError: If a moderator holds the item.
        """
        async with self._item_locks.hold(item_id):
            item = await self._queue.cancel(item_id)
        await self._audit(
            "queue.cancelled", {"item_id": str(item_id), "content_id": item.content_id}, actor
        )
        await self._queue_event(item, QueueChange.CANCELLED)
        return item

    # ------------------------------------------------------------------
    # Reports and workflows
    # ------------------------------------------------------------------

    async def submit_report(self, submission: ReportSubmission) -> ReportIntakeResult:
        """Accept a user report and queue its content for review.

        Raises:
            ReportValidationError: If required fields are missing.
        """
        result = await self._intake.submit(submission)
        report = result.report
        log = logger.bind(report_id=str(report.id), content_id=report.content_id)

        analysis = await self._analyze(report.content, report.content_type, report.content_id)
        analysis = self._merger.attach_report_flag(analysis, report)
        await self._storage.save_analysis(analysis)
        report = await self._intake.attach_analysis(report.id, analysis)

        priority = report.priority
        analysis_priority = queue_priority(analysis.severity, analysis.score)
        if analysis_priority.rank > priority.rank:
            priority = analysis_priority
        item = await self._enqueue(analysis, priority, report)

        self._notify(
            NotificationEventType.REPORT,
            f"New report on {report.content_id}",
            content_id=report.content_id,
            report_id=str(report.id),
            reporter_id=report.reporter_id,
            severity=report.severity.value,
            priority=report.priority.value,
            auto_escalated=result.auto_escalated,
        )
        await self._audit(
            "report.submitted",
            {
                "report_id": str(report.id),
                "content_id": report.content_id,
                "related_reports": [str(r) for r in report.related_reports],
                "auto_escalated": result.auto_escalated,
            },
            report.reporter_id,
        )
        if self._metrics is not None:
            self._metrics.record_report(result.auto_escalated)
        await self._publish(
            ReportSubmittedEvent(
                report_id=report.id,
                workflow_id=result.workflow.id,
                subject_content_id=report.content_id,
                reporter_id=report.reporter_id,
                severity=report.severity,
                priority=report.priority,
                related_reports=report.related_reports,
                auto_escalated=result.auto_escalated,
            )
        )
        log.info("report_queued", item_id=str(item.id), priority=item.priority.value)
        return replace(result, report=report)

    async def process_review_action(
        self,
        workflow_id: UUID,
        action: ReviewAction | str,
        performed_by: str | None = None,
        notes: str | None = None,
        assignee: str | None = None,
    ) -> ReviewOutcome:
        """Apply a reviewer action and carry out its consequences.

        approve records a decision against the report's recommended action
        (default remove) and clears the content from the queue. The decision
        is recorded before the workflow and report are stored, so a failed
        approve leaves both untouched. escalate escalates the content's
        queue item and notifies. request_more_info asks the reporter for
        more information. reassign hands the content's queue items to the
        new assignee.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
            WorkflowAlreadyTerminalError: If the workflow is finished.
            InvalidWorkflowTransitionError: If the action is not allowed now.
            ValidationError: If the action is unknown, performed_by is blank,
                or reassign lacks an assignee.
            ConcurrentModificationError: If another writer won the race.
        """
        if not isinstance(action, ReviewAction):
            try:
                action = ReviewAction(action)
            except ValueError as exc:
                raise ValidationError(f"Unknown review action: {action!r}") from exc

        recorded: list[Decision] = []

        async def record_approval(workflow: ReviewWorkflow, report: Report) -> None:
            # Runs before the workflow is stored; a rejected decision writes nothing.
            recorded.append(
                await self._ledger.record_decision(
                    content_id=report.content_id,
                    action=report.recommended_action or DEFAULT_REPORT_ACTION,
                    reason=(notes or "").strip() or "User report validated",
                    confidence=REPORT_DECISION_CONFIDENCE,
                    moderator_id=workflow.history[-1].performed_by,
                    analysis_id=report.analysis.id if report.analysis else None,
                    report_id=report.id,
                )
            )

        result = await self._workflow_service.apply_action(
            workflow_id,
            action,
            performed_by,
            notes,
            assignee,
            before_commit=record_approval if action is ReviewAction.APPROVE else None,
        )
        workflow, report = result.workflow, result.report
        actor = workflow.history[-1].performed_by
        decision: Decision | None = None

        if action is ReviewAction.APPROVE:
            decision = recorded[0]
            await self._decision_recorded(decision)
        elif action is ReviewAction.ESCALATE:
            for item in await self._queue.find_by_content(report.content_id):
                async with self._item_locks.hold(item.id):
                    escalated = await self._queue.escalate(
                        item.id, notes or "workflow escalated", release=True
                    )
                await self._queue_event(escalated, QueueChange.ESCALATED, notes)
            await self._refresh_queued_report(report)
            self._notify(
                NotificationEventType.ESCALATION,
                f"Report {report.id} escalated",
                content_id=report.content_id,
                report_id=str(report.id),
                workflow_id=str(workflow.id),
                escalated_by=actor,
                notes=notes,
            )
        elif action is ReviewAction.REQUEST_MORE_INFO:
            await self._refresh_queued_report(report)
            self._notify(
                NotificationEventType.REPORT,
                f"More information requested for report {report.id}",
                content_id=report.content_id,
                recipient_id=report.reporter_id,
                kind="info_requested",
                report_id=str(report.id),
                notes=notes,
            )
        elif action is ReviewAction.REJECT:
            self._notify(
                NotificationEventType.RESOLUTION,
                f"Report {report.id} rejected",
                content_id=report.content_id,
                recipient_id=report.reporter_id,
                report_id=str(report.id),
                outcome="rejected",
            )
        else:
            await self._reassign_queued(report, workflow.assigned_to)

        await self._audit(
            f"review.{action.value}",
            {
                "workflow_id": str(workflow.id),
                "report_id": str(report.id),
                "from_status": result.previous_status.value,
                "to_status": workflow.status.value,
                "notes": notes,
            },
            actor,
        )
        await self._publish(
            ReviewActionProcessedEvent(
                workflow_id=workflow.id,
                report_id=report.id,
                subject_content_id=report.content_id,
                action=action.value,
                from_status=result.previous_status.value,
                to_status=workflow.status.value,
                performed_by=actor,
            )
        )
        return ReviewOutcome(workflow=workflow, report=report, decision=decision)

    async def update_report(
        self, report_id: UUID, actor: str | None = None, **changes: Any
    ) -> Report:
        report = await self._intake.update_report(report_id, **changes)
        await self._refresh_queued_report(report)
        await self._audit(
            "report.updated", {"report_id": str(report_id), "fields": sorted(changes)}, actor
        )
        await self._publish(
            ReportUpdatedEvent(
                report_id=report.id,
                subject_content_id=report.content_id,
                changed_fields=tuple(sorted(changes)),
            )
        )
        return report

    async def get_report(self, report_id: UUID) -> Report:
        return await self._intake.get_report(report_id)

    async def list_reports(self, query: ReportQuery | None = None) -> ReportListResult:
        return await self._intake.list_reports(query)

    async def get_user_reports(self, reporter_id: str) -> list[Report]:
        return await self._intake.get_user_reports(reporter_id)

    async def get_similar_reports(self, report_id: UUID) -> list[Report]:
        return await self._intake.get_similar_reports(report_id)

    async def add_report_evidence(
        self,
        report_id: UUID,
        evidence: Sequence[str],
        performed_by: str | None = None,
    ) -> Report:
        """Attach evidence; a workflow waiting for information resumes."""
        report = await self._intake.add_evidence(report_id, evidence, performed_by)
        await self._refresh_queued_report(report)
        await self._audit(
            "report.evidence_added",
            {"report_id": str(report_id), "count": len(evidence)},
            performed_by,
        )
        await self._publish(
            ReportUpdatedEvent(
                report_id=report.id,
                subject_content_id=report.content_id,
                changed_fields=("evidence",),
            )
        )
        return report

    async def get_workflow(self, workflow_id: UUID) -> ReviewWorkflow:
        return await self._workflow_service.get_workflow(workflow_id)

    # ------------------------------------------------------------------
    # Decisions and appeals
    # ------------------------------------------------------------------

    async def make_decision(
        self,
        content_id: str,
        action: Action,
        reason: str,
        moderator_id: str,
        confidence: float = 1.0,
        analysis_id: UUID | None = None,
        report_id: UUID | None = None,
    ) -> Decision:
        """Record a decision and clear the content from the review queue.

        Raises:
            ValidationError: If required fields are blank or confidence is invalid.
        """
        decision = await self._ledger.record_decision(
            content_id=content_id,
            action=action,
            reason=reason,
            confidence=confidence,
            moderator_id=moderator_id,
            analysis_id=analysis_id,
            report_id=report_id,
        )
        await self._decision_recorded(decision)
        return decision

    async def _decision_recorded(self, decision: Decision) -> None:
        """Clear the decided content from the queue and announce the decision."""
        content_id, action = decision.content_id, decision.action
        moderator_id, report_id = decision.moderator_id, decision.report_id
        for item in await self._queue.remove_for_content(content_id):
            await self._queue_event(item, QueueChange.REMOVED, "decision recorded")

        self._notify(
            NotificationEventType.RESOLUTION,
            f"Decision on {content_id}: {action.value}",
            content_id=content_id,
            decision_id=str(decision.id),
            action=action.value,
            moderator_id=moderator_id,
        )
        await self._audit(
            "decision.made",
            {
                "decision_id": str(decision.id),
                "content_id": content_id,
                "action": action.value,
                "report_id": str(report_id) if report_id else None,
            },
            moderator_id,
        )
        if self._metrics is not None:
            self._metrics.record_decision(action.value)
        await self._publish(
            DecisionMadeEvent(
                decision_id=decision.id,
                subject_content_id=content_id,
                action=action,
                moderator_id=moderator_id,
            )
        )

    async def get_decision(self, decision_id: UUID) -> Decision:
        return await self._ledger.get_decision(decision_id)

    async def list_decisions(
        self,
        content_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Decision]:
        return await self._ledger.list_decisions(content_id, start, end)

    async def current_decision(self, content_id: str) -> Decision | None:
        return await self._ledger.current_decision(content_id)

    async def create_appeal(
        self,
        decision_id: UUID,
        appellant_id: str,
        reason: str,
        description: str | None = None,
        evidence: Sequence[str] = (),
    ) -> Appeal:
        appeal = await self._ledger.create_appeal(
            decision_id, appellant_id, reason, description, evidence
        )
        decision = await self._ledger.get_decision(decision_id)
        self._notify(
            NotificationEventType.APPEAL,
            f"Appeal filed against decision {decision_id}",
            content_id=decision.content_id,
            appeal_id=str(appeal.id),
            decision_id=str(decision_id),
            appellant_id=appellant_id,
        )
        await self._audit(
            "appeal.created",
            {"appeal_id": str(appeal.id), "decision_id": str(decision_id)},
            appellant_id,
        )
        await self._publish(
            AppealCreatedEvent(
                appeal_id=appeal.id,
                decision_id=decision_id,
                subject_content_id=decision.content_id,
                appellant_id=appellant_id,
            )
        )
        return appeal

    async def update_appeal(
        self,
        appeal_id: UUID,
        description: str | None = None,
        evidence: Sequence[str] = (),
        actor: str | None = None,
    ) -> Appeal:
        appeal = await self._ledger.update_appeal(appeal_id, description, evidence)
        await self._audit(
            "appeal.updated",
            {"appeal_id": str(appeal_id), "evidence_added": len(evidence)},
            actor,
        )
        return appeal

    async def get_appeal(self, appeal_id: UUID) -> Appeal:
        return await self._ledger.get_appeal(appeal_id)

    async def list_appeals(
        self,
        decision_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Appeal]:
        return await self._ledger.list_appeals(decision_id, start, end)

    async def process_appeal(
        self,
        appeal_id: UUID,
        action: AppealAction | str,
        moderator_id: str,
        notes: str | None = None,
        new_action: Action | None = None,
    ) -> AppealResolution:
        """Approve (supersede) or reject (uphold) an appeal.

        Raises:
            AppealNotFoundError: If the appeal does not exist.
            AppealAlreadyResolvedError: If the appeal is already closed.
            ValidationError: If the action is unknown.
        """
        if not isinstance(action, AppealAction):
            try:
                action = AppealAction(action)
            except ValueError as exc:
                raise ValidationError(f"Unknown appeal action: {action!r}") from exc

        resolution = await self._ledger.process_appeal(
            appeal_id, action, moderator_id, notes, new_action
        )
        appeal, decision = resolution.appeal, resolution.decision
        original = await self._ledger.get_decision(appeal.decision_id)

        if decision is not None:
            if self._metrics is not None:
                self._metrics.record_decision(decision.action.value)
            await self._publish(
                DecisionMadeEvent(
                    decision_id=decision.id,
                    subject_content_id=decision.content_id,
                    action=decision.action,
                    moderator_id=moderator_id,
                    supersedes=decision.supersedes,
                )
            )

        self._notify(
            NotificationEventType.APPEAL,
            f"Appeal {appeal.id} {appeal.status.value}",
            content_id=original.content_id,
            recipient_id=appeal.appellant_id,
            appeal_id=str(appeal.id),
            outcome=appeal.status.value,
            resolution_decision_id=str(decision.id) if decision else None,
        )
        await self._audit(
            "appeal.processed",
            {
                "appeal_id": str(appeal.id),
                "action": action.value,
                "resolution_decision_id": str(decision.id) if decision else None,
            },
            moderator_id,
        )
        await self._publish(
            AppealResolvedEvent(
                appeal_id=appeal.id,
                decision_id=appeal.decision_id,
                subject_content_id=original.content_id,
                status=appeal.status.value,
                resolution_decision_id=decision.id if decision else None,
            )
        )
        return resolution

    # ------------------------------------------------------------------
    # Analytics and events
    # ------------------------------------------------------------------

    async def get_stats(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> ModerationStats:
        return await self._analytics.get_stats(start, end)

    async def get_user_reputation(self, user_id: str) -> int:
        return await self._analytics.get_user_reputation(user_id)

    async def get_events(
        self,
        event_type: str | None = None,
        content_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[ModerationEventRecord]:
        """Stored event records, newest first."""
        return await self._storage.list_events(event_type, content_id, start, end, limit)

    # ------------------------------------------------------------------
    # Analysis providers
    # ------------------------------------------------------------------

    async def add_analysis_provider(self, provider: ContentAnalysisProviderProtocol) -> bool:
        """Register a provider. Returns True if one of that name was replaced."""
        replaced = self._merger.add_provider(provider)
        change = ChangeKind.UPDATED if replaced else ChangeKind.CREATED
        await self._audit("provider.registered", {"name": provider.name, "replaced": replaced})
        await self._publish(AnalysisProviderChangedEvent(provider_name=provider.name, change=change))
        return replaced

    async def remove_analysis_provider(self, name: str) -> None:
        """Raises AnalysisProviderNotFoundError for an unknown name."""
        self._merger.remove_provider(name)
        await self._audit("provider.removed", {"name": name})
        await self._publish(
            AnalysisProviderChangedEvent(provider_name=name, change=ChangeKind.DELETED)
        )

    async def list_analysis_providers(self) -> list[str]:
        return self._merger.provider_names()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def get_config(self) -> ModerationConfig:
        return self._config

    async def update_config(self, actor: str | None = None, **changes: Any) -> ModerationConfig:
        """Apply configuration changes to every component.

        max_events only takes effect when storage is next constructed.

        Raises:
            ConfigurationError: If an option is unknown or a value is invalid.
        """
        config = self._config.with_updates(**changes)
        self._config = config

        self._intake.configure(
            escalation_threshold=config.escalation_threshold,
            auto_assign=config.auto_assign,
        )
        self._ledger.set_ttl_days(config.decision_ttl_days)
        self._notifier.configure(
            max_retries=config.notification_max_retries,
            backoff_seconds=config.notification_backoff_seconds,
        )
        if "moderator_pool" in changes and self._assignment_strategy is not None:
            self._assignment_strategy.set_moderators(config.moderator_pool)

        if config.auto_moderation and not self._processing:
            await self.start_queue_processor()
        elif not config.auto_moderation and self._processing:
            await self.stop_queue_processor()

        applied = {k: v for k, v in config.to_dict().items() if k in changes}
        logger.info("moderation_config_updated", changes=applied)
        await self._audit("config.updated", applied, actor)
        await self._publish(ConfigUpdatedEvent(changes=applied))
        return config

    # ------------------------------------------------------------------
    # Queue processing
    # ------------------------------------------------------------------

    def _auto_eligible(self, item: QueueItem) -> bool:
        if item.status is not QueueItemStatus.PENDING or item.is_assigned:
            return False
        if item.analysis.action.requires_human():
            return False
        if item.report is not None and self._config.human_review_required:
            return False
        return True

    async def process_queue_once(self) -> list[Decision]:
        """Decide every eligible item once, in queue order.

        Does nothing unless auto_moderation is on. Each item is handled
        under its lock and re-checked first, so items assigned or
        escalated in the meantime are left alone.
        """
        if not self._config.auto_moderation:
            return []

        decisions: list[Decision] = []
        for candidate in await self._queue.list_items(status=QueueItemStatus.PENDING):
            if not self._auto_eligible(candidate):
                continue
            async with self._item_locks.hold(candidate.id):
                current = next(
                    (
                        i
                        for i in await self._queue.find_by_content(candidate.content_id)
                        if i.id == candidate.id
                    ),
                    None,
                )
                if current is None or not self._auto_eligible(current):
                    continue
                analysis = current.analysis
                decision = await self.make_decision(
                    content_id=current.content_id,
                    action=analysis.action,
                    reason=(
                        f"Automated decision: {analysis.action.value} "
                        f"(score {analysis.score:.2f}, {analysis.severity.value})"
                    ),
                    moderator_id=AUTO_MODERATOR_ID,
                    confidence=analysis.confidence.score,
                    analysis_id=analysis.id,
                    report_id=current.report_id,
                )
            decisions.append(decision)
            await asyncio.sleep(self._config.queue_item_delay_seconds)

        if decisions:
            logger.info("queue_auto_moderated", decided=len(decisions))
        return decisions

    @property
    def is_processing(self) -> bool:
        return self._processing

    async def start_queue_processor(self) -> None:
        """Start the background loop draining eligible queue items."""
        if self._processing:
            logger.warning("queue_processor_already_running")
            return
        self._processing = True
        self._processor_task = asyncio.create_task(self._processor_loop())
        logger.info(
            "queue_processor_started",
            poll_interval_seconds=self._config.queue_poll_interval_seconds,
        )

    async def stop_queue_processor(self) -> None:
        if not self._processing:
            return
        self._processing = False
        if self._processor_task is not None:
            self._processor_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._processor_task
            self._processor_task = None
        logger.info("queue_processor_stopped")

    async def _processor_loop(self) -> None:
        while self._processing:
            decided: list[Decision] = []
            try:
                decided = await self.process_queue_once()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.error("queue_processing_failed", error=str(exc), exc_info=True)

            if not decided:
                try:
                    await asyncio.sleep(self._config.queue_poll_interval_seconds)
                except asyncio.CancelledError:
                    break

    async def drain_notifications(self) -> None:
        await self._notifier.drain()

    async def shutdown(self) -> None:
        """Stop background work and flush pending notifications."""
        await self.stop_queue_processor()
        await self._notifier.drain()
        logger.info("moderation_orchestrator_shutdown")

    @property
    def event_bus(self) -> ModerationEventBus:
        return self._event_bus
