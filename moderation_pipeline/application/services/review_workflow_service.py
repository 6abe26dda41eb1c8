"""Review workflow service.

Drives ReviewWorkflow transitions and keeps the backing Report in step.
Each mutation runs under the workflow's lock, then the report's lock,
and is persisted with a compare-and-set on the workflow version. Losing
a race therefore yields either WorkflowAlreadyTerminalError (the winner
finished the workflow) or ConcurrentModificationError (a writer outside
this process got there first). The state is never silently overwritten.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

from structlog import get_logger

from moderation_pipeline.application.ports.report_repository import (
    ReportRepositoryProtocol,
)
from moderation_pipeline.application.ports.workflow_repository import (
    WorkflowRepositoryProtocol,
)
from moderation_pipeline.application.services.keyed_lock import KeyedLock
from moderation_pipeline.domain.errors.not_found import (
    ReportNotFoundError,
    WorkflowNotFoundError,
)
from moderation_pipeline.domain.models.moderation import Priority
from moderation_pipeline.domain.models.report import Report, ReportStatus
from moderation_pipeline.domain.models.review_workflow import (
    SYSTEM_ACTOR,
    ResumeTrigger,
    ReviewAction,
    ReviewWorkflow,
    WorkflowStatus,
    generate_review_steps,
)

logger = get_logger(__name__)

TransitionHook = Callable[[ReviewWorkflow, Report], Awaitable[None]]


@dataclass(frozen=True)
class ReviewActionResult:
    """Outcome of a reviewer action.

    Attributes:
        workflow: Workflow after the transition.
        report: Report after the transition.
        action: The action applied.
        previous_status: Workflow status before the transition.
    """

    workflow: ReviewWorkflow
    report: Report
    action: ReviewAction
    previous_status: WorkflowStatus


class ReviewWorkflowService:
    """Creates workflows and applies reviewer actions and resume triggers."""

    def __init__(
        self,
        workflow_repo: WorkflowRepositoryProtocol,
        report_repo: ReportRepositoryProtocol,
        report_locks: KeyedLock | None = None,
    ) -> None:
        self._workflow_repo = workflow_repo
        self._report_repo = report_repo
        self._locks = KeyedLock()
        self._report_locks = report_locks if report_locks is not None else KeyedLock()

    @property
    def report_locks(self) -> KeyedLock:
        """Per-report locks shared by every writer of Report records.

        Always taken after a workflow lock, never before one.
        """
        return self._report_locks

    async def create_workflow(self, report: Report) -> ReviewWorkflow:
        """Create the single workflow for a report.

        Raises:
            DuplicateRecordError: If the report already has a workflow.
        """
        workflow = ReviewWorkflow(
            report_id=report.id,
            priority=report.priority,
            steps=generate_review_steps(report.severity, report.escalated),
            assigned_to=report.assigned_to,
        )
        await self._workflow_repo.add(workflow)
        logger.info(
            "review_workflow_created",
            workflow_id=str(workflow.id),
            report_id=str(report.id),
            priority=workflow.priority.value,
            steps=len(workflow.steps),
        )
        return workflow

    async def get_workflow(self, workflow_id: UUID) -> ReviewWorkflow:
        """Raises WorkflowNotFoundError for an unknown id."""
        workflow = await self._workflow_repo.get(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        return workflow

    async def get_by_report(self, report_id: UUID) -> ReviewWorkflow | None:
        return await self._workflow_repo.get_by_report(report_id)

    async def list_workflows(
        self,
        status: WorkflowStatus | None = None,
        assigned_to: str | None = None,
    ) -> list[ReviewWorkflow]:
        return [
            w
            for w in await self._workflow_repo.list_all()
            if (status is None or w.status is status)
            and (assigned_to is None or w.assigned_to == assigned_to)
        ]

    async def _report_for(self, workflow: ReviewWorkflow) -> Report:
        report = await self._report_repo.get(workflow.report_id)
        if report is None:
            raise ReportNotFoundError(workflow.report_id)
        return report

    async def apply_action(
        self,
        workflow_id: UUID,
        action: ReviewAction,
        performed_by: str | None = None,
        notes: str | None = None,
        assignee: str | None = None,
        before_commit: TransitionHook | None = None,
    ) -> ReviewActionResult:
        """Apply a reviewer action to a workflow and its report.

        Args:
            workflow_id: Workflow to act on.
            action: Reviewer action.
            performed_by: Acting moderator.
            notes: Optional notes, recorded in history.
            assignee: Target moderator for reassign.
            before_commit: Awaited with the new workflow and report before
                either is stored. If it raises, nothing is written.

        Returns:
            ReviewActionResult with the new workflow and report.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
            ReportNotFoundError: If the backing report is gone.
            WorkflowAlreadyTerminalError: If the workflow is completed or rejected.
            InvalidWorkflowTransitionError: If the action is not allowed now.
            ValidationError: If performed_by is blank or reassign has no assignee.
            ConcurrentModificationError: If the stored version moved underneath.
        """
        log = logger.bind(workflow_id=str(workflow_id), action=action.value)

        async with self._locks.hold(workflow_id):
            workflow = await self.get_workflow(workflow_id)
            updated = workflow.apply(action, performed_by, notes, assignee)
            actor = updated.history[-1].performed_by

            async with self._report_locks.hold(workflow.report_id):
                report = await self._report_for(workflow)
                report = self._report_after(report, updated, action, actor, notes)
                if before_commit is not None:
                    await before_commit(updated, report)
                await self._workflow_repo.update(updated, expected_version=workflow.version)
                await self._report_repo.save(report)

        log.info(
            "review_action_processed",
            report_id=str(report.id),
            from_status=workflow.status.value,
            to_status=updated.status.value,
            performed_by=actor,
        )
        return ReviewActionResult(
            workflow=updated,
            report=report,
            action=action,
            previous_status=workflow.status,
        )

    @staticmethod
    def _report_after(
        report: Report,
        workflow: ReviewWorkflow,
        action: ReviewAction,
        actor: str,
        notes: str | None,
    ) -> Report:
        if action is ReviewAction.APPROVE:
            return report.with_status(ReportStatus.RESOLVED).with_resolution_note(
                f"Approved: {notes or 'User report validated'}", actor
            )
        if action is ReviewAction.REJECT:
            return report.with_status(ReportStatus.REJECTED).with_resolution_note(
                f"Rejected: {notes or 'No violation found'}", actor
            )
        if action is ReviewAction.ESCALATE:
            return report.mark_escalated()
        if action is ReviewAction.REASSIGN:
            return report.with_assignee(workflow.assigned_to)
        return report.with_status(ReportStatus.UNDER_REVIEW)

    async def resume(
        self,
        workflow_id: UUID,
        trigger: ResumeTrigger,
        performed_by: str | None = None,
        notes: str | None = None,
        assignee: str | None = None,
    ) -> ReviewWorkflow:
        """Return a workflow to in_progress after assignment or new information.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
            WorkflowAlreadyTerminalError: If the workflow is completed or rejected.
            ConcurrentModificationError: If the stored version moved underneath.
        """
        async with self._locks.hold(workflow_id):
            workflow = await self.get_workflow(workflow_id)
            updated = workflow.resume(trigger, performed_by, notes, assignee)
            if updated is workflow:
                return workflow
            await self._workflow_repo.update(updated, expected_version=workflow.version)

            async with self._report_locks.hold(workflow.report_id):
                report = await self._report_repo.get(workflow.report_id)
                if report is not None:
                    report = report.with_updates(
                        status=ReportStatus.UNDER_REVIEW,
                        assigned_to=updated.assigned_to,
                    )
                    await self._report_repo.save(report)

        logger.info(
            "review_workflow_resumed",
            workflow_id=str(workflow_id),
            trigger=trigger.value,
            from_status=workflow.status.value,
            to_status=updated.status.value,
            assigned_to=updated.assigned_to,
            performed_by=performed_by or SYSTEM_ACTOR,
        )
        return updated

    async def update_priority(self, workflow_id: UUID, priority: Priority) -> ReviewWorkflow:
        """Set the workflow priority, mirroring its report."""
        async with self._locks.hold(workflow_id):
            workflow = await self.get_workflow(workflow_id)
            updated = workflow.with_priority(priority)
            if updated is not workflow:
                await self._workflow_repo.update(
                    updated, expected_version=workflow.version
                )
        return updated
