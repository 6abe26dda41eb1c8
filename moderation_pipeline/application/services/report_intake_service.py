"""Report intake and deduplication.

Submission is validated up front, before anything is stored. The rest of
intake runs under a lock keyed on (content_id, content_type):

1. The new report is linked to every non-rejected report on the same content.
2. The oldest of those (the primary) links back to it.
3. Once the linked count reaches the escalation threshold, the new
   report and the primary are raised to at least HIGH severity and
   priority. They are not marked escalated; that flag is reserved for
   explicit escalation.
4. Optionally a moderator is chosen by the assignment strategy.
5. The report's review workflow is created.

Every Report write also holds that report's lock, which is shared with
ReviewWorkflowService, so intake never overwrites a reviewer's change.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from structlog import get_logger

from moderation_pipeline.application.ports.moderator_assignment import (
    ModeratorAssignmentStrategyProtocol,
)
from moderation_pipeline.application.ports.report_repository import (
    ReportRepositoryProtocol,
)
from moderation_pipeline.application.services.keyed_lock import KeyedLock
from moderation_pipeline.application.services.review_workflow_service import (
    ReviewWorkflowService,
)
from moderation_pipeline.domain.errors.not_found import ReportNotFoundError
from moderation_pipeline.domain.errors.validation import (
    ReportValidationError,
    ValidationError,
)
from moderation_pipeline.domain.models.moderation import (
    Analysis,
    ContentType,
    Priority,
    Severity,
    category_value,
)
from moderation_pipeline.domain.models.report import (
    Report,
    ReportStatus,
    ReportSubmission,
    ReportType,
)
from moderation_pipeline.domain.models.review_workflow import (
    ResumeTrigger,
    ReviewWorkflow,
    WorkflowStatus,
    normalize_actor,
)

logger = get_logger(__name__)

DEFAULT_ESCALATION_THRESHOLD = 3
DEFAULT_LIMIT = 50
MAX_LIMIT = 500

SORT_FIELDS = frozenset({"created_at", "updated_at", "priority", "severity"})
SORT_ORDERS = frozenset({"asc", "desc"})

# status is not editable; it only moves through review actions.
EDITABLE_REPORT_FIELDS = frozenset(
    {
        "type",
        "severity",
        "category",
        "priority",
        "assigned_to",
        "description",
        "recommended_action",
        "reported_user_id",
    }
)


@dataclass(frozen=True)
class ReportIntakeResult:
    """Outcome of a report submission.

    Attributes:
        report: The stored report, linked to its workflow.
        workflow: The report's review workflow.
        related: Earlier non-rejected reports on the same content, primary first.
        primary: The primary report after linking, if there was one.
        auto_escalated: Whether the duplicate threshold was reached.
    """

    report: Report
    workflow: ReviewWorkflow
    related: tuple[Report, ...] = ()
    primary: Report | None = None
    auto_escalated: bool = False


@dataclass(frozen=True)
class ReportQuery:
    """Filters, ordering and paging for report listing."""

    status: ReportStatus | None = None
    type: ReportType | None = None
    severity: Severity | None = None
    category: str | None = None
    reporter_id: str | None = None
    assigned_to: str | None = None
    content_id: str | None = None
    escalated: bool | None = None
    start: datetime | None = None
    end: datetime | None = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    def validate(self) -> None:
        errors = []
        if self.sort_by not in SORT_FIELDS:
            errors.append(f"sort_by must be one of {sorted(SORT_FIELDS)}")
        if self.sort_order not in SORT_ORDERS:
            errors.append("sort_order must be 'asc' or 'desc'")
        if not 1 <= self.limit <= MAX_LIMIT:
            errors.append(f"limit must be between 1 and {MAX_LIMIT}")
        if self.offset < 0:
            errors.append("offset must be non-negative")
        if errors:
            raise ValidationError(errors)

    def matches(self, report: Report) -> bool:
        return (
            (self.status is None or report.status is self.status)
            and (self.type is None or report.type is self.type)
            and (self.severity is None or report.severity is self.severity)
            and (self.category is None or report.category == category_value(self.category))
            and (self.reporter_id is None or report.reporter_id == self.reporter_id)
            and (self.assigned_to is None or report.assigned_to == self.assigned_to)
            and (self.content_id is None or report.content_id == self.content_id)
            and (self.escalated is None or report.escalated is self.escalated)
        )


@dataclass(frozen=True)
class ReportListResult:
    reports: list[Report] = field(default_factory=list)
    total: int = 0
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.reports) < self.total


def _sort_key(sort_by: str):
    if sort_by == "priority":
        return lambda r: (r.priority.rank, r.created_at)
    if sort_by == "severity":
        return lambda r: (r.severity.rank, r.created_at)
    return lambda r: getattr(r, sort_by)


def validate_submission(submission: ReportSubmission) -> ContentType:
    """Check required fields, reporting every problem at once.

    Returns:
        The submission's content type, coerced to ContentType.

    Raises:
        ReportValidationError: If any required field is missing or invalid.
    """
    errors: list[str] = []
    if submission.content is None:
        errors.append("content is required")
    if not submission.content_id or not str(submission.content_id).strip():
        errors.append("content_id is required")
    content_type: ContentType | None = None
    if submission.content_type is None:
        errors.append("content_type is required")
    else:
        try:
            content_type = ContentType(submission.content_type)
        except ValueError:
            errors.append(f"content_type {submission.content_type!r} is not supported")
    if not submission.reporter_id or not submission.reporter_id.strip():
        errors.append("reporter_id is required")
    if not submission.reason or not submission.reason.strip():
        errors.append("reason must not be blank")
    if errors or content_type is None:
        raise ReportValidationError(errors)
    return content_type


class ReportIntakeService:
    """Accepts, deduplicates and maintains user reports."""

    def __init__(
        self,
        report_repo: ReportRepositoryProtocol,
        workflow_service: ReviewWorkflowService,
        assignment_strategy: ModeratorAssignmentStrategyProtocol | None = None,
        escalation_threshold: int = DEFAULT_ESCALATION_THRESHOLD,
        auto_assign: bool = False,
    ) -> None:
        """Initialize the intake service.

        Args:
            report_repo: Report storage.
            workflow_service: Creates and resumes review workflows.
            assignment_strategy: Chooses moderators when auto_assign is on.
            escalation_threshold: Linked-report count that raises severity.
            auto_assign: Assign a moderator at intake.
        """
        self._report_repo = report_repo
        self._workflow_service = workflow_service
        self._assignment_strategy = assignment_strategy
        self._escalation_threshold = escalation_threshold
        self._auto_assign = auto_assign
        self._content_locks = KeyedLock()
        self._report_locks = workflow_service.report_locks

    def configure(
        self,
        escalation_threshold: int | None = None,
        auto_assign: bool | None = None,
    ) -> None:
        """Apply updated settings to subsequent submissions."""
        if escalation_threshold is not None:
            self._escalation_threshold = escalation_threshold
        if auto_assign is not None:
            self._auto_assign = auto_assign

    async def _link_primary(
        self, primary_id: UUID, report_id: UUID, escalate: bool
    ) -> Report:
        # Re-read under the report lock; a reviewer may have acted on it meanwhile.
        async with self._report_locks.hold(primary_id):
            primary = await self.get_report(primary_id)
            primary = primary.with_related(report_id)
            if escalate:
                primary = primary.with_minimum_severity(Severity.HIGH, Priority.HIGH)
            await self._report_repo.save(primary)
        return primary

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, submission: ReportSubmission) -> ReportIntakeResult:
        """Validate, deduplicate and store a new report with its workflow.

        Raises:
            ReportValidationError: If required fields are missing.
        """
        content_type = validate_submission(submission)
        key = (submission.content_id, content_type)

        async with self._content_locks.hold(key):
            existing = [
                r
                for r in await self._report_repo.find_by_content(
                    submission.content_id, content_type
                )
                if r.status is not ReportStatus.REJECTED
            ]

            report = Report(
                content_id=submission.content_id,
                content_type=content_type,
                content=submission.content,
                reporter_id=submission.reporter_id,
                reason=submission.reason.strip(),
                type=submission.type,
                severity=submission.severity,
                category=submission.category,
                priority=submission.priority or Priority.for_severity(submission.severity),
                evidence=tuple(submission.evidence),
                related_reports=tuple(r.id for r in existing),
                recommended_action=submission.recommended_action,
                description=submission.description,
                reported_user_id=submission.reported_user_id,
            )

            auto_escalated = len(existing) + 1 >= self._escalation_threshold and bool(existing)
            if auto_escalated:
                report = report.with_minimum_severity(Severity.HIGH, Priority.HIGH)

            if self._auto_assign and self._assignment_strategy is not None:
                moderator = await self._assignment_strategy.select_moderator(report)
                if moderator is not None:
                    report = report.with_assignee(moderator)

            async with self._report_locks.hold(report.id):
                await self._report_repo.save(report)
                workflow = await self._workflow_service.create_workflow(report)
                report = report.with_workflow(workflow.id)
                await self._report_repo.save(report)

            primary = None
            if existing:
                primary = await self._link_primary(existing[0].id, report.id, auto_escalated)
                if auto_escalated and primary.workflow_id is not None:
                    await self._workflow_service.update_priority(
                        primary.workflow_id, primary.priority
                    )

        related = tuple([primary, *existing[1:]]) if primary is not None else ()
        logger.info(
            "report_submitted",
            report_id=str(report.id),
            workflow_id=str(workflow.id),
            content_id=report.content_id,
            reporter_id=report.reporter_id,
            severity=report.severity.value,
            priority=report.priority.value,
            related_count=len(related),
            auto_escalated=auto_escalated,
            assigned_to=report.assigned_to,
        )
        return ReportIntakeResult(
            report=report,
            workflow=workflow,
            related=related,
            primary=primary,
            auto_escalated=auto_escalated,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_report(self, report_id: UUID) -> Report:
        """Raises ReportNotFoundError for an unknown id."""
        report = await self._report_repo.get(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    async def list_reports(self, query: ReportQuery | None = None) -> ReportListResult:
        """Filter, sort and page through reports.

        Raises:
            ValidationError: If the sort or paging parameters are invalid.
        """
        query = query or ReportQuery()
        query.validate()
        reports = [
            r
            for r in await self._report_repo.list_in_range(query.start, query.end)
            if query.matches(r)
        ]
        reports.sort(key=_sort_key(query.sort_by), reverse=query.sort_order == "desc")
        page = reports[query.offset : query.offset + query.limit]
        return ReportListResult(
            reports=page, total=len(reports), limit=query.limit, offset=query.offset
        )

    async def get_user_reports(self, reporter_id: str) -> list[Report]:
        return await self._report_repo.list_by_reporter(reporter_id)

    async def get_similar_reports(self, report_id: UUID) -> list[Report]:
        """Other non-rejected reports on the same content."""
        report = await self.get_report(report_id)
        return [
            r
            for r in await self._report_repo.find_by_content(
                report.content_id, report.content_type
            )
            if r.id != report.id and r.status is not ReportStatus.REJECTED
        ]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    async def update_report(self, report_id: UUID, **changes: Any) -> Report:
        """Edit reviewer-editable report fields.

        Raises:
            ReportNotFoundError: If the report does not exist.
            ValidationError: If a field is not editable.
        """
        unknown = sorted(set(changes) - EDITABLE_REPORT_FIELDS)
        if unknown:
            raise ValidationError([f"{name} is not an editable field" for name in unknown])

        async with self._report_locks.hold(report_id):
            report = await self.get_report(report_id)
            updated = report.with_updates(**changes)
            await self._report_repo.save(updated)

        if "priority" in changes and updated.workflow_id is not None:
            await self._workflow_service.update_priority(
                updated.workflow_id, updated.priority
            )
        logger.info(
            "report_updated",
            report_id=str(report_id),
            changed_fields=sorted(changes),
        )
        return updated

    async def attach_analysis(self, report_id: UUID, analysis: Analysis) -> Report:
        async with self._report_locks.hold(report_id):
            report = await self.get_report(report_id)
            updated = report.with_analysis(analysis)
            await self._report_repo.save(updated)
        return updated

    async def add_evidence(
        self,
        report_id: UUID,
        evidence: Sequence[str],
        performed_by: str | None = None,
    ) -> Report:
        """Append evidence; a workflow waiting for information resumes.

        Raises:
            ReportNotFoundError: If the report does not exist.
            ValidationError: If no evidence is supplied or performed_by is blank.
        """
        performed_by = normalize_actor(performed_by)
        items = tuple(e for e in evidence if e and e.strip())
        if not items:
            raise ValidationError("evidence must contain at least one item")

        async with self._report_locks.hold(report_id):
            report = await self.get_report(report_id)
            report = report.with_evidence(items)
            await self._report_repo.save(report)

        if report.workflow_id is not None:
            workflow = await self._workflow_service.get_workflow(report.workflow_id)
            if workflow.status is WorkflowStatus.WAITING_FOR_INFO:
                await self._workflow_service.resume(
                    workflow.id,
                    ResumeTrigger.INFO_PROVIDED,
                    performed_by=performed_by or report.reporter_id,
                    notes=f"{len(items)} evidence item(s) added",
                )
                report = await self.get_report(report_id)

        logger.info(
            "report_evidence_added",
            report_id=str(report_id),
            evidence_count=len(items),
        )
        return report
