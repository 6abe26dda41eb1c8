"""Unit tests for ReportIntakeService.

Tests:
- Validation lists every missing field
- Each report gets exactly one workflow
- Duplicate reports link to the earliest live report
- Threshold escalation raises severity/priority to high
- Rejected reports do not count as duplicates
- Auto-assignment, listing, updating and evidence
- Duplicate linking never overwrites a concurrent review of the primary
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from moderation_pipeline.application.services.moderator_assignment import (
    RoundRobinAssignmentStrategy,
)
from moderation_pipeline.application.services.report_intake_service import (
    ReportIntakeService,
    ReportQuery,
)
from moderation_pipeline.application.services.review_workflow_service import (
    ReviewWorkflowService,
)
from moderation_pipeline.domain.errors import (
    ReportNotFoundError,
    ReportValidationError,
    ValidationError,
)
from moderation_pipeline.domain.models.moderation import ContentType, Priority, Severity
from moderation_pipeline.domain.models.report import (
    ReportStatus,
    ReportSubmission,
    ReportType,
)
from moderation_pipeline.domain.models.review_workflow import (
    ResumeTrigger,
    ReviewAction,
    WorkflowStatus,
)
from moderation_pipeline.infrastructure.stubs.report_repository_stub import (
    ReportRepositoryStub,
)
from moderation_pipeline.infrastructure.stubs.workflow_repository_stub import (
    WorkflowRepositoryStub,
)


def submission(
    content_id: str = "post-1",
    reporter_id: str = "user-1",
    severity: Severity = Severity.MEDIUM,
    **overrides,
) -> ReportSubmission:
    fields = {
        "content": "some post text",
        "content_id": content_id,
        "content_type": ContentType.POST,
        "reporter_id": reporter_id,
        "reason": "spam",
        "type": ReportType.SPAM,
        "severity": severity,
        "category": "spam",
    }
    fields.update(overrides)
    return ReportSubmission(**fields)


@pytest.fixture
def report_repo() -> ReportRepositoryStub:
    return ReportRepositoryStub()


@pytest.fixture
def workflow_repo() -> WorkflowRepositoryStub:
    return WorkflowRepositoryStub()


@pytest.fixture
def workflow_service(
    workflow_repo: WorkflowRepositoryStub, report_repo: ReportRepositoryStub
) -> ReviewWorkflowService:
    return ReviewWorkflowService(workflow_repo, report_repo)


@pytest.fixture
def intake(
    report_repo: ReportRepositoryStub, workflow_service: ReviewWorkflowService
) -> ReportIntakeService:
    return ReportIntakeService(report_repo, workflow_service, escalation_threshold=3)


class TestValidation:
    async def test_every_missing_field_is_reported(self, intake: ReportIntakeService) -> None:
        bad = ReportSubmission(
            content=None, content_id="", content_type=None, reporter_id="", reason="  "
        )

        with pytest.raises(ReportValidationError) as exc_info:
            await intake.submit(bad)

        assert len(exc_info.value.errors) == 5

    async def test_failed_validation_stores_nothing(
        self, intake: ReportIntakeService, report_repo: ReportRepositoryStub
    ) -> None:
        with pytest.raises(ReportValidationError):
            await intake.submit(submission(reporter_id=""))
        assert await report_repo.list_in_range() == []


class TestSubmit:
    async def test_report_gets_one_workflow(
        self, intake: ReportIntakeService, workflow_repo: WorkflowRepositoryStub
    ) -> None:
        result = await intake.submit(submission())

        assert result.report.workflow_id == result.workflow.id
        assert result.report.status is ReportStatus.PENDING
        assert result.report.priority is Priority.NORMAL
        assert result.workflow.status is WorkflowStatus.PENDING
        assert await workflow_repo.get_by_report(result.report.id) == result.workflow
        assert not result.auto_escalated

    async def test_explicit_priority_overrides_default(self, intake: ReportIntakeService) -> None:
        result = await intake.submit(submission(priority=Priority.URGENT))
        assert result.report.priority is Priority.URGENT

    async def test_duplicate_links_to_primary(self, intake: ReportIntakeService) -> None:
        first = await intake.submit(submission(reporter_id="a"))
        second = await intake.submit(submission(reporter_id="b"))

        assert second.report.related_reports == (first.report.id,)
        assert second.primary is not None
        assert second.primary.id == first.report.id
        assert second.report.id in second.primary.related_reports
        stored_primary = await intake.get_report(first.report.id)
        assert second.report.id in stored_primary.related_reports

    async def test_other_content_is_not_related(self, intake: ReportIntakeService) -> None:
        await intake.submit(submission(content_id="post-1"))
        other = await intake.submit(submission(content_id="post-2"))

        assert other.report.related_reports == ()
        assert other.primary is None

    async def test_threshold_raises_severity_and_priority(
        self, intake: ReportIntakeService, workflow_service: ReviewWorkflowService
    ) -> None:
        first = await intake.submit(submission(reporter_id="a", severity=Severity.LOW))
        await intake.submit(submission(reporter_id="b", severity=Severity.LOW))
        third = await intake.submit(submission(reporter_id="c", severity=Severity.LOW))

        assert third.auto_escalated
        assert third.report.severity is Severity.HIGH
        assert third.report.priority is Priority.HIGH
        assert not third.report.escalated
        primary = await intake.get_report(first.report.id)
        assert primary.severity is Severity.HIGH
        assert primary.priority is Priority.HIGH
        primary_workflow = await workflow_service.get_workflow(first.workflow.id)
        assert primary_workflow.priority is Priority.HIGH

    async def test_threshold_never_lowers_severity(self, intake: ReportIntakeService) -> None:
        await intake.submit(submission(reporter_id="a"))
        await intake.submit(submission(reporter_id="b"))
        third = await intake.submit(
            submission(reporter_id="c", severity=Severity.CRITICAL)
        )

        assert third.report.severity is Severity.CRITICAL
        assert third.report.priority is Priority.URGENT

    async def test_single_report_never_auto_escalates(
        self, report_repo: ReportRepositoryStub, workflow_service: ReviewWorkflowService
    ) -> None:
        intake = ReportIntakeService(report_repo, workflow_service, escalation_threshold=1)

        result = await intake.submit(submission())

        assert not result.auto_escalated
        assert result.report.severity is Severity.MEDIUM

    async def test_rejected_reports_are_not_duplicates(
        self, intake: ReportIntakeService, workflow_service: ReviewWorkflowService
    ) -> None:
        first = await intake.submit(submission(reporter_id="a"))
        await workflow_service.apply_action(first.workflow.id, ReviewAction.REJECT)

        second = await intake.submit(submission(reporter_id="b"))

        assert second.report.related_reports == ()

    async def test_auto_assign_uses_strategy(
        self, report_repo: ReportRepositoryStub, workflow_service: ReviewWorkflowService
    ) -> None:
        intake = ReportIntakeService(
            report_repo,
            workflow_service,
            assignment_strategy=RoundRobinAssignmentStrategy(["mod-1", "mod-2"]),
            auto_assign=True,
        )

        first = await intake.submit(submission(content_id="a"))
        second = await intake.submit(submission(content_id="b"))

        assert first.report.assigned_to == "mod-1"
        assert first.workflow.assigned_to == "mod-1"
        assert second.report.assigned_to == "mod-2"


class TestQueries:
    async def test_list_reports_filters_and_pages(self, intake: ReportIntakeService) -> None:
        for n in range(5):
            await intake.submit(submission(content_id=f"post-{n}", reporter_id="alice"))
        await intake.submit(submission(content_id="post-x", reporter_id="bob"))

        result = await intake.list_reports(ReportQuery(reporter_id="alice", limit=2))

        assert result.total == 5
        assert len(result.reports) == 2
        assert result.has_more
        assert all(r.reporter_id == "alice" for r in result.reports)

    async def test_list_reports_sort_ascending(self, intake: ReportIntakeService) -> None:
        a = await intake.submit(submission(content_id="a"))
        b = await intake.submit(submission(content_id="b"))

        result = await intake.list_reports(ReportQuery(sort_order="asc"))

        assert [r.id for r in result.reports] == [a.report.id, b.report.id]

    @pytest.mark.parametrize(
        "query",
        [
            ReportQuery(sort_by="reason"),
            ReportQuery(sort_order="sideways"),
            ReportQuery(limit=0),
            ReportQuery(offset=-1),
        ],
    )
    async def test_invalid_query(self, intake: ReportIntakeService, query: ReportQuery) -> None:
        with pytest.raises(ValidationError):
            await intake.list_reports(query)

    async def test_similar_reports(self, intake: ReportIntakeService) -> None:
        first = await intake.submit(submission(reporter_id="a"))
        second = await intake.submit(submission(reporter_id="b"))

        similar = await intake.get_similar_reports(first.report.id)

        assert [r.id for r in similar] == [second.report.id]

    async def test_unknown_report(self, intake: ReportIntakeService) -> None:
        from uuid import uuid4

        with pytest.raises(ReportNotFoundError):
            await intake.get_report(uuid4())


class TestUpdate:
    async def test_update_editable_fields(
        self, intake: ReportIntakeService, workflow_service: ReviewWorkflowService
    ) -> None:
        result = await intake.submit(submission())

        updated = await intake.update_report(
            result.report.id, priority=Priority.URGENT, description="context"
        )

        assert updated.priority is Priority.URGENT
        assert updated.description == "context"
        workflow = await workflow_service.get_workflow(result.workflow.id)
        assert workflow.priority is Priority.URGENT

    async def test_non_editable_field_rejected(self, intake: ReportIntakeService) -> None:
        result = await intake.submit(submission())

        with pytest.raises(ValidationError):
            await intake.update_report(result.report.id, reporter_id="someone-else")

    async def test_status_is_not_editable(self, intake: ReportIntakeService) -> None:
        result = await intake.submit(submission())

        with pytest.raises(ValidationError):
            await intake.update_report(result.report.id, status=ReportStatus.RESOLVED)

        report = await intake.get_report(result.report.id)
        assert report.status is ReportStatus.PENDING


class TestEvidence:
    async def test_evidence_resumes_waiting_workflow(
        self, intake: ReportIntakeService, workflow_service: ReviewWorkflowService
    ) -> None:
        result = await intake.submit(submission())
        workflow_id = result.workflow.id
        await workflow_service.resume(workflow_id, ResumeTrigger.ASSIGNED, assignee="mod-1")
        await workflow_service.apply_action(workflow_id, ReviewAction.REQUEST_MORE_INFO)

        report = await intake.add_evidence(result.report.id, ["screenshot.png"])

        workflow = await workflow_service.get_workflow(workflow_id)
        assert workflow.status is WorkflowStatus.IN_PROGRESS
        assert workflow.history[-1].action is ResumeTrigger.INFO_PROVIDED
        assert workflow.history[-1].performed_by == "user-1"
        assert report.evidence == ("screenshot.png",)
        assert report.status is ReportStatus.UNDER_REVIEW

    async def test_evidence_without_waiting_leaves_workflow(
        self, intake: ReportIntakeService, workflow_service: ReviewWorkflowService
    ) -> None:
        result = await intake.submit(submission())

        await intake.add_evidence(result.report.id, ["link"])

        workflow = await workflow_service.get_workflow(result.workflow.id)
        assert workflow.status is WorkflowStatus.PENDING

    async def test_empty_evidence_rejected(self, intake: ReportIntakeService) -> None:
        result = await intake.submit(submission())
        with pytest.raises(ValidationError):
            await intake.add_evidence(result.report.id, ["", "  "])

    async def test_blank_performer_rejected(self, intake: ReportIntakeService) -> None:
        result = await intake.submit(submission())

        with pytest.raises(ValidationError):
            await intake.add_evidence(result.report.id, ["link"], performed_by="   ")

        report = await intake.get_report(result.report.id)
        assert report.evidence == ()


class TestConcurrentWrites:
    async def test_duplicate_does_not_undo_concurrent_approve(
        self,
        intake: ReportIntakeService,
        workflow_service: ReviewWorkflowService,
        report_repo: ReportRepositoryStub,
    ) -> None:
        first = await intake.submit(submission(reporter_id="a"))
        save = report_repo.save

        async def yielding_save(report):
            await asyncio.sleep(0)
            await save(report)

        with patch.object(report_repo, "save", yielding_save):
            second, _ = await asyncio.gather(
                intake.submit(submission(reporter_id="b")),
                workflow_service.apply_action(
                    first.workflow.id, ReviewAction.APPROVE, performed_by="mod-1"
                ),
            )

        primary = await intake.get_report(first.report.id)
        assert primary.status is ReportStatus.RESOLVED
        assert second.report.id in primary.related_reports
