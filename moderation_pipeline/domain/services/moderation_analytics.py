"""Deterministic moderation analytics.

Every function here is a pure function of the records it is given: no
clock reads, no storage access, no hidden state. The application-level
analytics service is responsible for loading the records for a time
range and passing them in.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from uuid import UUID

from moderation_pipeline.domain.models.decision import Decision
from moderation_pipeline.domain.models.report import Report, ReportStatus
from moderation_pipeline.domain.models.review_workflow import (
    ReviewWorkflow,
    WorkflowStatus,
)
from moderation_pipeline.domain.models.statistics import (
    ModeratorWorkload,
    ReporterSummary,
    ReportStatistics,
)

NEUTRAL_REPUTATION = 50
REJECTION_PENALTY_WEIGHT = 30.0
ESCALATION_BONUS_WEIGHT = 10.0
VOLUME_BONUS = 10.0
VOLUME_BONUS_MIN_REPORTS = 10
TOP_REPORTER_LIMIT = 5


def _rate(count: int, total: int) -> float:
    return count / total if total else 0.0


def escalation_rate(reports: Sequence[Report]) -> float:
    """Fraction of reports explicitly escalated."""
    return _rate(sum(1 for r in reports if r.escalated), len(reports))


def rejection_rate(reports: Sequence[Report]) -> float:
    """Fraction of reports rejected."""
    return _rate(
        sum(1 for r in reports if r.status is ReportStatus.REJECTED), len(reports)
    )


def average_resolution_time(
    reports: Iterable[Report],
    workflows: Mapping[UUID, ReviewWorkflow],
) -> float:
    """Mean seconds from report creation to workflow completion.

    Only resolved reports whose workflow carries a completion time are
    included. Unresolved reports are excluded rather than counted as zero,
    and an empty result is 0.0.
    """
    durations: list[float] = []
    for report in reports:
        if report.status is not ReportStatus.RESOLVED or report.workflow_id is None:
            continue
        workflow = workflows.get(report.workflow_id)
        if workflow is None or workflow.completed_at is None:
            continue
        durations.append((workflow.completed_at - report.created_at).total_seconds())
    if not durations:
        return 0.0
    return sum(durations) / len(durations)


def calculate_reputation(reports: Sequence[Report]) -> int:
    """Reputation of a reporter in [0, 100], derived from their reports.

    resolved share x 100, minus rejected share x 30, plus escalated share
    x 10, plus a flat 10 once the reporter has filed at least ten reports.
    A reporter with no reports gets the neutral score of 50.
    """
    total = len(reports)
    if total == 0:
        return NEUTRAL_REPUTATION

    resolved = sum(1 for r in reports if r.status is ReportStatus.RESOLVED)
    rejected = sum(1 for r in reports if r.status is ReportStatus.REJECTED)
    escalated = sum(1 for r in reports if r.escalated)

    score = (resolved / total) * 100
    score -= (rejected / total) * REJECTION_PENALTY_WEIGHT
    score += (escalated / total) * ESCALATION_BONUS_WEIGHT
    if total >= VOLUME_BONUS_MIN_REPORTS:
        score += VOLUME_BONUS

    return round(min(max(score, 0.0), 100.0))


def top_reporters(
    reports: Sequence[Report], limit: int = TOP_REPORTER_LIMIT
) -> tuple[ReporterSummary, ...]:
    """Most active reporters with the share of their reports resolved."""
    by_reporter: dict[str, list[Report]] = {}
    for report in reports:
        by_reporter.setdefault(report.reporter_id, []).append(report)

    summaries = [
        ReporterSummary(
            reporter_id=reporter_id,
            report_count=len(filed),
            accuracy=_rate(
                sum(1 for r in filed if r.status is ReportStatus.RESOLVED), len(filed)
            )
            * 100,
        )
        for reporter_id, filed in by_reporter.items()
    ]
    summaries.sort(key=lambda s: (-s.report_count, s.reporter_id))
    return tuple(summaries[:limit])


def report_statistics(
    reports: Sequence[Report],
    workflows: Mapping[UUID, ReviewWorkflow],
) -> ReportStatistics:
    """Aggregate counts, rates and resolution time for a report set."""
    return ReportStatistics(
        total_reports=len(reports),
        by_status=dict(Counter(r.status.value for r in reports)),
        by_severity=dict(Counter(r.severity.value for r in reports)),
        by_type=dict(Counter(r.type.value for r in reports)),
        by_category=dict(Counter(str(r.category) for r in reports)),
        escalation_rate=escalation_rate(reports),
        rejection_rate=rejection_rate(reports),
        average_resolution_time=average_resolution_time(reports, workflows),
        top_reporters=top_reporters(reports),
    )


def moderator_workload(
    workflows: Iterable[ReviewWorkflow],
) -> dict[str, ModeratorWorkload]:
    """Per-moderator counts of active, completed and escalated workflows.

    Escalated workflows have no assignee; they are attributed to whoever
    performed the escalation, taken from the workflow history.
    """
    active: Counter[str] = Counter()
    completed: Counter[str] = Counter()
    escalated: Counter[str] = Counter()

    for workflow in workflows:
        if workflow.status is WorkflowStatus.ESCALATED:
            if workflow.history:
                escalated[workflow.history[-1].performed_by] += 1
        elif workflow.assigned_to is None:
            continue
        elif workflow.is_terminal:
            completed[workflow.assigned_to] += 1
        else:
            active[workflow.assigned_to] += 1

    moderators = set(active) | set(completed) | set(escalated)
    return {
        moderator: ModeratorWorkload(
            moderator_id=moderator,
            active=active[moderator],
            completed=completed[moderator],
            escalated=escalated[moderator],
        )
        for moderator in sorted(moderators)
    }


def decisions_by_action(decisions: Iterable[Decision]) -> dict[str, int]:
    return dict(Counter(d.action.value for d in decisions))
