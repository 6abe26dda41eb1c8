"""Moderation analytics service.

Loads records for a time range from storage and hands them to the pure
analytics functions in domain.services.moderation_analytics.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from structlog import get_logger

from moderation_pipeline.application.ports.moderation_storage import (
    ModerationStorageProtocol,
)
from moderation_pipeline.application.ports.report_repository import (
    ReportRepositoryProtocol,
)
from moderation_pipeline.application.ports.workflow_repository import (
    WorkflowRepositoryProtocol,
)
from moderation_pipeline.domain.errors.validation import ValidationError
from moderation_pipeline.domain.models.statistics import (
    ModerationStats,
    ModeratorWorkload,
    ReportStatistics,
    TimeRange,
)
from moderation_pipeline.domain.services import moderation_analytics

logger = get_logger(__name__)

DEFAULT_STATS_WINDOW = timedelta(days=7)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ModerationAnalyticsService:
    """Computes report, decision and workload statistics."""

    def __init__(
        self,
        report_repo: ReportRepositoryProtocol,
        workflow_repo: WorkflowRepositoryProtocol,
        storage: ModerationStorageProtocol,
        queue_depth: Callable[[], int] | None = None,
    ) -> None:
        """Initialize the analytics service.

        Args:
            report_repo: Source of reports.
            workflow_repo: Source of workflows.
            storage: Source of decisions.
            queue_depth: Returns the current review queue depth.
        """
        self._report_repo = report_repo
        self._workflow_repo = workflow_repo
        self._storage = storage
        self._queue_depth = queue_depth

    @staticmethod
    def resolve_range(
        start: datetime | None = None, end: datetime | None = None
    ) -> TimeRange:
        """Fill in missing bounds; the default window is the last seven days.

        Raises:
            ValidationError: If end precedes start.
        """
        end = end or _utc_now()
        start = start or end - DEFAULT_STATS_WINDOW
        if end < start:
            raise ValidationError("end must not precede start")
        return TimeRange(start=start, end=end)

    async def report_statistics(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> ReportStatistics:
        time_range = self.resolve_range(start, end)
        reports = await self._report_repo.list_in_range(time_range.start, time_range.end)
        workflows = {w.id: w for w in await self._workflow_repo.list_all()}
        return moderation_analytics.report_statistics(reports, workflows)

    async def get_stats(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> ModerationStats:
        """Statistics for reports, decisions and workflows in the range."""
        time_range = self.resolve_range(start, end)
        reports = await self._report_repo.list_in_range(time_range.start, time_range.end)
        all_workflows = {w.id: w for w in await self._workflow_repo.list_all()}
        in_range = await self._workflow_repo.list_in_range(
            time_range.start, time_range.end
        )
        decisions = await self._storage.list_decisions(
            start=time_range.start, end=time_range.end
        )
        workload = moderation_analytics.moderator_workload(in_range)

        stats = ModerationStats(
            time_range=time_range,
            reports=moderation_analytics.report_statistics(reports, all_workflows),
            total_decisions=len(decisions),
            decisions_by_action=moderation_analytics.decisions_by_action(decisions),
            queue_depth=self._queue_depth() if self._queue_depth else 0,
            moderator_workload=tuple(workload.values()),
        )
        logger.debug(
            "moderation_stats_computed",
            start=time_range.start.isoformat(),
            end=time_range.end.isoformat(),
            total_reports=stats.reports.total_reports,
            total_decisions=stats.total_decisions,
        )
        return stats

    async def moderator_workload(self) -> dict[str, ModeratorWorkload]:
        """Current workload over every workflow; feeds least-loaded assignment."""
        return moderation_analytics.moderator_workload(await self._workflow_repo.list_all())

    async def get_user_reputation(self, user_id: str) -> int:
        """Reputation in [0, 100] over every report the user has filed."""
        reports = await self._report_repo.list_by_reporter(user_id)
        return moderation_analytics.calculate_reputation(reports)
