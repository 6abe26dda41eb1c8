"""In-memory report repository stub."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from moderation_pipeline.application.ports.report_repository import (
    ReportRepositoryProtocol,
)
from moderation_pipeline.domain.models.moderation import ContentType
from moderation_pipeline.domain.models.report import Report


class ReportRepositoryStub(ReportRepositoryProtocol):
    """In-memory implementation of ReportRepositoryProtocol.

    Keeps a secondary index on (content_id, content_type) so duplicate
    detection does not scan every report.
    """

    def __init__(self) -> None:
        self._reports: dict[UUID, Report] = {}
        self._by_content: dict[tuple[str, ContentType], list[UUID]] = {}

    def clear(self) -> None:
        """Clear all stored data (for testing)."""
        self._reports.clear()
        self._by_content.clear()

    async def save(self, report: Report) -> None:
        if report.id not in self._reports:
            key = (report.content_id, report.content_type)
            self._by_content.setdefault(key, []).append(report.id)
        self._reports[report.id] = report

    async def get(self, report_id: UUID) -> Report | None:
        return self._reports.get(report_id)

    async def delete(self, report_id: UUID) -> bool:
        report = self._reports.pop(report_id, None)
        if report is None:
            return False
        ids = self._by_content.get((report.content_id, report.content_type), [])
        if report_id in ids:
            ids.remove(report_id)
        return True

    async def find_by_content(
        self, content_id: str, content_type: ContentType
    ) -> list[Report]:
        ids = self._by_content.get((content_id, content_type), [])
        return sorted(
            (self._reports[i] for i in ids), key=lambda r: r.created_at
        )

    async def list_by_reporter(self, reporter_id: str) -> list[Report]:
        return sorted(
            (r for r in self._reports.values() if r.reporter_id == reporter_id),
            key=lambda r: r.created_at,
        )

    async def list_in_range(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Report]:
        return sorted(
            (
                r
                for r in self._reports.values()
                if (start is None or r.created_at >= start)
                and (end is None or r.created_at <= end)
            ),
            key=lambda r: r.created_at,
        )
