"""Report repository port."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from moderation_pipeline.domain.models.moderation import ContentType
from moderation_pipeline.domain.models.report import Report


class ReportRepositoryProtocol(Protocol):
    """Protocol for report storage with point and range lookup."""

    async def save(self, report: Report) -> None:
        """Insert or replace a report."""
        ...

    async def get(self, report_id: UUID) -> Report | None:
        ...

    async def delete(self, report_id: UUID) -> bool:
        """Delete a report. Returns True if it existed."""
        ...

    async def find_by_content(
        self, content_id: str, content_type: ContentType
    ) -> list[Report]:
        """All reports on the given content, oldest first."""
        ...

    async def list_by_reporter(self, reporter_id: str) -> list[Report]:
        """All reports filed by a user, oldest first."""
        ...

    async def list_in_range(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Report]:
        """Reports created within [start, end], oldest first."""
        ...
