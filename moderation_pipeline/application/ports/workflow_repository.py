"""Review workflow repository port."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from moderation_pipeline.domain.models.review_workflow import ReviewWorkflow


class WorkflowRepositoryProtocol(Protocol):
    """Protocol for review workflow storage.

    Implementations MUST keep the report-to-workflow relation 1:1 and MUST
    implement update() as a compare-and-set on the workflow version.
    """

    async def add(self, workflow: ReviewWorkflow) -> None:
        """Store a new workflow.

        Raises:
            DuplicateRecordError: If the id exists or the report already
                has a workflow.
        """
        ...

    async def get(self, workflow_id: UUID) -> ReviewWorkflow | None:
        ...

    async def get_by_report(self, report_id: UUID) -> ReviewWorkflow | None:
        ...

    async def update(self, workflow: ReviewWorkflow, expected_version: int) -> None:
        """Replace a workflow if the stored version still matches.

        Args:
            workflow: The new workflow state.
            expected_version: Version the change was computed from.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
            ConcurrentModificationError: If the stored version differs.
        """
        ...

    async def list_all(self) -> list[ReviewWorkflow]:
        ...

    async def list_in_range(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ReviewWorkflow]:
        """Workflows created within [start, end], oldest first."""
        ...
