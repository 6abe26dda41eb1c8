"""In-memory review workflow repository stub."""

from __future__ import annotations

import asyncio
from datetime import datetime
from uuid import UUID

from moderation_pipeline.application.ports.workflow_repository import (
    WorkflowRepositoryProtocol,
)
from moderation_pipeline.domain.errors.concurrency import (
    ConcurrentModificationError,
    DuplicateRecordError,
)
from moderation_pipeline.domain.errors.not_found import WorkflowNotFoundError
from moderation_pipeline.domain.models.review_workflow import ReviewWorkflow


class WorkflowRepositoryStub(WorkflowRepositoryProtocol):
    """In-memory implementation of WorkflowRepositoryProtocol.

    update() is a compare-and-set on the workflow version, guarded by a
    lock so the check and the write cannot interleave.
    """

    def __init__(self) -> None:
        self._workflows: dict[UUID, ReviewWorkflow] = {}
        self._by_report: dict[UUID, UUID] = {}
        self._lock = asyncio.Lock()

    def clear(self) -> None:
        """Clear all stored data (for testing)."""
        self._workflows.clear()
        self._by_report.clear()

    async def add(self, workflow: ReviewWorkflow) -> None:
        async with self._lock:
            if workflow.id in self._workflows:
                raise DuplicateRecordError("workflow", workflow.id)
            if workflow.report_id in self._by_report:
                raise DuplicateRecordError(
                    "workflow for report", workflow.report_id
                )
            self._workflows[workflow.id] = workflow
            self._by_report[workflow.report_id] = workflow.id

    async def get(self, workflow_id: UUID) -> ReviewWorkflow | None:
        return self._workflows.get(workflow_id)

    async def get_by_report(self, report_id: UUID) -> ReviewWorkflow | None:
        workflow_id = self._by_report.get(report_id)
        if workflow_id is None:
            return None
        return self._workflows.get(workflow_id)

    async def update(self, workflow: ReviewWorkflow, expected_version: int) -> None:
        async with self._lock:
            current = self._workflows.get(workflow.id)
            if current is None:
                raise WorkflowNotFoundError(workflow.id)
            if current.version != expected_version:
                raise ConcurrentModificationError(
                    workflow.id, expected_version, current.version
                )
            self._workflows[workflow.id] = workflow

    async def list_all(self) -> list[ReviewWorkflow]:
        return sorted(self._workflows.values(), key=lambda w: w.created_at)

    async def list_in_range(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ReviewWorkflow]:
        return [
            w
            for w in await self.list_all()
            if (start is None or w.created_at >= start)
            and (end is None or w.created_at <= end)
        ]
