"""Errors for review workflow, queue and appeal state changes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from moderation_pipeline.domain.exceptions import ModerationError

if TYPE_CHECKING:
    from moderation_pipeline.domain.models.appeal import AppealStatus
    from moderation_pipeline.domain.models.review_workflow import WorkflowStatus


class InvalidWorkflowTransitionError(ModerationError):
    """Raised when a reviewer action is not allowed in the current state.

    Attributes:
        workflow_id: The workflow being acted on.
        from_status: Current workflow status.
        action: The attempted action.
    """

    def __init__(
        self,
        workflow_id: object,
        from_status: WorkflowStatus,
        action: str,
        reason: str | None = None,
    ) -> None:
        self.workflow_id = str(workflow_id)
        self.from_status = from_status
        self.action = action
        message = (
            f"Cannot apply '{action}' to workflow {self.workflow_id} "
            f"in status '{from_status.value}'"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class WorkflowAlreadyTerminalError(InvalidWorkflowTransitionError):
    """Raised when any action targets a completed or rejected workflow."""

    def __init__(self, workflow_id: object, from_status: WorkflowStatus, action: str) -> None:
        super().__init__(
            workflow_id,
            from_status,
            action,
            reason="workflow is terminal and accepts no further actions",
        )


class QueueItemNotCancellableError(ModerationError):
    """Raised when cancelling a queue item that a moderator already holds."""

    def __init__(self, item_id: object, assigned_to: str) -> None:
        self.item_id = str(item_id)
        self.assigned_to = assigned_to
        super().__init__(
            f"Queue item {self.item_id} is assigned to {assigned_to} and cannot be cancelled"
        )


class AppealAlreadyResolvedError(ModerationError):
    """Raised when processing or updating an appeal that is already final."""

    def __init__(self, appeal_id: object, status: AppealStatus) -> None:
        self.appeal_id = str(appeal_id)
        self.status = status
        super().__init__(f"Appeal {self.appeal_id} is already {status.value}")
