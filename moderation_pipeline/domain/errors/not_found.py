"""Not-found errors for moderation records.

Raised whenever a caller references an id the pipeline does not know.
These are always surfaced to the caller and never retried.
"""

from __future__ import annotations

from moderation_pipeline.domain.exceptions import ModerationError


class NotFoundError(ModerationError):
    """Raised when a referenced record does not exist.

    Attributes:
        resource: Kind of record that was looked up (e.g. "report").
        resource_id: The id that could not be resolved.
    """

    resource: str = "record"

    def __init__(self, resource_id: object, resource: str | None = None) -> None:
        if resource is not None:
            self.resource = resource
        self.resource_id = str(resource_id)
        super().__init__(f"{self.resource.capitalize()} not found: {self.resource_id}")


class PolicyNotFoundError(NotFoundError):
    resource = "policy"


class RuleNotFoundError(NotFoundError):
    resource = "rule"


class ReportNotFoundError(NotFoundError):
    resource = "report"


class WorkflowNotFoundError(NotFoundError):
    resource = "workflow"


class DecisionNotFoundError(NotFoundError):
    resource = "decision"


class AppealNotFoundError(NotFoundError):
    resource = "appeal"


class QueueItemNotFoundError(NotFoundError):
    resource = "queue item"


class AnalysisNotFoundError(NotFoundError):
    resource = "analysis"


class AnalysisProviderNotFoundError(NotFoundError):
    resource = "analysis provider"
