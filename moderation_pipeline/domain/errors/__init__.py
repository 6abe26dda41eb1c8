"""Domain errors for the moderation pipeline.

All exceptions inherit from ModerationError.
"""

from moderation_pipeline.domain.errors.concurrency import (
    ConcurrentModificationError,
    DuplicateRecordError,
)
from moderation_pipeline.domain.errors.delivery import (
    ContentAnalysisError,
    NotificationDeliveryError,
)
from moderation_pipeline.domain.errors.not_found import (
    AnalysisNotFoundError,
    AnalysisProviderNotFoundError,
    AppealNotFoundError,
    DecisionNotFoundError,
    NotFoundError,
    PolicyNotFoundError,
    QueueItemNotFoundError,
    ReportNotFoundError,
    RuleNotFoundError,
    WorkflowNotFoundError,
)
from moderation_pipeline.domain.errors.validation import (
    ConfigurationError,
    ReportValidationError,
    ValidationError,
)
from moderation_pipeline.domain.errors.workflow import (
    AppealAlreadyResolvedError,
    InvalidWorkflowTransitionError,
    QueueItemNotCancellableError,
    WorkflowAlreadyTerminalError,
)

__all__: list[str] = [
    "AnalysisNotFoundError",
    "AnalysisProviderNotFoundError",
    "AppealAlreadyResolvedError",
    "AppealNotFoundError",
    "ConcurrentModificationError",
    "ConfigurationError",
    "ContentAnalysisError",
    "DecisionNotFoundError",
    "DuplicateRecordError",
    "InvalidWorkflowTransitionError",
    "NotFoundError",
    "NotificationDeliveryError",
    "PolicyNotFoundError",
    "QueueItemNotCancellableError",
    "QueueItemNotFoundError",
    "ReportNotFoundError",
    "ReportValidationError",
    "RuleNotFoundError",
    "ValidationError",
    "WorkflowAlreadyTerminalError",
    "WorkflowNotFoundError",
]
