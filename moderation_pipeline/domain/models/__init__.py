"""Domain models for the moderation pipeline."""

from moderation_pipeline.domain.models.appeal import Appeal, AppealAction, AppealStatus
from moderation_pipeline.domain.models.decision import Decision
from moderation_pipeline.domain.models.moderation import (
    Action,
    Analysis,
    Category,
    Confidence,
    ConfidenceLabel,
    ContentType,
    Flag,
    Priority,
    Severity,
)
from moderation_pipeline.domain.models.policy import (
    ConditionOperator,
    Policy,
    Rule,
    RuleCondition,
)
from moderation_pipeline.domain.models.queue_item import QueueItem, QueueItemStatus
from moderation_pipeline.domain.models.report import (
    Report,
    ReportStatus,
    ReportSubmission,
    ReportType,
    ResolutionNote,
)
from moderation_pipeline.domain.models.review_workflow import (
    ResumeTrigger,
    ReviewAction,
    ReviewStep,
    ReviewWorkflow,
    WorkflowHistoryEntry,
    WorkflowStatus,
    generate_review_steps,
)
from moderation_pipeline.domain.models.statistics import (
    ModerationStats,
    ModeratorWorkload,
    ReporterSummary,
    ReportStatistics,
    TimeRange,
)

__all__ = [
    "Action",
    "Analysis",
    "Appeal",
    "AppealAction",
    "AppealStatus",
    "Category",
    "ConditionOperator",
    "Confidence",
    "ConfidenceLabel",
    "ContentType",
    "Decision",
    "Flag",
    "ModerationStats",
    "ModeratorWorkload",
    "Policy",
    "Priority",
    "QueueItem",
    "QueueItemStatus",
    "Report",
    "ReportStatistics",
    "ReportStatus",
    "ReportSubmission",
    "ReportType",
    "ReporterSummary",
    "ResolutionNote",
    "ResumeTrigger",
    "ReviewAction",
    "ReviewStep",
    "ReviewWorkflow",
    "Rule",
    "RuleCondition",
    "Severity",
    "TimeRange",
    "WorkflowHistoryEntry",
    "WorkflowStatus",
    "generate_review_steps",
]
