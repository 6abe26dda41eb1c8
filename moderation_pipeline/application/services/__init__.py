"""Application services for the moderation pipeline."""

from moderation_pipeline.application.services.content_analysis_merger import (
    ContentAnalysisMerger,
)
from moderation_pipeline.application.services.decision_ledger_service import (
    AppealResolution,
    DecisionLedger,
)
from moderation_pipeline.application.services.keyed_lock import KeyedLock
from moderation_pipeline.application.services.moderation_analytics_service import (
    ModerationAnalyticsService,
)
from moderation_pipeline.application.services.moderation_event_bus import (
    ModerationEventBus,
)
from moderation_pipeline.application.services.moderation_orchestrator import (
    AUTO_MODERATOR_ID,
    ModerationOrchestrator,
    ReviewOutcome,
)
from moderation_pipeline.application.services.moderator_assignment import (
    AssignmentStrategyFactory,
    LeastLoadedAssignmentStrategy,
    RoundRobinAssignmentStrategy,
)
from moderation_pipeline.application.services.notification_dispatcher import (
    NotificationDispatcher,
)
from moderation_pipeline.application.services.policy_rule_store import PolicyRuleStore
from moderation_pipeline.application.services.report_intake_service import (
    ReportIntakeResult,
    ReportIntakeService,
    ReportListResult,
    ReportQuery,
)
from moderation_pipeline.application.services.review_queue import (
    QueueAssignment,
    ReviewQueue,
)
from moderation_pipeline.application.services.review_workflow_service import (
    ReviewActionResult,
    ReviewWorkflowService,
)

__all__: list[str] = [
    "AUTO_MODERATOR_ID",
    "AppealResolution",
    "AssignmentStrategyFactory",
    "ContentAnalysisMerger",
    "DecisionLedger",
    "KeyedLock",
    "LeastLoadedAssignmentStrategy",
    "ModerationAnalyticsService",
    "ModerationEventBus",
    "ModerationOrchestrator",
    "NotificationDispatcher",
    "PolicyRuleStore",
    "QueueAssignment",
    "ReportIntakeResult",
    "ReportIntakeService",
    "ReportListResult",
    "ReportQuery",
    "ReviewActionResult",
    "ReviewOutcome",
    "ReviewQueue",
    "ReviewWorkflowService",
    "RoundRobinAssignmentStrategy",
]
