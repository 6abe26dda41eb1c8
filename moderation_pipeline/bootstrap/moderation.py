"""Bootstrap wiring for the moderation pipeline.

build_moderation_container() constructs every component exactly once
and passes references explicitly. Nothing here is a module-level
singleton: each call yields an independent pipeline, which is what the
API app factory and the tests rely on.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from structlog import get_logger

from moderation_pipeline.application.ports.content_analysis import (
    ContentAnalysisEngineProtocol,
)
from moderation_pipeline.application.ports.moderator_assignment import (
    ModeratorAssignmentStrategyProtocol,
)
from moderation_pipeline.application.ports.notifier import NotificationChannelProtocol
from moderation_pipeline.application.services.content_analysis_merger import (
    ContentAnalysisMerger,
)
from moderation_pipeline.application.services.decision_ledger_service import (
    DecisionLedger,
)
from moderation_pipeline.application.services.moderation_analytics_service import (
    ModerationAnalyticsService,
)
from moderation_pipeline.application.services.moderation_event_bus import (
    ModerationEventBus,
)
from moderation_pipeline.application.services.moderation_orchestrator import (
    ModerationOrchestrator,
)
from moderation_pipeline.application.services.moderator_assignment import (
    AssignmentStrategyFactory,
    round_robin,
)
from moderation_pipeline.application.services.notification_dispatcher import (
    NotificationDispatcher,
)
from moderation_pipeline.application.services.policy_rule_store import PolicyRuleStore
from moderation_pipeline.application.services.report_intake_service import (
    ReportIntakeService,
)
from moderation_pipeline.application.services.review_queue import ReviewQueue
from moderation_pipeline.application.services.review_workflow_service import (
    ReviewWorkflowService,
)
from moderation_pipeline.config.moderation_config import ModerationConfig
from moderation_pipeline.infrastructure.adapters.logging_notification_channel import (
    LoggingNotificationChannel,
)
from moderation_pipeline.infrastructure.monitoring.metrics import ModerationMetrics
from moderation_pipeline.infrastructure.stubs.audit_log_stub import AuditLogStub
from moderation_pipeline.infrastructure.stubs.content_analysis_engine_stub import (
    KeywordAnalysisEngineStub,
)
from moderation_pipeline.infrastructure.stubs.moderation_storage_stub import (
    ModerationStorageStub,
)
from moderation_pipeline.infrastructure.stubs.report_repository_stub import (
    ReportRepositoryStub,
)
from moderation_pipeline.infrastructure.stubs.workflow_repository_stub import (
    WorkflowRepositoryStub,
)

logger = get_logger(__name__)


@dataclass
class ModerationContainer:
    """Every wired component of one pipeline instance.

    Tests reach into the stubs through these attributes; the API only
    uses the orchestrator and metrics.
    """

    config: ModerationConfig
    orchestrator: ModerationOrchestrator
    metrics: ModerationMetrics
    engine: ContentAnalysisEngineProtocol
    storage: ModerationStorageStub
    report_repo: ReportRepositoryStub
    workflow_repo: WorkflowRepositoryStub
    audit_log: AuditLogStub
    notifier: NotificationDispatcher
    queue: ReviewQueue
    event_bus: ModerationEventBus
    assignment_strategy: ModeratorAssignmentStrategyProtocol


def build_moderation_container(
    config: ModerationConfig | None = None,
    engine: ContentAnalysisEngineProtocol | None = None,
    channels: Sequence[NotificationChannelProtocol] | None = None,
    assignment_strategy: AssignmentStrategyFactory | None = None,
) -> ModerationContainer:
    """Construct a complete moderation pipeline.

    Args:
        config: Pipeline configuration; read from the environment when omitted.
        engine: Analysis capability; the keyword engine stub when omitted.
        channels: Notification channels; a logging channel when omitted.
        assignment_strategy: Builds the moderator assignment strategy from
            the configured pool and the analytics workload; round-robin
            when omitted. Intake and the orchestrator share the result.

    Returns:
        The wired container.
    """
    config = config or ModerationConfig.from_environment()
    engine = engine or KeywordAnalysisEngineStub()
    metrics = ModerationMetrics()

    storage = ModerationStorageStub(max_events=config.max_events)
    report_repo = ReportRepositoryStub()
    workflow_repo = WorkflowRepositoryStub()
    audit_log = AuditLogStub()

    queue = ReviewQueue(on_depth_change=metrics.set_queue_depth)
    merger = ContentAnalysisMerger(
        engine, metrics=metrics, timeout_seconds=config.analysis_timeout_seconds
    )
    notifier = NotificationDispatcher(
        channels if channels is not None else [LoggingNotificationChannel()],
        max_retries=config.notification_max_retries,
        backoff_seconds=config.notification_backoff_seconds,
        metrics=metrics,
    )
    ledger = DecisionLedger(storage, ttl_days=config.decision_ttl_days)
    analytics = ModerationAnalyticsService(
        report_repo, workflow_repo, storage, queue_depth=queue.depth
    )
    strategy = (assignment_strategy or round_robin)(
        config.moderator_pool, analytics.moderator_workload
    )
    workflow_service = ReviewWorkflowService(workflow_repo, report_repo)
    intake = ReportIntakeService(
        report_repo,
        workflow_service,
        assignment_strategy=strategy,
        escalation_threshold=config.escalation_threshold,
        auto_assign=config.auto_assign,
    )
    event_bus = ModerationEventBus(storage)

    orchestrator = ModerationOrchestrator(
        config=config,
        merger=merger,
        policy_store=PolicyRuleStore(),
        queue=queue,
        intake=intake,
        workflow_service=workflow_service,
        ledger=ledger,
        analytics=analytics,
        notifier=notifier,
        event_bus=event_bus,
        storage=storage,
        audit_log=audit_log,
        metrics=metrics,
        assignment_strategy=strategy,
    )
    logger.info(
        "moderation_pipeline_built",
        engine=type(engine).__name__,
        channels=[c.name for c in notifier.channels],
        assignment_strategy=type(strategy).__name__,
        auto_moderation=config.auto_moderation,
        human_review_required=config.human_review_required,
    )
    return ModerationContainer(
        config=config,
        orchestrator=orchestrator,
        metrics=metrics,
        engine=engine,
        storage=storage,
        report_repo=report_repo,
        workflow_repo=workflow_repo,
        audit_log=audit_log,
        notifier=notifier,
        queue=queue,
        event_bus=event_bus,
        assignment_strategy=strategy,
    )
