"""Application ports (interfaces) for the moderation pipeline."""

from moderation_pipeline.application.ports.audit_log import AuditLogProtocol
from moderation_pipeline.application.ports.content_analysis import (
    ContentAnalysisEngineProtocol,
    ContentAnalysisProviderProtocol,
)
from moderation_pipeline.application.ports.event_observer import (
    ModerationEventObserverProtocol,
)
from moderation_pipeline.application.ports.moderation_storage import (
    ModerationStorageProtocol,
)
from moderation_pipeline.application.ports.moderator_assignment import (
    ModeratorAssignmentStrategyProtocol,
)
from moderation_pipeline.application.ports.notifier import (
    Notification,
    NotificationChannelProtocol,
    NotificationEventType,
    NotificationPayload,
    NotifierProtocol,
)
from moderation_pipeline.application.ports.report_repository import (
    ReportRepositoryProtocol,
)
from moderation_pipeline.application.ports.workflow_repository import (
    WorkflowRepositoryProtocol,
)

__all__ = [
    "AuditLogProtocol",
    "ContentAnalysisEngineProtocol",
    "ContentAnalysisProviderProtocol",
    "ModerationEventObserverProtocol",
    "ModerationStorageProtocol",
    "ModeratorAssignmentStrategyProtocol",
    "Notification",
    "NotificationChannelProtocol",
    "NotificationEventType",
    "NotificationPayload",
    "NotifierProtocol",
    "ReportRepositoryProtocol",
    "WorkflowRepositoryProtocol",
]
