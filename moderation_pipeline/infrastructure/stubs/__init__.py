"""In-memory stub implementations of the application ports.

Used for local wiring and tests; production deployments replace them
with real storage, analysis and delivery adapters.
"""

from moderation_pipeline.infrastructure.stubs.analysis_provider_stub import (
    StaticAnalysisProviderStub,
)
from moderation_pipeline.infrastructure.stubs.audit_log_stub import (
    AuditEntry,
    AuditLogStub,
)
from moderation_pipeline.infrastructure.stubs.content_analysis_engine_stub import (
    KeywordAnalysisEngineStub,
)
from moderation_pipeline.infrastructure.stubs.moderation_storage_stub import (
    ModerationStorageStub,
)
from moderation_pipeline.infrastructure.stubs.notification_channel_stub import (
    NotificationChannelStub,
)
from moderation_pipeline.infrastructure.stubs.report_repository_stub import (
    ReportRepositoryStub,
)
from moderation_pipeline.infrastructure.stubs.workflow_repository_stub import (
    WorkflowRepositoryStub,
)

__all__ = [
    "AuditEntry",
    "AuditLogStub",
    "KeywordAnalysisEngineStub",
    "ModerationStorageStub",
    "NotificationChannelStub",
    "ReportRepositoryStub",
    "StaticAnalysisProviderStub",
    "WorkflowRepositoryStub",
]
