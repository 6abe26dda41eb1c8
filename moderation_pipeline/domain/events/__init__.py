"""Typed moderation event payloads."""

from moderation_pipeline.domain.events.moderation import (
    AnalysisProviderChangedEvent,
    AppealCreatedEvent,
    AppealResolvedEvent,
    ChangeKind,
    ConfigUpdatedEvent,
    ContentAnalyzedEvent,
    DecisionMadeEvent,
    ModerationEvent,
    ModerationEventRecord,
    PolicyChangedEvent,
    QueueChange,
    QueueItemChangedEvent,
    ReportSubmittedEvent,
    ReportUpdatedEvent,
    ReviewActionProcessedEvent,
    RuleChangedEvent,
)

__all__ = [
    "AnalysisProviderChangedEvent",
    "AppealCreatedEvent",
    "AppealResolvedEvent",
    "ChangeKind",
    "ConfigUpdatedEvent",
    "ContentAnalyzedEvent",
    "DecisionMadeEvent",
    "ModerationEvent",
    "ModerationEventRecord",
    "PolicyChangedEvent",
    "QueueChange",
    "QueueItemChangedEvent",
    "ReportSubmittedEvent",
    "ReportUpdatedEvent",
    "ReviewActionProcessedEvent",
    "RuleChangedEvent",
]
