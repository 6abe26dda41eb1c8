"""API models for the moderation endpoints.

Request models validate the shape of incoming payloads. Domain-level
rules, such as every missing report field being listed at once, are
left to the services. Response models are read straight from the domain
dataclasses (from_attributes), so enums serialize to their values.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from moderation_pipeline.domain.models.appeal import AppealAction, AppealStatus
from moderation_pipeline.domain.models.moderation import (
    Action,
    ConfidenceLabel,
    ContentType,
    Priority,
    Severity,
)
from moderation_pipeline.domain.models.policy import ConditionOperator
from moderation_pipeline.domain.models.queue_item import QueueItemStatus
from moderation_pipeline.domain.models.report import ReportStatus, ReportType
from moderation_pipeline.domain.models.review_workflow import (
    ResumeTrigger,
    ReviewAction,
    WorkflowStatus,
    WorkflowType,
)


class _DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Analysis
# =============================================================================


class AnalyzeRequest(BaseModel):
    """Content submitted for automated analysis."""

    content: Any = Field(..., description="Text, or a mapping for structured content")
    content_type: ContentType = Field(ContentType.TEXT, description="Kind of content")
    content_id: str | None = Field(None, description="Identifier; generated when omitted")


class ConfidenceResponse(_DomainModel):
    score: float
    label: ConfidenceLabel


class FlagResponse(_DomainModel):
    id: UUID
    type: str
    category: str
    severity: Severity
    message: str
    evidence: list[str] = Field(default_factory=list)
    confidence: float


class AnalysisResponse(_DomainModel):
    """Merged analysis of a piece of content."""

    id: UUID
    content_id: str
    content_type: ContentType
    category: str
    severity: Severity
    score: float = Field(..., ge=0.0, le=1.0)
    confidence: ConfidenceResponse
    action: Action
    flags: list[FlagResponse] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    processing_time_ms: float
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    processed_at: datetime


# =============================================================================
# Policies and rules
# =============================================================================


class RuleConditionModel(_DomainModel):
    field: str = Field(..., description="Dotted path into the content, or 'content'")
    operator: ConditionOperator
    value: Any = None
    case_sensitive: bool = False


class RuleCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    category: str
    severity: Severity
    action: Action
    conditions: list[RuleConditionModel] = Field(default_factory=list)
    enabled: bool = True
    description: str = ""
    actor: str | None = None


class RuleUpdateRequest(BaseModel):
    name: str | None = None
    category: str | None = None
    severity: Severity | None = None
    action: Action | None = None
    conditions: list[RuleConditionModel] | None = None
    enabled: bool | None = None
    description: str | None = None
    actor: str | None = None


class RuleResponse(_DomainModel):
    id: UUID
    name: str
    category: str
    severity: Severity
    action: Action
    conditions: list[RuleConditionModel] = Field(default_factory=list)
    enabled: bool
    description: str
    created_at: datetime
    updated_at: datetime


class PolicyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    rules: list[UUID] = Field(default_factory=list)
    enabled: bool = True
    description: str = ""
    actor: str | None = None


class PolicyUpdateRequest(BaseModel):
    name: str | None = None
    rules: list[UUID] | None = None
    enabled: bool | None = None
    description: str | None = None
    actor: str | None = None


class PolicyResponse(_DomainModel):
    id: UUID
    name: str
    rules: list[UUID] = Field(default_factory=list)
    enabled: bool
    description: str
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Reports and workflows
# =============================================================================


class ReportCreateRequest(BaseModel):
    """A user report.

    Required fields are loosely typed here so that the intake service can
    report every missing one in a single problem response.
    """

    content: Any = None
    content_id: str = ""
    content_type: ContentType | None = None
    reporter_id: str = ""
    reason: str = ""
    type: ReportType = ReportType.OTHER
    severity: Severity = Severity.MEDIUM
    category: str = "custom"
    priority: Priority | None = None
    description: str | None = None
    evidence: list[str] = Field(default_factory=list)
    reported_user_id: str | None = None
    recommended_action: Action | None = None


class ReportUpdateRequest(BaseModel):
    type: ReportType | None = None
    severity: Severity | None = None
    category: str | None = None
    priority: Priority | None = None
    assigned_to: str | None = None
    description: str | None = None
    recommended_action: Action | None = None
    reported_user_id: str | None = None
    actor: str | None = None


class EvidenceRequest(BaseModel):
    evidence: list[str] = Field(..., min_length=1)
    performed_by: str | None = None


class ResolutionNoteResponse(_DomainModel):
    note: str
    author: str
    timestamp: datetime


class ReportResponse(_DomainModel):
    """A user report with its review state."""

    id: UUID
    content_id: str
    content_type: ContentType
    reporter_id: str
    reason: str
    type: ReportType
    severity: Severity
    category: str
    priority: Priority
    status: ReportStatus
    evidence: list[str] = Field(default_factory=list)
    related_reports: list[UUID] = Field(default_factory=list)
    assigned_to: str | None = None
    workflow_id: UUID | None = None
    escalated: bool
    resolution_notes: list[ResolutionNoteResponse] = Field(default_factory=list)
    analysis: AnalysisResponse | None = None
    recommended_action: Action | None = None
    description: str | None = None
    reported_user_id: str | None = None
    created_at: datetime
    updated_at: datetime


class ReportSubmissionResponse(BaseModel):
    report: ReportResponse
    workflow_id: UUID
    related_reports: list[UUID] = Field(default_factory=list)
    auto_escalated: bool


class ReportListResponse(BaseModel):
    reports: list[ReportResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


class ReviewStepResponse(_DomainModel):
    id: UUID
    name: str
    description: str
    estimated_minutes: int
    required: bool
    completed: bool


class WorkflowHistoryResponse(_DomainModel):
    action: ReviewAction | ResumeTrigger
    performed_by: str
    from_status: WorkflowStatus
    to_status: WorkflowStatus
    notes: str | None = None
    timestamp: datetime


class WorkflowResponse(_DomainModel):
    """Review workflow state and its append-only history."""

    id: UUID
    report_id: UUID
    type: WorkflowType
    status: WorkflowStatus
    priority: Priority
    assigned_to: str | None = None
    current_step: int
    steps: list[ReviewStepResponse]
    history: list[WorkflowHistoryResponse]
    version: int
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None


class ReviewActionRequest(BaseModel):
    action: ReviewAction
    performed_by: str | None = None
    notes: str | None = None
    assignee: str | None = None


class ReviewActionResponse(BaseModel):
    workflow: WorkflowResponse
    report: ReportResponse
    decision_id: UUID | None = None


# =============================================================================
# Queue
# =============================================================================


class QueueItemResponse(_DomainModel):
    id: UUID
    content_id: str
    content_type: ContentType
    priority: Priority
    status: QueueItemStatus
    escalation_level: int
    assigned_to: str | None = None
    assigned_at: datetime | None = None
    report_id: UUID | None = None
    workflow_id: UUID | None = None
    analysis: AnalysisResponse
    created_at: datetime


class AssignRequest(BaseModel):
    moderator_id: str = Field(..., min_length=1)


class AssignResponse(BaseModel):
    item: QueueItemResponse
    newly_assigned: bool


class EscalateRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    performed_by: str | None = None


# =============================================================================
# Decisions and appeals
# =============================================================================


class DecisionCreateRequest(BaseModel):
    content_id: str = Field(..., min_length=1)
    action: Action
    reason: str = Field(..., min_length=1)
    moderator_id: str = Field(..., min_length=1)
    confidence: float = Field(1.0, ge=0.0, le=1.0)
    analysis_id: UUID | None = None
    report_id: UUID | None = None


class DecisionResponse(_DomainModel):
    id: UUID
    content_id: str
    action: Action
    reason: str
    confidence: float
    moderator_id: str
    timestamp: datetime
    expires_at: datetime | None = None
    analysis_id: UUID | None = None
    report_id: UUID | None = None
    supersedes: UUID | None = None
    appeal_id: UUID | None = None


class AppealCreateRequest(BaseModel):
    decision_id: UUID
    appellant_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)
    description: str | None = None
    evidence: list[str] = Field(default_factory=list)


class AppealUpdateRequest(BaseModel):
    description: str | None = None
    evidence: list[str] = Field(default_factory=list)
    actor: str | None = None


class AppealProcessRequest(BaseModel):
    action: AppealAction
    moderator_id: str = Field(..., min_length=1)
    notes: str | None = None
    new_action: Action | None = None


class AppealResponse(_DomainModel):
    id: UUID
    decision_id: UUID
    appellant_id: str
    reason: str
    status: AppealStatus
    description: str | None = None
    evidence: list[str] = Field(default_factory=list)
    resolved_by: str | None = None
    resolution_notes: str | None = None
    resolution_decision_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    resolved_at: datetime | None = None


class AppealResolutionResponse(BaseModel):
    appeal: AppealResponse
    decision: DecisionResponse | None = None


# =============================================================================
# Analytics, events, providers and configuration
# =============================================================================


class TimeRangeResponse(_DomainModel):
    start: datetime
    end: datetime


class ReporterSummaryResponse(_DomainModel):
    reporter_id: str
    report_count: int
    accuracy: float


class ModeratorWorkloadResponse(_DomainModel):
    moderator_id: str
    active: int
    completed: int
    escalated: int
    total: int


class ReportStatisticsResponse(_DomainModel):
    total_reports: int
    by_status: dict[str, int]
    by_severity: dict[str, int]
    by_type: dict[str, int]
    by_category: dict[str, int]
    escalation_rate: float
    rejection_rate: float
    average_resolution_time: float = Field(..., description="Seconds")
    top_reporters: list[ReporterSummaryResponse] = Field(default_factory=list)


class StatsResponse(_DomainModel):
    time_range: TimeRangeResponse
    reports: ReportStatisticsResponse
    total_decisions: int
    decisions_by_action: dict[str, int]
    queue_depth: int
    moderator_workload: list[ModeratorWorkloadResponse] = Field(default_factory=list)


class ReputationResponse(BaseModel):
    user_id: str
    reputation: int = Field(..., ge=0, le=100)


class EventRecordResponse(_DomainModel):
    id: UUID
    event_type: str
    occurred_at: datetime
    content_id: str | None = None
    data: dict[str, Any]


class ProviderListResponse(BaseModel):
    providers: list[str]


class ConfigResponse(BaseModel):
    enabled: bool
    human_review_required: bool
    auto_moderation: bool
    auto_assign: bool
    escalation_threshold: int
    moderator_pool: list[str]
    analysis_timeout_seconds: float
    decision_ttl_days: int
    notification_max_retries: int
    notification_backoff_seconds: float
    queue_poll_interval_seconds: float
    queue_item_delay_seconds: float
    max_events: int


class ConfigUpdateRequest(BaseModel):
    """Configuration changes.

    Unknown keys are passed through so the service can reject them with
    a configuration problem naming the option.
    """

    model_config = ConfigDict(extra="allow")

    enabled: bool | None = None
    human_review_required: bool | None = None
    auto_moderation: bool | None = None
    auto_assign: bool | None = None
    escalation_threshold: int | None = None
    moderator_pool: list[str] | None = None
    analysis_timeout_seconds: float | None = None
    decision_ttl_days: int | None = None
    notification_max_retries: int | None = None
    notification_backoff_seconds: float | None = None
    queue_poll_interval_seconds: float | None = None
    queue_item_delay_seconds: float | None = None
    max_events: int | None = None


class HealthResponse(BaseModel):
    status: str
    queue_depth: int
    queue_processor_running: bool


class ProblemDetail(BaseModel):
    """RFC 7807 problem response."""

    type: str
    title: str
    status: int
    detail: str
    instance: str
    errors: list[str] | None = None
