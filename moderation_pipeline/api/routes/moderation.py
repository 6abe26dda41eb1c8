"""Moderation API routes.

One router for the whole pipeline, grouped the same way as the
orchestrator: analysis, policies and rules, the review queue, reports
and workflows, decisions and appeals, analytics, providers and
configuration.

Domain errors are not caught here. The app-level handler in
api.main renders them as RFC 7807 problem responses.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from moderation_pipeline.api.dependencies.moderation import get_orchestrator
from moderation_pipeline.api.models.moderation import (
    AnalysisResponse,
    AnalyzeRequest,
    AppealCreateRequest,
    AppealProcessRequest,
    AppealResolutionResponse,
    AppealResponse,
    AppealUpdateRequest,
    AssignRequest,
    AssignResponse,
    ConfigResponse,
    ConfigUpdateRequest,
    DecisionCreateRequest,
    DecisionResponse,
    EscalateRequest,
    EventRecordResponse,
    EvidenceRequest,
    PolicyCreateRequest,
    PolicyResponse,
    PolicyUpdateRequest,
    ProviderListResponse,
    QueueItemResponse,
    ReportCreateRequest,
    ReportListResponse,
    ReportResponse,
    ReportSubmissionResponse,
    ReportUpdateRequest,
    ReputationResponse,
    ReviewActionRequest,
    ReviewActionResponse,
    RuleConditionModel,
    RuleCreateRequest,
    RuleResponse,
    RuleUpdateRequest,
    StatsResponse,
    WorkflowResponse,
)
from moderation_pipeline.application.services.moderation_orchestrator import (
    ModerationOrchestrator,
)
from moderation_pipeline.application.services.report_intake_service import (
    DEFAULT_LIMIT,
    ReportQuery,
)
from moderation_pipeline.domain.models.appeal import Appeal
from moderation_pipeline.domain.models.moderation import Action, Severity
from moderation_pipeline.domain.models.policy import Policy, Rule, RuleCondition
from moderation_pipeline.domain.models.queue_item import QueueItem, QueueItemStatus
from moderation_pipeline.domain.models.report import (
    Report,
    ReportStatus,
    ReportSubmission,
    ReportType,
)

router = APIRouter(prefix="/v1/moderation", tags=["moderation"])


# =============================================================================
# Type Mapping
# =============================================================================


def _report(report: Report) -> ReportResponse:
    return ReportResponse.model_validate(report)


def _queue_item(item: QueueItem) -> QueueItemResponse:
    return QueueItemResponse.model_validate(item)


def _policy(policy: Policy) -> PolicyResponse:
    return PolicyResponse.model_validate(policy)


def _rule(rule: Rule) -> RuleResponse:
    return RuleResponse.model_validate(rule)


def _appeal(appeal: Appeal) -> AppealResponse:
    return AppealResponse.model_validate(appeal)


def _conditions(conditions: list[RuleConditionModel]) -> list[RuleCondition]:
    return [RuleCondition(**condition.model_dump()) for condition in conditions]


def _problem(request: Request, status_code: int, title: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "type": f"urn:moderation:error:{title.lower().replace(' ', '-')}",
            "title": title,
            "status": status_code,
            "detail": detail,
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
    )


# =============================================================================
# Analysis
# =============================================================================


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze_content(
    body: AnalyzeRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> AnalysisResponse:
    """Analyze content and act on the result.

    Analysis never fails from the caller's point of view: if the analysis
    capability is down, the content is allowed with a zero score.
    """
    analysis = await orchestrator.analyze_content(
        body.content, body.content_type, body.content_id
    )
    return AnalysisResponse.model_validate(analysis)


# =============================================================================
# Policies and rules
# =============================================================================


@router.post("/policies", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def create_policy(
    body: PolicyCreateRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> PolicyResponse:
    policy = await orchestrator.create_policy(
        name=body.name,
        rules=body.rules,
        enabled=body.enabled,
        description=body.description,
        actor=body.actor,
    )
    return _policy(policy)


@router.get("/policies", response_model=list[PolicyResponse])
async def list_policies(
    enabled: bool | None = Query(None),
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> list[PolicyResponse]:
    return [_policy(p) for p in await orchestrator.list_policies(enabled)]


@router.get("/policies/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: UUID,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> PolicyResponse:
    return _policy(await orchestrator.get_policy(policy_id))


@router.patch("/policies/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: UUID,
    body: PolicyUpdateRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> PolicyResponse:
    changes = body.model_dump(exclude_unset=True)
    actor = changes.pop("actor", None)
    policy = await orchestrator.update_policy(policy_id, actor=actor, **changes)
    return _policy(policy)


@router.delete("/policies/{policy_id}", response_model=PolicyResponse)
async def delete_policy(
    policy_id: UUID,
    actor: str | None = Query(None),
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> PolicyResponse:
    return _policy(await orchestrator.delete_policy(policy_id, actor=actor))


@router.post("/rules", response_model=RuleResponse, status_code=status.HTTP_201_CREATED)
async def create_rule(
    body: RuleCreateRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> RuleResponse:
    rule = await orchestrator.create_rule(
        name=body.name,
        category=body.category,
        severity=body.severity,
        action=body.action,
        conditions=_conditions(body.conditions),
        enabled=body.enabled,
        description=body.description,
        actor=body.actor,
    )
    return _rule(rule)


@router.get("/rules", response_model=list[RuleResponse])
async def list_rules(
    category: list[str] | None = Query(None),
    severity: list[Severity] | None = Query(None),
    action: list[Action] | None = Query(None),
    enabled: bool | None = Query(None),
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> list[RuleResponse]:
    rules = await orchestrator.list_rules(
        categories=category, severities=severity, actions=action, enabled=enabled
    )
    return [_rule(r) for r in rules]


@router.get("/rules/{rule_id}", response_model=RuleResponse)
async def get_rule(
    rule_id: UUID,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> RuleResponse:
    return _rule(await orchestrator.get_rule(rule_id))


@router.patch("/rules/{rule_id}", response_model=RuleResponse)
async def update_rule(
    rule_id: UUID,
    body: RuleUpdateRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> RuleResponse:
    changes = body.model_dump(exclude_unset=True, exclude={"conditions"})
    actor = changes.pop("actor", None)
    if "conditions" in body.model_fields_set and body.conditions is not None:
        changes["conditions"] = _conditions(body.conditions)
    rule = await orchestrator.update_rule(rule_id, actor=actor, **changes)
    return _rule(rule)


@router.delete("/rules/{rule_id}", response_model=RuleResponse)
async def delete_rule(
    rule_id: UUID,
    actor: str | None = Query(None),
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> RuleResponse:
    return _rule(await orchestrator.delete_rule(rule_id, actor=actor))


# =============================================================================
# Review queue
# =============================================================================


@router.get("/queue", response_model=list[QueueItemResponse])
async def get_queue(
    status_filter: QueueItemStatus | None = Query(None, alias="status"),
    assigned_to: str | None = Query(None),
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> list[QueueItemResponse]:
    """Queue items in review order: priority, then age."""
    items = await orchestrator.get_queue(status=status_filter, assigned_to=assigned_to)
    return [_queue_item(i) for i in items]


@router.get("/queue/{item_id}", response_model=QueueItemResponse)
async def get_queue_item(
    item_id: UUID,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> QueueItemResponse:
    return _queue_item(await orchestrator.get_queue_item(item_id))


@router.post("/queue/{item_id}/assign", response_model=AssignResponse)
async def assign_queue_item(
    item_id: UUID,
    body: AssignRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> AssignResponse:
    """Assign an item to a moderator.

    newly_assigned is False when someone else already holds the item; the
    returned item then shows the existing assignee.
    """
    assignment = await orchestrator.assign_to_moderator(item_id, body.moderator_id)
    return AssignResponse(
        item=_queue_item(assignment.item),
        newly_assigned=assignment.newly_assigned,
    )


@router.post("/queue/{item_id}/escalate", response_model=QueueItemResponse)
async def escalate_queue_item(
    item_id: UUID,
    body: EscalateRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> QueueItemResponse:
    item = await orchestrator.escalate_item(item_id, body.reason, body.performed_by)
    return _queue_item(item)


@router.delete("/queue/{item_id}", response_model=QueueItemResponse)
async def cancel_queue_item(
    item_id: UUID,
    actor: str | None = Query(None),
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> QueueItemResponse:
    return _queue_item(await orchestrator.cancel_queue_item(item_id, actor=actor))


# =============================================================================
# Reports and workflows
# =============================================================================


@router.post(
    "/reports",
    response_model=ReportSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_report(
    body: ReportCreateRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> ReportSubmissionResponse:
    """File a user report and queue its content for review."""
    submission = ReportSubmission(
        content=body.content,
        content_id=body.content_id,
        content_type=body.content_type,
        reporter_id=body.reporter_id,
        reason=body.reason,
        type=body.type,
        severity=body.severity,
        category=body.category,
        priority=body.priority,
        description=body.description,
        evidence=tuple(body.evidence),
        reported_user_id=body.reported_user_id,
        recommended_action=body.recommended_action,
    )
    result = await orchestrator.submit_report(submission)
    return ReportSubmissionResponse(
        report=_report(result.report),
        workflow_id=result.workflow.id,
        related_reports=[r.id for r in result.related],
        auto_escalated=result.auto_escalated,
    )


@router.get("/reports", response_model=ReportListResponse)
async def list_reports(
    status_filter: ReportStatus | None = Query(None, alias="status"),
    report_type: ReportType | None = Query(None, alias="type"),
    severity: Severity | None = Query(None),
    category: str | None = Query(None),
    reporter_id: str | None = Query(None),
    assigned_to: str | None = Query(None),
    content_id: str | None = Query(None),
    escalated: bool | None = Query(None),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc"),
    limit: int = Query(DEFAULT_LIMIT),
    offset: int = Query(0),
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> ReportListResponse:
    query = ReportQuery(
        status=status_filter,
        type=report_type,
        severity=severity,
        category=category,
        reporter_id=reporter_id,
        assigned_to=assigned_to,
        content_id=content_id,
        escalated=escalated,
        start=start,
        end=end,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    result = await orchestrator.list_reports(query)
    return ReportListResponse(
        reports=[_report(r) for r in result.reports],
        total=result.total,
        limit=result.limit,
        offset=result.offset,
        has_more=result.has_more,
    )


@router.get("/reports/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: UUID,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> ReportResponse:
    return _report(await orchestrator.get_report(report_id))


@router.get("/reports/{report_id}/similar", response_model=list[ReportResponse])
async def get_similar_reports(
    report_id: UUID,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> list[ReportResponse]:
    return [_report(r) for r in await orchestrator.get_similar_reports(report_id)]


@router.patch("/reports/{report_id}", response_model=ReportResponse)
async def update_report(
    report_id: UUID,
    body: ReportUpdateRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> ReportResponse:
    changes = body.model_dump(exclude_unset=True)
    actor = changes.pop("actor", None)
    report = await orchestrator.update_report(report_id, actor=actor, **changes)
    return _report(report)


@router.post("/reports/{report_id}/evidence", response_model=ReportResponse)
async def add_report_evidence(
    report_id: UUID,
    body: EvidenceRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> ReportResponse:
    """Attach evidence; a workflow waiting for information resumes."""
    report = await orchestrator.add_report_evidence(
        report_id, body.evidence, body.performed_by
    )
    return _report(report)


@router.get("/workflows/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(
    workflow_id: UUID,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> WorkflowResponse:
    return WorkflowResponse.model_validate(await orchestrator.get_workflow(workflow_id))


@router.post("/workflows/{workflow_id}/actions", response_model=ReviewActionResponse)
async def process_review_action(
    workflow_id: UUID,
    body: ReviewActionRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> ReviewActionResponse:
    """Apply a reviewer action to a workflow.

    Acting on a completed or rejected workflow is a conflict.
    """
    outcome = await orchestrator.process_review_action(
        workflow_id,
        body.action,
        performed_by=body.performed_by,
        notes=body.notes,
        assignee=body.assignee,
    )
    return ReviewActionResponse(
        workflow=WorkflowResponse.model_validate(outcome.workflow),
        report=_report(outcome.report),
        decision_id=outcome.decision.id if outcome.decision else None,
    )


# =============================================================================
# Decisions and appeals
# =============================================================================


@router.post(
    "/decisions",
    response_model=DecisionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def make_decision(
    body: DecisionCreateRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> DecisionResponse:
    decision = await orchestrator.make_decision(
        content_id=body.content_id,
        action=body.action,
        reason=body.reason,
        moderator_id=body.moderator_id,
        confidence=body.confidence,
        analysis_id=body.analysis_id,
        report_id=body.report_id,
    )
    return DecisionResponse.model_validate(decision)


@router.get("/decisions", response_model=list[DecisionResponse])
async def list_decisions(
    content_id: str | None = Query(None),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> list[DecisionResponse]:
    decisions = await orchestrator.list_decisions(content_id, start, end)
    return [DecisionResponse.model_validate(d) for d in decisions]


@router.get("/decisions/{decision_id}", response_model=DecisionResponse)
async def get_decision(
    decision_id: UUID,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> DecisionResponse:
    return DecisionResponse.model_validate(await orchestrator.get_decision(decision_id))


@router.get(
    "/content/{content_id}/decision",
    response_model=DecisionResponse,
    responses={404: {"description": "No decision in force for the content"}},
)
async def get_current_decision(
    content_id: str,
    request: Request,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> DecisionResponse | JSONResponse:
    """The decision currently in force: the latest one not superseded."""
    decision = await orchestrator.current_decision(content_id)
    if decision is None:
        return _problem(
            request,
            status.HTTP_404_NOT_FOUND,
            "Decision Not Found",
            f"No decision in force for content {content_id}",
        )
    return DecisionResponse.model_validate(decision)


@router.post("/appeals", response_model=AppealResponse, status_code=status.HTTP_201_CREATED)
async def create_appeal(
    body: AppealCreateRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> AppealResponse:
    appeal = await orchestrator.create_appeal(
        decision_id=body.decision_id,
        appellant_id=body.appellant_id,
        reason=body.reason,
        description=body.description,
        evidence=body.evidence,
    )
    return _appeal(appeal)


@router.get("/appeals", response_model=list[AppealResponse])
async def list_appeals(
    decision_id: UUID | None = Query(None),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> list[AppealResponse]:
    return [_appeal(a) for a in await orchestrator.list_appeals(decision_id, start, end)]


@router.get("/appeals/{appeal_id}", response_model=AppealResponse)
async def get_appeal(
    appeal_id: UUID,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> AppealResponse:
    return _appeal(await orchestrator.get_appeal(appeal_id))


@router.patch("/appeals/{appeal_id}", response_model=AppealResponse)
async def update_appeal(
    appeal_id: UUID,
    body: AppealUpdateRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> AppealResponse:
    appeal = await orchestrator.update_appeal(
        appeal_id, body.description, body.evidence, actor=body.actor
    )
    return _appeal(appeal)


@router.post("/appeals/{appeal_id}/process", response_model=AppealResolutionResponse)
async def process_appeal(
    appeal_id: UUID,
    body: AppealProcessRequest,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> AppealResolutionResponse:
    """Approve (supersede the decision) or reject (uphold it)."""
    resolution = await orchestrator.process_appeal(
        appeal_id,
        body.action,
        body.moderator_id,
        notes=body.notes,
        new_action=body.new_action,
    )
    return AppealResolutionResponse(
        appeal=_appeal(resolution.appeal),
        decision=(
            DecisionResponse.model_validate(resolution.decision)
            if resolution.decision
            else None
        ),
    )


# =============================================================================
# Analytics and events
# =============================================================================


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> StatsResponse:
    """Report, decision and workload statistics; defaults to the last week."""
    return StatsResponse.model_validate(await orchestrator.get_stats(start, end))


@router.get("/users/{user_id}/reputation", response_model=ReputationResponse)
async def get_user_reputation(
    user_id: str,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> ReputationResponse:
    reputation = await orchestrator.get_user_reputation(user_id)
    return ReputationResponse(user_id=user_id, reputation=reputation)


@router.get("/users/{user_id}/reports", response_model=list[ReportResponse])
async def get_user_reports(
    user_id: str,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> list[ReportResponse]:
    return [_report(r) for r in await orchestrator.get_user_reports(user_id)]


@router.get("/events", response_model=list[EventRecordResponse])
async def get_events(
    event_type: str | None = Query(None),
    content_id: str | None = Query(None),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    limit: int | None = Query(None, ge=1),
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> list[EventRecordResponse]:
    """Stored pipeline events, newest first."""
    records = await orchestrator.get_events(event_type, content_id, start, end, limit)
    return [EventRecordResponse.model_validate(r) for r in records]


# =============================================================================
# Providers and configuration
# =============================================================================


@router.get("/providers", response_model=ProviderListResponse)
async def list_providers(
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> ProviderListResponse:
    return ProviderListResponse(providers=await orchestrator.list_analysis_providers())


@router.delete("/providers/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_provider(
    name: str,
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> None:
    await orchestrator.remove_analysis_provider(name)


@router.get("/config", response_model=ConfigResponse)
async def get_config(
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> ConfigResponse:
    return ConfigResponse(**orchestrator.get_config().to_dict())


@router.patch("/config", response_model=ConfigResponse)
async def update_config(
    body: ConfigUpdateRequest,
    actor: str | None = Query(None),
    orchestrator: ModerationOrchestrator = Depends(get_orchestrator),
) -> ConfigResponse:
    """Change pipeline options at runtime.

    Unknown options and out-of-range values are rejected. max_events only
    applies the next time the pipeline is built.
    """
    changes = {**body.model_dump(exclude_unset=True), **(body.model_extra or {})}
    config = await orchestrator.update_config(actor=actor, **changes)
    return ConfigResponse(**config.to_dict())
