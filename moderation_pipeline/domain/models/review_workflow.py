"""Review workflow state machine.

Each report gets exactly one ReviewWorkflow at intake. The workflow moves
through the following states:

    pending -> in_progress -> {completed | rejected | escalated | waiting_for_info}

completed and rejected are terminal. escalated and waiting_for_info are not:
both return to in_progress when the item is reassigned through the queue
or when the reporter supplies the requested information.

Status changes are driven by five reviewer actions (approve, reject,
escalate, request_more_info, reassign) plus the two resume triggers
above. Every change appends to an append-only history, which is the
canonical audit trail. Each change also bumps `version` for
compare-and-set persistence.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from moderation_pipeline.domain.errors.validation import ValidationError
from moderation_pipeline.domain.errors.workflow import (
    InvalidWorkflowTransitionError,
    WorkflowAlreadyTerminalError,
)
from moderation_pipeline.domain.models.moderation import Priority, Severity


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


SYSTEM_ACTOR = "system"


class WorkflowStatus(str, Enum):
    """Review workflow states."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    WAITING_FOR_INFO = "waiting_for_info"
    ESCALATED = "escalated"
    COMPLETED = "completed"
    REJECTED = "rejected"

    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES

    def allowed_actions(self) -> frozenset[ReviewAction]:
        return ACTION_MATRIX.get(self, frozenset())


class ReviewAction(str, Enum):
    """Reviewer actions that drive a workflow."""

    APPROVE = "approve"
    REJECT = "reject"
    ESCALATE = "escalate"
    REQUEST_MORE_INFO = "request_more_info"
    REASSIGN = "reassign"


class ResumeTrigger(str, Enum):
    """Non-reviewer events that return a workflow to in_progress."""

    ASSIGNED = "assigned"
    INFO_PROVIDED = "info_provided"


class WorkflowType(str, Enum):
    USER_REPORT = "user_report"
    CONTENT_REVIEW = "content_review"


TERMINAL_STATES: frozenset[WorkflowStatus] = frozenset(
    {WorkflowStatus.COMPLETED, WorkflowStatus.REJECTED}
)

_ALL_ACTIONS: frozenset[ReviewAction] = frozenset(ReviewAction)

ACTION_MATRIX: dict[WorkflowStatus, frozenset[ReviewAction]] = {
    WorkflowStatus.PENDING: _ALL_ACTIONS,
    WorkflowStatus.IN_PROGRESS: _ALL_ACTIONS,
    WorkflowStatus.WAITING_FOR_INFO: _ALL_ACTIONS - {ReviewAction.REQUEST_MORE_INFO},
    WorkflowStatus.ESCALATED: _ALL_ACTIONS,
    WorkflowStatus.COMPLETED: frozenset(),
    WorkflowStatus.REJECTED: frozenset(),
}

# None means the action leaves the status unchanged.
ACTION_TARGET: dict[ReviewAction, WorkflowStatus | None] = {
    ReviewAction.APPROVE: WorkflowStatus.COMPLETED,
    ReviewAction.REJECT: WorkflowStatus.REJECTED,
    ReviewAction.ESCALATE: WorkflowStatus.ESCALATED,
    ReviewAction.REQUEST_MORE_INFO: WorkflowStatus.WAITING_FOR_INFO,
    ReviewAction.REASSIGN: None,
}

RESUMABLE_STATES: frozenset[WorkflowStatus] = frozenset(
    {
        WorkflowStatus.PENDING,
        WorkflowStatus.ESCALATED,
        WorkflowStatus.WAITING_FOR_INFO,
    }
)


# ----------------------------------------------------------------------
# Steps
# ----------------------------------------------------------------------

STEP_INITIAL_REVIEW = "initial_review"
STEP_CONTENT_ANALYSIS = "content_analysis"
STEP_DECISION = "decision"
STEP_ESCALATION_REVIEW = "escalation_review"


@dataclass(frozen=True, eq=True)
class ReviewStep:
    """Advisory step in a review workflow."""

    name: str
    description: str
    estimated_minutes: int
    required: bool = True
    completed: bool = False
    id: UUID = field(default_factory=uuid4)

    def mark_completed(self) -> ReviewStep:
        return self if self.completed else replace(self, completed=True)


def normalize_actor(performed_by: str | None) -> str | None:
    """Strip an actor name; None stays None.

    Raises:
        ValidationError: If an actor is given but blank.
    """
    if performed_by is None:
        return None
    actor = performed_by.strip()
    if not actor:
        raise ValidationError("performed_by must not be blank")
    return actor


def _escalation_step() -> ReviewStep:
    return ReviewStep(
        name=STEP_ESCALATION_REVIEW,
        description="Senior moderator review of escalated content",
        estimated_minutes=15,
    )


def generate_review_steps(severity: Severity, escalated: bool = False) -> tuple[ReviewStep, ...]:
    """Build the step template for a report.

    HIGH and CRITICAL reports, and reports already escalated, get an
    extra escalation_review step. Steps are advisory only and do not
    constrain which actions are permitted.
    """
    steps = [
        ReviewStep(
            name=STEP_INITIAL_REVIEW,
            description="Initial review of the reported content",
            estimated_minutes=5,
        ),
        ReviewStep(
            name=STEP_CONTENT_ANALYSIS,
            description="Review automated analysis and evidence",
            estimated_minutes=10,
        ),
        ReviewStep(
            name=STEP_DECISION,
            description="Record the moderation decision",
            estimated_minutes=5,
        ),
    ]
    if escalated or severity in (Severity.HIGH, Severity.CRITICAL):
        steps.append(_escalation_step())
    return tuple(steps)


# ----------------------------------------------------------------------
# Workflow
# ----------------------------------------------------------------------


@dataclass(frozen=True, eq=True)
class WorkflowHistoryEntry:
    """One append-only history record.

    Attributes:
        action: Reviewer action or resume trigger value.
        performed_by: Actor id, or "system".
        from_status: Status before the change.
        to_status: Status after the change.
        notes: Optional free text.
        timestamp: When the change happened.
    """

    action: ReviewAction | ResumeTrigger
    performed_by: str
    from_status: WorkflowStatus
    to_status: WorkflowStatus
    notes: str | None = None
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, eq=True)
class ReviewWorkflow:
    """Stateful review process for a single report.

    Attributes:
        report_id: The report under review (1:1).
        priority: Review priority, mirrored from the report.
        steps: Advisory step list.
        status: Current state.
        assigned_to: Moderator currently responsible.
        type: Workflow kind.
        current_step: Index into steps.
        history: Append-only record of every change.
        version: Incremented on every change.
        completed_at: Set when a terminal state is reached.
    """

    report_id: UUID
    priority: Priority
    steps: tuple[ReviewStep, ...]
    status: WorkflowStatus = WorkflowStatus.PENDING
    assigned_to: str | None = None
    type: WorkflowType = WorkflowType.USER_REPORT
    current_step: int = 0
    history: tuple[WorkflowHistoryEntry, ...] = ()
    version: int = 1
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal()

    @property
    def current_step_name(self) -> str | None:
        if 0 <= self.current_step < len(self.steps):
            return self.steps[self.current_step].name
        return None

    def _step_index(self, name: str) -> int | None:
        for index, step in enumerate(self.steps):
            if step.name == name:
                return index
        return None

    def _advance_steps(
        self, steps: tuple[ReviewStep, ...], target: str
    ) -> tuple[tuple[ReviewStep, ...], int]:
        index = next(
            (i for i, s in enumerate(steps) if s.name == target), self.current_step
        )
        advanced = tuple(
            step.mark_completed() if i < index else step for i, step in enumerate(steps)
        )
        return advanced, index

    def _record(
        self,
        action: ReviewAction | ResumeTrigger,
        to_status: WorkflowStatus,
        performed_by: str,
        notes: str | None,
        **changes: object,
    ) -> ReviewWorkflow:
        now = _utc_now()
        entry = WorkflowHistoryEntry(
            action=action,
            performed_by=performed_by,
            from_status=self.status,
            to_status=to_status,
            notes=notes,
            timestamp=now,
        )
        return replace(
            self,
            status=to_status,
            history=(*self.history, entry),
            version=self.version + 1,
            updated_at=now,
            **changes,
        )

    def apply(
        self,
        action: ReviewAction,
        performed_by: str | None = None,
        notes: str | None = None,
        assignee: str | None = None,
    ) -> ReviewWorkflow:
        """Apply a reviewer action and return the resulting workflow.

        Args:
            action: One of the five reviewer actions.
            performed_by: Acting moderator; defaults to the assignee or "system".
            notes: Optional notes stored in history.
            assignee: New assignee, required for reassign.

        Returns:
            New workflow reflecting the transition.

        Raises:
            WorkflowAlreadyTerminalError: If the workflow is completed or rejected.
            InvalidWorkflowTransitionError: If the action is not allowed now.
            ValidationError: If performed_by is blank, or reassign is
                requested without an assignee.
        """
        performed_by = normalize_actor(performed_by)
        if self.is_terminal:
            raise WorkflowAlreadyTerminalError(self.id, self.status, action.value)
        if action not in self.status.allowed_actions():
            raise InvalidWorkflowTransitionError(self.id, self.status, action.value)

        actor = performed_by or self.assigned_to or SYSTEM_ACTOR
        target = ACTION_TARGET[action] or self.status

        if action is ReviewAction.REASSIGN:
            if not assignee or not assignee.strip():
                raise ValidationError("reassign requires an assignee")
            return self._record(action, target, actor, notes, assigned_to=assignee.strip())

        if action is ReviewAction.ESCALATE:
            steps = self.steps
            index = self._step_index(STEP_ESCALATION_REVIEW)
            if index is None:
                steps = (*steps, _escalation_step())
                index = len(steps) - 1
            return self._record(
                action,
                target,
                actor,
                notes,
                assigned_to=None,
                steps=steps,
                current_step=index,
            )

        if action in (ReviewAction.APPROVE, ReviewAction.REJECT):
            steps, index = self._advance_steps(self.steps, STEP_DECISION)
            steps = tuple(
                s.mark_completed() if s.name == STEP_DECISION else s for s in steps
            )
            return self._record(
                action,
                target,
                actor,
                notes,
                steps=steps,
                current_step=index,
                completed_at=_utc_now(),
            )

        return self._record(action, target, actor, notes)

    def resume(
        self,
        trigger: ResumeTrigger,
        performed_by: str | None = None,
        notes: str | None = None,
        assignee: str | None = None,
    ) -> ReviewWorkflow:
        """Return the workflow to in_progress after assignment or new information.

        A workflow already in progress only picks up the new assignee.

        Raises:
            WorkflowAlreadyTerminalError: If the workflow is completed or rejected.
            ValidationError: If performed_by is blank.
        """
        performed_by = normalize_actor(performed_by)
        if self.is_terminal:
            raise WorkflowAlreadyTerminalError(self.id, self.status, trigger.value)

        new_assignee = assignee or self.assigned_to
        actor = performed_by or new_assignee or SYSTEM_ACTOR
        if self.status not in RESUMABLE_STATES:
            if new_assignee == self.assigned_to:
                return self
            return self._record(
                trigger, self.status, actor, notes, assigned_to=new_assignee
            )

        changes: dict[str, object] = {"assigned_to": new_assignee}
        if self.status is WorkflowStatus.PENDING:
            steps, index = self._advance_steps(self.steps, STEP_CONTENT_ANALYSIS)
            changes.update(steps=steps, current_step=index)
        return self._record(trigger, WorkflowStatus.IN_PROGRESS, actor, notes, **changes)

    def with_priority(self, priority: Priority) -> ReviewWorkflow:
        if priority is self.priority:
            return self
        return replace(
            self, priority=priority, version=self.version + 1, updated_at=_utc_now()
        )

    def with_assignee(self, assignee: str | None) -> ReviewWorkflow:
        if assignee == self.assigned_to:
            return self
        return replace(
            self, assigned_to=assignee, version=self.version + 1, updated_at=_utc_now()
        )
