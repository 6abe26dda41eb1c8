"""Moderation policies and rules.

A Rule pairs matcher conditions with the category, severity and action
it contributes when it matches. A Policy groups rules by id. Rules are
evaluated independently of the policies that reference them; a disabled
rule is skipped but kept.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from moderation_pipeline.domain.models.moderation import Action, Severity, category_value


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    MATCHES = "matches"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    IN = "in"
    NOT_IN = "not_in"


@dataclass(frozen=True, eq=True)
class RuleCondition:
    """A single matcher clause of a rule.

    Attributes:
        field: Dotted path into mapping content, or "content"/"text" for
            the raw payload.
        operator: Comparison to apply.
        value: Operand compared against the field value.
        case_sensitive: Whether string comparisons respect case.
    """

    field: str
    operator: ConditionOperator
    value: Any
    case_sensitive: bool = False


@dataclass(frozen=True, eq=True)
class Rule:
    """A moderation rule.

    A rule matches when all of its conditions hold. A rule without
    conditions never matches.
    """

    name: str
    category: str
    severity: Severity
    action: Action
    conditions: tuple[RuleCondition, ...] = ()
    enabled: bool = True
    description: str = ""
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", category_value(self.category))
        if not self.name.strip():
            raise ValueError("Rule name must not be empty")

    def with_updates(self, **changes: Any) -> Rule:
        """Return a copy with the given fields replaced and updated_at bumped."""
        changes.pop("id", None)
        changes.pop("created_at", None)
        return replace(self, **changes, updated_at=_utc_now())


@dataclass(frozen=True, eq=True)
class Policy:
    """A named group of rules."""

    name: str
    rules: tuple[UUID, ...] = ()
    enabled: bool = True
    description: str = ""
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Policy name must not be empty")

    def with_updates(self, **changes: Any) -> Policy:
        """Return a copy with the given fields replaced and updated_at bumped."""
        changes.pop("id", None)
        changes.pop("created_at", None)
        return replace(self, **changes, updated_at=_utc_now())

    def without_rule(self, rule_id: UUID) -> Policy:
        """Return a copy no longer referencing rule_id."""
        if rule_id not in self.rules:
            return self
        return self.with_updates(rules=tuple(r for r in self.rules if r != rule_id))
