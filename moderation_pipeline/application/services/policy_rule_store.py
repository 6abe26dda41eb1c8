"""Policy and rule store.

Holds moderation policies and rules and answers lookups. It owns no I/O;
audit logging and event publication for mutations are the orchestrator's
job.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from moderation_pipeline.domain.errors.not_found import (
    PolicyNotFoundError,
    RuleNotFoundError,
)
from moderation_pipeline.domain.errors.validation import ValidationError
from moderation_pipeline.domain.models.moderation import Action, Severity, category_value
from moderation_pipeline.domain.models.policy import Policy, Rule, RuleCondition

POLICY_MUTABLE_FIELDS = frozenset({"name", "rules", "enabled", "description"})
RULE_MUTABLE_FIELDS = frozenset(
    {"name", "category", "severity", "action", "conditions", "enabled", "description"}
)


class PolicyRuleStore:
    """In-memory registry of policies and rules."""

    def __init__(self) -> None:
        self._policies: dict[UUID, Policy] = {}
        self._rules: dict[UUID, Rule] = {}

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def create_rule(
        self,
        name: str,
        category: str,
        severity: Severity,
        action: Action,
        conditions: Iterable[RuleCondition] = (),
        enabled: bool = True,
        description: str = "",
    ) -> Rule:
        if not name or not name.strip():
            raise ValidationError("Rule name is required")
        rule = Rule(
            name=name,
            category=category,
            severity=severity,
            action=action,
            conditions=tuple(conditions),
            enabled=enabled,
            description=description,
        )
        self._rules[rule.id] = rule
        return rule

    def update_rule(self, rule_id: UUID, **changes: Any) -> Rule:
        """Replace mutable fields of a rule.

        Raises:
            RuleNotFoundError: If the rule does not exist.
            ValidationError: If a field is not editable or the name is blank.
        """
        rule = self.get_rule(rule_id)
        _check_fields(changes, RULE_MUTABLE_FIELDS, "rule")
        if "name" in changes and not str(changes["name"]).strip():
            raise ValidationError("Rule name is required")
        if "conditions" in changes:
            changes["conditions"] = tuple(changes["conditions"])
        updated = rule.with_updates(**changes)
        self._rules[rule_id] = updated
        return updated

    def delete_rule(self, rule_id: UUID) -> Rule:
        """Delete a rule and detach it from every policy."""
        rule = self.get_rule(rule_id)
        del self._rules[rule_id]
        for policy_id, policy in list(self._policies.items()):
            self._policies[policy_id] = policy.without_rule(rule_id)
        return rule

    def get_rule(self, rule_id: UUID) -> Rule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id)
        return rule

    def list_rules(
        self,
        categories: Iterable[str] | None = None,
        severities: Iterable[Severity] | None = None,
        actions: Iterable[Action] | None = None,
        enabled: bool | None = None,
    ) -> list[Rule]:
        """Rules in creation order, narrowed by any supplied filters."""
        category_set = {category_value(c) for c in categories} if categories else None
        severity_set = set(severities) if severities else None
        action_set = set(actions) if actions else None
        return [
            rule
            for rule in self._rules.values()
            if (category_set is None or rule.category in category_set)
            and (severity_set is None or rule.severity in severity_set)
            and (action_set is None or rule.action in action_set)
            and (enabled is None or rule.enabled is enabled)
        ]

    def active_rules(self) -> list[Rule]:
        """Enabled rules; disabled rules are kept but never evaluated."""
        return [rule for rule in self._rules.values() if rule.enabled]

    # ------------------------------------------------------------------
    # Policies
    # ------------------------------------------------------------------

    def _check_rule_ids(self, rule_ids: Iterable[UUID]) -> tuple[UUID, ...]:
        ids = tuple(dict.fromkeys(rule_ids))
        for rule_id in ids:
            if rule_id not in self._rules:
                raise RuleNotFoundError(rule_id)
        return ids

    def create_policy(
        self,
        name: str,
        rules: Iterable[UUID] = (),
        enabled: bool = True,
        description: str = "",
    ) -> Policy:
        """Create a policy referencing existing rules.

        Raises:
            ValidationError: If the name is blank.
            RuleNotFoundError: If any referenced rule is unknown.
        """
        if not name or not name.strip():
            raise ValidationError("Policy name is required")
        policy = Policy(
            name=name,
            rules=self._check_rule_ids(rules),
            enabled=enabled,
            description=description,
        )
        self._policies[policy.id] = policy
        return policy

    def update_policy(self, policy_id: UUID, **changes: Any) -> Policy:
        policy = self.get_policy(policy_id)
        _check_fields(changes, POLICY_MUTABLE_FIELDS, "policy")
        if "name" in changes and not str(changes["name"]).strip():
            raise ValidationError("Policy name is required")
        if "rules" in changes:
            changes["rules"] = self._check_rule_ids(changes["rules"])
        updated = policy.with_updates(**changes)
        self._policies[policy_id] = updated
        return updated

    def delete_policy(self, policy_id: UUID) -> Policy:
        policy = self.get_policy(policy_id)
        del self._policies[policy_id]
        return policy

    def get_policy(self, policy_id: UUID) -> Policy:
        policy = self._policies.get(policy_id)
        if policy is None:
            raise PolicyNotFoundError(policy_id)
        return policy

    def list_policies(self, enabled: bool | None = None) -> list[Policy]:
        return [
            p for p in self._policies.values() if enabled is None or p.enabled is enabled
        ]

    def rules_for_policy(self, policy_id: UUID) -> list[Rule]:
        policy = self.get_policy(policy_id)
        return [self._rules[r] for r in policy.rules if r in self._rules]


def _check_fields(changes: dict[str, Any], allowed: frozenset[str], kind: str) -> None:
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise ValidationError(f"Cannot update {kind} field(s): {', '.join(unknown)}")
