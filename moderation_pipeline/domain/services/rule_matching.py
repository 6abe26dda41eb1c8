"""Rule condition evaluation.

A rule matches content when every one of its conditions holds. Content
may be a plain string or a mapping; conditions address mapping fields by
dotted path, and the pseudo-fields "content" and "text" refer to the
whole payload (or its "text" key for mappings).
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from moderation_pipeline.domain.models.moderation import Flag
from moderation_pipeline.domain.models.policy import ConditionOperator, Rule, RuleCondition

_MISSING = object()
_WHOLE_CONTENT_FIELDS = frozenset({"content", "text"})


def resolve_field(content: Any, path: str) -> Any:
    """Return the value at a dotted path, or a sentinel when absent."""
    if path in _WHOLE_CONTENT_FIELDS:
        if isinstance(content, Mapping):
            return content.get(path, content.get("text", _MISSING))
        return content

    value: Any = content
    for part in path.split("."):
        if isinstance(value, Mapping) and part in value:
            value = value[part]
        else:
            return _MISSING
    return value


def _normalize(value: Any, case_sensitive: bool) -> Any:
    if isinstance(value, str) and not case_sensitive:
        return value.lower()
    return value


def evaluate_condition(content: Any, condition: RuleCondition) -> bool:
    """Evaluate one condition. Anything that cannot be evaluated is False."""
    actual = resolve_field(content, condition.field)
    if actual is _MISSING:
        return False

    try:
        return _apply_operator(actual, condition)
    except (TypeError, ValueError, re.error):
        return False


def _apply_operator(actual: Any, condition: RuleCondition) -> bool:
    op = condition.operator
    sensitive = condition.case_sensitive
    expected = condition.value

    if op is ConditionOperator.EQUALS:
        return _normalize(actual, sensitive) == _normalize(expected, sensitive)
    if op is ConditionOperator.CONTAINS:
        if isinstance(actual, str):
            return _normalize(str(expected), sensitive) in _normalize(actual, sensitive)
        return expected in actual
    if op is ConditionOperator.MATCHES:
        flags = 0 if sensitive else re.IGNORECASE
        return re.search(str(expected), str(actual), flags) is not None
    if op is ConditionOperator.GT:
        return float(actual) > float(expected)
    if op is ConditionOperator.LT:
        return float(actual) < float(expected)
    if op is ConditionOperator.GTE:
        return float(actual) >= float(expected)
    if op is ConditionOperator.LTE:
        return float(actual) <= float(expected)
    if op in (ConditionOperator.IN, ConditionOperator.NOT_IN):
        if isinstance(expected, str) or not hasattr(expected, "__iter__"):
            raise TypeError("in/not_in operand must be a collection")
        members = [_normalize(v, sensitive) for v in expected]
        found = _normalize(actual, sensitive) in members
        return found if op is ConditionOperator.IN else not found
    return False


def rule_matches(content: Any, rule: Rule) -> bool:
    """True when the rule is enabled, has conditions, and all of them hold."""
    if not rule.enabled or not rule.conditions:
        return False
    return all(evaluate_condition(content, c) for c in rule.conditions)


def flag_for_rule(rule: Rule) -> Flag:
    """Build the flag a matching rule contributes."""
    evidence = tuple(
        f"{c.field} {c.operator.value} {c.value!r}" for c in rule.conditions
    )
    return Flag(
        type="rule_match",
        category=str(rule.category),
        severity=rule.severity,
        message=f"Matched rule '{rule.name}'",
        evidence=evidence,
        confidence=1.0,
    )
