"""Default scoring and action policy for merged analyses.

These are the stock implementations behind the analysis engine's
calculate_score and determine_action. They are pure functions of a flag
set, so scoring policy can be swapped without touching the merger.
"""

from __future__ import annotations

from collections.abc import Sequence

from moderation_pipeline.domain.models.moderation import (
    Action,
    Category,
    Flag,
    Priority,
    Severity,
)

CATEGORY_WEIGHTS: dict[str, float] = {
    Category.HATE_SPEECH.value: 0.9,
    Category.HARASSMENT.value: 0.85,
    Category.VIOLENCE.value: 0.95,
    Category.THREATS.value: 0.9,
    Category.SELF_HARM.value: 0.9,
    Category.ILLEGAL_CONTENT.value: 0.95,
    Category.ADULT_CONTENT.value: 0.7,
    Category.SPAM.value: 0.6,
    Category.MISINFORMATION.value: 0.5,
    Category.COPYRIGHT_VIOLATION.value: 0.6,
    Category.PERSONAL_INFO.value: 0.7,
    Category.POLITICAL.value: 0.3,
    Category.RELIGIOUS.value: 0.3,
    Category.CUSTOM.value: 0.4,
}

# Categories outside the table (e.g. free-form report categories).
DEFAULT_CATEGORY_WEIGHT = 0.5

SEVERITY_WEIGHTS: dict[Severity, float] = {
    Severity.LOW: 0.2,
    Severity.MEDIUM: 0.5,
    Severity.HIGH: 0.8,
    Severity.CRITICAL: 1.0,
}

BLOCK_THRESHOLD = 0.9
REVIEW_THRESHOLD = 0.7
FLAG_THRESHOLD = 0.5
LOW_FLAG_THRESHOLD = 0.3
# Above this many flags a high-severity analysis is blocked outright.
BLOCK_FLAG_COUNT = 3


def calculate_score(flags: Sequence[Flag]) -> float:
    """Confidence-weighted mean of category weight x severity weight.

    Returns 0.0 for an empty flag set and never exceeds 1.0.
    """
    total_confidence = sum(flag.confidence for flag in flags)
    if not flags or total_confidence <= 0:
        return 0.0

    weighted = sum(
        CATEGORY_WEIGHTS.get(str(flag.category), DEFAULT_CATEGORY_WEIGHT)
        * SEVERITY_WEIGHTS[flag.severity]
        * flag.confidence
        for flag in flags
    )
    return min(weighted / total_confidence, 1.0)


def determine_action(severity: Severity, score: float, flag_count: int) -> Action:
    """Map aggregate severity and score to an action.

    critical or score >= 0.9 blocks; high or score >= 0.7 goes to review
    (or blocks when there are more than three flags); medium or any score
    of at least 0.3 flags; everything else is allowed.
    """
    if severity is Severity.CRITICAL or score >= BLOCK_THRESHOLD:
        return Action.BLOCK
    if severity is Severity.HIGH or score >= REVIEW_THRESHOLD:
        return Action.BLOCK if flag_count > BLOCK_FLAG_COUNT else Action.REVIEW
    if severity is Severity.MEDIUM or score >= FLAG_THRESHOLD:
        return Action.FLAG
    if score >= LOW_FLAG_THRESHOLD:
        return Action.FLAG
    return Action.ALLOW


def queue_priority(severity: Severity, score: float) -> Priority:
    """Review priority for an analysis pushed to the queue."""
    if severity is Severity.CRITICAL:
        return Priority.URGENT
    if severity is Severity.HIGH:
        return Priority.HIGH
    if score > REVIEW_THRESHOLD:
        return Priority.NORMAL
    return Priority.LOW
