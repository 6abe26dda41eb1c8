"""Unit tests for scoring, action selection and flag aggregation."""

from __future__ import annotations

import pytest

from moderation_pipeline.domain.models.moderation import (
    Action,
    Analysis,
    Confidence,
    ContentType,
    Flag,
    Priority,
    Severity,
)
from moderation_pipeline.domain.services.flag_aggregation import (
    highest_severity,
    plurality_category,
)
from moderation_pipeline.domain.services.moderation_scoring import (
    calculate_score,
    determine_action,
    queue_priority,
)


def flag(
    category: str = "spam",
    severity: Severity = Severity.MEDIUM,
    confidence: float = 1.0,
) -> Flag:
    return Flag(
        type="keyword",
        category=category,
        severity=severity,
        message="test flag",
        confidence=confidence,
    )


class TestCalculateScore:
    def test_empty_flags_score_zero(self) -> None:
        assert calculate_score([]) == 0.0

    def test_single_flag_is_category_times_severity(self) -> None:
        # violence 0.95 x high 0.8
        assert calculate_score([flag("violence", Severity.HIGH)]) == pytest.approx(0.76)

    def test_confidence_weighted_mean(self) -> None:
        flags = [
            flag("spam", Severity.LOW, confidence=1.0),  # 0.6 x 0.2 = 0.12
            flag("violence", Severity.CRITICAL, confidence=0.5),  # 0.95 x 1.0
        ]
        expected = (0.12 * 1.0 + 0.95 * 0.5) / 1.5
        assert calculate_score(flags) == pytest.approx(expected)

    def test_unknown_category_uses_default_weight(self) -> None:
        assert calculate_score([flag("custom_thing", Severity.CRITICAL)]) == pytest.approx(0.5)

    def test_zero_confidence_scores_zero(self) -> None:
        assert calculate_score([flag(confidence=0.0)]) == 0.0

    def test_never_exceeds_one(self) -> None:
        flags = [flag("violence", Severity.CRITICAL) for _ in range(10)]
        assert calculate_score(flags) <= 1.0


class TestDetermineAction:
    @pytest.mark.parametrize(
        ("severity", "score", "count", "expected"),
        [
            (Severity.CRITICAL, 0.1, 1, Action.BLOCK),
            (Severity.LOW, 0.95, 1, Action.BLOCK),
            (Severity.HIGH, 0.1, 1, Action.REVIEW),
            (Severity.HIGH, 0.1, 4, Action.BLOCK),
            (Severity.LOW, 0.75, 3, Action.REVIEW),
            (Severity.MEDIUM, 0.1, 1, Action.FLAG),
            (Severity.LOW, 0.55, 1, Action.FLAG),
            (Severity.LOW, 0.35, 1, Action.FLAG),
            (Severity.LOW, 0.2, 1, Action.ALLOW),
            (Severity.LOW, 0.0, 0, Action.ALLOW),
        ],
    )
    def test_action_table(
        self, severity: Severity, score: float, count: int, expected: Action
    ) -> None:
        assert determine_action(severity, score, count) is expected


class TestQueuePriority:
    def test_priority_follows_severity_then_score(self) -> None:
        assert queue_priority(Severity.CRITICAL, 0.0) is Priority.URGENT
        assert queue_priority(Severity.HIGH, 0.0) is Priority.HIGH
        assert queue_priority(Severity.MEDIUM, 0.8) is Priority.NORMAL
        assert queue_priority(Severity.MEDIUM, 0.5) is Priority.LOW


class TestFlagAggregation:
    def test_highest_severity(self) -> None:
        flags = [flag(severity=Severity.LOW), flag(severity=Severity.HIGH)]
        assert highest_severity(flags) is Severity.HIGH

    def test_highest_severity_empty_is_low(self) -> None:
        assert highest_severity([]) is Severity.LOW

    def test_plurality_category(self) -> None:
        flags = [flag("spam"), flag("harassment"), flag("harassment")]
        assert plurality_category(flags, "custom") == "harassment"

    def test_plurality_tie_goes_to_first_seen(self) -> None:
        flags = [flag("spam"), flag("harassment"), flag("harassment"), flag("spam")]
        assert plurality_category(flags, "custom") == "spam"

    def test_plurality_default_for_empty(self) -> None:
        assert plurality_category([], "custom") == "custom"


class TestPriorityAndSeverity:
    def test_escalation_caps_at_urgent(self) -> None:
        assert Priority.LOW.escalated() is Priority.NORMAL
        assert Priority.HIGH.escalated() is Priority.URGENT
        assert Priority.URGENT.escalated() is Priority.URGENT

    def test_priority_for_severity(self) -> None:
        assert Priority.for_severity(Severity.CRITICAL) is Priority.URGENT
        assert Priority.for_severity(Severity.LOW) is Priority.LOW


class TestSafeAnalysis:
    def test_safe_analysis_allows_with_zero_score(self) -> None:
        analysis = Analysis.safe("c-1", ContentType.TEXT, reason="engine down")

        assert analysis.action is Action.ALLOW
        assert analysis.score == 0.0
        assert analysis.flags == ()
        assert analysis.is_safe
        assert analysis.metadata["reason"] == "engine down"

    def test_score_out_of_range_rejected(self) -> None:
        with pytest.raises(ValueError):
            Analysis(
                content_id="c-1",
                content_type=ContentType.TEXT,
                category="spam",
                severity=Severity.LOW,
                score=1.5,
                confidence=Confidence.from_score(0.5),
                action=Action.ALLOW,
            )
