"""Unit tests for ContentAnalysisMerger.

Tests:
- Engine, provider and rule flags are merged
- Fail-open on engine error, timeout and when disabled
- A failing provider is skipped
- Report flag re-aggregation
"""

from __future__ import annotations

import pytest

from moderation_pipeline.application.services.content_analysis_merger import (
    ContentAnalysisMerger,
)
from moderation_pipeline.domain.errors import AnalysisProviderNotFoundError
from moderation_pipeline.domain.models.moderation import (
    Action,
    ContentType,
    Flag,
    Priority,
    Severity,
)
from moderation_pipeline.domain.models.policy import ConditionOperator, Rule, RuleCondition
from moderation_pipeline.domain.models.report import Report, ReportType
from moderation_pipeline.infrastructure.monitoring.metrics import ModerationMetrics
from moderation_pipeline.infrastructure.stubs.analysis_provider_stub import (
    StaticAnalysisProviderStub,
)
from moderation_pipeline.infrastructure.stubs.content_analysis_engine_stub import (
    KeywordAnalysisEngineStub,
)


@pytest.fixture
def engine() -> KeywordAnalysisEngineStub:
    return KeywordAnalysisEngineStub()


@pytest.fixture
def merger(engine: KeywordAnalysisEngineStub) -> ContentAnalysisMerger:
    return ContentAnalysisMerger(engine, metrics=ModerationMetrics(), timeout_seconds=1.0)


def spam_rule() -> Rule:
    return Rule(
        name="pills",
        category="spam",
        severity=Severity.MEDIUM,
        action=Action.FLAG,
        conditions=(
            RuleCondition(field="content", operator=ConditionOperator.CONTAINS, value="pills"),
        ),
    )


class TestAnalyze:
    async def test_clean_text_is_allowed(self, merger: ContentAnalysisMerger) -> None:
        analysis = await merger.analyze("have a nice day", ContentType.TEXT, [], "c-1")

        assert analysis.action is Action.ALLOW
        assert analysis.score == 0.0
        assert analysis.flags == ()
        assert analysis.content_id == "c-1"
        assert not analysis.is_safe

    async def test_keyword_flags_drive_action(self, merger: ContentAnalysisMerger) -> None:
        analysis = await merger.analyze("I will kill you", ContentType.TEXT, [])

        assert analysis.severity is Severity.HIGH
        assert analysis.category == "violence"
        assert analysis.action is Action.REVIEW

    async def test_rule_flags_are_merged(self, merger: ContentAnalysisMerger) -> None:
        analysis = await merger.analyze("cheap pills here", ContentType.TEXT, [spam_rule()])

        assert [f.type for f in analysis.flags] == ["rule_match"]
        assert analysis.metadata["rule_matches"] == 1
        assert analysis.action is Action.FLAG

    async def test_generates_content_id(self, merger: ContentAnalysisMerger) -> None:
        analysis = await merger.analyze("hello", ContentType.TEXT, [])
        assert analysis.content_id

    async def test_provider_flags_are_included(self, merger: ContentAnalysisMerger) -> None:
        provider = StaticAnalysisProviderStub(
            "vision",
            flags=[
                Flag(
                    type="provider",
                    category="adult_content",
                    severity=Severity.CRITICAL,
                    message="nudity",
                )
            ],
        )
        merger.add_provider(provider)

        analysis = await merger.analyze({"url": "x.png"}, ContentType.IMAGE, [])

        assert provider.calls == 1
        assert analysis.severity is Severity.CRITICAL
        assert analysis.action is Action.BLOCK
        assert analysis.metadata["providers"] == ("vision",)

    async def test_unsupported_provider_skipped(self, merger: ContentAnalysisMerger) -> None:
        provider = StaticAnalysisProviderStub("vision", content_types=[ContentType.IMAGE])
        merger.add_provider(provider)

        await merger.analyze("text", ContentType.TEXT, [])

        assert provider.calls == 0

    async def test_failing_provider_is_skipped(self, merger: ContentAnalysisMerger) -> None:
        merger.add_provider(StaticAnalysisProviderStub("broken", error=RuntimeError("down")))

        analysis = await merger.analyze("I will kill you", ContentType.TEXT, [])

        assert analysis.action is Action.REVIEW
        assert analysis.metadata["providers"] == ()


class TestFailOpen:
    async def test_engine_error_returns_safe_analysis(
        self, merger: ContentAnalysisMerger, engine: KeywordAnalysisEngineStub
    ) -> None:
        engine.set_failure(RuntimeError("classifier offline"))

        analysis = await merger.analyze("I will kill you", ContentType.TEXT, [], "c-1")

        assert analysis.is_safe
        assert analysis.action is Action.ALLOW
        assert analysis.score == 0.0
        assert analysis.content_id == "c-1"
        assert "classifier offline" in analysis.metadata["reason"]

    async def test_timeout_returns_safe_analysis(
        self, merger: ContentAnalysisMerger, engine: KeywordAnalysisEngineStub
    ) -> None:
        engine.set_delay(0.5)

        analysis = await merger.analyze("text", ContentType.TEXT, [], timeout_seconds=0.01)

        assert analysis.is_safe
        assert analysis.metadata["reason"].startswith("timeout")

    async def test_disabled_returns_safe_without_calling_engine(
        self, merger: ContentAnalysisMerger, engine: KeywordAnalysisEngineStub
    ) -> None:
        analysis = await merger.analyze("I will kill you", ContentType.TEXT, [], enabled=False)

        assert analysis.is_safe
        assert engine.process_calls == 0


class TestProviderRegistry:
    def test_add_reports_replacement(self, merger: ContentAnalysisMerger) -> None:
        assert merger.add_provider(StaticAnalysisProviderStub("a")) is False
        assert merger.add_provider(StaticAnalysisProviderStub("a")) is True
        assert merger.provider_names() == ["a"]

    def test_remove_unknown_raises(self, merger: ContentAnalysisMerger) -> None:
        with pytest.raises(AnalysisProviderNotFoundError):
            merger.remove_provider("missing")


class TestAttachReportFlag:
    async def test_report_flag_reaggregates(self, merger: ContentAnalysisMerger) -> None:
        analysis = await merger.analyze("hello", ContentType.TEXT, [], "c-1")
        report = Report(
            content_id="c-1",
            content_type=ContentType.TEXT,
            reporter_id="user-1",
            reason="threatening",
            type=ReportType.VIOLENCE,
            severity=Severity.HIGH,
            category="violence",
            priority=Priority.HIGH,
            evidence=("screenshot",),
        )

        extended = merger.attach_report_flag(analysis, report)

        assert extended.id != analysis.id
        assert extended.flags[-1].type == "user_report"
        assert extended.flags[-1].evidence == ("screenshot",)
        assert extended.severity is Severity.HIGH
        assert extended.category == "violence"
        assert extended.action is Action.REVIEW
        assert extended.metadata["report_id"] == str(report.id)
