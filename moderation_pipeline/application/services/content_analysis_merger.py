"""Content analysis merger.

Runs the analysis engine and the active rules independently, collects
flags from any registered providers, and merges everything into one
Analysis.

Merging is aggregation only:

- flags are concatenated (engine, providers, rules)
- severity is the maximum
- category is the plurality, with ties going to the one seen first

The final score and action come from the engine's pluggable scoring
functions.

The merger fails open. If analysis is disabled, the engine raises, or it
exceeds the timeout, the caller gets a safe analysis (allow, score 0)
and the failure is logged, never raised.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from structlog import get_logger

from moderation_pipeline.application.ports.content_analysis import (
    ContentAnalysisEngineProtocol,
    ContentAnalysisProviderProtocol,
)
from moderation_pipeline.domain.errors.delivery import ContentAnalysisError
from moderation_pipeline.domain.errors.not_found import AnalysisProviderNotFoundError
from moderation_pipeline.domain.models.moderation import (
    Action,
    Analysis,
    ContentType,
    Flag,
)
from moderation_pipeline.domain.models.policy import Rule
from moderation_pipeline.domain.models.report import Report
from moderation_pipeline.domain.services.flag_aggregation import (
    highest_severity,
    plurality_category,
)
from moderation_pipeline.infrastructure.monitoring.metrics import ModerationMetrics

logger = get_logger(__name__)

DEFAULT_ANALYSIS_TIMEOUT_SECONDS = 10.0
USER_REPORT_FLAG_CONFIDENCE = 0.8


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContentAnalysisMerger:
    """Merges engine, provider and rule results into a single Analysis."""

    def __init__(
        self,
        engine: ContentAnalysisEngineProtocol,
        metrics: ModerationMetrics | None = None,
        timeout_seconds: float = DEFAULT_ANALYSIS_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the merger.

        Args:
            engine: The pluggable analysis capability.
            metrics: Optional metrics collector.
            timeout_seconds: Default bound on a single analysis.
        """
        self._engine = engine
        self._metrics = metrics
        self._timeout_seconds = timeout_seconds
        self._providers: dict[str, ContentAnalysisProviderProtocol] = {}

    # ------------------------------------------------------------------
    # Provider registry
    # ------------------------------------------------------------------

    def add_provider(self, provider: ContentAnalysisProviderProtocol) -> bool:
        """Register a provider. Returns True if it replaced one of the same name."""
        replaced = provider.name in self._providers
        self._providers[provider.name] = provider
        return replaced

    def remove_provider(self, name: str) -> ContentAnalysisProviderProtocol:
        """Unregister a provider.

        Raises:
            AnalysisProviderNotFoundError: If no provider has this name.
        """
        provider = self._providers.pop(name, None)
        if provider is None:
            raise AnalysisProviderNotFoundError(name)
        return provider

    def provider_names(self) -> list[str]:
        return list(self._providers)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze(
        self,
        content: Any,
        content_type: ContentType,
        rules: Sequence[Rule],
        content_id: str | None = None,
        enabled: bool = True,
        timeout_seconds: float | None = None,
    ) -> Analysis:
        """Analyze content, never raising on analysis failure.

        Args:
            content: The payload to analyze.
            content_type: Kind of content.
            rules: Enabled rules to evaluate.
            content_id: Content identifier; generated when omitted.
            enabled: When False, skip analysis and return a safe result.
            timeout_seconds: Override of the default timeout.

        Returns:
            The merged Analysis, or the safe analysis on failure.
        """
        content_id = content_id or str(uuid4())
        log = logger.bind(content_id=content_id, content_type=content_type.value)
        started_at = _utc_now()
        started = time.perf_counter()

        if not enabled:
            log.info("content_analysis_disabled")
            return Analysis.safe(content_id, content_type, "analysis_disabled", started_at)

        try:
            analysis = await self._analyze(
                content,
                content_type,
                rules,
                content_id,
                started_at,
                timeout_seconds or self._timeout_seconds,
            )
        except ContentAnalysisError as exc:
            log.warning("content_analysis_failed", reason=exc.reason)
            if self._metrics is not None:
                self._metrics.record_analysis_failure(exc.reason.split(":", 1)[0])
            return Analysis.safe(content_id, content_type, exc.reason, started_at)

        if self._metrics is not None:
            self._metrics.record_analysis(
                analysis.action.value, time.perf_counter() - started
            )
        log.info(
            "content_analyzed",
            analysis_id=str(analysis.id),
            action=analysis.action.value,
            score=analysis.score,
            severity=analysis.severity.value,
            flag_count=len(analysis.flags),
        )
        return analysis

    async def _analyze(
        self,
        content: Any,
        content_type: ContentType,
        rules: Sequence[Rule],
        content_id: str,
        started_at: datetime,
        timeout_seconds: float,
    ) -> Analysis:
        try:
            base, rule_result = await asyncio.wait_for(
                asyncio.gather(
                    self._engine.process_content(content, content_type),
                    self._engine.apply_rules(content, list(rules)),
                ),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise ContentAnalysisError(
                f"timeout: exceeded {timeout_seconds}s", content_id
            ) from exc
        except Exception as exc:
            raise ContentAnalysisError(
                f"engine_error: {type(exc).__name__}: {exc}", content_id
            ) from exc

        provider_flags, provider_names = await self._provider_flags(
            content, content_type, content_id, timeout_seconds
        )
        flags = (*base.flags, *provider_flags, *rule_result.flags)
        suggestions = tuple(dict.fromkeys((*base.suggestions, *rule_result.suggestions)))

        now = _utc_now()
        merged = Analysis(
            content_id=content_id,
            content_type=content_type,
            category=plurality_category(flags, base.category),
            severity=highest_severity(flags),
            score=0.0,
            confidence=base.confidence,
            action=Action.ALLOW,
            flags=flags,
            suggestions=suggestions,
            processing_time_ms=(now - started_at).total_seconds() * 1000,
            metadata={
                "rule_matches": len(rule_result.flags),
                "providers": provider_names,
            },
            created_at=started_at,
            processed_at=now,
        )
        return self._score(merged)

    async def _provider_flags(
        self,
        content: Any,
        content_type: ContentType,
        content_id: str,
        timeout_seconds: float,
    ) -> tuple[tuple[Flag, ...], tuple[str, ...]]:
        flags: list[Flag] = []
        used: list[str] = []
        for name, provider in list(self._providers.items()):
            if not provider.supports(content_type):
                continue
            try:
                result = await asyncio.wait_for(
                    provider.analyze(content, content_type), timeout=timeout_seconds
                )
            except Exception as exc:
                logger.warning(
                    "analysis_provider_failed",
                    provider=name,
                    content_id=content_id,
                    error=f"{type(exc).__name__}: {exc}",
                )
                continue
            flags.extend(result.flags)
            used.append(name)
        return tuple(flags), tuple(used)

    def _score(self, merged: Analysis) -> Analysis:
        try:
            scored = merged.with_outcome(self._engine.calculate_score(merged), Action.ALLOW)
            return scored.with_outcome(scored.score, self._engine.determine_action(scored))
        except Exception as exc:
            raise ContentAnalysisError(
                f"scoring_error: {type(exc).__name__}: {exc}", merged.content_id
            ) from exc

    def attach_report_flag(self, analysis: Analysis, report: Report) -> Analysis:
        """Return a new analysis that also carries a user_report flag.

        Severity, category, score and action are re-aggregated over the
        extended flag set. If scoring fails, the previous score and action
        are kept.
        """
        flag = Flag(
            type="user_report",
            category=report.category,
            severity=report.severity,
            message=f"User report: {report.reason}",
            evidence=report.evidence,
            confidence=USER_REPORT_FLAG_CONFIDENCE,
        )
        flags = (*analysis.flags, flag)
        extended = replace(
            analysis,
            id=uuid4(),
            flags=flags,
            severity=highest_severity(flags),
            category=plurality_category(flags, analysis.category),
            metadata={**analysis.metadata, "report_id": str(report.id)},
            processed_at=_utc_now(),
        )
        try:
            return self._score(extended)
        except ContentAnalysisError as exc:
            logger.warning(
                "report_flag_rescoring_failed",
                report_id=str(report.id),
                reason=exc.reason,
            )
            return extended
