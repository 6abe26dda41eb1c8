"""Static analysis provider stub."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from moderation_pipeline.application.ports.content_analysis import (
    ContentAnalysisProviderProtocol,
)
from moderation_pipeline.domain.models.moderation import (
    Action,
    Analysis,
    Category,
    Confidence,
    ContentType,
    Flag,
)
from moderation_pipeline.domain.services.flag_aggregation import (
    highest_severity,
    plurality_category,
)


class StaticAnalysisProviderStub(ContentAnalysisProviderProtocol):
    """Provider that returns a fixed set of flags.

    Attributes:
        calls: Number of analyze() invocations.
    """

    def __init__(
        self,
        name: str,
        flags: Iterable[Flag] = (),
        content_types: Iterable[ContentType] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._name = name
        self._flags = tuple(flags)
        self._content_types = frozenset(content_types) if content_types else None
        self._error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    def supports(self, content_type: ContentType) -> bool:
        return self._content_types is None or content_type in self._content_types

    async def analyze(self, content: Any, content_type: ContentType) -> Analysis:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return Analysis(
            content_id="",
            content_type=content_type,
            category=plurality_category(self._flags, Category.CUSTOM.value),
            severity=highest_severity(self._flags),
            score=0.0,
            confidence=Confidence.from_score(0.9),
            action=Action.ALLOW,
            flags=self._flags,
        )
