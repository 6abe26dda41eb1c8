"""Content analysis ports.

The analysis capability itself (classifiers, ML models, third-party
moderation APIs) is external. The pipeline depends only on these
protocols.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from moderation_pipeline.domain.models.moderation import Action, Analysis, ContentType
from moderation_pipeline.domain.models.policy import Rule


class ContentAnalysisEngineProtocol(Protocol):
    """Protocol for the primary content analysis capability.

    process_content and apply_rules are expected to suspend and may be
    slow or fail; callers bound them with a timeout. calculate_score and
    determine_action are the pluggable scoring policy and must be pure.
    """

    async def process_content(self, content: Any, content_type: ContentType) -> Analysis:
        """Analyze raw content.

        Args:
            content: The payload (text, mapping, or opaque reference).
            content_type: Kind of content.

        Returns:
            An Analysis carrying the engine's flags.
        """
        ...

    async def apply_rules(self, content: Any, rules: Sequence[Rule]) -> Analysis:
        """Evaluate the given rules against content.

        Args:
            content: The payload.
            rules: Enabled rules to evaluate.

        Returns:
            An Analysis whose flags are the rule matches.
        """
        ...

    def calculate_score(self, analysis: Analysis) -> float:
        """Score a merged analysis in [0.0, 1.0]."""
        ...

    def determine_action(self, analysis: Analysis) -> Action:
        """Choose the action for a merged, scored analysis."""
        ...


@runtime_checkable
class ContentAnalysisProviderProtocol(Protocol):
    """Protocol for pluggable secondary analysis providers.

    Providers contribute additional flags. A failing provider is skipped;
    it never fails the analysis as a whole.
    """

    @property
    def name(self) -> str:
        """Unique provider name used for registration."""
        ...

    def supports(self, content_type: ContentType) -> bool:
        """True when the provider can analyze this content type."""
        ...

    async def analyze(self, content: Any, content_type: ContentType) -> Analysis:
        """Analyze content and return the provider's flags."""
        ...
