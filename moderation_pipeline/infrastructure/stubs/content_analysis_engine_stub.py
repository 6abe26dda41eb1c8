"""Keyword-based content analysis engine stub.

Stands in for the external classifier. Text is checked against keyword
lists per category plus a few structural signals:

- links
- contact details
- shouting (excessive capitals)

Rules are evaluated with the domain rule matcher, and scoring uses the
default scoring policy. The stub can also be told to fail or stall, so
fail-open behavior can be exercised.
"""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import Mapping, Sequence
from typing import Any

from moderation_pipeline.application.ports.content_analysis import (
    ContentAnalysisEngineProtocol,
)
from moderation_pipeline.domain.models.moderation import (
    Action,
    Analysis,
    Category,
    Confidence,
    ContentType,
    Flag,
    Severity,
)
from moderation_pipeline.domain.models.policy import Rule
from moderation_pipeline.domain.services import moderation_scoring
from moderation_pipeline.domain.services.flag_aggregation import (
    highest_severity,
    plurality_category,
)
from moderation_pipeline.domain.services.rule_matching import flag_for_rule, rule_matches

KEYWORDS: dict[Category, tuple[Severity, tuple[str, ...]]] = {
    Category.VIOLENCE: (Severity.HIGH, ("kill", "murder", "shoot", "stab", "bomb")),
    Category.THREATS: (
        Severity.HIGH,
        ("i will hurt you", "watch your back", "you will pay", "i know where you live"),
    ),
    Category.SELF_HARM: (Severity.HIGH, ("suicide", "self harm", "end my life")),
    Category.HATE_SPEECH: (Severity.HIGH, ("subhuman", "go back to your country")),
    Category.HARASSMENT: (
        Severity.MEDIUM,
        ("idiot", "loser", "stupid", "nobody likes you", "shut up"),
    ),
    Category.ADULT_CONTENT: (Severity.MEDIUM, ("nsfw", "explicit", "nude")),
    Category.MISINFORMATION: (Severity.MEDIUM, ("miracle cure", "is a hoax")),
    Category.SPAM: (
        Severity.LOW,
        ("buy now", "click here", "free money", "limited offer", "act now"),
    ),
}

URL_PATTERN = re.compile(r"https?://\S+", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"\b[\w.+-]+@[\w-]+\.[\w.-]+\b")
PHONE_PATTERN = re.compile(r"\b(?:\+?\d{1,3}[\s.-]?)?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}\b")

MAX_LINKS = 3
CAPS_RATIO = 0.7
CAPS_MIN_LETTERS = 10

# Mapping keys searched for text in non-text content.
TEXT_FIELDS = ("text", "caption", "title", "description", "alt_text", "transcript")


def extract_text(content: Any) -> str:
    """Best-effort text extraction from a payload."""
    if isinstance(content, str):
        return content
    if isinstance(content, Mapping):
        parts = [str(content[key]) for key in TEXT_FIELDS if content.get(key)]
        return "\n".join(parts)
    return ""


class KeywordAnalysisEngineStub(ContentAnalysisEngineProtocol):
    """In-memory ContentAnalysisEngineProtocol implementation.

    Attributes:
        process_calls: Number of process_content invocations.
    """

    def __init__(self) -> None:
        self._failure: Exception | None = None
        self._delay_seconds = 0.0
        self.process_calls = 0

    def set_failure(self, error: Exception | None) -> None:
        """Make every analysis call raise error (None to restore)."""
        self._failure = error

    def set_delay(self, seconds: float) -> None:
        """Stall every analysis call, to exercise timeouts."""
        self._delay_seconds = seconds

    def clear(self) -> None:
        self._failure = None
        self._delay_seconds = 0.0
        self.process_calls = 0

    async def _simulate_latency(self) -> None:
        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)
        if self._failure is not None:
            raise self._failure

    def _text_flags(self, text: str) -> list[Flag]:
        lowered = text.lower()
        flags: list[Flag] = []

        for category, (severity, keywords) in KEYWORDS.items():
            hits = tuple(k for k in keywords if k in lowered)
            if hits:
                flags.append(
                    Flag(
                        type="keyword",
                        category=category,
                        severity=severity,
                        message=f"Matched {category.value} keywords",
                        evidence=hits,
                        confidence=min(0.6 + 0.1 * len(hits), 0.95),
                    )
                )

        links = URL_PATTERN.findall(text)
        if len(links) > MAX_LINKS:
            flags.append(
                Flag(
                    type="pattern",
                    category=Category.SPAM,
                    severity=Severity.LOW,
                    message=f"Contains {len(links)} links",
                    evidence=tuple(links[:5]),
                    confidence=0.7,
                )
            )

        contacts = EMAIL_PATTERN.findall(text) + PHONE_PATTERN.findall(text)
        if contacts:
            flags.append(
                Flag(
                    type="pattern",
                    category=Category.PERSONAL_INFO,
                    severity=Severity.MEDIUM,
                    message="Contains contact details",
                    evidence=tuple(contacts[:5]),
                    confidence=0.8,
                )
            )

        letters = [c for c in text if c.isalpha()]
        if len(letters) >= CAPS_MIN_LETTERS:
            ratio = sum(1 for c in letters if c.isupper()) / len(letters)
            if ratio > CAPS_RATIO:
                flags.append(
                    Flag(
                        type="pattern",
                        category=Category.SPAM,
                        severity=Severity.LOW,
                        message="Excessive capital letters",
                        confidence=0.6,
                    )
                )
        return flags

    def _build(
        self,
        flags: Sequence[Flag],
        content_type: ContentType,
        started: float,
        content_id: str = "",
    ) -> Analysis:
        confidence = (
            sum(f.confidence for f in flags) / len(flags) if flags else 1.0
        )
        analysis = Analysis(
            content_id=content_id,
            content_type=content_type,
            category=plurality_category(flags, Category.CUSTOM.value),
            severity=highest_severity(flags),
            score=0.0,
            confidence=Confidence.from_score(confidence),
            action=Action.ALLOW,
            flags=tuple(flags),
            processing_time_ms=(time.perf_counter() - started) * 1000,
        )
        return analysis.with_outcome(
            self.calculate_score(analysis), self.determine_action(analysis)
        )

    async def process_content(self, content: Any, content_type: ContentType) -> Analysis:
        self.process_calls += 1
        started = time.perf_counter()
        await self._simulate_latency()
        flags = self._text_flags(extract_text(content))
        return self._build(flags, content_type, started)

    async def apply_rules(self, content: Any, rules: Sequence[Rule]) -> Analysis:
        started = time.perf_counter()
        await self._simulate_latency()
        flags = [flag_for_rule(rule) for rule in rules if rule_matches(content, rule)]
        return self._build(flags, ContentType.TEXT, started)

    def calculate_score(self, analysis: Analysis) -> float:
        return moderation_scoring.calculate_score(analysis.flags)

    def determine_action(self, analysis: Analysis) -> Action:
        score = moderation_scoring.calculate_score(analysis.flags)
        return moderation_scoring.determine_action(
            analysis.severity, max(score, analysis.score), len(analysis.flags)
        )
