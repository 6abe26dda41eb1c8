"""Aggregation of flag sets into analysis-level severity and category."""

from __future__ import annotations

from collections.abc import Sequence

from moderation_pipeline.domain.models.moderation import Flag, Severity


def highest_severity(flags: Sequence[Flag]) -> Severity:
    """Maximum severity under LOW < MEDIUM < HIGH < CRITICAL; LOW if empty."""
    return Severity.highest([flag.severity for flag in flags])


def plurality_category(flags: Sequence[Flag], default: str) -> str:
    """Category carried by the most flags.

    Ties go to the category that appears first in the flag sequence.
    Returns default for an empty sequence.
    """
    counts: dict[str, int] = {}
    for flag in flags:
        counts[flag.category] = counts.get(flag.category, 0) + 1
    if not counts:
        return default
    best = max(counts.values())
    # dicts preserve insertion order, so the first key at the max wins
    return next(category for category, count in counts.items() if count == best)
