"""Result types produced by moderation analytics."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("TimeRange end must not precede start")

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


@dataclass(frozen=True)
class ReporterSummary:
    """Per-reporter volume and accuracy.

    Attributes:
        reporter_id: The reporting user.
        report_count: Reports filed in the range.
        accuracy: Percentage of those reports that were resolved.
    """

    reporter_id: str
    report_count: int
    accuracy: float


@dataclass(frozen=True)
class ModeratorWorkload:
    """Workflow load carried by a single moderator."""

    moderator_id: str
    active: int = 0
    completed: int = 0
    escalated: int = 0

    @property
    def total(self) -> int:
        return self.active + self.completed + self.escalated


@dataclass(frozen=True)
class ReportStatistics:
    """Aggregate report statistics over a time range.

    Rates are fractions in [0, 1]; average_resolution_time is in seconds
    and only covers reports that reached resolution.
    """

    total_reports: int
    by_status: Mapping[str, int]
    by_severity: Mapping[str, int]
    by_type: Mapping[str, int]
    by_category: Mapping[str, int]
    escalation_rate: float
    rejection_rate: float
    average_resolution_time: float
    top_reporters: tuple[ReporterSummary, ...] = ()


@dataclass(frozen=True)
class ModerationStats:
    """Pipeline-wide statistics for a time range."""

    time_range: TimeRange
    reports: ReportStatistics
    total_decisions: int
    decisions_by_action: Mapping[str, int]
    queue_depth: int
    moderator_workload: tuple[ModeratorWorkload, ...] = field(default=())
