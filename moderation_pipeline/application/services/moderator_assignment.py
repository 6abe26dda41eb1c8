"""Moderator assignment strategies.

Round-robin is the default. It ignores workload, which is fine for
small pools. LeastLoadedAssignmentStrategy uses the per-moderator
workload computed by analytics instead. The pipeline builder takes
an AssignmentStrategyFactory and shares the one instance it builds
between report intake and the orchestrator.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence

from structlog import get_logger

from moderation_pipeline.application.ports.moderator_assignment import (
    ModeratorAssignmentStrategyProtocol,
)
from moderation_pipeline.domain.models.report import Report
from moderation_pipeline.domain.models.statistics import ModeratorWorkload

logger = get_logger(__name__)

WorkloadProvider = Callable[[], Awaitable[Mapping[str, ModeratorWorkload]]]
AssignmentStrategyFactory = Callable[
    [Sequence[str], WorkloadProvider], ModeratorAssignmentStrategyProtocol
]


class RoundRobinAssignmentStrategy(ModeratorAssignmentStrategyProtocol):
    """Cycles through a fixed moderator pool."""

    def __init__(self, moderators: Sequence[str]) -> None:
        self._moderators = tuple(moderators)
        self._cursor = 0
        self._lock = asyncio.Lock()

    @property
    def moderators(self) -> tuple[str, ...]:
        return self._moderators

    def set_moderators(self, moderators: Sequence[str]) -> None:
        """Replace the pool and restart the rotation."""
        self._moderators = tuple(moderators)
        self._cursor = 0

    async def select_moderator(self, report: Report) -> str | None:
        if not self._moderators:
            return None
        async with self._lock:
            moderator = self._moderators[self._cursor % len(self._moderators)]
            self._cursor = (self._cursor + 1) % len(self._moderators)
        return moderator


class LeastLoadedAssignmentStrategy(ModeratorAssignmentStrategyProtocol):
    """Picks the pool member with the fewest active workflows.

    Ties are broken by pool order, so an idle pool behaves like a fixed
    rotation starting at the first moderator.
    """

    def __init__(self, moderators: Sequence[str], workload: WorkloadProvider) -> None:
        self._moderators = tuple(moderators)
        self._workload = workload

    @property
    def moderators(self) -> tuple[str, ...]:
        return self._moderators

    def set_moderators(self, moderators: Sequence[str]) -> None:
        self._moderators = tuple(moderators)

    async def select_moderator(self, report: Report) -> str | None:
        if not self._moderators:
            return None
        workload = await self._workload()

        def active(moderator: str) -> int:
            entry = workload.get(moderator)
            return entry.active if entry is not None else 0

        chosen = min(self._moderators, key=active)
        logger.debug(
            "least_loaded_moderator_selected",
            report_id=str(report.id),
            moderator_id=chosen,
            active=active(chosen),
        )
        return chosen


def round_robin(
    moderators: Sequence[str], workload: WorkloadProvider
) -> RoundRobinAssignmentStrategy:
    """AssignmentStrategyFactory for the round-robin default; workload is unused."""
    return RoundRobinAssignmentStrategy(moderators)
