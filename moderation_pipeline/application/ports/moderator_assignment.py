"""Moderator assignment strategy port."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from moderation_pipeline.domain.models.report import Report


class ModeratorAssignmentStrategyProtocol(Protocol):
    """Chooses the moderator for a newly submitted report."""

    async def select_moderator(self, report: Report) -> str | None:
        """Return a moderator id, or None to leave the report unassigned."""
        ...

    def set_moderators(self, moderators: Sequence[str]) -> None:
        """Replace the pool the strategy draws from."""
        ...
