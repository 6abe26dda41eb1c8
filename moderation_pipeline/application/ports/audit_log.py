"""Audit log port."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class AuditLogProtocol(Protocol):
    """Append-only audit sink.

    Called for every policy, rule, decision and appeal mutation, and for
    report submissions and review actions.
    """

    async def log_action(
        self,
        action: str,
        metadata: Mapping[str, Any],
        actor: str | None = None,
    ) -> None:
        """Append an audit entry.

        Args:
            action: Dotted action name, e.g. "policy.created".
            metadata: Structured details of the mutation.
            actor: Who performed it, when known.
        """
        ...
