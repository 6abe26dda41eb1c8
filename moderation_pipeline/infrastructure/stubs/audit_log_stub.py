"""In-memory audit log stub."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

from moderation_pipeline.application.ports.audit_log import AuditLogProtocol


@dataclass(frozen=True)
class AuditEntry:
    action: str
    metadata: Mapping[str, Any]
    actor: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AuditLogStub(AuditLogProtocol):
    """Append-only in-memory audit log."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []

    def clear(self) -> None:
        """Clear all entries (for testing)."""
        self._entries.clear()

    async def log_action(
        self,
        action: str,
        metadata: Mapping[str, Any],
        actor: str | None = None,
    ) -> None:
        self._entries.append(
            AuditEntry(action=action, metadata=MappingProxyType(dict(metadata)), actor=actor)
        )

    def get_entries(self, action: str | None = None) -> list[AuditEntry]:
        """Entries in append order, optionally filtered by action name."""
        if action is None:
            return list(self._entries)
        return [e for e in self._entries if e.action == action]

    def actions(self) -> list[str]:
        return [e.action for e in self._entries]
