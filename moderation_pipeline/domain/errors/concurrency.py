"""Concurrency and uniqueness errors.

ConcurrentModificationError is the explicit conflict signal a caller gets
when it loses a race on a workflow or queue item. Nothing is overwritten
silently.
"""

from __future__ import annotations

from moderation_pipeline.domain.exceptions import ModerationError


class ConcurrentModificationError(ModerationError):
    """Raised when a compare-and-set update observes a stale version.

    Attributes:
        record_id: The record that was concurrently modified.
        expected_version: Version the caller based its change on.
        actual_version: Version currently stored.
    """

    def __init__(
        self,
        record_id: object,
        expected_version: int,
        actual_version: int,
    ) -> None:
        self.record_id = str(record_id)
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrent modification of {self.record_id}: "
            f"expected version {expected_version}, found {actual_version}"
        )


class DuplicateRecordError(ModerationError):
    """Raised when an append-only record would be written twice.

    Also raised when a second workflow is added for a report that already
    has one.

    Attributes:
        resource: Kind of record.
        record_id: The id that already exists.
    """

    def __init__(self, resource: str, record_id: object) -> None:
        self.resource = resource
        self.record_id = str(record_id)
        super().__init__(f"{resource.capitalize()} already exists: {self.record_id}")
