"""Priority-ordered review queue.

Items are totally ordered by (priority desc, created_at asc, sequence asc).
The sequence is assigned on push, so items sharing a timestamp keep FIFO
order.

The queue is a binary heap with lazy invalidation. When an item's
priority changes, a fresh heap entry is pushed, and entries whose key no
longer matches the live item are discarded when they reach the top.
Stale entries are counted, and the heap is rebuilt from the live items
once they outnumber them. All mutations run under one asyncio.Lock; each
critical section is short and never awaits anything else.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from structlog import get_logger

from moderation_pipeline.domain.errors.not_found import QueueItemNotFoundError
from moderation_pipeline.domain.errors.workflow import QueueItemNotCancellableError
from moderation_pipeline.domain.models.moderation import Priority
from moderation_pipeline.domain.models.queue_item import QueueItem, QueueItemStatus
from moderation_pipeline.domain.models.report import Report

logger = get_logger(__name__)

_HeapEntry = tuple[int, datetime, int, UUID]


@dataclass(frozen=True)
class QueueAssignment:
    """Outcome of an assignment attempt.

    Attributes:
        item: The item as it now stands.
        newly_assigned: False when the item was already assigned; the
            caller lost the race (or repeated itself) and item.assigned_to
            names the holder.
    """

    item: QueueItem
    newly_assigned: bool


class ReviewQueue:
    """Mutable priority queue of QueueItems awaiting human review."""

    def __init__(self, on_depth_change: Callable[[int], None] | None = None) -> None:
        self._items: dict[UUID, QueueItem] = {}
        self._heap: list[_HeapEntry] = []
        self._stale = 0
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()
        self._on_depth_change = on_depth_change

    def __len__(self) -> int:
        return len(self._items)

    def depth(self) -> int:
        return len(self._items)

    def _entry(self, item: QueueItem) -> _HeapEntry:
        neg_priority, created_at, sequence = item.sort_key()
        return (neg_priority, created_at, sequence, item.id)

    def _store(self, item: QueueItem, reheap: bool) -> None:
        replaced = item.id in self._items
        self._items[item.id] = item
        if reheap:
            heapq.heappush(self._heap, self._entry(item))
            if replaced:
                self._invalidate(1)

    def _invalidate(self, count: int) -> None:
        self._stale += count
        if self._stale > len(self._items):
            self._heap = [self._entry(i) for i in self._items.values()]
            heapq.heapify(self._heap)
            self._stale = 0

    def _is_live(self, entry: _HeapEntry) -> bool:
        item = self._items.get(entry[3])
        return item is not None and self._entry(item) == entry

    def _prune(self) -> None:
        while self._heap and not self._is_live(self._heap[0]):
            heapq.heappop(self._heap)
            self._stale = max(self._stale - 1, 0)

    def _depth_changed(self) -> None:
        if self._on_depth_change is not None:
            self._on_depth_change(len(self._items))

    def _require(self, item_id: UUID) -> QueueItem:
        item = self._items.get(item_id)
        if item is None:
            raise QueueItemNotFoundError(item_id)
        return item

    # ------------------------------------------------------------------
    # Ordered access
    # ------------------------------------------------------------------

    async def push(self, item: QueueItem) -> QueueItem:
        """Insert an item in priority order and return it with its sequence."""
        async with self._lock:
            stored = item.with_sequence(next(self._sequence))
            self._store(stored, reheap=True)
            self._depth_changed()
        logger.debug(
            "queue_item_pushed",
            item_id=str(stored.id),
            content_id=stored.content_id,
            priority=stored.priority.value,
        )
        return stored

    async def peek(self) -> QueueItem | None:
        """Highest-priority, oldest item without removing it."""
        async with self._lock:
            self._prune()
            if not self._heap:
                return None
            return self._items[self._heap[0][3]]

    async def pop(self) -> QueueItem | None:
        """Remove and return the highest-priority, oldest item."""
        async with self._lock:
            self._prune()
            if not self._heap:
                return None
            entry = heapq.heappop(self._heap)
            item = self._items.pop(entry[3])
            self._depth_changed()
            return item

    async def list_items(
        self,
        status: QueueItemStatus | None = None,
        assigned_to: str | None = None,
        content_id: str | None = None,
    ) -> list[QueueItem]:
        """Items in queue order, optionally filtered."""
        async with self._lock:
            items = [
                self._items[entry[3]]
                for entry in sorted(self._heap)
                if self._is_live(entry)
            ]
        return [
            i
            for i in items
            if (status is None or i.status is status)
            and (assigned_to is None or i.assigned_to == assigned_to)
            and (content_id is None or i.content_id == content_id)
        ]

    async def get(self, item_id: UUID) -> QueueItem:
        """Look up an item.

        Raises:
            QueueItemNotFoundError: If the item is not queued.
        """
        async with self._lock:
            return self._require(item_id)

    async def find_by_content(self, content_id: str) -> list[QueueItem]:
        return await self.list_items(content_id=content_id)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    async def escalate(self, item_id: UUID, reason: str, release: bool = False) -> QueueItem:
        """Bump escalation level and promote priority one level.

        Priority never decreases; at URGENT only the level changes.

        Args:
            item_id: Item to escalate.
            reason: Why the item is escalated (logged).
            release: Also drop the current assignee.

        Raises:
            QueueItemNotFoundError: If the item is not queued.
        """
        async with self._lock:
            item = self._require(item_id)
            escalated = item.escalated()
            if release:
                escalated = escalated.released()
            self._store(escalated, reheap=escalated.priority is not item.priority)
        logger.info(
            "queue_item_escalated",
            item_id=str(item_id),
            reason=reason,
            escalation_level=escalated.escalation_level,
            priority=escalated.priority.value,
        )
        return escalated

    async def raise_priority(self, item_id: UUID, priority: Priority) -> QueueItem:
        """Raise priority to at least the given level; never lowers it."""
        async with self._lock:
            item = self._require(item_id)
            if priority.rank <= item.priority.rank:
                return item
            raised = item.with_priority(priority)
            self._store(raised, reheap=True)
            return raised

    async def assign(self, item_id: UUID, moderator_id: str) -> QueueAssignment:
        """Assign an item unless someone already holds it.

        Raises:
            QueueItemNotFoundError: If the item is not queued.
        """
        async with self._lock:
            item = self._require(item_id)
            if item.is_assigned:
                return QueueAssignment(item=item, newly_assigned=False)
            assigned = item.assigned(moderator_id)
            self._store(assigned, reheap=False)
            return QueueAssignment(item=assigned, newly_assigned=True)

    async def reassign(self, item_id: UUID, moderator_id: str) -> QueueItem:
        """Hand an item to another moderator, whoever holds it now.

        Raises:
            QueueItemNotFoundError: If the item is not queued.
        """
        async with self._lock:
            reassigned = self._require(item_id).assigned(moderator_id)
            self._store(reassigned, reheap=False)
            return reassigned

    async def replace_report(self, item_id: UUID, report: Report) -> QueueItem:
        """Refresh an item's report snapshot; ordering is unaffected."""
        async with self._lock:
            updated = self._require(item_id).with_report(report)
            self._store(updated, reheap=False)
            return updated

    async def remove(self, item_id: UUID) -> QueueItem:
        """Remove a specific item.

        Raises:
            QueueItemNotFoundError: If the item is not queued.
        """
        async with self._lock:
            item = self._require(item_id)
            del self._items[item_id]
            self._invalidate(1)
            self._depth_changed()
            return item

    async def remove_for_content(self, content_id: str) -> list[QueueItem]:
        """Remove every item for a content id; called when a decision is recorded."""
        async with self._lock:
            removed = [i for i in self._items.values() if i.content_id == content_id]
            for item in removed:
                del self._items[item.id]
            if removed:
                self._invalidate(len(removed))
                self._depth_changed()
        return sorted(removed, key=QueueItem.sort_key)

    async def cancel(self, item_id: UUID) -> QueueItem:
        """Withdraw an item that no moderator has picked up yet.

        Raises:
            QueueItemNotFoundError: If the item is not queued.
            QueueItemNotCancellableError: If the item is assigned.
        """
        async with self._lock:
            item = self._require(item_id)
            if item.assigned_to is not None:
                raise QueueItemNotCancellableError(item_id, item.assigned_to)
            del self._items[item_id]
            self._invalidate(1)
            self._depth_changed()
            return item

    def clear(self) -> None:
        """Drop every item (for testing)."""
        self._items.clear()
        self._heap.clear()
        self._stale = 0
        self._depth_changed()
