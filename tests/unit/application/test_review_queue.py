"""Unit tests for ReviewQueue.

Tests:
- Ordering by priority then age, FIFO within a priority
- Escalation promotes priority and stops at urgent
- Assignment is first-caller-wins
- Cancellation of unassigned items only
- Depth callback
- Removed and reprioritized entries do not accumulate in the heap
"""

from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from moderation_pipeline.application.services.review_queue import ReviewQueue
from moderation_pipeline.domain.errors import (
    QueueItemNotCancellableError,
    QueueItemNotFoundError,
)
from moderation_pipeline.domain.models.moderation import (
    Analysis,
    ContentType,
    Priority,
)
from moderation_pipeline.domain.models.queue_item import QueueItem, QueueItemStatus


def create_item(priority: Priority = Priority.NORMAL, content_id: str | None = None) -> QueueItem:
    content_id = content_id or f"content-{uuid4()}"
    return QueueItem(
        content_id=content_id,
        content_type=ContentType.TEXT,
        analysis=Analysis.safe(content_id, ContentType.TEXT, reason="test"),
        priority=priority,
    )


@pytest.fixture
def depths() -> list[int]:
    return []


@pytest.fixture
def queue(depths: list[int]) -> ReviewQueue:
    return ReviewQueue(on_depth_change=depths.append)


class TestOrdering:
    async def test_highest_priority_first(self, queue: ReviewQueue) -> None:
        low = await queue.push(create_item(Priority.LOW))
        urgent = await queue.push(create_item(Priority.URGENT))
        normal = await queue.push(create_item(Priority.NORMAL))

        assert [i.id for i in await queue.list_items()] == [urgent.id, normal.id, low.id]
        assert (await queue.pop()).id == urgent.id
        assert (await queue.pop()).id == normal.id
        assert (await queue.pop()).id == low.id
        assert await queue.pop() is None

    async def test_fifo_within_priority(self, queue: ReviewQueue) -> None:
        pushed = [await queue.push(create_item(Priority.HIGH)) for _ in range(5)]

        popped = [await queue.pop() for _ in range(5)]
        assert [i.id for i in popped] == [i.id for i in pushed]

    async def test_peek_does_not_remove(self, queue: ReviewQueue) -> None:
        item = await queue.push(create_item())
        assert (await queue.peek()).id == item.id
        assert queue.depth() == 1

    async def test_raise_priority_reorders(self, queue: ReviewQueue) -> None:
        first = await queue.push(create_item(Priority.NORMAL))
        second = await queue.push(create_item(Priority.NORMAL))

        await queue.raise_priority(second.id, Priority.URGENT)

        assert (await queue.pop()).id == second.id
        assert (await queue.pop()).id == first.id

    async def test_raise_priority_never_lowers(self, queue: ReviewQueue) -> None:
        item = await queue.push(create_item(Priority.HIGH))
        assert (await queue.raise_priority(item.id, Priority.LOW)).priority is Priority.HIGH


class TestEscalate:
    async def test_escalate_promotes_one_level(self, queue: ReviewQueue) -> None:
        item = await queue.push(create_item(Priority.NORMAL))

        escalated = await queue.escalate(item.id, "needs senior review")

        assert escalated.priority is Priority.HIGH
        assert escalated.escalation_level == 1
        assert escalated.status is QueueItemStatus.ESCALATED

    async def test_escalate_at_urgent_only_bumps_level(self, queue: ReviewQueue) -> None:
        item = await queue.push(create_item(Priority.URGENT))

        await queue.escalate(item.id, "first")
        escalated = await queue.escalate(item.id, "second")

        assert escalated.priority is Priority.URGENT
        assert escalated.escalation_level == 2
        assert (await queue.pop()).id == item.id

    async def test_escalate_reorders_ahead_of_peers(self, queue: ReviewQueue) -> None:
        await queue.push(create_item(Priority.NORMAL))
        later = await queue.push(create_item(Priority.NORMAL))

        await queue.escalate(later.id, "urgent")

        assert (await queue.peek()).id == later.id

    async def test_escalate_with_release_drops_assignee(self, queue: ReviewQueue) -> None:
        item = await queue.push(create_item())
        await queue.assign(item.id, "mod-1")

        escalated = await queue.escalate(item.id, "reviewer escalated", release=True)

        assert escalated.assigned_to is None
        assert escalated.assigned_at is None

    async def test_escalate_unknown_item(self, queue: ReviewQueue) -> None:
        with pytest.raises(QueueItemNotFoundError):
            await queue.escalate(uuid4(), "missing")


class TestAssign:
    async def test_assign_sets_moderator_and_status(self, queue: ReviewQueue) -> None:
        item = await queue.push(create_item())

        result = await queue.assign(item.id, "mod-1")

        assert result.newly_assigned
        assert result.item.assigned_to == "mod-1"
        assert result.item.assigned_at is not None
        assert result.item.status is QueueItemStatus.IN_REVIEW

    async def test_second_assignment_loses(self, queue: ReviewQueue) -> None:
        item = await queue.push(create_item())
        await queue.assign(item.id, "mod-1")

        result = await queue.assign(item.id, "mod-2")

        assert not result.newly_assigned
        assert result.item.assigned_to == "mod-1"

    async def test_reassign_replaces_holder(self, queue: ReviewQueue) -> None:
        item = await queue.push(create_item())
        await queue.assign(item.id, "mod-1")

        moved = await queue.reassign(item.id, "mod-2")

        assert moved.assigned_to == "mod-2"
        assert moved.status is QueueItemStatus.IN_REVIEW
        assert [i.id for i in await queue.list_items(assigned_to="mod-2")] == [item.id]
        assert not (await queue.assign(item.id, "mod-3")).newly_assigned

    async def test_concurrent_assignment_has_one_winner(self, queue: ReviewQueue) -> None:
        item = await queue.push(create_item())

        results = await asyncio.gather(
            *(queue.assign(item.id, f"mod-{n}") for n in range(10))
        )

        winners = [r for r in results if r.newly_assigned]
        assert len(winners) == 1
        assert all(r.item.assigned_to == winners[0].item.assigned_to for r in results)


class TestRemoveAndCancel:
    async def test_cancel_unassigned(self, queue: ReviewQueue) -> None:
        item = await queue.push(create_item())

        await queue.cancel(item.id)

        assert queue.depth() == 0
        with pytest.raises(QueueItemNotFoundError):
            await queue.get(item.id)

    async def test_cancel_assigned_rejected(self, queue: ReviewQueue) -> None:
        item = await queue.push(create_item())
        await queue.assign(item.id, "mod-1")

        with pytest.raises(QueueItemNotCancellableError):
            await queue.cancel(item.id)
        assert queue.depth() == 1

    async def test_remove_for_content(self, queue: ReviewQueue) -> None:
        await queue.push(create_item(content_id="c-1"))
        await queue.push(create_item(content_id="c-1"))
        keep = await queue.push(create_item(content_id="c-2"))

        removed = await queue.remove_for_content("c-1")

        assert len(removed) == 2
        assert [i.id for i in await queue.list_items()] == [keep.id]

    async def test_removed_item_not_popped(self, queue: ReviewQueue) -> None:
        item = await queue.push(create_item(Priority.URGENT))
        other = await queue.push(create_item(Priority.LOW))

        await queue.remove(item.id)

        assert (await queue.pop()).id == other.id

    async def test_depth_callback(self, queue: ReviewQueue, depths: list[int]) -> None:
        item = await queue.push(create_item())
        await queue.push(create_item())
        await queue.remove(item.id)

        assert depths == [1, 2, 1]


class TestFilters:
    async def test_filter_by_status_and_assignee(self, queue: ReviewQueue) -> None:
        a = await queue.push(create_item())
        await queue.push(create_item())
        await queue.assign(a.id, "mod-1")

        assert [i.id for i in await queue.list_items(assigned_to="mod-1")] == [a.id]
        pending = await queue.list_items(status=QueueItemStatus.PENDING)
        assert len(pending) == 1


class TestHeapCompaction:
    async def test_removed_items_do_not_accumulate(self, queue: ReviewQueue) -> None:
        keep = await queue.push(create_item(Priority.LOW))
        for n in range(1000):
            await queue.push(create_item(content_id=f"c-{n}"))
            await queue.remove_for_content(f"c-{n}")

        assert len(queue._heap) <= 2 * queue.depth() + 1
        assert [i.id for i in await queue.list_items()] == [keep.id]

    async def test_reprioritized_items_do_not_accumulate(self, queue: ReviewQueue) -> None:
        items = [await queue.push(create_item(Priority.LOW)) for _ in range(10)]
        for _ in range(50):
            for item in items:
                await queue.cancel(item.id)
            items = [await queue.push(create_item(Priority.LOW)) for _ in range(10)]
            for item in items:
                await queue.raise_priority(item.id, Priority.HIGH)

        assert len(queue._heap) <= 2 * queue.depth() + 1

    async def test_listing_follows_heap_order_after_changes(self, queue: ReviewQueue) -> None:
        low = await queue.push(create_item(Priority.LOW))
        normal = await queue.push(create_item(Priority.NORMAL))
        high = await queue.push(create_item(Priority.HIGH))
        gone = await queue.push(create_item(Priority.URGENT))

        await queue.raise_priority(low.id, Priority.URGENT)
        await queue.remove(gone.id)

        listed = [i.id for i in await queue.list_items()]
        assert listed == [low.id, high.id, normal.id]
        assert (await queue.pop()).id == low.id
