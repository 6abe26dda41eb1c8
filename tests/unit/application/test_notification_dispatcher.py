"""Unit tests for NotificationDispatcher.

Tests:
- Retries a failing channel up to max_retries
- Drops after exhausting retries without raising
- One failing channel does not affect another
- dispatch() is fire-and-forget; drain() waits
"""

from __future__ import annotations

import pytest

from moderation_pipeline.application.ports.notifier import (
    NotificationEventType,
    NotificationPayload,
)
from moderation_pipeline.application.services.notification_dispatcher import (
    NotificationDispatcher,
)
from moderation_pipeline.infrastructure.monitoring.metrics import ModerationMetrics
from moderation_pipeline.infrastructure.stubs.notification_channel_stub import (
    NotificationChannelStub,
)


@pytest.fixture
def metrics() -> ModerationMetrics:
    return ModerationMetrics()


def payload() -> NotificationPayload:
    return NotificationPayload(subject="Content flagged", content_id="c-1")


class TestNotify:
    async def test_delivers_to_every_channel(self) -> None:
        a, b = NotificationChannelStub("a"), NotificationChannelStub("b")
        dispatcher = NotificationDispatcher([a, b], backoff_seconds=0)

        await dispatcher.notify(NotificationEventType.FLAG, payload())

        assert len(a.sent) == 1
        assert len(b.sent) == 1
        assert a.sent[0].payload.content_id == "c-1"

    async def test_transient_failure_is_retried(self) -> None:
        channel = NotificationChannelStub("flaky", fail_times=2)
        dispatcher = NotificationDispatcher([channel], max_retries=3, backoff_seconds=0)

        await dispatcher.notify(NotificationEventType.REPORT, payload())

        assert channel.attempts == 3
        assert len(channel.sent) == 1

    async def test_exhausted_retries_are_dropped(self, metrics: ModerationMetrics) -> None:
        channel = NotificationChannelStub("dead")
        channel.set_always_fail()
        dispatcher = NotificationDispatcher(
            [channel], max_retries=3, backoff_seconds=0, metrics=metrics
        )

        await dispatcher.notify(NotificationEventType.ESCALATION, payload())

        assert channel.attempts == 3
        assert channel.sent == []
        assert (
            metrics.registry.get_sample_value(
                "moderation_notification_failures_total",
                {"event_type": "escalation", "channel": "dead"},
            )
            == 1.0
        )

    async def test_failing_channel_does_not_block_others(self) -> None:
        dead = NotificationChannelStub("dead")
        dead.set_always_fail()
        healthy = NotificationChannelStub("healthy")
        dispatcher = NotificationDispatcher([dead, healthy], backoff_seconds=0)

        await dispatcher.notify(NotificationEventType.FLAG, payload())

        assert len(healthy.sent) == 1

    async def test_configure_changes_retry_count(self) -> None:
        channel = NotificationChannelStub("dead")
        channel.set_always_fail()
        dispatcher = NotificationDispatcher([channel], backoff_seconds=0)

        dispatcher.configure(max_retries=5)
        await dispatcher.notify(NotificationEventType.FLAG, payload())

        assert channel.attempts == 5


class TestDispatch:
    async def test_dispatch_then_drain(self) -> None:
        channel = NotificationChannelStub("a")
        dispatcher = NotificationDispatcher([channel], backoff_seconds=0)

        dispatcher.dispatch(NotificationEventType.RESOLUTION, payload())
        assert dispatcher.pending_count == 1

        await dispatcher.drain()

        assert dispatcher.pending_count == 0
        assert channel.sent_of_type(NotificationEventType.RESOLUTION)

    async def test_no_channels_is_a_noop(self) -> None:
        dispatcher = NotificationDispatcher()
        await dispatcher.notify(NotificationEventType.FLAG, payload())
        assert dispatcher.channels == []
