"""
Pytest configuration and shared fixtures for the moderation pipeline tests.

Testing Standards:
- Async tests run under pytest-asyncio (auto mode enabled in pyproject.toml)
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
- Pipelines are built per test from in-memory stubs; no shared state
"""

from __future__ import annotations

import pytest

from moderation_pipeline.bootstrap.moderation import (
    ModerationContainer,
    build_moderation_container,
)
from moderation_pipeline.config.moderation_config import ModerationConfig
from moderation_pipeline.infrastructure.stubs.notification_channel_stub import (
    NotificationChannelStub,
)


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def test_config() -> ModerationConfig:
    """Config with no retry backoff and a fast queue loop."""
    return ModerationConfig(
        notification_backoff_seconds=0.0,
        queue_poll_interval_seconds=0.01,
        queue_item_delay_seconds=0.0,
        moderator_pool=("mod-1", "mod-2"),
    )


@pytest.fixture
def channel() -> NotificationChannelStub:
    """Recording notification channel."""
    return NotificationChannelStub("recorder")


@pytest.fixture
def container(
    test_config: ModerationConfig, channel: NotificationChannelStub
) -> ModerationContainer:
    """Fully wired in-memory pipeline."""
    return build_moderation_container(config=test_config, channels=[channel])
