"""Unit tests for ModerationConfig.

Tests for moderation configuration including:
- Default values
- Environment variable loading
- Input validation
- Closed updates through with_updates()
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from moderation_pipeline.config.moderation_config import (
    DEFAULT_MODERATOR_POOL,
    ModerationConfig,
)
from moderation_pipeline.domain.errors import ConfigurationError, ValidationError


class TestModerationConfig:
    """Tests for ModerationConfig dataclass."""

    class TestDefaults:
        def test_review_defaults(self) -> None:
            config = ModerationConfig()
            assert config.enabled is True
            assert config.human_review_required is True
            assert config.auto_moderation is False
            assert config.auto_assign is False

        def test_numeric_defaults(self) -> None:
            config = ModerationConfig()
            assert config.escalation_threshold == 3
            assert config.decision_ttl_days == 30
            assert config.notification_max_retries == 3
            assert config.max_events == 10_000

        def test_default_pool(self) -> None:
            assert ModerationConfig().moderator_pool == DEFAULT_MODERATOR_POOL

    class TestValidation:
        def test_threshold_must_be_positive(self) -> None:
            with pytest.raises(ConfigurationError, match="escalation_threshold") as exc_info:
                ModerationConfig(escalation_threshold=0)
            assert exc_info.value.option == "escalation_threshold"

        def test_timeout_must_be_positive(self) -> None:
            with pytest.raises(ConfigurationError, match="analysis_timeout_seconds"):
                ModerationConfig(analysis_timeout_seconds=0)

        def test_negative_backoff_rejected(self) -> None:
            with pytest.raises(ConfigurationError, match="notification_backoff_seconds"):
                ModerationConfig(notification_backoff_seconds=-1.0)

        def test_auto_assign_needs_pool(self) -> None:
            with pytest.raises(ConfigurationError, match="moderator_pool"):
                ModerationConfig(auto_assign=True, moderator_pool=())

        def test_configuration_error_is_validation_error(self) -> None:
            with pytest.raises(ValidationError):
                ModerationConfig(max_events=0)

    class TestFromEnvironment:
        def test_defaults_when_unset(self) -> None:
            with patch.dict(os.environ, {}, clear=True):
                assert ModerationConfig.from_environment() == ModerationConfig()

        def test_reads_values(self) -> None:
            env = {
                "MODERATION_AUTO_MODERATION": "true",
                "MODERATION_ESCALATION_THRESHOLD": "5",
                "MODERATION_ANALYSIS_TIMEOUT": "2.5",
                "MODERATION_MODERATOR_POOL": "alice, bob ,,carol",
            }
            with patch.dict(os.environ, env, clear=True):
                config = ModerationConfig.from_environment()

            assert config.auto_moderation is True
            assert config.escalation_threshold == 5
            assert config.analysis_timeout_seconds == 2.5
            assert config.moderator_pool == ("alice", "bob", "carol")

        def test_invalid_numbers_fall_back(self) -> None:
            with patch.dict(
                os.environ, {"MODERATION_DECISION_TTL_DAYS": "soon"}, clear=True
            ):
                assert ModerationConfig.from_environment().decision_ttl_days == 30

        def test_false_values(self) -> None:
            with patch.dict(os.environ, {"MODERATION_ENABLED": "off"}, clear=True):
                assert ModerationConfig.from_environment().enabled is False

    class TestWithUpdates:
        def test_returns_new_config(self) -> None:
            config = ModerationConfig()

            updated = config.with_updates(escalation_threshold=4)

            assert updated.escalation_threshold == 4
            assert config.escalation_threshold == 3

        def test_unknown_option_rejected(self) -> None:
            with pytest.raises(ConfigurationError) as exc_info:
                ModerationConfig().with_updates(shadow_ban=True, enabled=False)
            assert exc_info.value.option == "shadow_ban"

        def test_invalid_value_rejected(self) -> None:
            with pytest.raises(ConfigurationError):
                ModerationConfig().with_updates(decision_ttl_days=0)

        def test_pool_coerced_to_tuple(self) -> None:
            updated = ModerationConfig().with_updates(moderator_pool=["x", "y"])
            assert updated.moderator_pool == ("x", "y")

        def test_to_dict_lists_pool(self) -> None:
            data = ModerationConfig().to_dict()
            assert data["moderator_pool"] == list(DEFAULT_MODERATOR_POOL)
            assert set(data) == ModerationConfig.option_names()
