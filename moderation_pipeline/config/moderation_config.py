"""Moderation pipeline configuration.

A closed, frozen configuration struct. Every recognized option is a field
here; updates go through with_updates(), which rejects unknown keys
instead of silently carrying them along.

Environment Variables:
- MODERATION_ENABLED: Run automated analysis (default: true)
- MODERATION_HUMAN_REVIEW_REQUIRED: Queue flagged content and reports for humans (default: true)
- MODERATION_AUTO_MODERATION: Let the queue processor auto-decide items (default: false)
- MODERATION_AUTO_ASSIGN: Auto-assign new reports to a moderator (default: false)
- MODERATION_ESCALATION_THRESHOLD: Duplicate reports before auto-escalation (default: 3)
- MODERATION_MODERATOR_POOL: Comma-separated moderator ids (default: mod1,mod2,mod3)
- MODERATION_ANALYSIS_TIMEOUT: Seconds before analysis fails open (default: 10.0)
- MODERATION_DECISION_TTL_DAYS: Days until a decision lapses (default: 30)
- MODERATION_NOTIFICATION_MAX_RETRIES: Delivery attempts per channel (default: 3)
- MODERATION_NOTIFICATION_BACKOFF: Linear backoff step in seconds (default: 1.0)
- MODERATION_QUEUE_POLL_INTERVAL: Idle sleep of the queue processor (default: 1.0)
- MODERATION_QUEUE_ITEM_DELAY: Yield between processed items (default: 0.1)
- MODERATION_MAX_EVENTS: Event records kept in storage (default: 10000)
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from moderation_pipeline.domain.errors.validation import ConfigurationError

DEFAULT_MODERATOR_POOL: tuple[str, ...] = ("mod1", "mod2", "mod3")


def _get_bool_env(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_list_env(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.environ.get(key)
    if value is None:
        return default
    items = tuple(part.strip() for part in value.split(",") if part.strip())
    return items or default


@dataclass(frozen=True)
class ModerationConfig:
    """Configuration for the moderation pipeline.

    Attributes:
        enabled: When False, every analysis fails open to a safe result.
        human_review_required: Queue flagged content and every report for
            human review.
        auto_moderation: Let the queue processor decide eligible items.
        auto_assign: Pick a moderator for new reports at intake.
        escalation_threshold: Count of reports on the same content
            (including the new one) that forces severity and priority to HIGH.
        moderator_pool: Moderators available to the assignment strategy.
        analysis_timeout_seconds: Upper bound on one analysis call.
        decision_ttl_days: Days until a decision lapses.
        notification_max_retries: Delivery attempts per channel.
        notification_backoff_seconds: Linear backoff step between attempts.
        queue_poll_interval_seconds: Sleep when the processor finds no work.
        queue_item_delay_seconds: Yield between processed queue items.
        max_events: Event records retained in storage.
    """

    enabled: bool = True
    human_review_required: bool = True
    auto_moderation: bool = False
    auto_assign: bool = False
    escalation_threshold: int = 3
    moderator_pool: tuple[str, ...] = DEFAULT_MODERATOR_POOL
    analysis_timeout_seconds: float = 10.0
    decision_ttl_days: int = 30
    notification_max_retries: int = 3
    notification_backoff_seconds: float = 1.0
    queue_poll_interval_seconds: float = 1.0
    queue_item_delay_seconds: float = 0.1
    max_events: int = 10_000

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.escalation_threshold < 1:
            raise ConfigurationError(
                f"escalation_threshold must be at least 1, got {self.escalation_threshold}",
                option="escalation_threshold",
            )
        if self.analysis_timeout_seconds <= 0:
            raise ConfigurationError(
                "analysis_timeout_seconds must be positive, "
                f"got {self.analysis_timeout_seconds}",
                option="analysis_timeout_seconds",
            )
        if self.decision_ttl_days < 1:
            raise ConfigurationError(
                f"decision_ttl_days must be at least 1, got {self.decision_ttl_days}",
                option="decision_ttl_days",
            )
        if self.notification_max_retries < 1:
            raise ConfigurationError(
                "notification_max_retries must be at least 1, "
                f"got {self.notification_max_retries}",
                option="notification_max_retries",
            )
        for name in (
            "notification_backoff_seconds",
            "queue_poll_interval_seconds",
            "queue_item_delay_seconds",
        ):
            if getattr(self, name) < 0:
                raise ConfigurationError(
                    f"{name} must be non-negative, got {getattr(self, name)}",
                    option=name,
                )
        if self.max_events < 1:
            raise ConfigurationError(
                f"max_events must be at least 1, got {self.max_events}",
                option="max_events",
            )
        if self.auto_assign and not self.moderator_pool:
            raise ConfigurationError(
                "auto_assign requires a non-empty moderator_pool",
                option="moderator_pool",
            )

    @classmethod
    def option_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    def with_updates(self, **changes: Any) -> ModerationConfig:
        """Return a copy with the given options changed.

        Raises:
            ConfigurationError: If an option is unknown or a value is invalid.
        """
        unknown = sorted(set(changes) - self.option_names())
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration option(s): {', '.join(unknown)}",
                option=unknown[0],
            )
        if "moderator_pool" in changes:
            changes["moderator_pool"] = tuple(changes["moderator_pool"])
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["moderator_pool"] = list(self.moderator_pool)
        return data

    @classmethod
    def from_environment(cls) -> ModerationConfig:
        """Create config from environment variables with defaults."""
        return cls(
            enabled=_get_bool_env("MODERATION_ENABLED", True),
            human_review_required=_get_bool_env("MODERATION_HUMAN_REVIEW_REQUIRED", True),
            auto_moderation=_get_bool_env("MODERATION_AUTO_MODERATION", False),
            auto_assign=_get_bool_env("MODERATION_AUTO_ASSIGN", False),
            escalation_threshold=_get_int_env("MODERATION_ESCALATION_THRESHOLD", 3),
            moderator_pool=_get_list_env("MODERATION_MODERATOR_POOL", DEFAULT_MODERATOR_POOL),
            analysis_timeout_seconds=_get_float_env("MODERATION_ANALYSIS_TIMEOUT", 10.0),
            decision_ttl_days=_get_int_env("MODERATION_DECISION_TTL_DAYS", 30),
            notification_max_retries=_get_int_env("MODERATION_NOTIFICATION_MAX_RETRIES", 3),
            notification_backoff_seconds=_get_float_env("MODERATION_NOTIFICATION_BACKOFF", 1.0),
            queue_poll_interval_seconds=_get_float_env("MODERATION_QUEUE_POLL_INTERVAL", 1.0),
            queue_item_delay_seconds=_get_float_env("MODERATION_QUEUE_ITEM_DELAY", 0.1),
            max_events=_get_int_env("MODERATION_MAX_EVENTS", 10_000),
        )


DEFAULT_MODERATION_CONFIG = ModerationConfig()
