"""Configuration for the moderation pipeline."""

from moderation_pipeline.config.moderation_config import (
    DEFAULT_MODERATION_CONFIG,
    ModerationConfig,
)

__all__ = ["DEFAULT_MODERATION_CONFIG", "ModerationConfig"]
