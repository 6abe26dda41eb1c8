"""Operational monitoring."""

from moderation_pipeline.infrastructure.monitoring.metrics import (
    METRICS_CONTENT_TYPE,
    ModerationMetrics,
)

__all__ = ["METRICS_CONTENT_TYPE", "ModerationMetrics"]
