"""Composition root for wiring dependencies.

Centralizes infrastructure-aware wiring so the API and application
layers depend on ports without importing infrastructure directly.
"""

from moderation_pipeline.bootstrap.moderation import (
    ModerationContainer,
    build_moderation_container,
)

__all__ = ["ModerationContainer", "build_moderation_container"]
