"""FastAPI dependencies."""

from moderation_pipeline.api.dependencies.moderation import (
    get_container,
    get_orchestrator,
)

__all__ = ["get_container", "get_orchestrator"]
