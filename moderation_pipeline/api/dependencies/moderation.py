"""Dependency injection for the moderation endpoints.

The container is built once by the app factory and kept on app.state,
so each app instance (and each test client) has its own pipeline.
"""

from fastapi import Request

from moderation_pipeline.application.services.moderation_orchestrator import (
    ModerationOrchestrator,
)
from moderation_pipeline.bootstrap.moderation import ModerationContainer


def get_container(request: Request) -> ModerationContainer:
    """Get the pipeline container attached to the running app."""
    return request.app.state.container


def get_orchestrator(request: Request) -> ModerationOrchestrator:
    """Get the moderation orchestrator for the running app."""
    return get_container(request).orchestrator
