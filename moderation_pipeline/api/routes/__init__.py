"""API routers."""

from moderation_pipeline.api.routes.health import router as health_router
from moderation_pipeline.api.routes.metrics import router as metrics_router
from moderation_pipeline.api.routes.moderation import router as moderation_router

__all__ = ["health_router", "metrics_router", "moderation_router"]
