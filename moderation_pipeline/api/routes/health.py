"""Health check endpoint."""

from fastapi import APIRouter, Depends

from moderation_pipeline.api.dependencies.moderation import get_container
from moderation_pipeline.api.models.moderation import HealthResponse
from moderation_pipeline.bootstrap.moderation import ModerationContainer

router = APIRouter(prefix="/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    container: ModerationContainer = Depends(get_container),
) -> HealthResponse:
    """Return health status with the current queue depth."""
    return HealthResponse(
        status="healthy",
        queue_depth=container.queue.depth(),
        queue_processor_running=container.orchestrator.is_processing,
    )
