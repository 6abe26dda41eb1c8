"""Metrics endpoint for Prometheus scraping.

Operational counters and gauges only: analyses, reports, decisions,
notification failures and queue depth.
"""

from fastapi import APIRouter, Depends, Response

from moderation_pipeline.api.dependencies.moderation import get_container
from moderation_pipeline.bootstrap.moderation import ModerationContainer
from moderation_pipeline.infrastructure.monitoring.metrics import METRICS_CONTENT_TYPE

router = APIRouter(prefix="/v1", tags=["metrics"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    description="Returns pipeline metrics in Prometheus exposition format for scraping.",
    response_class=Response,
    responses={
        200: {
            "description": "Metrics in Prometheus format",
            "content": {"text/plain": {}},
        }
    },
)
async def get_metrics(
    container: ModerationContainer = Depends(get_container),
) -> Response:
    """Get pipeline metrics in Prometheus format."""
    return Response(
        content=container.metrics.generate_metrics(),
        media_type=METRICS_CONTENT_TYPE,
    )
