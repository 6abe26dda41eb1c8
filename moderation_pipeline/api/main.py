"""FastAPI application entry point for the moderation pipeline.

create_app() builds (or takes) a pipeline container and attaches it to
app.state. Domain errors are rendered as RFC 7807 problem responses by a
single exception handler.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from moderation_pipeline.api.middleware.logging_middleware import LoggingMiddleware
from moderation_pipeline.api.routes.health import router as health_router
from moderation_pipeline.api.routes.metrics import router as metrics_router
from moderation_pipeline.api.routes.moderation import router as moderation_router
from moderation_pipeline.bootstrap.moderation import (
    ModerationContainer,
    build_moderation_container,
)
from moderation_pipeline.domain.errors import (
    AppealAlreadyResolvedError,
    ConcurrentModificationError,
    ConfigurationError,
    DuplicateRecordError,
    InvalidWorkflowTransitionError,
    NotFoundError,
    QueueItemNotCancellableError,
    ValidationError,
)
from moderation_pipeline.domain.exceptions import ModerationError
from moderation_pipeline.infrastructure.observability import (
    configure_structlog,
    get_component_logger,
)

logger = structlog.get_logger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"

ENVIRONMENT_VAR = "ENVIRONMENT"
DEFAULT_ENVIRONMENT = "development"

# Checked in order; the first matching class wins.
_ERROR_STATUS: tuple[tuple[type[ModerationError], int, str], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND, "Not Found"),
    (ConfigurationError, status.HTTP_400_BAD_REQUEST, "Invalid Configuration"),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation Failed"),
    (ConcurrentModificationError, status.HTTP_409_CONFLICT, "Concurrent Modification"),
    (InvalidWorkflowTransitionError, status.HTTP_409_CONFLICT, "Invalid Workflow Transition"),
    (QueueItemNotCancellableError, status.HTTP_409_CONFLICT, "Queue Item Not Cancellable"),
    (AppealAlreadyResolvedError, status.HTTP_409_CONFLICT, "Appeal Already Resolved"),
    (DuplicateRecordError, status.HTTP_409_CONFLICT, "Duplicate Record"),
)


def configure_logging() -> None:
    """Configure structlog from the ENVIRONMENT variable.

    production renders JSON; anything else uses the console renderer.
    """
    environment = os.getenv(ENVIRONMENT_VAR, DEFAULT_ENVIRONMENT)
    configure_structlog(environment=environment)
    log = get_component_logger("api")
    log.info("structured_logging_configured", environment=environment)


def _status_for(exc: ModerationError) -> tuple[int, str]:
    for error_class, status_code, title in _ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code, title
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "Moderation Error"


async def moderation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a domain error as an RFC 7807 problem response."""
    if not isinstance(exc, ModerationError):
        raise exc
    status_code, title = _status_for(exc)
    content: dict[str, object] = {
        "type": f"urn:moderation:error:{type(exc).__name__}",
        "title": title,
        "status": status_code,
        "detail": str(exc),
        "instance": str(request.url.path),
    }
    if isinstance(exc, ValidationError):
        content["errors"] = list(exc.errors)

    log = logger.bind(path=request.url.path, error_type=type(exc).__name__)
    if status_code >= 500:
        log.error("moderation_request_error", detail=str(exc))
    else:
        log.info("moderation_request_rejected", status=status_code)
    return JSONResponse(status_code=status_code, content=content, media_type=PROBLEM_MEDIA_TYPE)


def create_app(container: ModerationContainer | None = None) -> FastAPI:
    """Create the API app around a pipeline container.

    Args:
        container: Pre-built pipeline; one is built from the environment
            when omitted.

    Returns:
        The configured FastAPI application.
    """
    container = container or build_moderation_container()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        orchestrator = app.state.container.orchestrator
        if orchestrator.get_config().auto_moderation:
            await orchestrator.start_queue_processor()
        logger.info("moderation_api_started")
        yield
        await orchestrator.shutdown()
        logger.info("moderation_api_stopped")

    app = FastAPI(
        title="Content Moderation Pipeline API",
        description="Automated analysis, user reports and human review",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.container = container
    app.add_middleware(LoggingMiddleware)
    app.add_exception_handler(ModerationError, moderation_error_handler)

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(moderation_router)
    return app
