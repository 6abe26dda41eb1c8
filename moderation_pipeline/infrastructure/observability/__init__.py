"""Observability: structured logging and request context."""

from moderation_pipeline.infrastructure.observability.correlation import (
    SUBJECT_KEYS,
    bind_subject,
    clear_request_context,
    generate_correlation_id,
    get_correlation_id,
    get_subject,
    request_context_processor,
    set_correlation_id,
)
from moderation_pipeline.infrastructure.observability.logging import (
    SERVICE_NAME,
    configure_structlog,
    get_component_logger,
    service_processor,
)

__all__ = [
    "SERVICE_NAME",
    "SUBJECT_KEYS",
    "bind_subject",
    "clear_request_context",
    "configure_structlog",
    "generate_correlation_id",
    "get_component_logger",
    "get_correlation_id",
    "get_subject",
    "request_context_processor",
    "service_processor",
    "set_correlation_id",
]
