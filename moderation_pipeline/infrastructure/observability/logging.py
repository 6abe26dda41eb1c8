"""Structured logging configuration for the moderation pipeline.

configure_structlog() is called once at API startup. Every entry is
stamped with the service name and the request context (correlation ID
and moderation subject ids), then rendered as JSON in production or
through the console renderer elsewhere.

Log entry (production):
    {
        "timestamp": "2024-01-01T00:00:00.000000Z",
        "level": "info",
        "service": "moderation_pipeline",
        "event": "review_action_processed",
        "correlation_id": "uuid",
        "workflow_id": "uuid",
        ...
    }
"""

import logging
import os
from typing import Any, cast

import structlog
from structlog.typing import Processor

from moderation_pipeline.infrastructure.observability.correlation import (
    request_context_processor,
)

SERVICE_NAME = "moderation_pipeline"
LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def _log_level(level_name: str | None) -> int:
    name = (level_name or os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)).upper()
    return getattr(logging, name, logging.INFO)


def service_processor(service: str) -> Processor:
    """Processor that stamps service on entries that don't carry one."""

    def add_service(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict.setdefault("service", service)
        return event_dict

    return cast(Processor, add_service)


def configure_structlog(
    environment: str = "production",
    service: str = SERVICE_NAME,
    level: str | None = None,
) -> None:
    """Configure structlog for the pipeline.

    Args:
        environment: 'production' for JSON output, anything else for the
            colored console renderer.
        service: Service name stamped on every entry.
        level: Minimum level name; LOG_LEVEL from the environment when
            omitted, INFO if that is unset or unknown.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        service_processor(service),
        cast(Processor, request_context_processor),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if environment == "production":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_log_level(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_component_logger(component: str) -> structlog.BoundLogger:
    """Logger with the pipeline component (api, queue, intake...) bound."""
    return structlog.get_logger().bind(component=component)
