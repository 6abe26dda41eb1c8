"""Request logging middleware for the moderation API.

For each request it sets the correlation ID (from X-Correlation-ID, or
freshly generated) and binds the moderation subject named by the
matched route's path parameters, e.g. report_id on /reports/{report_id}.
Every log entry written while handling the request then carries both.
Requests are logged under their route template rather than the raw
path, so logs group by endpoint.
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match

from moderation_pipeline.infrastructure.observability.correlation import (
    bind_subject,
    clear_request_context,
    generate_correlation_id,
    set_correlation_id,
)

CORRELATION_HEADER = "X-Correlation-ID"


def _match_route(request: Request) -> tuple[str, dict[str, Any]]:
    """Route template and path parameters for a request, before routing runs."""
    for route in request.app.router.routes:
        match, child_scope = route.matches(request.scope)
        if match is Match.FULL:
            template = getattr(route, "path", request.url.path)
            return template, child_scope.get("path_params", {})
    return request.url.path, {}


class LoggingMiddleware(BaseHTTPMiddleware):
    """Correlation ID propagation, subject binding and request logging."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id()
        route, path_params = _match_route(request)
        set_correlation_id(correlation_id)
        subject = bind_subject(path_params)

        log = structlog.get_logger().bind(
            correlation_id=correlation_id,
            method=request.method,
            route=route,
            **subject,
        )
        log.debug("request_started", path=request.url.path)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            log.exception(
                "request_failed",
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                error_type=type(exc).__name__,
            )
            raise
        finally:
            clear_request_context()

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        emit = log.error if response.status_code >= 500 else log.info
        emit("request_completed", status_code=response.status_code, duration_ms=duration_ms)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
