"""Request logging middleware for the Devforge API.

Every request is logged under a correlation ID taken from ``X-Correlation-ID``
or generated per request, and the ID is echoed back on the response. Requests
addressed to one project (``/projects/{project_id}/...``) also bind that id,
so controller and collaborator logs emitted while handling the request carry
it without each route binding it themselves.
"""

from __future__ import annotations

import re
import time
import uuid
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from devforge.logging import (
    bind_project_context,
    clear_project_context,
    get_logger,
    set_correlation_id,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

_PROJECT_PATH = re.compile(r"^/projects/([^/]+)")


def project_id_from_path(path: str) -> str | None:
    """Return the project id addressed by a request path, if any.

    Args:
        path: URL path, e.g. ``/projects/abc/steps/plan/approve``

    Returns:
        The id segment, or None for collection routes and other resources.
    """
    match = _PROJECT_PATH.match(path)
    return match.group(1) if match else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request's start, outcome and duration.

    The correlation ID and any project id from the path are bound for the
    lifetime of the request and cleared afterwards, including on failure.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        set_correlation_id(correlation_id)
        project_id = project_id_from_path(request.url.path)
        if project_id is not None:
            bind_project_context(project_id)
        start_time = time.perf_counter()

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            query=str(request.url.query) if request.url.query else None,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=_elapsed_ms(start_time),
                error=str(exc),
                exc_info=True,
            )
            raise
        else:
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=_elapsed_ms(start_time),
            )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            set_correlation_id(None)
            clear_project_context()


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)
