"""
Request logging middleware with request IDs for tracing search calls.
"""
import logging
import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


def get_request_id() -> str:
    """Get the current request ID from the structlog context."""
    return structlog.contextvars.get_contextvars().get("request_id", "")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    1. Assigns a short request ID to each request (or reuses X-Request-ID)
    2. Binds it into the structlog context so every log line of the request carries it
    3. Logs request start/end with timing and the search query, if any
    4. Echoes the ID back in the X-Request-ID response header
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        path = request.url.path
        start_time = time.time()

        try:
            logger.info(
                f"→ {request.method} {path}",
                extra={
                    "method": request.method,
                    "path": path,
                    "search_query": request.query_params.get("q", ""),
                    "stage": "request_start",
                },
            )

            try:
                response = await call_next(request)
            except Exception as e:
                duration_ms = (time.time() - start_time) * 1000
                logger.error(
                    f"✗ Error: {str(e)[:100]} ({duration_ms:.0f}ms)",
                    extra={"error": str(e), "duration_ms": duration_ms, "stage": "request_error"},
                    exc_info=True,
                )
                raise

            duration_ms = (time.time() - start_time) * 1000
            log_level = logging.INFO if response.status_code < 400 else logging.WARNING
            logger.log(
                log_level,
                f"← {response.status_code} ({duration_ms:.0f}ms)",
                extra={"status_code": response.status_code, "duration_ms": duration_ms, "stage": "request_end"},
            )
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers["X-Request-ID"] = request_id
        return response
