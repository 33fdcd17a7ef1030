import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


logger = logging.getLogger("app.middleware.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, query, status and time to first byte for every request.

    Bodies are never read: download responses are open-ended event streams.
    """

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        method = request.method.upper()
        start_time = time.perf_counter()
        logger.info(
            "Incoming %s %s query=%s",
            method,
            request.url.path,
            dict(request.query_params),
        )

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Completed %s %s status=%s duration_ms=%.2f streaming=%s",
            method,
            request.url.path,
            response.status_code,
            duration_ms,
            response.headers.get("content-type", "").startswith("text/event-stream"),
        )
        return response
