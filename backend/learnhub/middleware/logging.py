"""
LearnHub Backend: Access Logging Middleware
=============================================

What:  One log line per request with method, path, status and duration.
How:   Level follows the status code (5xx ERROR, 4xx WARNING, else INFO).
       Request bodies are never logged; speech transcripts and chat messages
       stay out of the access log.

Typical durations:
    GET  /api/get-quiz             10-50ms (three lookups and a select)
    POST /api/ai-analyze-speech    2-8s    (Gemini call dominates)
    POST /api/tts-google           300ms-1s
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from learnhub.middleware.request_id import request_id_var

logger = logging.getLogger("learnhub.access")

# Polled by load balancers every few seconds
QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = getattr(request.state, "request_id", "") or request_id_var.get("")
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
