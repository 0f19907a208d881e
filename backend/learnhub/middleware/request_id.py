"""
LearnHub Backend: Request ID Middleware
=========================================

What:  Assigns an ID to each request and echoes it in `X-Request-ID`.
How:   Uses the client's `X-Request-ID` header when present, otherwise a short
       UUID. The value lives in a ContextVar so loggers and exception handlers
       can read it without threading the request through every call.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    return request_id_var.get("") or "unknown"


def resolve_request_id(request: Request) -> str:
    """Client-supplied `X-Request-ID`, else a fresh 8-char ID."""
    return request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Stores the request ID in the ContextVar and on `request.state`."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request)

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
