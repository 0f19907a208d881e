"""
LearnHub Backend: FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       the lifespan handler sets up logging and disposes the engine.
Who:   uvicorn learnhub.main:app

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │  Middleware: Rate Limit → Request ID → Logging → GZip → CORS│
    │                                                           │
    │  Routers: ai-learning │ speaking │ quiz │ files │ workout  │
    │           tts │ auth │ health                              │
    │                                                           │
    │  Exception handlers: LearnHubError subclasses → status     │
    │  {"success": false, "error", "code", "request_id"}         │
    └───────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Dict, Optional, Tuple, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnhub import __version__
from learnhub.config import settings
from learnhub.database import dispose_engine
from learnhub.exceptions import (
    AuthenticationError,
    CircuitBreakerOpenError,
    ConflictError,
    DatabaseError,
    FileStorageError,
    LearnHubError,
    LLMServiceError,
    NotFoundError,
    RateLimitExceededError,
    SpeechServiceError,
    ValidationError,
)
from learnhub.middleware.logging import RequestLoggingMiddleware
from learnhub.middleware.rate_limit import RateLimitMiddleware
from learnhub.middleware.request_id import RequestIDMiddleware, get_request_id
from learnhub.routes import (
    auth,
    files,
    health,
    learning_tree,
    quiz,
    speaking,
    speech,
    workout,
)

logger = logging.getLogger(__name__)

# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Root logger to stdout at settings.log_level; quiets chatty libraries."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("LearnHub Backend %s starting up...", __version__)

    # Missing keys disable the AI and TTS endpoints only
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.warning("Configuration warning: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("LearnHub Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

# exception type → (status, code)
ERROR_STATUS: Dict[Type[LearnHubError], Tuple[int, str]] = {
    ValidationError: (400, "validation_error"),
    AuthenticationError: (401, "authentication_error"),
    NotFoundError: (404, "not_found"),
    ConflictError: (409, "conflict"),
    RateLimitExceededError: (429, "rate_limit_exceeded"),
    FileStorageError: (500, "file_storage_error"),
    SpeechServiceError: (500, "speech_service_error"),
    DatabaseError: (500, "server_error"),
    LLMServiceError: (503, "llm_service_error"),
    CircuitBreakerOpenError: (503, "service_unavailable"),
    LearnHubError: (500, "internal_server_error"),
}

def _request_id(request: Request) -> str:
    # request.state outlives the ContextVar for errors that reach the
    # outermost ServerErrorMiddleware
    return getattr(request.state, "request_id", None) or get_request_id()


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content = {
        "success": False,
        "error": message,
        "code": code,
        "request_id": _request_id(request),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _retry_after(exc: LearnHubError) -> Optional[int]:
    if isinstance(exc, CircuitBreakerOpenError):
        return exc.recovery_time
    return getattr(exc, "retry_after", None)


async def handle_learnhub_error(request: Request, exc: LearnHubError) -> JSONResponse:
    status_code, code = ERROR_STATUS.get(type(exc), ERROR_STATUS[LearnHubError])
    rid = _request_id(request)

    if status_code >= 500:
        logger.error(
            "[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context
        )
    else:
        logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)

    message = exc.message
    details = None
    if isinstance(exc, ValidationError) and exc.field:
        details = {"field": exc.field}

    headers = None
    retry_after = _retry_after(exc)
    if retry_after and status_code in (429, 503):
        headers = {"Retry-After": str(retry_after)}

    return error_response(request, status_code, code, message, details, headers)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query parameters are client errors: 400, not 422."""
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.warning("[%s] Request validation failed: %s", _request_id(request), errors)
    return error_response(
        request, 400, "validation_error", "Invalid request", {"errors": errors}
    )


HTTP_ERROR_CODES = {404: "not_found", 405: "method_not_allowed"}


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Router-level errors (unknown path, wrong method) in the same envelope."""
    code = HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    logger.warning("[%s] HTTP %d: %s", _request_id(request), exc.status_code, exc.detail)
    return error_response(
        request, exc.status_code, code, str(exc.detail), headers=getattr(exc, "headers", None)
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("[%s] Unexpected error: %s", _request_id(request), str(exc), exc_info=True)
    return error_response(
        request,
        500,
        "internal_server_error",
        "An unexpected error occurred. Please try again or contact support.",
    )


def register_exception_handlers(app: FastAPI) -> None:
    for exc_class in ERROR_STATUS:
        app.add_exception_handler(exc_class, handle_learnhub_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="LearnHub API",
        description=(
            "Backend for the LearnHub learning app: speaking practice with AI "
            "feedback, flashcard quizzes, an AI-learning notes tree, a workout "
            "tracker and text-to-speech."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in reverse order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS → route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(learning_tree.router)
    app.include_router(speaking.router)
    app.include_router(quiz.router)
    app.include_router(files.router)
    app.include_router(workout.router)
    app.include_router(speech.router)
    app.include_router(auth.router)
    app.include_router(health.router)

    return app


app = create_app()
