"""
LearnHub Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the right HTTP status.
Who:   Raised by services and middleware; caught by global handlers.

Exception Hierarchy:
    LearnHubError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthenticationError      → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── FileStorageError         → 500 Internal Server Error
    ├── SpeechServiceError       → 500 Internal Server Error
    ├── DatabaseError            → 500 Internal Server Error
    ├── LLMServiceError          → 503 Service Unavailable (retry later)
    ├── CircuitBreakerOpenError  → 503 Service Unavailable (circuit open)
    └── RateLimitExceededError   → 429 Too Many Requests
"""

from typing import Any, Dict, Optional


class LearnHubError(Exception):
    """
    Base exception for all LearnHub application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(LearnHubError):
    """
    Raised when client input fails validation.

    When:    Missing required fields, malformed paths, bad upload type or size.
    HTTP:    400 Bad Request

    Example response:
        {
            "success": false,
            "error": "Subject and lesson are required",
            "code": "validation_error",
            "details": {"field": "subject"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(LearnHubError):
    """Demo login rejected. HTTP 401."""

    def __init__(
        self,
        message: str = "Invalid username or password",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(LearnHubError):
    """
    Raised when a referenced record does not exist.

    When:    Unknown subject/lesson/topic, tree node, parent node, activity.
    HTTP:    404 Not Found

    SQLAlchemy returns None for missing records; services convert that None
    into this exception so the handler can answer 404. Callers may pass a
    full `message` to keep the wording route-specific.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(LearnHubError):
    """
    Raised when a write would duplicate an existing record.

    When:    A tree node with the same name already exists under the parent,
             or a demo username is taken.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(LearnHubError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, directory not writable, I/O error.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LLMServiceError(LearnHubError):
    """
    Raised when the chat-completion service (Gemini) fails after all retries.

    HTTP:    503 Service Unavailable, with Retry-After when known.
    """

    def __init__(
        self,
        message: str = "AI service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(LearnHubError):
    """
    Raised when the circuit breaker is in OPEN state.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After 5 failures → OPEN (reject all calls for 60 seconds)
        → After 60 seconds → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED (resume normal operation)
        → If test fails → OPEN again (reset 60-second timer)
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"AI service is temporarily unavailable due to repeated failures. "
            f"The service will automatically retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class SpeechServiceError(LearnHubError):
    """
    Raised when speech synthesis cannot be performed.

    When:    API key missing, upstream returned non-2xx, network failure.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Speech synthesis failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(LearnHubError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; the SQL error
    text only goes to the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(LearnHubError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with Retry-After header.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
