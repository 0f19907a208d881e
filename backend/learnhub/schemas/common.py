"""
LearnHub Backend: Shared Pydantic Schemas
===========================================

What:  Base model for the camelCase JSON envelope plus the error and health
       response models used by every router.
How:   Request and response envelopes subclass CamelModel, so Python code
       uses snake_case while the wire format stays camelCase. Database rows
       are returned in their column names (snake_case) through the
       per-domain *Out models.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """snake_case attributes, camelCase JSON keys; accepts either on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """
    Standard error body for every failed request.

    Example:
        {
            "success": false,
            "error": "Subject and lesson are required",
            "code": "validation_error",
            "details": {"field": "subject"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    success: bool = Field(default=False)
    error: str = Field(description="Human-readable error description")
    code: str = Field(description="Machine-readable error code")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class SuccessResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    """Returned by GET /health for container probes and monitoring."""

    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    gemini: str = Field(description="Gemini API status: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
