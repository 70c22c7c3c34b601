"""
Photography Portfolio Backend — Shared Response Schemas
========================================================

What:  Response models used across route modules (errors, health, plain
       acknowledgements).
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body for every non-2xx response.

    Example:
        {
            "error": "validation_error",
            "message": "Invalid service type. Must be one of: portrait, ...",
            "details": {"field": "service_type"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    message: str


class WebhookAck(BaseModel):
    received: bool = Field(default=True, description="Event verified and dispatched")


class HealthResponse(BaseModel):
    """
    Service and dependency status.

    A backend that cannot reach its database cannot take bookings, so a
    database failure makes the service unhealthy. Missing Stripe keys only
    degrade it: logins and the admin area keep working.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    payments: str = Field(description="Payment processor: configured, not_configured")
    uptime_seconds: float = Field(description="Seconds since service started")
