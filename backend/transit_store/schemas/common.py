"""
Transit Store Backend - Shared Response Schemas
=================================================

What:  Error and health payloads shared by every route module.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "duplicate_name",
            "message": "folder name must be unique",
            "request_id": "1f0c2d3e"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Service health with the status of both dependencies."""
    status: str = Field(description="Overall status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    transit: str = Field(description="Transit oracle: available, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
