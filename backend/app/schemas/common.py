"""
BeeBark Backend — Shared Response Schemas
===========================================

Error, acknowledgement and health payloads used across routers.
"""

from typing import Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Plain acknowledgement, e.g. {"message": "Connection accepted"}."""
    message: str = Field(description="Human-readable result")


class ClearedResponse(MessageResponse):
    deleted: int = Field(description="Number of rows removed")


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "self_request",
            "message": "You cannot send a request to yourself",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    media_host: str = Field(description="Media host: configured, unconfigured")
    connected_users: int = Field(description="Users currently registered on the socket channel")
    uptime_seconds: float = Field(description="Seconds since service started")
