"""Pydantic schemas for collector responses."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Response model for errors."""
    message_code: str
    message_text: str = ""


class HealthResponse(BaseModel):
    """Response model for the health check."""
    status: str
    service: str
