"""
Common Models
=============

Base response models shared by marketplace services.

Version: 0.1.0
"""

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class BaseResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class FieldError(BaseModel):
    """A single itemized validation failure."""

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Error response model."""

    success: bool = False
    message: str
    errors: list[dict[str, Any]] | None = None


class HealthResponse(BaseModel):
    """Service health check response."""

    status: str = "healthy"
    service: str
    version: str
    environment: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Component health
    components: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @property
    def is_healthy(self) -> bool:
        """Check if all components are healthy."""
        if self.status != "healthy":
            return False
        return all(
            c.get("status") == "healthy" for c in self.components.values()
        )
