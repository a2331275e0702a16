"""
Shared Models
=============

Pydantic models shared across marketplace services.

Models:
- Common response envelopes (BaseResponse, ErrorResponse, FieldError)
- Health check response (HealthResponse)
"""

from shared.models.common import (
    BaseResponse,
    ErrorResponse,
    FieldError,
    HealthResponse,
)

__all__ = [
    "BaseResponse",
    "ErrorResponse",
    "FieldError",
    "HealthResponse",
]
