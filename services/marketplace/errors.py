"""
Marketplace Errors
==================

Service-layer exceptions mapped to HTTP responses, and the FastAPI
exception handlers that render every failure as::

    {"success": false, "message": "...", "errors": [...]}

``errors`` is only present for itemized validation failures.

Version: 0.1.0
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.config import settings
from shared.logging import get_logger
from shared.models.common import ErrorResponse, FieldError


logger = get_logger(__name__)


class ServiceError(Exception):
    """Base class for service-layer exceptions mapped to HTTP responses."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        errors: list[dict[str, Any]] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors
        self.headers = headers


class ValidationError(ServiceError):
    """Request validation failed (400)."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(ServiceError):
    """Authentication failed or missing (401)."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(ServiceError):
    """Authenticated but not permitted (403)."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    """Requested resource not found (404)."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    """Resource conflict, e.g. duplicate creation (409)."""

    status_code = status.HTTP_409_CONFLICT


class RateLimitedError(ServiceError):
    """Too many requests in the current window (429)."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(
        self,
        message: str = "Too many requests, please try again later",
        *,
        retry_after: int | None = None,
        headers: dict[str, str] | None = None,
    ):
        headers = dict(headers or {})
        if retry_after is not None:
            headers["Retry-After"] = str(retry_after)
        super().__init__(message, headers=headers or None)
        self.retry_after = retry_after


class InternalError(ServiceError):
    """Unexpected failure inside the service (500)."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    errors: list[dict[str, Any]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the error envelope, keeping any rate-limit headers counted for the request."""
    merged = dict(getattr(request.state, "rate_limit_headers", None) or {})
    merged.update(headers or {})
    body = ErrorResponse(message=message, errors=errors)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=merged or None,
    )


def _field_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors to ``[{field, message}]``."""
    items = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        items.append(FieldError(field=".".join(loc) or "body", message=message).model_dump())
    return items


def _is_foreign_key_violation(exc: IntegrityError) -> bool:
    text = str(exc.orig).lower()
    return "foreign key" in text


def register_exception_handlers(app: FastAPI) -> None:
    """Install the marketplace error envelope on every failure path."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            "service_error",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            message=exc.message,
        )
        return _error_response(request, exc.status_code, exc.message, exc.errors, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = _field_errors(exc)
        logger.warning(
            "request_validation_failed",
            path=request.url.path,
            method=request.method,
            fields=[e["field"] for e in errors],
        )
        return _error_response(request, status.HTTP_400_BAD_REQUEST, "Validation failed", errors)

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
        if _is_foreign_key_violation(exc):
            status_code, message = status.HTTP_400_BAD_REQUEST, "Invalid reference"
        else:
            status_code, message = status.HTTP_409_CONFLICT, "Resource already exists"
        logger.warning(
            "integrity_error",
            path=request.url.path,
            method=request.method,
            status_code=status_code,
        )
        return _error_response(request, status_code, message)

    @app.exception_handler(NoResultFound)
    async def handle_no_result(request: Request, exc: NoResultFound) -> JSONResponse:
        logger.warning("record_not_found", path=request.url.path, method=request.method)
        return _error_response(request, status.HTTP_404_NOT_FOUND, "Record not found")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code >= 500:
            logger.error("http_error", path=request.url.path, status_code=exc.status_code, message=message)
        else:
            logger.warning("http_client_error", path=request.url.path, status_code=exc.status_code, message=message)
        return _error_response(request, exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_uncaught(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            error=str(exc),
            exc_info=not settings.is_production,
        )
        message = "Something went wrong" if settings.is_production else (str(exc) or "Something went wrong")
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, message)
