"""
Marketplace Dependencies
========================

FastAPI dependencies resolving the caller's identity, plus accessors for
per-application state (rate limiter, realtime connection manager).

Usage:
    @router.get("/me")
    async def me(identity: Identity = Depends(authenticate)):
        ...

Version: 0.1.0
"""

from typing import Any

from fastapi import Depends, FastAPI, Request, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth import get_bearer_token
from shared.config import settings
from shared.database.postgres import get_postgres_session
from shared.logging import bind_request_context, get_logger
from services.marketplace.errors import AuthenticationError
from services.marketplace.models import UserModel, UserRole
from services.marketplace.realtime.manager import ConnectionManager
from services.marketplace.services.rate_limit import RateLimiter, build_rate_limiter
from services.marketplace.services.tokens import token_service


logger = get_logger(__name__)


class Identity(BaseModel):
    """The authenticated caller attached to a request."""

    id: str
    email: str
    role: UserRole
    first_name: str
    last_name: str
    is_email_verified: bool = False

    @classmethod
    def from_user(cls, user: UserModel) -> "Identity":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            first_name=user.first_name,
            last_name=user.last_name,
            is_email_verified=bool(user.is_email_verified),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


async def resolve_identity(db: AsyncSession, token: str | None) -> Identity:
    """
    Verify an access token and load the user it names.

    Raises:
        AuthenticationError: No token, a token that does not verify, or a
            user that no longer exists
    """
    if not token:
        raise AuthenticationError("Access token required")

    token_data = token_service.verify_access_token(token)
    if token_data is None:
        raise AuthenticationError("Invalid or expired token")

    user = await db.get(UserModel, token_data.user_id)
    if user is None:
        logger.warning("token_user_missing", user_id=token_data.user_id)
        raise AuthenticationError("User not found")

    return Identity.from_user(user)


async def authenticate(
    token: str | None = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_postgres_session),
) -> Identity:
    """Require a valid bearer token. 401 otherwise."""
    identity = await resolve_identity(db, token)
    bind_request_context(user_id=identity.id, role=identity.role.value)
    return identity


async def optional_auth(
    token: str | None = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_postgres_session),
) -> Identity | None:
    """Identity if a valid bearer token was sent; None on any failure."""
    if not token:
        return None
    try:
        return await resolve_identity(db, token)
    except AuthenticationError:
        return None


# =============================================================================
# Application state
# =============================================================================


def _state_value(app: FastAPI, name: str, factory: Any) -> Any:
    value = getattr(app.state, name, None)
    if value is None:
        value = factory()
        setattr(app.state, name, value)
    return value


def rate_limiter_for(app: FastAPI) -> RateLimiter:
    return _state_value(app, "rate_limiter", lambda: build_rate_limiter(settings))


def connection_manager_for(app: FastAPI) -> ConnectionManager:
    return _state_value(app, "connection_manager", ConnectionManager)


async def enforce_rate_limit(
    request: Request,
    response: Response,
    token: str | None = Depends(get_bearer_token),
) -> None:
    """
    Count the request against the caller's window.

    The caller is the user named by a verifying access token, else the
    client address.
    """
    if not settings.rate_limit.enabled:
        return

    token_data = token_service.verify_access_token(token) if token else None
    if token_data is not None:
        key = f"user:{token_data.user_id}"
    else:
        key = f"ip:{request.client.host if request.client else 'unknown'}"

    info = await rate_limiter_for(request.app).check(key)
    headers = info.headers()
    # Read back by the error handlers
    request.state.rate_limit_headers = headers
    for name, value in headers.items():
        response.headers[name] = value
