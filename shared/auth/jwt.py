"""
JWT Token Management
====================

Handles JWT token creation, validation, and decoding.

Access and refresh tokens carry the same identity claims
(``userId``, ``email``, ``role``) plus issuer, audience, expiry and a
random ``jti``, but are signed with distinct secrets.

Version: 0.1.0
"""

import uuid
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field

from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)


class TokenType(str, Enum):
    """Bearer token classes."""

    ACCESS = "access"
    REFRESH = "refresh"


class TokenData(BaseModel):
    """Decoded JWT token payload."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", description="Subject (user ID)")
    email: str | None = None
    role: str | None = None
    exp: datetime = Field(..., description="Expiration time")
    iat: datetime = Field(default_factory=lambda: datetime.now(UTC), description="Issued at")
    jti: str | None = None
    token_type: TokenType = TokenType.ACCESS


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token expiry in seconds")


def _secret_for(token_type: TokenType) -> str:
    if token_type == TokenType.REFRESH:
        return settings.jwt.refresh_secret_key.get_secret_value()
    return settings.jwt.secret_key.get_secret_value()


def _default_lifetime(token_type: TokenType) -> timedelta:
    if token_type == TokenType.REFRESH:
        return timedelta(days=settings.jwt.refresh_token_expire_days)
    return timedelta(minutes=settings.jwt.access_token_expire_minutes)


def _encode(
    data: dict[str, Any],
    token_type: TokenType,
    expires_delta: timedelta | None,
) -> str:
    to_encode = data.copy()
    now = datetime.now(UTC)
    expire = now + (expires_delta if expires_delta is not None else _default_lifetime(token_type))

    to_encode.update(
        {
            "exp": expire,
            "iat": now,
            "iss": settings.jwt.issuer,
            "aud": settings.jwt.audience,
            "jti": uuid.uuid4().hex,
            "token_type": token_type.value,
        }
    )

    encoded_jwt = jwt.encode(
        to_encode,
        _secret_for(token_type),
        algorithm=settings.jwt.algorithm,
    )

    logger.debug(
        f"{token_type.value}_token_created",
        user_id=data.get("userId"),
        expires_at=expire.isoformat(),
    )

    return encoded_jwt


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data (must include 'userId')
        expires_delta: Custom expiration time (default from settings)

    Returns:
        str: Encoded JWT token
    """
    return _encode(data, TokenType.ACCESS, expires_delta)


def create_refresh_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT refresh token.

    Args:
        data: Payload data (must include 'userId')
        expires_delta: Custom expiration time (default from settings)

    Returns:
        str: Encoded JWT refresh token
    """
    return _encode(data, TokenType.REFRESH, expires_delta)


def decode_token(
    token: str,
    verify_type: TokenType | str = TokenType.ACCESS,
) -> TokenData | None:
    """
    Decode and validate a JWT token.

    Checks signature, issuer, audience, expiry and token type against the
    secret of the requested token class.

    Args:
        token: JWT token string
        verify_type: Token class to verify ('access' or 'refresh')

    Returns:
        TokenData: Decoded token data, or None if invalid. Never raises.
    """
    try:
        token_type = TokenType(verify_type)
    except ValueError:
        return None

    try:
        payload = jwt.decode(
            token,
            _secret_for(token_type),
            algorithms=[settings.jwt.algorithm],
            audience=settings.jwt.audience,
            issuer=settings.jwt.issuer,
        )
    except JWTError as e:
        logger.debug("token_decode_failed", error=str(e), token_type=token_type.value)
        return None
    except Exception as e:
        # Garbage input can trip decoders below jose's own error handling
        logger.debug("token_decode_failed", error=type(e).__name__, token_type=token_type.value)
        return None

    if payload.get("token_type") != token_type.value:
        logger.warning(
            "token_type_mismatch",
            expected=token_type.value,
            actual=payload.get("token_type"),
        )
        return None

    if not payload.get("userId") or "exp" not in payload:
        logger.warning("token_missing_claims", token_type=token_type.value)
        return None

    return TokenData(
        user_id=payload["userId"],
        email=payload.get("email"),
        role=payload.get("role"),
        exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
        iat=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
        jti=payload.get("jti"),
        token_type=token_type,
    )


def is_token_expired(token_data: TokenData) -> bool:
    """
    Check if a token has expired.

    Args:
        token_data: Decoded token data

    Returns:
        bool: True if expired
    """
    return datetime.now(UTC) > token_data.exp
