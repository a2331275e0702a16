"""
Authentication Module
=====================

JWT-based authentication primitives for marketplace services.

Features:
- Access/refresh JWT creation and validation (distinct secrets)
- Password hashing with bcrypt
- Bearer token extraction for FastAPI routes and WebSockets

Usage:
    from shared.auth import (
        create_access_token,
        decode_token,
        hash_password,
        verify_password,
    )

    # Hash password for storage
    hashed = hash_password("user_password")

    # Verify password
    if verify_password("user_password", hashed):
        token = create_access_token({"userId": user_id, "email": email, "role": "CLIENT"})

    # Verify a token (returns None on any failure)
    data = decode_token(token, verify_type="access")
"""

from shared.auth.jwt import (
    create_access_token,
    create_refresh_token,
    decode_token,
    is_token_expired,
    TokenData,
    TokenPair,
    TokenType,
)
from shared.auth.password import (
    hash_password,
    hash_password_async,
    needs_rehash,
    verify_password,
    verify_password_async,
)
from shared.auth.dependencies import (
    bearer_scheme,
    extract_bearer_token,
    get_bearer_token,
)

__all__ = [
    # JWT
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "is_token_expired",
    "TokenData",
    "TokenPair",
    "TokenType",
    # Password
    "hash_password",
    "hash_password_async",
    "needs_rehash",
    "verify_password",
    "verify_password_async",
    # Dependencies
    "bearer_scheme",
    "extract_bearer_token",
    "get_bearer_token",
]
