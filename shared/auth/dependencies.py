"""
FastAPI Authentication Dependencies
===================================

Bearer token extraction shared by HTTP routes and WebSocket handshakes.
Resolving the token to a stored user is left to the owning service.

Version: 0.1.0
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer


# Bearer scheme for token extraction from the Authorization header
bearer_scheme = HTTPBearer(
    scheme_name="bearerAuth",
    bearerFormat="JWT",
    auto_error=False,
)


def extract_bearer_token(authorization: str | None) -> str | None:
    """
    Pull the token out of an ``Authorization: Bearer <token>`` header value.

    Args:
        authorization: Raw header value

    Returns:
        The token, or None if the header is absent or not a bearer header
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str | None:
    """
    Dependency yielding the raw bearer token, or None when none was sent.

    Usage:
        @app.get("/protected")
        async def protected(token: str | None = Depends(get_bearer_token)):
            ...
    """
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials
