"""
Password Hashing
================

Secure password hashing using bcrypt.

The cost factor comes from ``AUTH_BCRYPT_ROUNDS`` (default 12).

Version: 0.1.0
"""

import asyncio

from passlib.context import CryptContext

from shared.config import settings

_pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.auth.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        str: Bcrypt hash of the password
    """
    return _pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Bcrypt hash to verify against

    Returns:
        bool: True if password matches hash. Malformed hashes never match.
    """
    try:
        return _pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def needs_rehash(hashed_password: str) -> bool:
    """
    Check if a password hash needs to be rehashed.

    This happens when the configured bcrypt rounds change.

    Args:
        hashed_password: Existing password hash

    Returns:
        bool: True if password should be rehashed
    """
    return _pwd_context.needs_update(hashed_password)


async def hash_password_async(password: str) -> str:
    """Hash a password on a worker thread so the event loop keeps serving."""
    return await asyncio.to_thread(hash_password, password)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    """Verify a password on a worker thread."""
    return await asyncio.to_thread(verify_password, plain_password, hashed_password)
