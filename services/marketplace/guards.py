"""
Authorization Guards
====================

Role, verification and ownership checks over the request identity.

The ``ensure_*`` functions are plain predicates that raise; the
``require_*`` factories wrap them as FastAPI dependencies.

Ownership is never inferred. Each resource-owning endpoint states how a
caller owns the resource::

    owns_task = owned_by("client_id")

    @router.patch("/tasks/{task_id}")
    async def update_task(task_id: str, identity: Identity = Depends(authenticate), ...):
        task = await load_task(db, task_id)
        ensure_owner(identity, task, owns_task)

Version: 0.1.0
"""

from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Depends

from services.marketplace.dependencies import Identity, authenticate
from services.marketplace.errors import AuthenticationError, AuthorizationError
from services.marketplace.models import UserRole


OwnershipPredicate = Callable[[Identity, Any], bool]


def ensure_roles(identity: Identity | None, roles: frozenset[UserRole] | set[UserRole]) -> Identity:
    """Require an identity whose role is one of ``roles``."""
    if identity is None:
        raise AuthenticationError("Authentication required")
    if identity.role not in roles:
        raise AuthorizationError("Insufficient permissions")
    return identity


def ensure_verified(identity: Identity | None) -> Identity:
    """Require an identity with a verified email address."""
    if identity is None:
        raise AuthenticationError("Authentication required")
    if not identity.is_email_verified:
        raise AuthorizationError("Email verification required")
    return identity


def ensure_owner(identity: Identity | None, resource: Any, predicate: OwnershipPredicate) -> Identity:
    """
    Require that ``identity`` owns ``resource`` according to ``predicate``.

    Admins pass unconditionally.
    """
    if identity is None:
        raise AuthenticationError("Authentication required")
    if identity.role == UserRole.ADMIN:
        return identity
    if not predicate(identity, resource):
        raise AuthorizationError("Access denied: You can only access your own resources")
    return identity


def owned_by(field: str) -> OwnershipPredicate:
    """Predicate: the resource's ``field`` holds the caller's user id."""

    def predicate(identity: Identity, resource: Any) -> bool:
        return getattr(resource, field, None) == identity.id

    predicate.__name__ = f"owned_by_{field}"
    return predicate


def _coerce_roles(roles: tuple[UserRole | str, ...]) -> frozenset[UserRole]:
    if not roles:
        raise ValueError("At least one role is required")
    try:
        return frozenset(UserRole(role) for role in roles)
    except ValueError as e:
        raise ValueError(f"Unknown role in guard: {e}") from e


def require_roles(*roles: UserRole | str) -> Callable[..., Awaitable[Identity]]:
    """
    Dependency factory: authenticated caller with one of ``roles``.

    Unknown role names fail here, when the route is declared.
    """
    allowed = _coerce_roles(roles)

    async def dependency(identity: Identity = Depends(authenticate)) -> Identity:
        return ensure_roles(identity, allowed)

    return dependency


async def _verified(identity: Identity = Depends(authenticate)) -> Identity:
    return ensure_verified(identity)


admin_only = require_roles(UserRole.ADMIN)
freelancer_only = require_roles(UserRole.FREELANCER)
client_only = require_roles(UserRole.CLIENT)
freelancer_or_client = require_roles(UserRole.FREELANCER, UserRole.CLIENT)
verified_only = _verified
