"""
Token Service
=============

Session lifecycle on top of the stateless primitives in ``shared.auth``.

Responsibilities:
- Password hashing off the event loop
- Access/refresh token issuance with refresh token persistence
- Refresh, revocation and expired-row cleanup
- Single-use password reset tokens

Stateful operations commit their own unit of work unless called with
``commit=False``; callers composing several operations into one atomic
unit then commit (or roll back) once themselves.

Version: 0.1.0
"""

import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth import (
    TokenData,
    TokenPair,
    TokenType,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password_async,
    verify_password_async,
)
from shared.config import settings
from shared.logging import get_logger
from services.marketplace.models import PasswordResetTokenModel, RefreshTokenModel, UserModel
from services.marketplace.models.base import utcnow


logger = get_logger(__name__)


@dataclass
class CleanupResult:
    """Rows removed by a cleanup sweep."""

    refresh_tokens: int = 0
    reset_tokens: int = 0

    @property
    def total(self) -> int:
        return self.refresh_tokens + self.reset_tokens


class TokenService:
    """
    Issues, verifies, refreshes and revokes session tokens.

    Holds no state of its own; every stateful call takes the request's
    ``AsyncSession``.
    """

    def __init__(
        self,
        refresh_token_ttl: timedelta | None = None,
        reset_token_ttl: timedelta | None = None,
        max_sessions_per_user: int | None = None,
        max_reset_tokens_per_user: int | None = None,
    ):
        self.refresh_token_ttl = refresh_token_ttl or timedelta(days=settings.auth.refresh_token_ttl_days)
        self.reset_token_ttl = reset_token_ttl or timedelta(minutes=settings.auth.password_reset_expire_minutes)
        self.max_sessions_per_user = max_sessions_per_user or settings.auth.max_sessions_per_user
        self.max_reset_tokens_per_user = max_reset_tokens_per_user or settings.auth.max_reset_tokens_per_user

    # =========================================================================
    # Passwords
    # =========================================================================

    @staticmethod
    async def hash_password(password: str) -> str:
        return await hash_password_async(password)

    @staticmethod
    async def compare_password(password: str, password_hash: str) -> bool:
        return await verify_password_async(password, password_hash)

    # =========================================================================
    # Stateless tokens
    # =========================================================================

    @staticmethod
    def generate_access_token(identity: dict[str, Any]) -> str:
        return create_access_token(identity)

    @staticmethod
    def generate_refresh_token(identity: dict[str, Any]) -> str:
        return create_refresh_token(identity)

    @staticmethod
    def verify_access_token(token: str) -> TokenData | None:
        return decode_token(token, TokenType.ACCESS)

    @staticmethod
    def verify_refresh_token(token: str) -> TokenData | None:
        return decode_token(token, TokenType.REFRESH)

    # =========================================================================
    # Refresh tokens
    # =========================================================================

    async def generate_token_pair(
        self,
        db: AsyncSession,
        user: UserModel,
        *,
        commit: bool = True,
    ) -> TokenPair:
        """
        Issue an access/refresh pair and persist the refresh token.

        Sessions are additive: earlier refresh tokens for the user stay valid
        unless a session cap is configured.

        Args:
            db: Database session
            user: Stored user the tokens identify
            commit: Commit the new row (False to leave it to the caller)

        Returns:
            TokenPair with both encoded tokens
        """
        claims = user.token_claims()
        access_token = self.generate_access_token(claims)
        refresh_token = self.generate_refresh_token(claims)

        db.add(
            RefreshTokenModel(
                token=refresh_token,
                user_id=user.id,
                expires_at=utcnow() + self.refresh_token_ttl,
            )
        )
        await db.flush()

        if self.max_sessions_per_user:
            await self._prune_oldest(db, RefreshTokenModel, user.id, self.max_sessions_per_user)

        if commit:
            await db.commit()

        logger.info("token_pair_issued", user_id=user.id)

        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.jwt.access_token_expire_minutes * 60,
        )

    async def refresh_access_token(self, db: AsyncSession, refresh_token: str) -> str | None:
        """
        Exchange a refresh token for a new access token.

        The token must verify and be persisted with a stored expiry in the
        future. A persisted but expired row is deleted. The new access token
        carries the stored user's current email and role.

        Returns:
            New access token, or None if the refresh token is not usable
        """
        if self.verify_refresh_token(refresh_token) is None:
            return None

        result = await db.execute(
            select(RefreshTokenModel).where(RefreshTokenModel.token == refresh_token)
        )
        stored = result.scalar_one_or_none()

        if stored is None:
            logger.info("refresh_token_not_persisted")
            return None

        if stored.is_expired():
            await db.delete(stored)
            await db.commit()
            logger.info("refresh_token_expired_removed", user_id=stored.user_id)
            return None

        user = await db.get(UserModel, stored.user_id)
        if user is None:
            return None
        return self.generate_access_token(user.token_claims())

    async def revoke_refresh_token(
        self,
        db: AsyncSession,
        refresh_token: str,
        *,
        user_id: str | None = None,
        commit: bool = True,
    ) -> bool:
        """
        Delete one refresh token. False if it was not found or the delete failed.

        With ``user_id`` only a token owned by that user is deleted.
        """
        stmt = delete(RefreshTokenModel).where(RefreshTokenModel.token == refresh_token)
        if user_id is not None:
            stmt = stmt.where(RefreshTokenModel.user_id == user_id)
        try:
            result = await db.execute(stmt)
            if commit:
                await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("refresh_token_revoke_failed", error=str(e))
            return False

        return result.rowcount > 0

    async def revoke_all_user_tokens(
        self,
        db: AsyncSession,
        user_id: str,
        *,
        commit: bool = True,
    ) -> bool:
        """Delete every refresh token of a user. False only if the delete failed."""
        try:
            result = await db.execute(
                delete(RefreshTokenModel).where(RefreshTokenModel.user_id == user_id)
            )
            if commit:
                await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("refresh_tokens_revoke_all_failed", user_id=user_id, error=str(e))
            return False

        logger.info("refresh_tokens_revoked", user_id=user_id, count=result.rowcount)
        return True

    # =========================================================================
    # Password reset tokens
    # =========================================================================

    async def generate_password_reset_token(
        self,
        db: AsyncSession,
        user_id: str,
        *,
        commit: bool = True,
    ) -> str:
        """Create a random single-use reset token valid for the reset TTL."""
        token = str(uuid.uuid4())
        db.add(
            PasswordResetTokenModel(
                token=token,
                user_id=user_id,
                expires_at=utcnow() + self.reset_token_ttl,
            )
        )
        await db.flush()

        if self.max_reset_tokens_per_user:
            await self._prune_oldest(db, PasswordResetTokenModel, user_id, self.max_reset_tokens_per_user)

        if commit:
            await db.commit()

        logger.info("password_reset_token_issued", user_id=user_id)
        return token

    async def verify_password_reset_token(self, db: AsyncSession, token: str) -> UserModel | None:
        """
        Resolve a reset token to its user.

        Missing tokens yield None. Expired tokens are deleted and yield None.
        """
        result = await db.execute(
            select(PasswordResetTokenModel).where(PasswordResetTokenModel.token == token)
        )
        stored = result.scalar_one_or_none()

        if stored is None:
            return None

        if stored.is_expired():
            await db.delete(stored)
            await db.commit()
            logger.info("password_reset_token_expired_removed", user_id=stored.user_id)
            return None

        return await db.get(UserModel, stored.user_id)

    async def consume_password_reset_token(
        self,
        db: AsyncSession,
        token: str,
        *,
        commit: bool = True,
    ) -> bool:
        """Delete a reset token after use. False if it was not found or the delete failed."""
        try:
            result = await db.execute(
                delete(PasswordResetTokenModel).where(PasswordResetTokenModel.token == token)
            )
            if commit:
                await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("password_reset_token_consume_failed", error=str(e))
            return False

        return result.rowcount > 0

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def cleanup_expired_tokens(self, db: AsyncSession) -> CleanupResult:
        """Delete every refresh and reset token past its stored expiry."""
        now = utcnow()

        refresh_result = await db.execute(
            delete(RefreshTokenModel)
            .where(RefreshTokenModel.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        reset_result = await db.execute(
            delete(PasswordResetTokenModel)
            .where(PasswordResetTokenModel.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        cleanup = CleanupResult(
            refresh_tokens=refresh_result.rowcount,
            reset_tokens=reset_result.rowcount,
        )
        logger.info(
            "expired_tokens_cleaned",
            refresh_rows=cleanup.refresh_tokens,
            reset_rows=cleanup.reset_tokens,
        )
        return cleanup

    @staticmethod
    async def _prune_oldest(
        db: AsyncSession,
        model: type[RefreshTokenModel] | type[PasswordResetTokenModel],
        user_id: str,
        keep: int,
    ) -> None:
        """Delete a user's rows beyond the ``keep`` most recent."""
        result = await db.execute(
            select(model.id)
            .where(model.user_id == user_id)
            .order_by(model.created_at.desc())
            .offset(keep)
        )
        stale_ids = list(result.scalars())
        if stale_ids:
            await db.execute(delete(model).where(model.id.in_(stale_ids)))
            logger.info("tokens_pruned", table=model.__tablename__, user_id=user_id, count=len(stale_ids))


token_service = TokenService()
