"""
Tests for the Token Service.
"""

from datetime import timedelta

from sqlalchemy import func, select

from services.marketplace.models import PasswordResetTokenModel, RefreshTokenModel, UserRole
from services.marketplace.models.base import utcnow
from services.marketplace.services.tokens import TokenService, token_service


async def count_rows(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


class TestPasswords:
    async def test_compare_password_matches_hash(self) -> None:
        hashed = await token_service.hash_password("Secret123")

        assert await token_service.compare_password("Secret123", hashed) is True
        assert await token_service.compare_password("Secret124", hashed) is False


class TestTokenPair:
    async def test_generate_token_pair_persists_refresh_token(self, db_session, create_user) -> None:
        user = await create_user(role=UserRole.CLIENT)

        pair = await token_service.generate_token_pair(db_session, user)

        stored = await db_session.scalar(
            select(RefreshTokenModel).where(RefreshTokenModel.token == pair.refresh_token)
        )
        assert stored is not None
        assert stored.user_id == user.id
        assert not stored.is_expired()
        assert pair.access_token != pair.refresh_token

        access = token_service.verify_access_token(pair.access_token)
        assert access is not None
        assert access.user_id == user.id
        assert access.role == "CLIENT"

    async def test_sessions_are_additive(self, db_session, create_user) -> None:
        user = await create_user()

        first = await token_service.generate_token_pair(db_session, user)
        second = await token_service.generate_token_pair(db_session, user)

        assert first.refresh_token != second.refresh_token
        assert await count_rows(db_session, RefreshTokenModel) == 2

    async def test_session_cap_prunes_oldest(self, db_session, create_user) -> None:
        capped = TokenService(max_sessions_per_user=2)
        user = await create_user()

        oldest = await capped.generate_token_pair(db_session, user)
        await capped.generate_token_pair(db_session, user)
        await capped.generate_token_pair(db_session, user)

        assert await count_rows(db_session, RefreshTokenModel) == 2
        assert await capped.refresh_access_token(db_session, oldest.refresh_token) is None


class TestRefresh:
    async def test_refresh_returns_new_access_token(self, db_session, create_user) -> None:
        user = await create_user(email="fresh@example.com")
        pair = await token_service.generate_token_pair(db_session, user)

        access_token = await token_service.refresh_access_token(db_session, pair.refresh_token)

        assert access_token is not None
        decoded = token_service.verify_access_token(access_token)
        assert decoded.user_id == user.id
        assert decoded.email == "fresh@example.com"

    async def test_refresh_uses_current_user_claims(self, db_session, create_user) -> None:
        user = await create_user(email="old@example.com")
        pair = await token_service.generate_token_pair(db_session, user)

        user.email = "new@example.com"
        await db_session.commit()

        access_token = await token_service.refresh_access_token(db_session, pair.refresh_token)

        assert token_service.verify_access_token(access_token).email == "new@example.com"

    async def test_malformed_token(self, db_session) -> None:
        assert await token_service.refresh_access_token(db_session, "not-a-jwt") is None

    async def test_access_token_is_not_a_refresh_token(self, db_session, create_user) -> None:
        user = await create_user()
        pair = await token_service.generate_token_pair(db_session, user)

        assert await token_service.refresh_access_token(db_session, pair.access_token) is None

    async def test_valid_but_unpersisted_token(self, db_session, create_user) -> None:
        user = await create_user()
        orphan = token_service.generate_refresh_token(user.token_claims())

        assert await token_service.refresh_access_token(db_session, orphan) is None

    async def test_persisted_but_expired_row_is_removed(self, db_session, create_user) -> None:
        user = await create_user()
        pair = await token_service.generate_token_pair(db_session, user)

        stored = await db_session.scalar(
            select(RefreshTokenModel).where(RefreshTokenModel.token == pair.refresh_token)
        )
        stored.expires_at = utcnow() - timedelta(minutes=1)
        await db_session.commit()

        assert await token_service.refresh_access_token(db_session, pair.refresh_token) is None
        assert await count_rows(db_session, RefreshTokenModel) == 0
        assert await token_service.refresh_access_token(db_session, pair.refresh_token) is None


class TestRevocation:
    async def test_revoke_one_keeps_the_other(self, db_session, create_user) -> None:
        user = await create_user()
        first = await token_service.generate_token_pair(db_session, user)
        second = await token_service.generate_token_pair(db_session, user)

        assert await token_service.revoke_refresh_token(db_session, first.refresh_token) is True

        assert await token_service.refresh_access_token(db_session, first.refresh_token) is None
        assert await token_service.refresh_access_token(db_session, second.refresh_token) is not None

    async def test_revoke_unknown_token(self, db_session) -> None:
        assert await token_service.revoke_refresh_token(db_session, "unknown") is False

    async def test_revoke_all_user_tokens(self, db_session, create_user) -> None:
        user = await create_user()
        other = await create_user(email="other@example.com")
        pairs = [await token_service.generate_token_pair(db_session, user) for _ in range(3)]
        other_pair = await token_service.generate_token_pair(db_session, other)

        assert await token_service.revoke_all_user_tokens(db_session, user.id) is True

        for pair in pairs:
            assert await token_service.refresh_access_token(db_session, pair.refresh_token) is None
        assert await token_service.refresh_access_token(db_session, other_pair.refresh_token) is not None


class TestPasswordResetTokens:
    async def test_reset_token_round_trip(self, db_session, create_user) -> None:
        user = await create_user()

        token = await token_service.generate_password_reset_token(db_session, user.id)

        resolved = await token_service.verify_password_reset_token(db_session, token)
        assert resolved is not None
        assert resolved.id == user.id

        assert await token_service.consume_password_reset_token(db_session, token) is True
        assert await token_service.verify_password_reset_token(db_session, token) is None
        assert await token_service.consume_password_reset_token(db_session, token) is False

    async def test_reset_token_expires_in_an_hour(self, db_session, create_user) -> None:
        user = await create_user()
        token = await token_service.generate_password_reset_token(db_session, user.id)

        stored = await db_session.scalar(
            select(PasswordResetTokenModel).where(PasswordResetTokenModel.token == token)
        )
        remaining = stored.expires_at.replace(tzinfo=None) - utcnow().replace(tzinfo=None)
        assert timedelta(minutes=59) < remaining <= timedelta(minutes=60)

    async def test_expired_reset_token_is_removed(self, db_session, create_user) -> None:
        user = await create_user()
        token = await token_service.generate_password_reset_token(db_session, user.id)

        stored = await db_session.scalar(
            select(PasswordResetTokenModel).where(PasswordResetTokenModel.token == token)
        )
        stored.expires_at = utcnow() - timedelta(seconds=1)
        await db_session.commit()

        assert await token_service.verify_password_reset_token(db_session, token) is None
        assert await count_rows(db_session, PasswordResetTokenModel) == 0

    async def test_unknown_reset_token(self, db_session) -> None:
        assert await token_service.verify_password_reset_token(db_session, "missing") is None

    async def test_reset_token_cap(self, db_session, create_user) -> None:
        capped = TokenService(max_reset_tokens_per_user=1)
        user = await create_user()

        first = await capped.generate_password_reset_token(db_session, user.id)
        second = await capped.generate_password_reset_token(db_session, user.id)

        assert await capped.verify_password_reset_token(db_session, first) is None
        assert await capped.verify_password_reset_token(db_session, second) is not None


class TestCleanup:
    async def test_cleanup_removes_only_expired_rows(self, db_session, create_user) -> None:
        user = await create_user()
        live = await token_service.generate_token_pair(db_session, user)
        dead = await token_service.generate_token_pair(db_session, user)
        await token_service.generate_password_reset_token(db_session, user.id)

        stored = await db_session.scalar(
            select(RefreshTokenModel).where(RefreshTokenModel.token == dead.refresh_token)
        )
        stored.expires_at = utcnow() - timedelta(days=1)
        reset_rows = (await db_session.scalars(select(PasswordResetTokenModel))).all()
        for row in reset_rows:
            row.expires_at = utcnow() - timedelta(minutes=1)
        await db_session.commit()

        result = await token_service.cleanup_expired_tokens(db_session)

        assert result.refresh_tokens == 1
        assert result.reset_tokens == 1
        assert result.total == 2
        assert await token_service.refresh_access_token(db_session, live.refresh_token) is not None
