"""
Unit tests for authentication module.
"""

from datetime import UTC, datetime, timedelta

from jose import jwt

from shared.auth import (
    TokenType,
    create_access_token,
    create_refresh_token,
    decode_token,
    extract_bearer_token,
    hash_password,
    hash_password_async,
    is_token_expired,
    needs_rehash,
    verify_password,
    verify_password_async,
)
from shared.auth.jwt import TokenData
from shared.config import settings


CLAIMS = {"userId": "user123", "email": "test@example.com", "role": "CLIENT"}


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password_returns_hash(self) -> None:
        """Test that hash_password returns a bcrypt hash."""
        password = "test_password_123"
        hashed = hash_password(password)

        assert hashed != password
        assert hashed.startswith("$2b$")
        assert len(hashed) == 60

    def test_verify_password_correct(self) -> None:
        """Test that verify_password returns True for correct password."""
        password = "correct_password"
        hashed = hash_password(password)

        assert verify_password(password, hashed) is True

    def test_verify_password_incorrect(self) -> None:
        """Test that verify_password returns False for incorrect password."""
        hashed = hash_password("correct_password")

        assert verify_password("wrong_password", hashed) is False
        assert verify_password("Correct_password", hashed) is False

    def test_same_password_different_hashes(self) -> None:
        """Salts make every hash unique."""
        assert hash_password("password1") != hash_password("password1")

    def test_malformed_hash_never_matches(self) -> None:
        assert verify_password("anything", "not-a-bcrypt-hash") is False
        assert verify_password("anything", "") is False

    def test_rounds_follow_settings(self) -> None:
        hashed = hash_password("password")

        assert hashed.split("$")[2] == f"{settings.auth.bcrypt_rounds:02d}"
        assert needs_rehash(hashed) is False

    async def test_async_variants(self) -> None:
        hashed = await hash_password_async("Async1Password")

        assert await verify_password_async("Async1Password", hashed) is True
        assert await verify_password_async("async1password", hashed) is False


class TestJWTTokens:
    """Tests for JWT token functions."""

    def test_decode_access_token(self) -> None:
        """Access tokens carry identity claims and a unique id."""
        token = create_access_token(CLAIMS)

        decoded = decode_token(token, verify_type="access")

        assert decoded is not None
        assert decoded.user_id == "user123"
        assert decoded.email == "test@example.com"
        assert decoded.role == "CLIENT"
        assert decoded.token_type == TokenType.ACCESS
        assert decoded.jti

    def test_decode_refresh_token(self) -> None:
        token = create_refresh_token(CLAIMS)

        decoded = decode_token(token, verify_type=TokenType.REFRESH)

        assert decoded is not None
        assert decoded.user_id == "user123"
        assert decoded.token_type == TokenType.REFRESH

    def test_standard_claims(self) -> None:
        token = create_access_token(CLAIMS)
        claims = jwt.get_unverified_claims(token)

        assert claims["iss"] == settings.jwt.issuer
        assert claims["aud"] == settings.jwt.audience
        assert claims["exp"] - claims["iat"] == settings.jwt.access_token_expire_minutes * 60

    def test_refresh_lifetime(self) -> None:
        claims = jwt.get_unverified_claims(create_refresh_token(CLAIMS))

        assert claims["exp"] - claims["iat"] == settings.jwt.refresh_token_expire_days * 86400

    def test_tokens_minted_together_differ(self) -> None:
        assert create_access_token(CLAIMS) != create_access_token(CLAIMS)
        assert create_refresh_token(CLAIMS) != create_refresh_token(CLAIMS)

    def test_decode_wrong_token_type(self) -> None:
        """Each token class only verifies against its own secret."""
        assert decode_token(create_access_token(CLAIMS), verify_type="refresh") is None
        assert decode_token(create_refresh_token(CLAIMS), verify_type="access") is None

    def test_decode_invalid_token(self) -> None:
        assert decode_token("invalid.token.string") is None
        assert decode_token("") is None
        assert decode_token("a.b") is None

    def test_decode_unknown_type(self) -> None:
        assert decode_token(create_access_token(CLAIMS), verify_type="session") is None

    def test_expired_token_returns_none(self) -> None:
        """Expired tokens verify to None without raising."""
        token = create_access_token(CLAIMS, expires_delta=timedelta(seconds=-1))

        assert decode_token(token) is None

    def test_wrong_audience_rejected(self) -> None:
        now = datetime.now(UTC)
        token = jwt.encode(
            {
                **CLAIMS,
                "iss": settings.jwt.issuer,
                "aud": "some-other-app",
                "iat": now,
                "exp": now + timedelta(minutes=5),
                "token_type": "access",
            },
            settings.jwt.secret_key.get_secret_value(),
            algorithm=settings.jwt.algorithm,
        )

        assert decode_token(token) is None

    def test_missing_user_id_rejected(self) -> None:
        token = create_access_token({"email": "test@example.com", "role": "CLIENT"})

        assert decode_token(token) is None

    def test_token_with_custom_expiry(self) -> None:
        token = create_access_token(CLAIMS, expires_delta=timedelta(minutes=5))

        decoded = decode_token(token)

        assert decoded is not None
        assert not is_token_expired(decoded)


class TestTokenData:
    """Tests for TokenData model."""

    def test_accepts_wire_alias(self) -> None:
        token_data = TokenData(userId="user123", exp=datetime.now(UTC) + timedelta(minutes=1))

        assert token_data.user_id == "user123"
        assert token_data.token_type == TokenType.ACCESS
        assert token_data.role is None

    def test_is_token_expired(self) -> None:
        token_data = TokenData(user_id="user123", exp=datetime.now(UTC) - timedelta(seconds=1))

        assert is_token_expired(token_data) is True


class TestBearerExtraction:
    def test_extracts_token(self) -> None:
        assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"
        assert extract_bearer_token("bearer  abc ") == "abc"

    def test_rejects_other_schemes(self) -> None:
        assert extract_bearer_token(None) is None
        assert extract_bearer_token("") is None
        assert extract_bearer_token("Basic dXNlcjpwYXNz") is None
        assert extract_bearer_token("Bearer ") is None
