"""
Auth Routes
===========

Registration, login, token refresh, logout, password reset and the
current user's profile.

Version: 0.1.0
"""

import re
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth import needs_rehash
from shared.config import settings
from shared.database.postgres import get_postgres_session
from shared.logging import get_logger
from shared.models.common import BaseResponse
from services.marketplace.dependencies import Identity, authenticate
from services.marketplace.errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from services.marketplace.models import CompanySize, UserModel, UserRole, UserSkillModel
from services.marketplace.models.base import utcnow
from services.marketplace.services.tokens import token_service


logger = get_logger(__name__)

router = APIRouter()

_PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _check_password_strength(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not _PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one lowercase letter, one uppercase letter, and one number"
        )
    return value


# =============================================================================
# Request / Response Models
# =============================================================================


class RegisterRequest(BaseModel):
    """New account details. Freelancer and client fields are role-specific."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    role: UserRole

    # Freelancer
    hourly_rate: float | None = Field(default=None, alias="hourlyRate", ge=5)
    bio: str | None = Field(default=None, min_length=50, max_length=1000)
    skills: list[Annotated[str, Field(max_length=100)]] = Field(default_factory=list)

    # Client
    company_name: str | None = Field(default=None, alias="companyName")
    company_size: CompanySize | None = Field(default=None, alias="companySize")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return _check_password_strength(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def trim_name(cls, v: str) -> str:
        v = v.strip()
        if not 1 <= len(v) <= 50:
            raise ValueError("Name is required and must be at most 50 characters")
        return v

    @field_validator("role")
    @classmethod
    def self_service_role(cls, v: UserRole) -> UserRole:
        if v == UserRole.ADMIN:
            raise ValueError("Role must be either FREELANCER or CLIENT")
        return v

    @field_validator("company_name")
    @classmethod
    def trim_company_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not 1 <= len(v) <= 100:
            raise ValueError("Company name must be between 1 and 100 characters")
        return v

    def cleaned_skills(self) -> list[str]:
        """Trimmed, non-empty, first occurrence wins."""
        seen: dict[str, None] = {}
        for skill in self.skills:
            skill = skill.strip()
            if skill:
                seen.setdefault(skill, None)
        return list(seen)


class LoginRequest(BaseModel):
    """Login credentials."""

    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str | None = Field(default=None, alias="refreshToken")


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(..., min_length=1)
    new_password: str = Field(..., alias="newPassword")

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return _check_password_strength(v)


class AuthData(BaseModel):
    """User and tokens returned by register and login."""

    model_config = ConfigDict(populate_by_name=True)

    user: dict[str, Any]
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")


class RefreshResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    access_token: str = Field(..., alias="accessToken")


class ForgotPasswordResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    reset_token: str | None = Field(default=None, alias="resetToken")


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "/register",
    response_model=BaseResponse[AuthData],
    status_code=status.HTTP_201_CREATED,
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_postgres_session),
) -> BaseResponse[AuthData]:
    """
    Register a freelancer or client account.

    The user, their skills and the first refresh token are committed
    together.
    """
    if body.role == UserRole.FREELANCER:
        if body.hourly_rate is None:
            raise ValidationError("Hourly rate is required for freelancers")
        if not body.bio:
            raise ValidationError("Bio is required for freelancers")
    elif body.role == UserRole.CLIENT and not body.company_name:
        raise ValidationError("Company name is required for clients")

    existing = await db.scalar(select(UserModel.id).where(UserModel.email == body.email))
    if existing is not None:
        raise ConflictError("User with this email already exists")

    password_hash = await token_service.hash_password(body.password)

    user = UserModel(
        email=body.email,
        password_hash=password_hash,
        role=body.role,
        first_name=body.first_name,
        last_name=body.last_name,
        skills=[],
        languages=[],
    )
    if body.role == UserRole.FREELANCER:
        user.hourly_rate = body.hourly_rate
        user.bio = body.bio
        user.skills = [UserSkillModel(skill=skill) for skill in body.cleaned_skills()]
    else:
        user.company_name = body.company_name
        user.company_size = body.company_size.value if body.company_size else None

    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        raise ConflictError("User with this email already exists")

    tokens = await token_service.generate_token_pair(db, user)

    logger.info("user_registered", user_id=user.id, role=user.role.value)

    return BaseResponse(
        message="User registered successfully",
        data=AuthData(
            user=user.to_dict(),
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        ),
    )


@router.post("/login", response_model=BaseResponse[AuthData])
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_postgres_session),
) -> BaseResponse[AuthData]:
    """Exchange credentials for a new session."""
    user = await db.scalar(select(UserModel).where(UserModel.email == body.email))

    if user is None or not await token_service.compare_password(body.password, user.password_hash):
        logger.warning("login_failed")
        raise AuthenticationError("Invalid email or password")

    if needs_rehash(user.password_hash):
        user.password_hash = await token_service.hash_password(body.password)

    user.is_online = True
    user.last_seen = utcnow()

    tokens = await token_service.generate_token_pair(db, user)

    logger.info("user_logged_in", user_id=user.id)

    return BaseResponse(
        message="Login successful",
        data=AuthData(
            user=user.to_dict(),
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        ),
    )


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(
    body: RefreshRequest | None = None,
    db: AsyncSession = Depends(get_postgres_session),
) -> RefreshResponse:
    """Issue a new access token for a persisted refresh token."""
    if body is None or not body.refresh_token:
        raise ValidationError("Refresh token is required")

    access_token = await token_service.refresh_access_token(db, body.refresh_token)
    if access_token is None:
        raise AuthenticationError("Invalid or expired refresh token")

    return RefreshResponse(access_token=access_token)


@router.post(
    "/logout",
    response_model=BaseResponse[None],
    response_model_exclude_none=True,
)
async def logout(
    body: RefreshRequest | None = None,
    identity: Identity = Depends(authenticate),
    db: AsyncSession = Depends(get_postgres_session),
) -> BaseResponse[None]:
    """
    End a session.

    Revokes the given refresh token, or every refresh token of the caller
    when none is given. Access tokens stay valid until they expire.
    """
    user = await db.get(UserModel, identity.id)
    if user is not None:
        user.is_online = False
        await db.commit()

    refresh_token = body.refresh_token if body else None
    if refresh_token:
        revoked = await token_service.revoke_refresh_token(db, refresh_token, user_id=identity.id)
    else:
        revoked = await token_service.revoke_all_user_tokens(db, identity.id)

    logger.info("user_logged_out", user_id=identity.id, all_sessions=not refresh_token, revoked=revoked)

    return BaseResponse(message="Logout successful")


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    response_model_exclude_none=True,
)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_postgres_session),
) -> ForgotPasswordResponse:
    """
    Start a password reset.

    The reset token is only echoed outside production; delivering it by
    email is handled elsewhere.
    """
    user = await db.scalar(select(UserModel).where(UserModel.email == body.email))
    if user is None:
        raise NotFoundError("User not found")

    reset_token = await token_service.generate_password_reset_token(db, user.id)

    return ForgotPasswordResponse(
        message="Password reset email sent",
        reset_token=None if settings.is_production else reset_token,
    )


@router.post(
    "/reset-password",
    response_model=BaseResponse[None],
    response_model_exclude_none=True,
)
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_postgres_session),
) -> BaseResponse[None]:
    """
    Set a new password with a reset token.

    The new hash, the token's consumption and the revocation of every
    refresh token are committed together or not at all.
    """
    user = await token_service.verify_password_reset_token(db, body.token)
    if user is None:
        raise ValidationError("Invalid or expired reset token")

    password_hash = await token_service.hash_password(body.new_password)

    try:
        user.password_hash = password_hash
        consumed = await token_service.consume_password_reset_token(db, body.token, commit=False)
        if not consumed:
            # Another request used the token first
            await db.rollback()
            raise ValidationError("Invalid or expired reset token")
        if not await token_service.revoke_all_user_tokens(db, user.id, commit=False):
            await db.rollback()
            raise InternalError("Password reset failed")
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("password_reset_failed", user_id=user.id, error=str(e))
        raise InternalError("Password reset failed") from e

    logger.info("password_reset_completed", user_id=user.id)

    return BaseResponse(message="Password reset successful")


@router.get("/me", response_model=BaseResponse[dict[str, Any]])
async def me(
    identity: Identity = Depends(authenticate),
    db: AsyncSession = Depends(get_postgres_session),
) -> BaseResponse[dict[str, Any]]:
    """Current user's profile with skills, languages and portfolio."""
    user = await db.get(UserModel, identity.id)
    if user is None:
        raise NotFoundError("User not found")

    return BaseResponse(data=user.to_profile())
