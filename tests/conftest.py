"""
Test Configuration
==================

Pytest fixtures for marketplace tests.

The environment is fixed before any application module is imported so the
cached settings pick it up: in-memory SQLite, cheap bcrypt, no rate limits.
"""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "false"
os.environ["POSTGRES_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTH_BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-access-secret-0123456789abcdef"
os.environ["JWT_REFRESH_SECRET_KEY"] = "test-refresh-secret-0123456789abcdef"

TEST_PASSWORD = "Str0ngPassw0rd"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema for one test; dropped with the engine afterwards."""
    import services.marketplace.models  # noqa: F401
    from shared.database.postgres import PostgresClient

    await PostgresClient.create_all()
    yield
    await PostgresClient.close()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[Any, None]:
    """Session on the test database."""
    from shared.database.postgres import PostgresClient

    async with PostgresClient.get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def marketplace_client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Marketplace Service."""
    from services.marketplace.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def create_user(db_session: Any) -> Callable[..., Awaitable[Any]]:
    """Factory inserting a user straight into the database."""
    from shared.auth import hash_password
    from services.marketplace.models import UserModel, UserRole

    async def factory(
        email: str = "user@example.com",
        password: str = TEST_PASSWORD,
        role: UserRole = UserRole.FREELANCER,
        **fields: Any,
    ) -> UserModel:
        user = UserModel(
            email=email,
            password_hash=hash_password(password),
            role=role,
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", "User"),
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return factory


@pytest.fixture
def freelancer_payload() -> dict[str, Any]:
    """Registration body for a freelancer."""
    return {
        "email": "Alex.Dev@Example.com",
        "password": TEST_PASSWORD,
        "firstName": "  Alex ",
        "lastName": "Rodriguez",
        "role": "FREELANCER",
        "hourlyRate": 85,
        "bio": "Full-stack developer with years of experience in React, Node.js and cloud.",
        "skills": ["React", " Node.js ", "React", ""],
    }


@pytest.fixture
def client_payload() -> dict[str, Any]:
    """Registration body for a client."""
    return {
        "email": "sarah@acme.example",
        "password": TEST_PASSWORD,
        "firstName": "Sarah",
        "lastName": "Johnson",
        "role": "CLIENT",
        "companyName": "Acme",
        "companySize": "11-50",
    }
