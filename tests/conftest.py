"""Pytest configuration for all tests."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from trove.domain.entities.usage import UsageCounters
from trove.domain.entities.user import UserProfile
from trove.infrastructure.auth.jwt_service import jwt_service
from trove.infrastructure.persistence.database import Base
from trove.infrastructure.persistence.document_store import SQLAlchemyDocumentStore
from trove.infrastructure.persistence.models import DocumentModel  # noqa: F401
from trove.infrastructure.persistence.paths import USERS


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session.

    Uses an in-memory SQLite database for testing.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def store(db_session: AsyncSession) -> SQLAlchemyDocumentStore:
    return SQLAlchemyDocumentStore(db_session)


@pytest.fixture
def make_profile(store: SQLAlchemyDocumentStore):
    """Store a user profile with the given tier and usage."""

    async def make(user_id: str = "user-1", tier: str = "free", **usage) -> UserProfile:
        profile = UserProfile(id=user_id, tier=tier, usage=UsageCounters(**usage))
        await store.put(USERS, profile.to_document(), user_id)
        return profile

    return make


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with overridden database dependency."""
    from trove.infrastructure.api.app import app
    from trove.infrastructure.persistence.database import get_db_session

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


def auth_headers(user_id: str, email: str | None = None) -> dict[str, str]:
    token = jwt_service.create_access_token(user_id, email=email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers() -> dict[str, str]:
    return auth_headers("user-1", email="collector@example.com")


@pytest.fixture
def other_user_headers() -> dict[str, str]:
    return auth_headers("user-2", email="other@example.com")
