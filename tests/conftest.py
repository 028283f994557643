"""Shared pytest fixtures for all test suites."""

import os
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from backend.app.config import get_settings
from backend.app.db.engine import create_session_factory, get_session
from backend.app.db.models import Account, Base, Organization, OrganizationMember, User
from backend.app.main import app
from backend.app.pipeline.context import Identity, OrgRole
from backend.app.pipeline.tokens import issue_access_token
from backend.app.utils.passwords import generate_password_hash

DEFAULT_PASSWORD = "correct-horse-battery"


class Seeder:
    """Writes fixture rows straight to the test database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _add(self, obj: object) -> None:
        async with self._session_factory() as session:
            session.add(obj)
            await session.commit()

    async def user(self, email: str | None = None, password: str = DEFAULT_PASSWORD) -> User:
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            name="Test User",
            password_hash=generate_password_hash(password, get_settings().password_hash_iterations),
        )
        await self._add(user)
        return user

    async def organization(self, name: str = "Acme Treasury") -> Organization:
        org = Organization(name=name)
        await self._add(org)
        return org

    async def member(self, org: Organization, user: User, role: OrgRole) -> OrganizationMember:
        member = OrganizationMember(organization_id=org.id, user_id=user.id, role=role.value)
        await self._add(member)
        return member

    async def account(self, org: Organization, name: str = "Checking", is_active: bool = True) -> Account:
        account = Account(
            organization_id=org.id,
            name=name,
            account_type="CHECKING",
            balance=Decimal("100.00"),
            currency="USD",
            is_active=is_active,
        )
        await self._add(account)
        return account

    def token(
        self,
        user: User,
        *,
        expires_in: timedelta = timedelta(hours=1),
        now: datetime | None = None,
    ) -> str:
        settings = get_settings()
        return issue_access_token(
            Identity(id=user.id, email=user.email),
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            expires_in=expires_in,
            now=now,
        )

    def auth(self, user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token(user)}"}


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared by every session in one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def db_session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(db_engine)


@pytest.fixture
def seed(db_session_factory: async_sessionmaker[AsyncSession]) -> Seeder:
    return Seeder(db_session_factory)


@pytest_asyncio.fixture
async def client(
    db_session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app, with the database swapped for the test engine."""

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with db_session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    # Ensure it's a postgres URL
    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    # Convert to async driver if needed
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(
        database_url,
        poolclass=NullPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
