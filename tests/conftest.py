"""
Test fixtures for the Bank Cards API test suite.

This module provides shared fixtures used across all test files:

  - db_engine / session_factory / db_session: Fresh in-memory SQLite
    database for each test
  - file_session_factory: File-backed SQLite for tests that race sessions
  - client: Async HTTP test client (unauthenticated)
  - login_as: Factory returning a separate authenticated client per user
  - user_client / second_user_client: Two USER accounts for cross-user tests
  - admin_client: A client authenticated as an ADMIN
  - issue_card: Issues a card through the admin API and returns its JSON

Key design decisions:
  - Environment variables are set before the application is imported, since
    bankcards.config reads them at import time.
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database.
  - We override FastAPI's get_db dependency to inject our test sessions,
    so the application code works exactly as it does in production.
  - Every logged-in user gets their own AsyncClient, so Authorization
    headers never leak between users in the same test.
  - Admins are created by registering normally and then updating the role
    directly in the database, the way an operator bootstraps the first admin.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("CARD_ENCRYPTION_KEY", "0123456789abcdef")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("EXPIRY_SWEEP_INTERVAL_SECONDS", "0")

from contextlib import AsyncExitStack
from datetime import date, timedelta

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from bankcards.database import Base, get_db
from bankcards.main import app
from bankcards.models.user import Role, User


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

DEFAULT_PASSWORD = "SecurePass123!"


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """
    File-backed SQLite database so each session gets its own connection.

    The in-memory fixture shares one connection between sessions, which
    cannot exercise real write races.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(session_factory):
    """
    Async HTTP test client with the test database injected.

    This overrides the get_db dependency so all requests hit the
    in-memory test database instead of the real one.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def login_as(client, session_factory):
    """
    Factory: register a user, optionally promote them, and return a new
    AsyncClient carrying their Bearer token.

        alice = await login_as("alice")
        root = await login_as("root", role=Role.ADMIN)
    """
    async with AsyncExitStack() as stack:

        async def _login_as(
            username: str,
            password: str = DEFAULT_PASSWORD,
            role: Role = Role.USER,
        ) -> AsyncClient:
            response = await client.post(
                "/auth/register",
                json={"username": username, "password": password},
            )
            assert response.status_code == 201, f"Register failed: {response.text}"
            token = response.json()["token"]

            if role != Role.USER:
                async with session_factory() as session:
                    await session.execute(
                        update(User)
                        .where(User.username == username)
                        .values(role=role)
                    )
                    await session.commit()

            user_client = await stack.enter_async_context(
                AsyncClient(
                    transport=ASGITransport(app=app),
                    base_url="http://test",
                    headers={"Authorization": f"Bearer {token}"},
                )
            )
            return user_client

        yield _login_as


@pytest_asyncio.fixture
async def user_client(login_as):
    """Authenticated USER 'alice'."""
    return await login_as("alice")


@pytest_asyncio.fixture
async def second_user_client(login_as):
    """
    A second authenticated USER 'bob' for cross-user authorization tests.

    Use this alongside user_client to verify that one user cannot touch
    the other's cards.
    """
    return await login_as("bob")


@pytest_asyncio.fixture
async def admin_client(login_as):
    """Authenticated ADMIN 'admin'."""
    return await login_as("admin", role=Role.ADMIN)


@pytest_asyncio.fixture
async def issue_card(admin_client):
    """
    Factory: issue a card through POST /admin/cards and return the response JSON.

        card = await issue_card("alice", balance_cents=10000)
    """

    async def _issue_card(
        owner_username: str,
        balance_cents: int = 0,
        expiry_date: date | None = None,
    ) -> dict:
        expiry_date = expiry_date or date.today() + timedelta(days=3 * 365)
        response = await admin_client.post(
            "/admin/cards",
            json={
                "owner_username": owner_username,
                "expiry_date": expiry_date.isoformat(),
                "initial_balance_cents": balance_cents,
            },
        )
        assert response.status_code == 201, f"Card issue failed: {response.text}"
        return response.json()

    return _issue_card
