"""
Test fixtures for the Bank Cards test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - session_factory: Opens extra sessions on the same database, for reading
    state back after the code under test has committed or rolled back
  - client: Async HTTP test client (unauthenticated)
  - make_user / make_card: Insert users and cards directly, bypassing the API
  - login_headers: Logs in through the real endpoint, returns auth headers

Key design decisions:
  - The keys the application needs at import time (SECRET_KEY and both card
    keys) are set below, before anything from bankcards is imported.
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database.
  - We override FastAPI's get_db dependency to inject our test sessions,
    so the application code works exactly as it does in production.
  - Rows created through make_user / make_card live in db_session and must
    be committed before an HTTP request can see them.
"""

import base64
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-do-not-use-in-production")
os.environ.setdefault("CARD_ENCRYPTION_KEY", base64.b64encode(b"\x11" * 32).decode())
os.environ.setdefault("CARD_LOOKUP_KEY", base64.b64encode(b"\x22" * 32).decode())
os.environ.setdefault("LOG_JSON", "false")

from datetime import timedelta
from decimal import Decimal

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from bankcards.clock import utcnow
from bankcards.crypto import card_cipher
from bankcards.database import Base, get_db
from bankcards.main import app
from bankcards.models.account import Account
from bankcards.models.card import Card
from bankcards.models.user import RoleType, User
from bankcards.security import hash_password
from bankcards.services.card_service import generate_card_number
from bankcards.services.user_service import get_or_create_role


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
async def make_user(db_session):
    """
    Factory: insert a user with the given roles (USER by default).

    Usage:
        alice = await make_user("alice")
        root = await make_user("root", roles=(RoleType.USER, RoleType.ADMIN))
    """

    async def _make_user(
        login: str,
        *,
        roles: tuple[RoleType, ...] = (RoleType.USER,),
        active: bool = True,
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        user = User(
            login=login,
            email=f"{login}@example.com",
            hashed_password=hash_password(password),
            is_active=active,
            roles={await get_or_create_role(db_session, role) for role in roles},
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user


@pytest_asyncio.fixture
async def make_card(db_session):
    """
    Factory: insert a card (with its account) for ``owner``.

    Returns:
        (card, number) — the Card row and its plaintext number.
    """

    async def _make_card(
        owner: User,
        *,
        balance: str = "0.00",
        active: bool = True,
        expires_in: timedelta = timedelta(days=365),
    ) -> tuple[Card, str]:
        number = generate_card_number()
        now = utcnow()
        card = Card(
            owner_id=owner.id,
            number_ciphertext=card_cipher.encrypt(number),
            number_lookup=card_cipher.lookup_key(number),
            cvc="123",
            is_active=active,
            created_at=now,
            expires_at=now + expires_in,
            account=Account(balance_cents=int(Decimal(balance) * 100)),
        )
        db_session.add(card)
        await db_session.flush()
        return card, number

    return _make_card


@pytest_asyncio.fixture
async def login_headers(client):
    """
    Factory: log in through POST /auth/login and return Authorization headers.

    The user must already exist and be committed.
    """

    async def _login_headers(login: str, password: str = DEFAULT_PASSWORD) -> dict:
        response = await client.post(
            "/auth/login",
            json={"login": login, "password": password},
        )
        assert response.status_code == 200, f"Login failed: {response.text}"
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login_headers
