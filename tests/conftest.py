"""
Pytest configuration and shared fixtures for API tests.

Provides:
- Test environment defaults (in-memory SQLite, test secret key)
- Async SQLAlchemy engine/session bound to a fresh in-memory database
- httpx AsyncClient fixtures with and without an authenticated user
- Data factories for quotees, categories and quotes

Async SQLAlchemy Fixtures:
- async_engine: Function-scoped async engine with the schema created
- async_db_session: Function-scoped async session on that engine

Async Helper Functions:
- acreate_quotee_in_db(): Create Quotee using AsyncSession
- acreate_category_in_db(): Create Category using AsyncSession
- acreate_quote_in_db(): Create Quote using AsyncSession
"""

from __future__ import annotations

import os
import sys
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]

# Repo root importable without an editable install
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read at import time
os.environ.setdefault("DATABASE_URL_APP", "sqlite+aiosqlite://")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-which-is-long-enough-0123")
os.environ.setdefault("OBSERVABILITY_STRUCTURED_LOGS", "false")

import httpx  # noqa: E402 (import after env setup)
import pytest  # noqa: E402 (import after env setup)
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.dependencies import get_async_db_session, get_current_user  # noqa: E402
from app.db.models import Base, Category, Quote, Quotee  # noqa: E402
from app.main import create_app  # noqa: E402


# =============================================================================
# AnyIO Backend Configuration
# =============================================================================
@pytest.fixture
def anyio_backend():
    return "asyncio"


# ============================================================================
# Async SQLAlchemy Fixtures
# ============================================================================


@pytest.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Create an async engine on a fresh in-memory SQLite database.

    StaticPool keeps a single connection so every session sees the same
    in-memory database for the duration of the test.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def async_db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Provide an async database session for each test function."""
    session_maker = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    async with session_maker() as session:
        yield session


# ============================================================================
# Mock Authentication Fixtures
# ============================================================================


def create_mock_token(sub: str = "test-user") -> dict[str, Any]:
    """
    Create a mock JWT payload for testing.

    Args:
        sub: User subject/ID

    Returns:
        Mock JWT payload dictionary
    """
    return {
        "sub": sub,
        "exp": 9999999999,
    }


@pytest.fixture
def mock_user() -> dict[str, Any]:
    """Mock authenticated user."""
    return create_mock_token(sub="user-123")


# ============================================================================
# HTTP Client Fixtures
# ============================================================================


@pytest.fixture
async def client(async_db_session: AsyncSession):
    """Anonymous client; write endpoints answer 401."""
    app = create_app()

    def override_get_async_db():
        yield async_db_session

    app.dependency_overrides[get_async_db_session] = override_get_async_db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def authenticated_client(async_db_session: AsyncSession, mock_user: dict):
    """AsyncClient with an authenticated user."""
    app = create_app()

    def override_get_async_db():
        yield async_db_session

    app.dependency_overrides[get_async_db_session] = override_get_async_db

    async def override_get_current_user():
        return mock_user

    app.dependency_overrides[get_current_user] = override_get_current_user

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ============================================================================
# Test Data Factories
# ============================================================================


async def acreate_quotee_in_db(session: AsyncSession, name: str = "Ada Lovelace") -> Quotee:
    quotee = Quotee(name=name)
    session.add(quotee)
    await session.flush()
    return quotee


async def acreate_category_in_db(session: AsyncSession, name: str = "Computing") -> Category:
    category = Category(name=name)
    session.add(category)
    await session.flush()
    return category


async def acreate_quote_in_db(
    session: AsyncSession,
    *,
    quotee: Quotee,
    category: Category,
    quote_content: str = "A test quote",
    keywords: str | None = None,
    created_at: datetime | None = None,
) -> Quote:
    """
    Create a Quote.

    created_at is explicit so that newest/oldest ordering is deterministic.
    """
    quote = Quote(
        quote_content=quote_content,
        quotee_id=quotee.id,
        category_id=category.id,
        keywords=keywords,
    )
    if created_at is not None:
        quote.created_at = created_at
    session.add(quote)
    await session.flush()
    return quote


@pytest.fixture
async def seeded_quotes(async_db_session: AsyncSession) -> dict[str, Any]:
    """
    Two quotees, two categories and three quotes.

    - q1: Ada / Computing, 2024-01-01, keywords "engine loom"
    - q2: Alan / Computing, 2024-02-01, keywords "machine thinking"
    - q3: Alan / Mathematics, 2024-03-01, keywords "numbers machine"
    """
    ada = await acreate_quotee_in_db(async_db_session, "Ada Lovelace")
    alan = await acreate_quotee_in_db(async_db_session, "Alan Turing")
    computing = await acreate_category_in_db(async_db_session, "Computing")
    maths = await acreate_category_in_db(async_db_session, "Mathematics")

    q1 = await acreate_quote_in_db(
        async_db_session,
        quotee=ada,
        category=computing,
        quote_content="The engine weaves algebraic patterns",
        keywords="engine loom",
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
    )
    q2 = await acreate_quote_in_db(
        async_db_session,
        quotee=alan,
        category=computing,
        quote_content="Can machines think?",
        keywords="machine thinking",
        created_at=datetime(2024, 2, 1, tzinfo=UTC),
    )
    q3 = await acreate_quote_in_db(
        async_db_session,
        quotee=alan,
        category=maths,
        quote_content="Numbers are the heart of it",
        keywords="numbers machine",
        created_at=datetime(2024, 3, 1, tzinfo=UTC),
    )
    await async_db_session.commit()

    return {
        "quotees": {"ada": ada, "alan": alan},
        "categories": {"computing": computing, "maths": maths},
        "quotes": [q1, q2, q3],
    }
