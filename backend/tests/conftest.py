"""
RecipeBox Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Settings are pointed at SQLite and a temp storage dir BEFORE any
       recipebox import; every test gets its own in-memory database.

Fixture Hierarchy (all function-scoped):
    engine ─┬─ session_factory ─┬─ db_session ─┬─ user / other_user
            │                   │              └─ recipe
            │                   └─ test_client (get_db_session overridden)
    mock_db_session: AsyncMock session for pure unit tests
    temp_storage:    Temporary directory for file operations
"""

import os
import tempfile

# Override settings for testing BEFORE any recipebox imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="recipebox_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["FILE_URL_SECRET"] = "test-signing-secret"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import recipebox.models  # noqa: F401
from recipebox.config import settings
from recipebox.database import Base, get_db_session, utcnow
from recipebox.models.user import User, UserSession
from recipebox.schemas.recipe import IngredientCreate, InstructionCreate
from recipebox.services.auth_service import hash_password
from recipebox.services.recipe_service import recipe_service

TEST_PASSWORD = "correct-horse"


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory SQLite database with the full schema."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


async def create_user(db: AsyncSession, username: str, password: str = TEST_PASSWORD) -> User:
    user = User(username=username, password_hash=hash_password(password))
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
def make_login_session(session_factory):
    """
    Factory inserting a session row directly, optionally already expired.

    Usage:
        record = await make_login_session(user, expired=True)
    """

    async def _make(user: User, expired: bool = False) -> UserSession:
        offset = timedelta(hours=-1) if expired else timedelta(hours=settings.session_ttl_hours)
        async with session_factory() as db:
            record = UserSession(
                token=f"token-{user.username}-{'expired' if expired else 'live'}",
                user_id=user.id,
                expires_at=utcnow() + offset,
            )
            db.add(record)
            await db.commit()
            return record

    return _make


@pytest.fixture
def user_password():
    return TEST_PASSWORD


@pytest_asyncio.fixture
async def user(db_session):
    return await create_user(db_session, "alice")


@pytest_asyncio.fixture
async def other_user(db_session):
    return await create_user(db_session, "bob")


@pytest_asyncio.fixture
async def recipe(db_session, user):
    """Alice's pancakes: two ingredients, three instructions at steps 1-3."""
    return await recipe_service.create_recipe(
        db_session,
        user_id=user.id,
        name="Pancakes",
        description="Fluffy weekend pancakes",
        ingredients=[
            IngredientCreate(name="flour", quantity="200", unit="g"),
            IngredientCreate(name="milk", quantity="300", unit="ml"),
        ],
        instructions=[
            InstructionCreate(contents="Whisk the dry ingredients"),
            InstructionCreate(contents="Add the milk"),
            InstructionCreate(contents="Fry in a hot pan"),
        ],
    )


# ══════════════════════════════════════════════════════════════════════════
# Unit-Test Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession for tests that only care about which session
    methods are awaited.
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


# ══════════════════════════════════════════════════════════════════════════
# API Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the app through ASGITransport, with the
    request session bound to the per-test database.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from recipebox.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(test_client, make_login_session):
    """
    Make test_client send a live session cookie for `user`.

    Usage:
        await login_as(user)
    """

    async def _login(user: User) -> str:
        record = await make_login_session(user)
        test_client.cookies.clear()
        test_client.cookies.set(settings.session_cookie_name, record.token)
        return record.token

    return _login
