"""
Shared fixtures: in-memory SQLite database, a session on it, and an
httpx client wired to the app with get_db pointed at that database.
"""
import os

# Settings are cached on first use, so the environment must be set before app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-at-least-32-characters"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["PROFILE_UPDATE_POLICY"] = "truthy"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import devconnector.models  # noqa: F401
from devconnector.api.middleware.rate_limit import reset_rate_limits
from devconnector.database.connection import Base, enable_sqlite_foreign_keys, get_db
from devconnector.models.user import User
from devconnector.utils.security import hash_password


@pytest.fixture(autouse=True)
def _clear_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest_asyncio.fixture
async def engine():
    engine = enable_sqlite_foreign_keys(
        create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user(db_session) -> User:
    """A registered user, stored directly."""
    u = User(
        name="Ada",
        email="ada@example.com",
        password_hash=hash_password("secret1"),
        avatar="https://www.gravatar.com/avatar/x",
    )
    db_session.add(u)
    await db_session.commit()
    return u


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTPX AsyncClient talking to the app over ASGI, no server needed."""
    from devconnector.main import create_application

    app = create_application()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
