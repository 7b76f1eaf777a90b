"""
Async database engine and session management.
Uses SQLAlchemy 2.0 with asyncpg (aiosqlite for local runs and tests).
"""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from functools import lru_cache

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from devconnector.config import get_settings
from devconnector.exceptions import StoreError
from devconnector.utils.logger import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> AsyncEngine:
    """SQLite ignores FOREIGN KEY constraints unless each connection turns them on."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


@lru_cache
def get_engine() -> AsyncEngine:
    """Create the async engine on first use. Pooled for PostgreSQL, single shared connection for SQLite."""
    settings = get_settings()
    db_url = settings.database_url

    logger.info(f"Connecting to database: {db_url.split('@')[1] if '@' in db_url else db_url.split(':')[0]}")

    if settings.is_sqlite:
        return enable_sqlite_foreign_keys(
            create_async_engine(
                db_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        )
    return create_async_engine(
        db_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=settings.environment == "development" and settings.log_level == "DEBUG",
    )


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields a database session. Caller must not log session contents."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def store_operation(session: AsyncSession, action: str) -> AsyncGenerator[AsyncSession, None]:
    """
    Run a unit of store work. Any SQLAlchemy failure is rolled back, logged
    with its traceback and re-raised as StoreError. Domain errors pass through.
    """
    try:
        yield session
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Store operation failed: %s", action)
        raise StoreError() from e


async def init_db() -> None:
    """Create missing tables."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database connection verified")


async def close_db() -> None:
    """Dispose of the connection pool."""
    await get_engine().dispose()
    logger.info("Database pool disposed")
