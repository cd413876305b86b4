"""Database infrastructure for API layer."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker

from src.api.domain.models import Base


def _engine_options(url: str) -> dict:
    """Connection pool settings (SQLite uses its own pooling and foreign keys must be switched on)."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}} if "aiosqlite" not in url else {}
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 20,  # Base connection pool size (engine threads + API requests)
        "max_overflow": 10,  # Additional connections under load
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "pool_timeout": 30,  # Timeout waiting for connection (seconds)
    }


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str, async_database_url: str):
        """
        Initialize database connection.

        Args:
            database_url: Synchronous database URL (rule engine and migrations)
            async_database_url: Asynchronous database URL (for FastAPI)
        """
        self.database_url = database_url
        self.async_database_url = async_database_url

        # Sync engine for the rule engine worker threads
        self.sync_engine = create_engine(database_url, echo=False, **_engine_options(database_url))
        self.sync_session_factory = sessionmaker(
            bind=self.sync_engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

        # Async engine for FastAPI
        self.async_engine = create_async_engine(async_database_url, echo=False, **_engine_options(async_database_url))
        self.async_session_factory = async_sessionmaker(
            bind=self.async_engine,
            class_=AsyncSession,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

        if database_url.startswith("sqlite"):
            event.listen(self.sync_engine, "connect", _enable_sqlite_foreign_keys)
        if async_database_url.startswith("sqlite"):
            event.listen(self.async_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        logger.info(f"Database configured ({self.sync_engine.dialect.name})")

    def create_all(self):
        """Create all tables (for development only)."""
        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=self.sync_engine)
        logger.info("✓ Database tables created")

    @asynccontextmanager
    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get an asynchronous database session."""
        async with self.async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Close database connections."""
        await self.async_engine.dispose()
        self.sync_engine.dispose()
        logger.info("✓ Database connections closed")


# Dependency for FastAPI
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency to get database session."""
    from src.api.infrastructure.container import get_container

    container = get_container()
    db = container.database()

    async with db.get_async_session() as session:
        yield session
