"""Database abstraction layer using SQLAlchemy 2.0 async.

This module provides the database session management and engine configuration
for SQLAlchemy with async support. It supports both SQLite (aiosqlite) and
PostgreSQL (asyncpg) drivers.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from visionara.core.config import get_settings
from visionara.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# Reference roles. Looked up by the identity subsystem, never created by it.
DEFAULT_ROLES: list[dict] = [
    {
        "name": "SuperAdmin",
        "permissions": {
            "users": ["read", "write", "delete"],
            "content": ["read", "write", "delete", "publish"],
            "settings": ["read", "write"],
            "audit": ["read"],
            "system": ["setup", "manage"],
        },
    },
    {
        "name": "Admin",
        "permissions": {
            "users": ["read", "write"],
            "content": ["read", "write", "delete", "publish"],
            "settings": ["read", "write"],
            "audit": ["read"],
        },
    },
    {
        "name": "Editor",
        "permissions": {"content": ["read", "write"]},
    },
    {
        "name": "Viewer",
        "permissions": {"content": ["read"]},
    },
]


class DatabaseManager:
    """Database connection and session manager.

    Owns the async engine and session factory, created lazily on first use.
    """

    def __init__(self) -> None:
        self.settings = get_settings()
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the database engine."""
        if self._engine is None:
            is_sqlite = self.settings.database_url.startswith("sqlite")
            pool_options = (
                {}
                if is_sqlite
                else {
                    "pool_size": self.settings.db_pool_size,
                    "max_overflow": self.settings.db_max_overflow,
                    "pool_timeout": self.settings.db_pool_timeout,
                    "pool_recycle": self.settings.db_pool_recycle,
                }
            )
            self._engine = create_async_engine(
                self.settings.database_url,
                echo=self.settings.db_echo,
                connect_args={"check_same_thread": False} if is_sqlite else {},
                **pool_options,
            )
            logger.info(
                "Database engine created",
                database_url=self._engine.url.render_as_string(hide_password=True),
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    async def create_tables(self) -> None:
        """Create all database tables. Use migrations in production."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created")

    async def disconnect(self) -> None:
        """Close the database engine and all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a session that is rolled back on error and always closed.

        Example:
            async with db.session() as session:
                result = await session.execute(select(UserModel))
        """
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def check_connection(self) -> bool:
        """Check if database connection is working."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                return True
        except Exception as e:
            logger.error("Database connection check failed", error=str(e))
            return False


_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """Get the global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    db = get_db_manager()
    async with db.session() as session:
        yield session


async def seed_default_roles(session: AsyncSession) -> int:
    """Insert any missing reference roles.

    Args:
        session: Session to seed through. Committed before returning.

    Returns:
        Number of roles inserted.
    """
    from visionara.infrastructure.persistence.models import RoleModel

    created = 0
    for role_data in DEFAULT_ROLES:
        result = await session.execute(
            select(RoleModel.id).where(RoleModel.name == role_data["name"])
        )
        if result.scalar_one_or_none() is None:
            session.add(RoleModel(name=role_data["name"], permissions=role_data["permissions"]))
            created += 1
            logger.info("Seeded default role", role_name=role_data["name"])

    await session.commit()
    return created


async def init_database() -> None:
    """Initialize the database on application startup.

    Creates tables and seeds roles in development. In production the schema
    is managed by Alembic migrations.
    """
    from visionara.infrastructure.persistence import models  # noqa: F401

    db = get_db_manager()
    settings = get_settings()

    if settings.database_url.startswith("sqlite"):
        db_path = settings.database_url.split(":///")[-1]
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    if not await db.check_connection():
        logger.error("Database connection failed")
        raise RuntimeError("Failed to connect to database")

    if settings.is_development:
        logger.info("Development mode: Creating database tables")
        await db.create_tables()
        async with db.session() as session:
            await seed_default_roles(session)
    else:
        logger.info("Production mode: Skipping auto-create, use migrations")


async def close_database() -> None:
    """Close the database connection on application shutdown."""
    db = get_db_manager()
    await db.disconnect()
