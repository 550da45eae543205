"""Async SQLAlchemy engine and session management.

Provides:
- A process-wide engine/sessionmaker pair (``DatabaseConnection``)
- Engine construction for PostgreSQL (asyncpg) and SQLite (aiosqlite)
- Table creation at startup
"""

from typing import Any

import structlog
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from learnhub.config.settings import Settings, get_settings


logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all learnhub tables."""


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: float = 30.0,
) -> AsyncEngine:
    """Create an async engine for the given URL.

    In-memory SQLite URLs share a single connection (``StaticPool``) so every
    session sees the same database.
    """
    if database_url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/").endswith(
            "sqlite+aiosqlite:"
        ):
            options["poolclass"] = StaticPool
        engine = create_async_engine(database_url, echo=echo, **options)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_pre_ping=True,
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to ``engine``."""
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all learnhub tables that do not exist yet."""
    # Register table definitions on Base.metadata
    from learnhub.content import models as _content_models  # noqa: F401
    from learnhub.progress import models as _progress_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_tables_created", tables=sorted(Base.metadata.tables))


async def ping(engine: AsyncEngine) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("database_ping_failed", error=str(e))
        return False
    return True


class DatabaseConnection:
    """Process-wide database connection manager."""

    _engine: AsyncEngine | None = None
    _sessionmaker: async_sessionmaker[AsyncSession] | None = None
    _url: str | None = None

    @classmethod
    def connect(cls, settings: Settings | None = None) -> AsyncEngine:
        """Create the engine and session factory if not created yet."""
        if cls._engine is not None:
            if settings is not None and settings.database_url != cls._url:
                logger.warning(
                    "database_engine_reused",
                    dialect=cls._engine.dialect.name,
                    reason="engine already bound to a different database_url",
                )
            return cls._engine

        settings = settings or get_settings()
        cls._url = settings.database_url
        cls._engine = build_engine(
            settings.database_url,
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
        )
        cls._sessionmaker = build_sessionmaker(cls._engine)
        logger.info("database_engine_created", dialect=cls._engine.dialect.name)
        return cls._engine

    @classmethod
    def get_engine(cls) -> AsyncEngine:
        """Get active engine, connecting if necessary."""
        if cls._engine is None:
            return cls.connect()
        return cls._engine

    @classmethod
    def get_sessionmaker(cls) -> async_sessionmaker[AsyncSession]:
        """Get the session factory, connecting if necessary."""
        if cls._sessionmaker is None:
            cls._sessionmaker = build_sessionmaker(cls.get_engine())
        return cls._sessionmaker

    @classmethod
    async def disconnect(cls) -> None:
        """Dispose the engine and its pool."""
        if cls._engine is not None:
            await cls._engine.dispose()
            logger.info("database_engine_disposed")
        cls._engine = None
        cls._sessionmaker = None
        cls._url = None


async def init_database(
    settings: Settings | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Initialize the engine and (optionally) the schema.

    Returns:
        Session factory bound to the process-wide engine.
    """
    settings = settings or get_settings()
    engine = DatabaseConnection.connect(settings)

    if settings.database_create_tables:
        await create_tables(engine)

    logger.info("database_initialized", dialect=engine.dialect.name)
    return DatabaseConnection.get_sessionmaker()


async def shutdown_database() -> None:
    """Shutdown the process-wide database engine."""
    await DatabaseConnection.disconnect()
