"""Database connection module for learnhub."""

from learnhub.core.database.engine import (
    Base,
    DatabaseConnection,
    build_engine,
    build_sessionmaker,
    create_tables,
    init_database,
    ping,
    shutdown_database,
)


__all__ = [
    "Base",
    "DatabaseConnection",
    "build_engine",
    "build_sessionmaker",
    "create_tables",
    "init_database",
    "ping",
    "shutdown_database",
]
