"""Database access over async SQLAlchemy and asyncpg.

Core components:
- **session**: Engine and session lifecycle, connection check
- **store**: ``Store`` protocol and its SQLAlchemy implementation
- **dependencies**: FastAPI dependency injection helpers
"""

from killboard.infrastructure.database.dependencies import (
    DatabaseSession,
    StoreDep,
    get_db,
    get_store,
)
from killboard.infrastructure.database.session import (
    check_database_connection,
    close_database,
    create_database_engine,
    get_async_session,
    get_engine,
    get_session_factory,
)
from killboard.infrastructure.database.store import SQLAlchemyStore, Store

__all__ = [
    "DatabaseSession",
    "SQLAlchemyStore",
    "Store",
    "StoreDep",
    "check_database_connection",
    "close_database",
    "create_database_engine",
    "get_async_session",
    "get_db",
    "get_engine",
    "get_session_factory",
    "get_store",
]
