"""FastAPI dependency injection for sessions and the store.

Each request gets its own session and a ``SQLAlchemyStore`` bound to it;
the session is committed or rolled back when the response is done.
Tests replace ``get_store`` through ``app.dependency_overrides``.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from killboard.infrastructure.database.session import get_async_session
from killboard.infrastructure.database.store import SQLAlchemyStore, Store


async def get_db() -> AsyncGenerator[AsyncSession]:
    """Provide a request-scoped database session."""
    async with get_async_session() as session:
        yield session


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]


async def get_store(session: DatabaseSession) -> Store:
    """Provide the store for the current request."""
    return SQLAlchemyStore(session)


StoreDep = Annotated[Store, Depends(get_store)]
