"""Single-row lookups against the database.

Handlers depend on the ``Store`` protocol, never on SQLAlchemy, so tests can
swap in an in-memory implementation through FastAPI dependency overrides.
"""

from collections.abc import Mapping
from typing import Protocol

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from killboard.core.error_context import sanitize_sql_params
from killboard.core.exceptions import UpstreamError
from killboard.core.observability import trace_operation
from killboard.core.types import Row


class Store(Protocol):
    """Read access to persisted entities."""

    async def find_one(self, query: str, params: Mapping[str, object]) -> Row | None:
        """Return the first row matched by ``query``, or None."""
        ...


class SQLAlchemyStore:
    """``Store`` backed by a request-scoped async session.

    ``query`` is raw SQL with named placeholders (``:id``); values are always
    bound as parameters, never interpolated.

    Args:
        session: The session of the current request.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_one(self, query: str, params: Mapping[str, object]) -> Row | None:
        """Run ``query`` and return its first row as a dict.

        Raises:
            UpstreamError: The database failed; the original error is the cause.
        """
        bound = dict(params)
        logger.debug(
            "Store lookup",
            query=" ".join(query.split()),
            parameters=sanitize_sql_params(bound),
        )

        with trace_operation("store.find_one", query=query) as span:
            try:
                result = await self._session.execute(text(query), bound)
            except SQLAlchemyError as e:
                raise UpstreamError(
                    "Store lookup failed",
                    context={"query": query},
                    cause=e,
                ) from e

            row = result.mappings().first()
            span.set_attribute("store.hit", row is not None)

        return dict(row) if row is not None else None
