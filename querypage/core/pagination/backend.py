"""Query backends.

The executor never talks to a database directly. It hands a base query, a
predicate, an ORDER BY list and limit/offset to a backend and awaits the
rows. :class:`SQLAlchemyBackend` is the implementation for SQLAlchemy
``Select`` statements on an ``AsyncSession``; anything satisfying
:class:`QueryBackend` can stand in for it.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from querypage.core.pagination.types import SortOrder
from querypage.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Select
    from sqlalchemy.ext.asyncio import AsyncSession


@runtime_checkable
class QueryBackend(Protocol):
    """Executes one assembled query and returns its rows in order."""

    async def fetch(
        self,
        query: Any,
        *,
        where: Any | None,
        order_by: Sequence[tuple[Any, SortOrder]],
        limit: int,
        offset: int | None = None,
    ) -> Sequence[Any]:
        """Run ``query`` filtered by ``where``, ordered, then offset and limited."""
        ...


class SQLAlchemyBackend:
    """Backend executing SQLAlchemy ``Select`` statements.

    Example:
        backend = SQLAlchemyBackend(session)
        rows = await backend.fetch(
            select(User),
            where=User.age >= 18,
            order_by=[(User.created_at, SortOrder.DESC), (User.id, SortOrder.ASC)],
            limit=21,
        )

    Args:
        session: Async session the statement runs on.
        scalars: Return ORM entities (``scalars()``) when True, row
            mappings (``mappings()``) when the statement selects columns.
    """

    __slots__ = ("session", "scalars", "_lazy")

    def __init__(self, session: AsyncSession, *, scalars: bool = True) -> None:
        self.session = session
        self.scalars = scalars
        self._lazy = get_lazy_logger(__name__)

    def build_statement(
        self,
        query: Select[Any],
        *,
        where: ColumnElement[bool] | None,
        order_by: Sequence[tuple[Any, SortOrder]],
        limit: int,
        offset: int | None = None,
    ) -> Select[Any]:
        """Apply WHERE, ORDER BY, OFFSET and LIMIT, in that order."""
        statement = query
        if where is not None:
            statement = statement.where(where)
        for column, order in order_by:
            statement = statement.order_by(column.desc() if order is SortOrder.DESC else column.asc())
        if offset is not None:
            statement = statement.offset(offset)
        return statement.limit(limit)

    async def fetch(
        self,
        query: Select[Any],
        *,
        where: ColumnElement[bool] | None,
        order_by: Sequence[tuple[Any, SortOrder]],
        limit: int,
        offset: int | None = None,
    ) -> Sequence[Any]:
        statement = self.build_statement(
            query, where=where, order_by=order_by, limit=limit, offset=offset
        )
        result = await self.session.execute(statement)
        rows = result.scalars().all() if self.scalars else result.mappings().all()

        self._lazy.debug(lambda: f"db.fetch: limit={limit} offset={offset} -> {len(rows)} rows")
        return rows


__all__ = ["QueryBackend", "SQLAlchemyBackend"]
