"""Pagination executor.

Drives a base query through offset or cursor pagination:

Offset:
    WHERE <filters AND extra> ORDER BY <sort> OFFSET (page-1)*limit LIMIT limit

Cursor:
    WHERE <filters AND extra AND keyset(cursor)> ORDER BY <sort..., id> LIMIT limit+1

The extra row in cursor mode only signals that another page exists; it is
dropped before the page is returned and the cursor is built from the last
row that is kept.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from sqlalchemy import ColumnElement, and_

from querypage.core.pagination.backend import QueryBackend
from querypage.core.pagination.cursor import CursorCodec
from querypage.core.pagination.exceptions import CursorConfigurationError, InvalidCursorError
from querypage.core.pagination.keyset import build_keyset_predicate
from querypage.core.pagination.operators import build_filter_predicate
from querypage.core.pagination.schemas import CursorPage, OffsetPage
from querypage.core.pagination.types import (
    ColumnRef,
    PaginationMode,
    PaginationRequest,
    SortInstruction,
    SortOrder,
)
from querypage.infra.logging import get_lazy_logger

logger = logging.getLogger(__name__)

_MISSING = object()


def ensure_id_in_sorting(
    sorting: Sequence[SortInstruction],
    id_field: ColumnRef,
) -> tuple[SortInstruction, ...]:
    """Append the tie-break id (ASC) unless a sort entry already targets it."""
    if any(instruction.column.matches(id_field) for instruction in sorting):
        return tuple(sorting)
    return (
        *sorting,
        SortInstruction(field_name=id_field.name, column=id_field, order=SortOrder.ASC),
    )


def read_row_value(row: Any, key: str) -> Any:
    """Read ``key`` from a mapping row or an object row.

    Raises:
        CursorConfigurationError: If the row has no such key or attribute.
    """
    if isinstance(row, Mapping):
        value = row.get(key, _MISSING)
    else:
        value = getattr(row, key, _MISSING)
    if value is _MISSING:
        raise CursorConfigurationError(
            f"Field '{key}' not found in record for cursor generation",
            details={"field": key, "row_type": type(row).__name__},
        )
    return value


def extract_cursor_values(
    row: Any,
    sorting: Sequence[SortInstruction],
    id_field: ColumnRef,
) -> dict[str, Any]:
    """Collect the cursor values of ``row`` in sort order.

    Each value comes from the instruction's extractor callable, its
    extractor key, or the column name, in that order of preference. The id
    field is always included so the keyset tie-break can be built even when
    the id is sorted under a different field name.
    """
    values: dict[str, Any] = {}
    for instruction in sorting:
        extractor = instruction.extractor
        if callable(extractor):
            value = extractor(row)
        else:
            value = read_row_value(row, extractor or instruction.column.name)
        if value is None:
            # NULL never compares in the seek predicate, so rows after it would be skipped
            raise CursorConfigurationError(
                f"Sort field '{instruction.field_name}' is NULL on the last row; "
                "cursor sort columns must be non-nullable",
                details={"field": instruction.field_name},
            )
        values[instruction.cursor_key] = value

    if id_field.name not in values:
        values[id_field.name] = read_row_value(row, id_field.name)
    return values


def combine_predicates(predicates: Iterable[ColumnElement[bool] | None]) -> ColumnElement[bool] | None:
    """AND together the non-empty predicates; None when there are none."""
    present = [predicate for predicate in predicates if predicate is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return and_(*present)


class PaginationExecutor:
    """Run paginated queries against a :class:`QueryBackend`.

    The executor holds no per-request state and may be shared. Each call to
    :meth:`execute` makes exactly one backend call; backend errors propagate
    unchanged.

    Example:
        executor = PaginationExecutor(SQLAlchemyBackend(session))
        page = await executor.execute(
            select(User),
            parse_query(USER_FIELDS, USER_PAGINATION, raw_query_params(request)),
            extra_predicates=[User.tenant_id == tenant_id],
        )
    """

    __slots__ = ("backend", "_lazy")

    def __init__(self, backend: QueryBackend) -> None:
        self.backend = backend
        self._lazy = get_lazy_logger(__name__)

    async def execute(
        self,
        query: Any,
        request: PaginationRequest,
        extra_predicates: Sequence[ColumnElement[bool]] = (),
    ) -> OffsetPage[Any] | CursorPage[Any]:
        """Execute ``query`` according to ``request``.

        Args:
            query: Base query (e.g. ``select(User)``) without pagination
            request: Parsed instructions
            extra_predicates: Additional conditions ANDed with the filters

        Returns:
            OffsetPage in offset mode, CursorPage in cursor mode
        """
        if request.mode is PaginationMode.CURSOR:
            return await self.execute_cursor(query, request, extra_predicates)
        return await self.execute_offset(query, request, extra_predicates)

    def _filter_predicates(self, request: PaginationRequest) -> list[ColumnElement[bool]]:
        return [build_filter_predicate(instruction) for instruction in request.filters]

    async def execute_offset(
        self,
        query: Any,
        request: PaginationRequest,
        extra_predicates: Sequence[ColumnElement[bool]] = (),
    ) -> OffsetPage[Any]:
        """Fetch one page by offset and limit."""
        where = combine_predicates([*self._filter_predicates(request), *extra_predicates])
        rows = await self.backend.fetch(
            query,
            where=where,
            order_by=[(s.column.expression, s.order) for s in request.sorting],
            limit=request.limit,
            offset=request.offset,
        )
        page = request.page or 1

        self._lazy.debug(
            lambda: f"pagination.offset: page={page} limit={request.limit} -> {len(rows)} rows"
        )
        return OffsetPage(rows=list(rows), page=page, limit=request.limit)

    async def execute_cursor(
        self,
        query: Any,
        request: PaginationRequest,
        extra_predicates: Sequence[ColumnElement[bool]] = (),
    ) -> CursorPage[Any]:
        """Fetch one page by keyset seek, over-fetching one row to detect more.

        Raises:
            CursorConfigurationError: If the request has no id field.
            InvalidCursorError: If the cursor cannot be decoded.
            MissingCursorFieldError: If the cursor lacks a current sort key.
        """
        id_field = request.id_field
        if id_field is None:
            raise CursorConfigurationError(
                "Cursor pagination requires cursor_id_field to be configured"
            )

        sorting = ensure_id_in_sorting(request.sorting, id_field)

        keyset = None
        if request.cursor is not None:
            try:
                cursor_values = CursorCodec.decode(request.cursor)
                keyset = build_keyset_predicate(sorting, cursor_values, id_field)
            except InvalidCursorError as e:
                logger.info(
                    "Rejected pagination cursor",
                    extra={"reason": e.detail, "operation": "pagination.cursor"},
                )
                raise

        where = combine_predicates([*self._filter_predicates(request), *extra_predicates, keyset])
        rows = await self.backend.fetch(
            query,
            where=where,
            order_by=[(s.column.expression, s.order) for s in sorting],
            limit=request.limit + 1,
        )

        has_more = len(rows) > request.limit
        items = list(rows[: request.limit])

        next_cursor = None
        if has_more and items:
            next_cursor = CursorCodec.encode(extract_cursor_values(items[-1], sorting, id_field))

        self._lazy.debug(
            lambda: (
                f"pagination.cursor: limit={request.limit} "
                f"after={'yes' if request.cursor else 'no'} -> {len(items)} rows, has_more={has_more}"
            )
        )
        return CursorPage(rows=items, next_cursor=next_cursor)


__all__ = [
    "PaginationExecutor",
    "combine_predicates",
    "ensure_id_in_sorting",
    "extract_cursor_values",
    "read_row_value",
]
