"""Keyset (seek) predicate construction.

Instead of OFFSET, the next page is selected with a WHERE clause that seeks
strictly past the last row of the previous page. For
ORDER BY a ASC, b DESC, id ASC with the cursor at (x, y, z):

    WHERE (a > x)
       OR (a = x AND b < y)
       OR (a = x AND b = y AND id > z)
       OR (a = x AND b = y AND id = z AND id > z)

The trailing clause compares the tie-break id in the direction of the last
sort entry. When the id is itself the last entry the clause can never match,
which keeps the shape uniform for every sort configuration.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import ColumnElement, and_, or_

from querypage.core.pagination.exceptions import MissingCursorFieldError
from querypage.core.pagination.types import ColumnRef, SortInstruction, SortOrder


def _seek(column: Any, value: Any, order: SortOrder) -> ColumnElement[bool]:
    """Strict "comes after" comparison for one column."""
    if order is SortOrder.DESC:
        return column < value
    return column > value


def build_keyset_predicate(
    sorting: Sequence[SortInstruction],
    cursor_values: Mapping[str, Any],
    id_field: ColumnRef,
) -> ColumnElement[bool] | None:
    """Build the predicate selecting rows strictly after the cursor row.

    Args:
        sorting: Full sort order, already ending with the tie-break id
        cursor_values: Decoded cursor, keyed by each instruction's cursor key
        id_field: Unique tie-break column

    Returns:
        OR of the seek clauses, or None when there is nothing to sort by

    Raises:
        MissingCursorFieldError: If the cursor lacks a key the sort order needs
    """
    if not sorting:
        return None

    if id_field.name not in cursor_values:
        raise MissingCursorFieldError(id_field.name)
    for instruction in sorting:
        if instruction.cursor_key not in cursor_values:
            raise MissingCursorFieldError(instruction.cursor_key)

    def equals(instruction: SortInstruction) -> ColumnElement[bool]:
        return instruction.column.expression == cursor_values[instruction.cursor_key]

    clauses: list[ColumnElement[bool]] = []
    for i, current in enumerate(sorting):
        comparison = _seek(
            current.column.expression,
            cursor_values[current.cursor_key],
            current.order,
        )
        preceding = [equals(previous) for previous in sorting[:i]]
        clauses.append(and_(*preceding, comparison) if preceding else comparison)

    tie_break = _seek(id_field.expression, cursor_values[id_field.name], sorting[-1].order)
    clauses.append(and_(*(equals(instruction) for instruction in sorting), tie_break))

    return or_(*clauses)


__all__ = ["build_keyset_predicate"]
