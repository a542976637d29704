"""Filter operator evaluation.

Turns an operator, a column and a value into a SQLAlchemy predicate.
Evaluation is pure: nothing here touches a session or mutates its inputs.

    apply_filter_operator(User.age, FilterOperator.GTE, 18)
    # users.age >= :age_1

    apply_filter_operator(User.name, FilterOperator.LIKE, "jo")
    # lower(users.name) LIKE lower('%jo%') ESCAPE '\\'
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, literal_column, select

from querypage.core.pagination.exceptions import (
    FilterConfigurationError,
    UnknownSwitchValueError,
)
from querypage.core.pagination.types import (
    CustomPayload,
    ExistsPayload,
    FilterInstruction,
    FilterOperator,
    OperatorPayload,
    SwitchPayload,
)

LIKE_ESCAPE = "\\"


def escape_like(value: str, escape: str = LIKE_ESCAPE) -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return (
        value.replace(escape, escape * 2)
        .replace("%", f"{escape}%")
        .replace("_", f"{escape}_")
    )


def apply_filter_operator(
    column: Any,
    operator: FilterOperator | str,
    value: Any,
    payload: OperatorPayload | None = None,
) -> ColumnElement[bool]:
    """Build the predicate for one filter.

    Args:
        column: SQLAlchemy column or expression being filtered.
        operator: Operator to apply.
        value: Filter value from the request (or descriptor default).
        payload: Operator payload, required by exists/switch/custom.

    Returns:
        Boolean SQLAlchemy expression.

    Raises:
        FilterConfigurationError: If the operator's payload is missing or malformed.
        UnknownSwitchValueError: If a switch filter gets a value it has no condition for.
    """
    try:
        operator = FilterOperator(operator)
    except ValueError as e:
        raise FilterConfigurationError(f"Unsupported filter operator: {operator}") from e

    match operator:
        case FilterOperator.EQ:
            return column == value
        case FilterOperator.NEQ:
            return column != value
        case FilterOperator.GT:
            return column > value
        case FilterOperator.LT:
            return column < value
        case FilterOperator.GTE:
            return column >= value
        case FilterOperator.LTE:
            return column <= value
        case FilterOperator.LIKE:
            return column.ilike(f"%{escape_like(str(value))}%", escape=LIKE_ESCAPE)
        case FilterOperator.EXISTS:
            return _exists(column, value, payload)
        case FilterOperator.SWITCH:
            return _switch(column, value, payload)
        case FilterOperator.CUSTOM:
            if not isinstance(payload, CustomPayload) or not callable(payload.builder):
                raise FilterConfigurationError("builder function is required for 'custom' filter operator")
            return payload.builder(value, column)


def _exists(column: Any, value: Any, payload: OperatorPayload | None) -> ColumnElement[bool]:
    if not isinstance(payload, ExistsPayload) or not callable(payload.builder):
        raise FilterConfigurationError("builder function is required for 'exists' filter operator")
    if payload.table is None:
        raise FilterConfigurationError("table is required for 'exists' filter operator")

    condition = payload.builder(value, column)
    return select(literal_column("1")).select_from(payload.table).where(condition).exists()


def _switch(column: Any, value: Any, payload: OperatorPayload | None) -> ColumnElement[bool]:
    if not isinstance(payload, SwitchPayload) or not payload.conditions:
        raise FilterConfigurationError("conditions mapping is required for 'switch' filter operator")

    conditions = payload.conditions
    if not isinstance(value, str) or value not in conditions:
        raise UnknownSwitchValueError(value, list(conditions))
    return conditions[value](column)


def build_filter_predicate(instruction: FilterInstruction) -> ColumnElement[bool]:
    """Apply a parsed filter instruction."""
    return apply_filter_operator(
        instruction.column.expression,
        instruction.operator,
        instruction.value,
        instruction.payload,
    )


__all__ = [
    "LIKE_ESCAPE",
    "apply_filter_operator",
    "build_filter_predicate",
    "escape_like",
]
