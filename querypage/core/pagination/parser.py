"""Query parameter parsing.

Turns raw query parameters into a validated :class:`PaginationRequest`
using a field registry and an endpoint's :class:`PaginationConfig`.

Parameters that are absent fall back to configured defaults. Parameters
that are present but invalid always raise; nothing is clamped or replaced.

Recognized parameters:
    page        1-based page number (offset mode)
    limit       page size
    cursor      opaque token from a previous cursor page
    sortBy      comma-separated or repeated sort aliases
    sortOrder   comma-separated or repeated ASC/DESC, paired with sortBy by position
    <alias>     one per declared filter
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter, ValidationError

from querypage.core.pagination.exceptions import QueryValidationError
from querypage.core.pagination.registry import FieldRegistry, FieldSpec
from querypage.core.pagination.types import (
    ColumnRef,
    FilterDescriptor,
    FilterInstruction,
    FilterOperator,
    PaginationConfig,
    PaginationMode,
    PaginationRequest,
    SortInstruction,
    SortOrder,
)
from querypage.infra.logging import get_lazy_logger

_lazy = get_lazy_logger(__name__)

RawParams = Mapping[str, str | Sequence[str] | None]

PAGE_PARAM = "page"
LIMIT_PARAM = "limit"
CURSOR_PARAM = "cursor"
SORT_BY_PARAM = "sortBy"
SORT_ORDER_PARAM = "sortOrder"


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, Sequence):
        return len(value) == 0
    return False


def _scalar(raw: RawParams, name: str) -> str | None:
    """Single-valued parameter; a repeated parameter yields its last value."""
    value = raw.get(name)
    if value is not None and not isinstance(value, str):
        value = value[-1] if value else None
    return None if _is_empty(value) else value


def split_list_param(value: str | Sequence[str] | None) -> list[str]:
    """Split a comma-separated or repeated parameter into trimmed items."""
    if value is None:
        return []
    parts = [value] if isinstance(value, str) else list(value)
    return [item.strip() for part in parts for item in str(part).split(",") if item.strip()]


@lru_cache(maxsize=128)
def _adapter(python_type: type) -> TypeAdapter[Any]:
    return TypeAdapter(python_type)


def _column_python_type(column: ColumnRef) -> type | None:
    column_type = getattr(column.expression, "type", None)
    if column_type is None:
        return None
    try:
        return column_type.python_type
    except NotImplementedError:
        return None


class QueryInstructionParser:
    """Parse raw query parameters into a :class:`PaginationRequest`.

    Stateless; a single instance can serve every request.

    Example:
        parser = QueryInstructionParser()
        request = parser.parse(USER_FIELDS, USER_PAGINATION, {"sortBy": "age", "limit": "20"})
    """

    def parse(
        self,
        registry: FieldRegistry,
        config: PaginationConfig,
        raw_params: RawParams,
    ) -> PaginationRequest:
        """Validate parameters and resolve filters, sorting and paging.

        Raises:
            QueryValidationError: On any invalid or disallowed parameter.
        """
        mode = self.resolve_mode(config, raw_params)
        filters = self.resolve_filters(registry, raw_params)
        sorting = self.resolve_sorting(registry, config, raw_params)
        limit = self.resolve_limit(config, raw_params)

        if mode is PaginationMode.OFFSET:
            page = self.resolve_page(raw_params)
            request = PaginationRequest(
                filters=filters,
                sorting=sorting,
                limit=limit,
                mode=mode,
                page=page,
                offset=(page - 1) * limit,
                id_field=config.cursor_id_field,
            )
        else:
            request = PaginationRequest(
                filters=filters,
                sorting=sorting,
                limit=limit,
                mode=mode,
                cursor=_scalar(raw_params, CURSOR_PARAM),
                id_field=config.cursor_id_field,
            )

        _lazy.debug(
            lambda: (
                f"pagination.parse: mode={request.mode.value} limit={request.limit} "
                f"filters={[f.field_name for f in request.filters]} "
                f"sort={[(s.field_name, s.order.value) for s in request.sorting]}"
            )
        )
        return request

    def resolve_mode(self, config: PaginationConfig, raw_params: RawParams) -> PaginationMode:
        """Pick offset or cursor mode for this request."""
        has_page = _scalar(raw_params, PAGE_PARAM) is not None
        has_cursor = _scalar(raw_params, CURSOR_PARAM) is not None

        if config.mode is PaginationMode.OFFSET:
            if has_cursor:
                raise QueryValidationError(
                    'Cursor-based pagination is not enabled for this endpoint. Use "page" parameter instead.',
                    parameter=CURSOR_PARAM,
                    allowed=[PAGE_PARAM],
                )
            return PaginationMode.OFFSET

        if config.mode is PaginationMode.CURSOR:
            if has_page:
                raise QueryValidationError(
                    'Offset-based pagination is not enabled for this endpoint. Remove "page" parameter to use cursor pagination.',
                    parameter=PAGE_PARAM,
                    allowed=[CURSOR_PARAM],
                )
            return PaginationMode.CURSOR

        return PaginationMode.OFFSET if has_page else PaginationMode.CURSOR

    def resolve_filters(
        self,
        registry: FieldRegistry,
        raw_params: RawParams,
    ) -> tuple[FilterInstruction, ...]:
        """Collect a filter instruction for every descriptor with a value."""
        instructions: list[FilterInstruction] = []
        for spec, descriptor in registry.filter_bindings():
            value = raw_params.get(descriptor.alias)
            if value is None and descriptor.default is not None:
                value = descriptor.default
            if _is_empty(value):
                continue

            instructions.append(
                FilterInstruction(
                    field_name=spec.name,
                    column=spec.column,
                    operator=descriptor.operator,
                    value=self._coerce_filter_value(spec, descriptor, value),
                    payload=descriptor.payload,
                )
            )
        return tuple(instructions)

    def _coerce_filter_value(self, spec: FieldSpec, descriptor: FilterDescriptor, value: Any) -> Any:
        operator = descriptor.operator
        if not (operator.is_relational or operator is FilterOperator.LIKE):
            return value

        if not isinstance(value, str) and isinstance(value, Sequence):
            if len(value) != 1:
                raise QueryValidationError(
                    f"Filter '{descriptor.alias}' accepts a single value, received {len(value)}",
                    parameter=descriptor.alias,
                )
            value = value[0]

        if not operator.is_relational:
            return value

        python_type = _column_python_type(spec.column)
        if python_type is None or isinstance(value, python_type):
            return value
        try:
            return _adapter(python_type).validate_python(value)
        except ValidationError as e:
            raise QueryValidationError(
                f"Invalid value '{value}' for filter '{descriptor.alias}': expected {python_type.__name__}",
                parameter=descriptor.alias,
            ) from e

    def resolve_sorting(
        self,
        registry: FieldRegistry,
        config: PaginationConfig,
        raw_params: RawParams,
    ) -> tuple[SortInstruction, ...]:
        """Resolve ``sortBy``/``sortOrder`` or fall back to the default sort."""
        aliases = split_list_param(raw_params.get(SORT_BY_PARAM))
        if not config.allow_custom_sort or not aliases:
            return self.default_sorting(config)

        orders = split_list_param(raw_params.get(SORT_ORDER_PARAM))

        if not config.allow_multiple_sort and len(aliases) > 1:
            raise QueryValidationError(
                f"Multiple sort fields are not allowed. Received {len(aliases)} fields: "
                f"{', '.join(aliases)}. Only single field sorting is permitted.",
                parameter=SORT_BY_PARAM,
                extra={"received": aliases},
            )

        sorting: list[SortInstruction] = []
        for index, alias in enumerate(aliases):
            spec = registry.resolve_sort_alias(alias)
            if spec is None:
                available = registry.sortable_aliases
                raise QueryValidationError(
                    f"'{alias}' is not a valid sortable field. "
                    f"Available sortable fields: {', '.join(available)}",
                    parameter=SORT_BY_PARAM,
                    allowed=available,
                )

            token = orders[index] if index < len(orders) else SortOrder.ASC.value
            try:
                order = SortOrder.parse(token)
            except ValueError:
                raise QueryValidationError(
                    f"Invalid sort order '{token}' for field '{alias}'. Must be 'ASC' or 'DESC'",
                    parameter=SORT_ORDER_PARAM,
                    allowed=[o.value for o in SortOrder],
                ) from None

            sorting.append(
                SortInstruction(
                    field_name=spec.name,
                    column=spec.column,
                    order=order,
                    extractor=spec.sort.extractor if spec.sort else None,
                )
            )
        return tuple(sorting)

    @staticmethod
    def default_sorting(config: PaginationConfig) -> tuple[SortInstruction, ...]:
        return tuple(
            SortInstruction(
                field_name=definition.column.name,
                column=definition.column,
                order=definition.order,
                extractor=definition.extractor,
            )
            for definition in config.default_sort
        )

    def resolve_limit(self, config: PaginationConfig, raw_params: RawParams) -> int:
        """Resolve the page size, enforcing ``max_limit``."""
        raw_limit = _scalar(raw_params, LIMIT_PARAM)
        if not config.allow_custom_limit or raw_limit is None:
            return config.default_limit

        limit = _parse_int(raw_limit)
        if limit is None or limit <= 0:
            raise QueryValidationError(
                f"Invalid limit value: '{raw_limit}'. Limit must be a positive integer",
                parameter=LIMIT_PARAM,
            )
        if limit > config.max_limit:
            raise QueryValidationError(
                f"Limit value {limit} exceeds maximum allowed limit of {config.max_limit}",
                parameter=LIMIT_PARAM,
                extra={"max_limit": config.max_limit},
            )
        return limit

    def resolve_page(self, raw_params: RawParams) -> int:
        """Resolve the 1-based page number; absent means page 1."""
        raw_page = _scalar(raw_params, PAGE_PARAM)
        if raw_page is None:
            return 1

        page = _parse_int(raw_page)
        if page is None or page < 1:
            raise QueryValidationError(
                f"Invalid page value: '{raw_page}'. Page must be a positive integer",
                parameter=PAGE_PARAM,
            )
        return page


def _parse_int(value: str) -> int | None:
    text = value.strip()
    digits = text[1:] if text[:1] in ("+", "-") else text
    if not digits.isascii() or not digits.isdigit():
        return None
    return int(text)


_default_parser = QueryInstructionParser()


def parse_query(
    registry: FieldRegistry,
    config: PaginationConfig,
    raw_params: RawParams,
) -> PaginationRequest:
    """Parse with a shared :class:`QueryInstructionParser`."""
    return _default_parser.parse(registry, config, raw_params)


__all__ = [
    "CURSOR_PARAM",
    "LIMIT_PARAM",
    "PAGE_PARAM",
    "SORT_BY_PARAM",
    "SORT_ORDER_PARAM",
    "QueryInstructionParser",
    "RawParams",
    "parse_query",
    "split_list_param",
]
