"""Value types shared by the pagination engine.

Everything here is immutable. Descriptors and configs are built once when an
endpoint is declared; instructions and requests are built per request by the
parser and thrown away after the response is produced.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from querypage.core.pagination.exceptions import (
    CursorConfigurationError,
    FieldConfigurationError,
    PaginationConfigurationError,
)

if TYPE_CHECKING:
    from querypage.core.settings import PaginationSettings

# (value, column) -> predicate
FilterBuilder = Callable[[Any, Any], Any]
# column -> predicate
SwitchCondition = Callable[[Any], Any]
# Row key or callable reading the cursor value off a result row
ValueExtractor = str | Callable[[Any], Any]


class SortOrder(StrEnum):
    """Sort direction."""

    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, token: str) -> SortOrder:
        """Parse a case-insensitive ASC/DESC token.

        Raises:
            ValueError: If the token is neither ASC nor DESC.
        """
        try:
            return cls(str(token).strip().upper())
        except ValueError:
            msg = f"Invalid sort order {token!r}"
            raise ValueError(msg) from None


class PaginationMode(StrEnum):
    """Pagination strategy an endpoint allows (``BOTH``) or a request uses."""

    OFFSET = "offset"
    CURSOR = "cursor"
    BOTH = "both"


class FilterOperator(StrEnum):
    """Closed set of filter operators understood by the evaluator."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    LIKE = "like"
    EXISTS = "exists"
    SWITCH = "switch"
    CUSTOM = "custom"

    @property
    def is_relational(self) -> bool:
        return self in _RELATIONAL


_RELATIONAL = frozenset(
    {
        FilterOperator.EQ,
        FilterOperator.NEQ,
        FilterOperator.GT,
        FilterOperator.LT,
        FilterOperator.GTE,
        FilterOperator.LTE,
    }
)


@dataclass(frozen=True, slots=True, eq=False)
class ColumnRef:
    """Column or computed expression paired with its logical name.

    The name is the key used in cursors and the fallback key for reading
    cursor values off result rows. It is either given explicitly or read
    from the SQLAlchemy expression's ``key`` (mapped attributes, ``Column``
    objects and labels all carry one).

    Example:
        ColumnRef.of(User.created_at)                     # name "created_at"
        ColumnRef.of(func.lower(User.name), name="name")  # computed expression
    """

    name: str
    expression: Any

    @classmethod
    def of(cls, column: Any, name: str | None = None) -> ColumnRef:
        """Wrap a column expression, resolving its logical name.

        Raises:
            FieldConfigurationError: If no name is given and the expression has no key.
        """
        if isinstance(column, ColumnRef):
            if name is None or name == column.name:
                return column
            return cls(name, column.expression)

        resolved = name or getattr(column, "key", None)
        if not isinstance(resolved, str) or not resolved:
            raise FieldConfigurationError(
                "Column expression has no key; pass an explicit name or label() it",
                details={"column": repr(column)},
            )
        return cls(resolved, column)

    def matches(self, other: ColumnRef) -> bool:
        """Whether both refs name the same logical column."""
        return self.name == other.name


@dataclass(frozen=True, slots=True, eq=False)
class ExistsPayload:
    """Payload for ``exists``: join target plus subquery condition builder."""

    table: Any
    builder: FilterBuilder


@dataclass(frozen=True, slots=True, eq=False)
class SwitchPayload:
    """Payload for ``switch``: value -> predicate factory mapping."""

    conditions: Mapping[str, SwitchCondition]

    def __post_init__(self) -> None:
        object.__setattr__(self, "conditions", MappingProxyType(dict(self.conditions)))


@dataclass(frozen=True, slots=True, eq=False)
class CustomPayload:
    """Payload for ``custom``: free-form predicate builder."""

    builder: FilterBuilder


OperatorPayload = ExistsPayload | SwitchPayload | CustomPayload


@dataclass(frozen=True, slots=True, eq=False)
class FilterDescriptor:
    """Declares one filter on a field.

    Attributes:
        operator: Operator applied to the field's column.
        alias: Query parameter name; ``None`` means the registry assigns
            the operator's default alias.
        default: Value used when the parameter is absent.
        payload: Operator-specific payload for exists/switch/custom.
    """

    operator: FilterOperator
    alias: str | None = None
    default: Any = None
    payload: OperatorPayload | None = None


@dataclass(frozen=True, slots=True, eq=False)
class SortDescriptor:
    """Declares a field as sortable.

    Attributes:
        alias: ``sortBy`` token; ``None`` means the field name.
        extractor: How to read the cursor value from a result row.
    """

    alias: str | None = None
    extractor: ValueExtractor | None = None


@dataclass(frozen=True, slots=True, eq=False)
class SortDefinition:
    """Entry of a config's default sort order."""

    column: Any
    order: SortOrder | str = SortOrder.ASC
    extractor: ValueExtractor | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "column", ColumnRef.of(self.column))
        try:
            object.__setattr__(self, "order", SortOrder.parse(self.order))
        except ValueError as e:
            raise PaginationConfigurationError(
                str(e), details={"column": self.column.name}
            ) from e


@dataclass(frozen=True, slots=True, eq=False)
class PaginationConfig:
    """Per-endpoint pagination behaviour.

    Attributes:
        mode: Allowed strategy. ``BOTH`` picks offset when ``page`` is sent.
        cursor_id_field: Unique tie-break column; required when cursor
            pagination is allowed.
        default_limit: Page size when the client sends no ``limit``.
        max_limit: Upper bound for a client-supplied ``limit``.
        allow_custom_limit: Whether ``limit`` is honoured.
        allow_custom_sort: Whether ``sortBy``/``sortOrder`` are honoured.
        allow_multiple_sort: Whether ``sortBy`` may list several fields.
        default_sort: Order used when no custom sort is requested.

    Raises:
        PaginationConfigurationError: On invalid limits or mode.
        CursorConfigurationError: If cursor mode is allowed without an id field.
    """

    mode: PaginationMode | str = PaginationMode.OFFSET
    cursor_id_field: Any = None
    default_limit: int = 10
    max_limit: int = 100
    allow_custom_limit: bool = True
    allow_custom_sort: bool = True
    allow_multiple_sort: bool = True
    default_sort: Sequence[SortDefinition | tuple[Any, str]] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        try:
            mode = PaginationMode(self.mode)
        except ValueError as e:
            raise PaginationConfigurationError(
                f"Unknown pagination mode {self.mode!r}",
                details={"allowed": [m.value for m in PaginationMode]},
            ) from e
        object.__setattr__(self, "mode", mode)

        if mode is not PaginationMode.OFFSET:
            if self.cursor_id_field is None:
                raise CursorConfigurationError(
                    "Cursor pagination requires cursor_id_field to be configured",
                    details={"mode": mode.value},
                )
        if self.cursor_id_field is not None:
            object.__setattr__(self, "cursor_id_field", ColumnRef.of(self.cursor_id_field))

        if self.default_limit < 1 or self.max_limit < 1:
            raise PaginationConfigurationError(
                "default_limit and max_limit must be positive",
                details={"default_limit": self.default_limit, "max_limit": self.max_limit},
            )
        if self.default_limit > self.max_limit:
            raise PaginationConfigurationError(
                "default_limit must not exceed max_limit",
                details={"default_limit": self.default_limit, "max_limit": self.max_limit},
            )

        object.__setattr__(
            self,
            "default_sort",
            tuple(
                entry if isinstance(entry, SortDefinition) else SortDefinition(*entry)
                for entry in self.default_sort
            ),
        )

    @property
    def permits_cursor(self) -> bool:
        return self.mode is not PaginationMode.OFFSET

    @classmethod
    def from_settings(
        cls,
        settings: PaginationSettings | None = None,
        **overrides: Any,
    ) -> PaginationConfig:
        """Build a config seeded from process-wide pagination settings.

        Args:
            settings: Settings to read; defaults to the cached loader.
            **overrides: Any config field, applied on top of the settings.
        """
        if settings is None:
            from querypage.core.settings import get_pagination_settings

            settings = get_pagination_settings()

        values: dict[str, Any] = {
            "default_limit": settings.default_limit,
            "max_limit": settings.max_limit,
            "allow_custom_limit": settings.allow_custom_limit,
            "allow_custom_sort": settings.allow_custom_sort,
            "allow_multiple_sort": settings.allow_multiple_sort,
        }
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True, slots=True, eq=False)
class FilterInstruction:
    """A filter resolved from a request, ready for the evaluator."""

    field_name: str
    column: ColumnRef
    operator: FilterOperator
    value: Any
    payload: OperatorPayload | None = None


@dataclass(frozen=True, slots=True, eq=False)
class SortInstruction:
    """One resolved ORDER BY entry.

    ``field_name`` doubles as the key under which the entry's value is
    stored in cursors.
    """

    field_name: str
    column: ColumnRef
    order: SortOrder = SortOrder.ASC
    extractor: ValueExtractor | None = None

    @property
    def cursor_key(self) -> str:
        return self.field_name


@dataclass(frozen=True, slots=True, eq=False)
class PaginationRequest:
    """Validated instructions for one paginated query.

    Offset requests carry ``page``/``offset`` and no cursor; cursor
    requests carry ``cursor`` (``None`` on the first page) and no
    page/offset.
    """

    filters: tuple[FilterInstruction, ...]
    sorting: tuple[SortInstruction, ...]
    limit: int
    mode: PaginationMode
    page: int | None = None
    offset: int | None = None
    cursor: str | None = None
    id_field: ColumnRef | None = None

    def __post_init__(self) -> None:
        if self.mode is PaginationMode.BOTH:
            raise PaginationConfigurationError("A request must resolve to offset or cursor mode")
        if self.mode is PaginationMode.OFFSET and self.cursor is not None:
            raise PaginationConfigurationError("Offset requests cannot carry a cursor")
        if self.mode is PaginationMode.CURSOR and (self.page is not None or self.offset is not None):
            raise PaginationConfigurationError("Cursor requests cannot carry page or offset")
        if self.limit < 1:
            raise PaginationConfigurationError("limit must be positive", details={"limit": self.limit})


__all__ = [
    "ColumnRef",
    "CustomPayload",
    "ExistsPayload",
    "FilterBuilder",
    "FilterDescriptor",
    "FilterInstruction",
    "FilterOperator",
    "OperatorPayload",
    "PaginationConfig",
    "PaginationMode",
    "PaginationRequest",
    "SortDefinition",
    "SortDescriptor",
    "SortInstruction",
    "SortOrder",
    "SwitchCondition",
    "SwitchPayload",
    "ValueExtractor",
]
