"""Declarative field registry.

A registry describes, once per resource, which logical fields can be
filtered and sorted and which column each one maps to. It is built at
import/startup time and read concurrently by every request afterwards.

Example:
    from querypage.core.pagination import registry as fields

    USER_FIELDS = (
        fields.FieldRegistry.builder()
        .field("name", User.name, fields.eq(), fields.like(), sort=fields.sortable())
        .field("age", User.age, fields.gte(), fields.lte(), sort=fields.sortable())
        .field(
            "balance",
            User.balance,
            fields.switch(
                alias="balanceType",
                conditions={
                    "positive": lambda col: col > 0,
                    "negative": lambda col: col < 0,
                    "zero": lambda col: col == 0,
                },
            ),
        )
        .build()
    )

    # ?nameLike=jo&ageGte=18&balanceType=positive&sortBy=age&sortOrder=desc
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from querypage.core.pagination.exceptions import (
    FieldConfigurationError,
    FilterConfigurationError,
)
from querypage.core.pagination.types import (
    ColumnRef,
    CustomPayload,
    ExistsPayload,
    FilterBuilder,
    FilterDescriptor,
    FilterOperator,
    SortDescriptor,
    SwitchCondition,
    SwitchPayload,
    ValueExtractor,
)

# Suffix appended to the field name when a filter has no explicit alias.
# exists/switch/custom default to the bare field name.
DEFAULT_ALIAS_SUFFIXES: Mapping[FilterOperator, str] = MappingProxyType(
    {
        FilterOperator.EQ: "Eq",
        FilterOperator.NEQ: "Neq",
        FilterOperator.GT: "Gt",
        FilterOperator.LT: "Lt",
        FilterOperator.GTE: "Gte",
        FilterOperator.LTE: "Lte",
        FilterOperator.LIKE: "Like",
    }
)


def default_alias(field_name: str, operator: FilterOperator) -> str:
    """Query parameter name used for an operator when no alias is given."""
    return f"{field_name}{DEFAULT_ALIAS_SUFFIXES.get(operator, '')}"


def _relational(operator: FilterOperator) -> Callable[..., FilterDescriptor]:
    def factory(*, alias: str | None = None, default: Any = None) -> FilterDescriptor:
        return FilterDescriptor(operator=operator, alias=alias, default=default)

    factory.__name__ = operator.value
    factory.__doc__ = f"Declare a ``{operator.value}`` filter (default alias ``<field>{DEFAULT_ALIAS_SUFFIXES[operator]}``)."
    return factory


eq = _relational(FilterOperator.EQ)
neq = _relational(FilterOperator.NEQ)
gt = _relational(FilterOperator.GT)
lt = _relational(FilterOperator.LT)
gte = _relational(FilterOperator.GTE)
lte = _relational(FilterOperator.LTE)
like = _relational(FilterOperator.LIKE)


def exists(
    *,
    table: Any,
    builder: FilterBuilder,
    alias: str | None = None,
    default: Any = None,
) -> FilterDescriptor:
    """Declare a relation-existence filter.

    Produces ``EXISTS (SELECT 1 FROM table WHERE builder(value, column))``.
    Typical use is a many-to-many join table:

        fields.exists(
            alias="hasProperty",
            table=property_ownership,
            builder=lambda value, user_id: and_(
                property_ownership.c.user_id == user_id,
                property_ownership.c.property_id == value,
            ),
        )

    Raises:
        FilterConfigurationError: If table or builder is missing.
    """
    if table is None:
        raise FilterConfigurationError("table is required for 'exists' filter", details={"alias": alias})
    if not callable(builder):
        raise FilterConfigurationError(
            "builder function is required for 'exists' filter", details={"alias": alias}
        )
    return FilterDescriptor(
        operator=FilterOperator.EXISTS,
        alias=alias,
        default=default,
        payload=ExistsPayload(table=table, builder=builder),
    )


def switch(
    *,
    conditions: Mapping[str, SwitchCondition],
    alias: str | None = None,
    default: Any = None,
) -> FilterDescriptor:
    """Declare a filter whose predicate is chosen by the parameter value.

    Raises:
        FilterConfigurationError: If conditions is empty or holds a non-callable.
    """
    if not conditions:
        raise FilterConfigurationError(
            "conditions mapping is required and must not be empty for 'switch' filter",
            details={"alias": alias},
        )
    for key, condition in conditions.items():
        if not callable(condition):
            raise FilterConfigurationError(
                f"condition for key '{key}' must be callable, got {type(condition).__name__}",
                details={"alias": alias},
            )
    return FilterDescriptor(
        operator=FilterOperator.SWITCH,
        alias=alias,
        default=default,
        payload=SwitchPayload(conditions=conditions),
    )


def custom(
    *,
    builder: FilterBuilder,
    alias: str | None = None,
    default: Any = None,
) -> FilterDescriptor:
    """Declare a filter built entirely by ``builder(value, column)``.

    Raises:
        FilterConfigurationError: If builder is missing.
    """
    if not callable(builder):
        raise FilterConfigurationError(
            "builder function is required for 'custom' filter", details={"alias": alias}
        )
    return FilterDescriptor(
        operator=FilterOperator.CUSTOM,
        alias=alias,
        default=default,
        payload=CustomPayload(builder=builder),
    )


def sortable(
    *,
    alias: str | None = None,
    extractor: ValueExtractor | None = None,
) -> SortDescriptor:
    """Mark a field as sortable.

    Args:
        alias: ``sortBy`` token; defaults to the field name.
        extractor: Row key or callable used to read the cursor value from
            result rows. Defaults to the column's name.
    """
    return SortDescriptor(alias=alias, extractor=extractor)


@dataclass(frozen=True, slots=True, eq=False)
class FieldSpec:
    """Registered field: column binding plus its filters and sortability.

    Filters always carry a resolved alias once the spec is built by a
    registry builder.
    """

    name: str
    column: ColumnRef
    filters: tuple[FilterDescriptor, ...] = ()
    sort: SortDescriptor | None = None

    @property
    def sort_alias(self) -> str | None:
        if self.sort is None:
            return None
        return self.sort.alias or self.name


class FieldRegistry(Mapping[str, FieldSpec]):
    """Immutable mapping of field name to :class:`FieldSpec`.

    Build through :meth:`builder`. Field order is declaration order, which
    is also the order filters are resolved and listed in error messages.
    """

    __slots__ = ("_fields", "_sort_aliases")

    def __init__(self, fields: tuple[FieldSpec, ...] = ()) -> None:
        by_name: dict[str, FieldSpec] = {}
        sort_aliases: dict[str, FieldSpec] = {}
        filter_aliases: set[str] = set()

        for spec in fields:
            if spec.name in by_name:
                raise FieldConfigurationError("Duplicate field name", details={"field": spec.name})
            by_name[spec.name] = spec

            for descriptor in spec.filters:
                if descriptor.alias is None:
                    raise FieldConfigurationError(
                        "Filter alias must be resolved before registration",
                        details={"field": spec.name, "operator": descriptor.operator.value},
                    )
                if descriptor.alias in filter_aliases:
                    raise FieldConfigurationError(
                        "Duplicate filter alias", details={"alias": descriptor.alias}
                    )
                filter_aliases.add(descriptor.alias)

            alias = spec.sort_alias
            if alias is not None:
                if alias in sort_aliases:
                    raise FieldConfigurationError("Duplicate sort alias", details={"alias": alias})
                sort_aliases[alias] = spec

        self._fields: Mapping[str, FieldSpec] = MappingProxyType(by_name)
        self._sort_aliases: Mapping[str, FieldSpec] = MappingProxyType(sort_aliases)

    @classmethod
    def builder(cls) -> FieldRegistryBuilder:
        return FieldRegistryBuilder()

    def __getitem__(self, name: str) -> FieldSpec:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"FieldRegistry({list(self._fields)!r})"

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        return tuple(self._fields.values())

    def filter_bindings(self) -> Iterator[tuple[FieldSpec, FilterDescriptor]]:
        """Yield every (field, filter) pair in declaration order."""
        for spec in self._fields.values():
            for descriptor in spec.filters:
                yield spec, descriptor

    @property
    def sortable_aliases(self) -> tuple[str, ...]:
        return tuple(self._sort_aliases)

    def resolve_sort_alias(self, alias: str) -> FieldSpec | None:
        return self._sort_aliases.get(alias)


class FieldRegistryBuilder:
    """Collects field declarations and produces a :class:`FieldRegistry`."""

    def __init__(self) -> None:
        self._fields: list[FieldSpec] = []

    def field(
        self,
        name: str,
        column: Any,
        *filters: FilterDescriptor,
        sort: SortDescriptor | None = None,
    ) -> FieldRegistryBuilder:
        """Register a logical field.

        Args:
            name: Logical field name (used in default aliases and cursors).
            column: SQLAlchemy column/expression or :class:`ColumnRef`.
                Computed expressions without a key get ``name`` as their
                column name.
            *filters: Filter descriptors, applied independently.
            sort: Sort descriptor when the field is sortable.
        """
        if isinstance(column, ColumnRef):
            ref = column
        else:
            key = getattr(column, "key", None)
            ref = ColumnRef.of(column, name=None if isinstance(key, str) and key else name)

        resolved = tuple(
            descriptor
            if descriptor.alias is not None
            else FilterDescriptor(
                operator=descriptor.operator,
                alias=default_alias(name, descriptor.operator),
                default=descriptor.default,
                payload=descriptor.payload,
            )
            for descriptor in filters
        )
        self._fields.append(FieldSpec(name=name, column=ref, filters=resolved, sort=sort))
        return self

    def build(self) -> FieldRegistry:
        return FieldRegistry(tuple(self._fields))


__all__ = [
    "DEFAULT_ALIAS_SUFFIXES",
    "FieldRegistry",
    "FieldRegistryBuilder",
    "FieldSpec",
    "custom",
    "default_alias",
    "eq",
    "exists",
    "gt",
    "gte",
    "like",
    "lt",
    "lte",
    "neq",
    "sortable",
    "switch",
]
