"""Declarative offset and cursor (keyset) pagination for SQLAlchemy queries.

An endpoint declares which fields can be filtered and sorted once, then
every request goes through the same three steps:

    from querypage.core.pagination import (
        FieldRegistry, PaginationConfig, PaginationExecutor, SQLAlchemyBackend,
        parse_query, registry as fields,
    )

    USER_FIELDS = (
        FieldRegistry.builder()
        .field("name", User.name, fields.like(), sort=fields.sortable())
        .field("createdAt", User.created_at, fields.gte(), sort=fields.sortable())
        .build()
    )
    USER_PAGINATION = PaginationConfig(mode="both", cursor_id_field=User.id)

    instructions = parse_query(USER_FIELDS, USER_PAGINATION, raw_params)
    page = await PaginationExecutor(SQLAlchemyBackend(session)).execute(
        select(User), instructions
    )

Cursor pages are stable: rows inserted before the cursor position never
shift the next page, and the id tie-break keeps the order total when sort
values repeat.
"""

from querypage.core.pagination import registry
from querypage.core.pagination.backend import QueryBackend, SQLAlchemyBackend
from querypage.core.pagination.cursor import CursorCodec, CursorData
from querypage.core.pagination.exceptions import (
    CursorConfigurationError,
    FieldConfigurationError,
    FilterConfigurationError,
    InvalidCursorError,
    MissingCursorFieldError,
    PaginationConfigurationError,
    QueryValidationError,
    UnknownSwitchValueError,
)
from querypage.core.pagination.executor import PaginationExecutor
from querypage.core.pagination.keyset import build_keyset_predicate
from querypage.core.pagination.operators import apply_filter_operator, build_filter_predicate
from querypage.core.pagination.parser import QueryInstructionParser, parse_query
from querypage.core.pagination.registry import FieldRegistry, FieldSpec
from querypage.core.pagination.schemas import CursorPage, OffsetPage
from querypage.core.pagination.types import (
    ColumnRef,
    FilterDescriptor,
    FilterInstruction,
    FilterOperator,
    PaginationConfig,
    PaginationMode,
    PaginationRequest,
    SortDefinition,
    SortDescriptor,
    SortInstruction,
    SortOrder,
)

__all__ = [
    # Declaration
    "ColumnRef",
    "FieldRegistry",
    "FieldSpec",
    "FilterDescriptor",
    "PaginationConfig",
    "PaginationMode",
    "SortDefinition",
    "SortDescriptor",
    "registry",
    # Parsing
    "FilterInstruction",
    "FilterOperator",
    "PaginationRequest",
    "QueryInstructionParser",
    "SortInstruction",
    "SortOrder",
    "parse_query",
    # Predicates and cursors
    "CursorCodec",
    "CursorData",
    "apply_filter_operator",
    "build_filter_predicate",
    "build_keyset_predicate",
    # Execution
    "CursorPage",
    "OffsetPage",
    "PaginationExecutor",
    "QueryBackend",
    "SQLAlchemyBackend",
    # Errors
    "CursorConfigurationError",
    "FieldConfigurationError",
    "FilterConfigurationError",
    "InvalidCursorError",
    "MissingCursorFieldError",
    "PaginationConfigurationError",
    "QueryValidationError",
    "UnknownSwitchValueError",
]
