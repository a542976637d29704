"""Unit tests for pagination value types and configuration."""
from __future__ import annotations

from sqlalchemy import func
import pytest

from querypage.core.pagination import (
    ColumnRef,
    FieldConfigurationError,
    PaginationConfig,
    PaginationMode,
    PaginationRequest,
    SortDefinition,
    SortOrder,
)
from querypage.core.pagination.exceptions import (
    CursorConfigurationError,
    PaginationConfigurationError,
)
from querypage.core.settings import PaginationSettings
from tests.models import User


@pytest.mark.unit
class TestSortOrder:
    @pytest.mark.parametrize("token", ["asc", "ASC", " Asc "])
    def test_parse_case_insensitive(self, token):
        assert SortOrder.parse(token) is SortOrder.ASC

    def test_parse_invalid(self):
        with pytest.raises(ValueError, match="Invalid sort order"):
            SortOrder.parse("sideways")


@pytest.mark.unit
class TestColumnRef:
    def test_name_from_key(self):
        ref = ColumnRef.of(User.created_at)

        assert ref.name == "created_at"
        assert ref.expression is User.created_at

    def test_explicit_name(self):
        ref = ColumnRef.of(func.lower(User.name), name="lowerName")

        assert ref.name == "lowerName"

    def test_expression_without_key(self):
        with pytest.raises(FieldConfigurationError, match="no key"):
            ColumnRef.of(func.lower(User.name))

    def test_rewrap_keeps_ref(self):
        ref = ColumnRef.of(User.id)

        assert ColumnRef.of(ref) is ref
        assert ColumnRef.of(ref, name="userId").name == "userId"

    def test_matches_by_name(self):
        assert ColumnRef.of(User.id).matches(ColumnRef.of(User.id))
        assert not ColumnRef.of(User.id).matches(ColumnRef.of(User.age))


@pytest.mark.unit
class TestPaginationConfig:
    """Config validation at declaration time."""

    def test_defaults(self):
        config = PaginationConfig()

        assert config.mode is PaginationMode.OFFSET
        assert config.default_limit == 10
        assert config.max_limit == 100
        assert config.allow_custom_limit is True
        assert config.allow_custom_sort is True
        assert config.allow_multiple_sort is True
        assert config.default_sort == ()
        assert config.permits_cursor is False

    @pytest.mark.parametrize("mode", ["cursor", "both"])
    def test_cursor_modes_require_id_field(self, mode):
        with pytest.raises(CursorConfigurationError, match="cursor_id_field"):
            PaginationConfig(mode=mode)

    def test_id_field_wrapped(self):
        config = PaginationConfig(mode="both", cursor_id_field=User.id)

        assert isinstance(config.cursor_id_field, ColumnRef)
        assert config.cursor_id_field.name == "id"
        assert config.permits_cursor is True

    def test_unknown_mode(self):
        with pytest.raises(PaginationConfigurationError, match="Unknown pagination mode"):
            PaginationConfig(mode="pages")

    @pytest.mark.parametrize(
        ("default_limit", "max_limit"),
        [(0, 100), (10, 0), (50, 20)],
    )
    def test_invalid_limits(self, default_limit, max_limit):
        with pytest.raises(PaginationConfigurationError):
            PaginationConfig(default_limit=default_limit, max_limit=max_limit)

    def test_default_sort_normalized(self):
        config = PaginationConfig(
            default_sort=[(User.age, "desc"), SortDefinition(User.id)],
        )

        assert [(d.column.name, d.order) for d in config.default_sort] == [
            ("age", SortOrder.DESC),
            ("id", SortOrder.ASC),
        ]

    def test_default_sort_invalid_order(self):
        with pytest.raises(PaginationConfigurationError) as exc_info:
            PaginationConfig(default_sort=[(User.age, "down")])

        assert exc_info.value.details == {"column": "age"}

    def test_from_settings(self):
        settings = PaginationSettings(default_limit=20, max_limit=50, allow_multiple_sort=False)

        config = PaginationConfig.from_settings(settings, mode="cursor", cursor_id_field=User.id)

        assert config.mode is PaginationMode.CURSOR
        assert config.default_limit == 20
        assert config.max_limit == 50
        assert config.allow_multiple_sort is False

    def test_from_settings_overrides_win(self):
        settings = PaginationSettings(default_limit=20, max_limit=50)

        config = PaginationConfig.from_settings(settings, max_limit=30)

        assert config.max_limit == 30

    def test_from_settings_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PAGINATION_DEFAULT_LIMIT", "15")

        assert PaginationConfig.from_settings().default_limit == 15


@pytest.mark.unit
class TestPaginationRequest:
    """Requests carry exactly one kind of position."""

    def test_both_is_not_a_request_mode(self):
        with pytest.raises(PaginationConfigurationError):
            PaginationRequest(filters=(), sorting=(), limit=10, mode=PaginationMode.BOTH)

    def test_offset_request_with_cursor(self):
        with pytest.raises(PaginationConfigurationError):
            PaginationRequest(
                filters=(), sorting=(), limit=10, mode=PaginationMode.OFFSET, page=1, offset=0, cursor="x"
            )

    def test_cursor_request_with_page(self):
        with pytest.raises(PaginationConfigurationError):
            PaginationRequest(filters=(), sorting=(), limit=10, mode=PaginationMode.CURSOR, page=2)

    def test_limit_must_be_positive(self):
        with pytest.raises(PaginationConfigurationError, match="limit must be positive"):
            PaginationRequest(filters=(), sorting=(), limit=0, mode=PaginationMode.CURSOR)
