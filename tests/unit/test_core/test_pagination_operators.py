"""Unit tests for filter operator evaluation."""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy import ColumnElement, and_, select
from sqlalchemy.dialects import sqlite
import pytest

from querypage.core.pagination import (
    ColumnRef,
    FilterConfigurationError,
    FilterInstruction,
    FilterOperator,
    UnknownSwitchValueError,
    apply_filter_operator,
    build_filter_predicate,
)
from querypage.core.pagination.operators import escape_like
from querypage.core.pagination.types import CustomPayload, ExistsPayload, SwitchPayload
from tests.models import User, user_tags


def _sql(predicate: ColumnElement[bool]) -> str:
    """Render a predicate with inlined literals."""
    return str(predicate.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


def _params(predicate: ColumnElement[bool]) -> list:
    return list(predicate.compile(dialect=sqlite.dialect()).params.values())


BALANCE_CONDITIONS = SwitchPayload(
    conditions={
        "positive": lambda col: col > 0,
        "negative": lambda col: col < 0,
        "zero": lambda col: col == 0,
    }
)


@pytest.mark.unit
class TestRelationalOperators:
    """eq/neq/gt/lt/gte/lte compare the column with the value directly."""

    @pytest.mark.parametrize(
        ("operator", "expected"),
        [
            (FilterOperator.EQ, "users.age = 18"),
            (FilterOperator.NEQ, "users.age != 18"),
            (FilterOperator.GT, "users.age > 18"),
            (FilterOperator.LT, "users.age < 18"),
            (FilterOperator.GTE, "users.age >= 18"),
            (FilterOperator.LTE, "users.age <= 18"),
        ],
    )
    def test_comparison(self, operator, expected):
        assert _sql(apply_filter_operator(User.age, operator, 18)) == expected

    def test_operator_given_as_string(self):
        assert _sql(apply_filter_operator(User.age, "gte", 21)) == "users.age >= 21"

    def test_unsupported_operator(self):
        with pytest.raises(FilterConfigurationError, match="Unsupported filter operator"):
            apply_filter_operator(User.age, "between", 18)


@pytest.mark.unit
class TestLikeOperator:
    """like is a case-insensitive substring match."""

    def test_value_wrapped_with_wildcards(self):
        predicate = apply_filter_operator(User.name, FilterOperator.LIKE, "Jo")

        assert _params(predicate) == ["%Jo%"]
        sql = str(predicate.compile(dialect=sqlite.dialect()))
        assert "lower(users.name) LIKE lower(" in sql
        assert "ESCAPE" in sql

    def test_wildcards_in_value_are_escaped(self):
        predicate = apply_filter_operator(User.name, FilterOperator.LIKE, "50%_off")

        assert _params(predicate) == ["%50\\%\\_off%"]

    def test_escape_like(self):
        assert escape_like("a\\b") == "a\\\\b"
        assert escape_like("100%") == "100\\%"
        assert escape_like("snake_case") == "snake\\_case"
        assert escape_like("plain") == "plain"


@pytest.mark.unit
class TestExistsOperator:
    """exists builds a correlated EXISTS subquery over the join table."""

    def test_exists_subquery(self):
        payload = ExistsPayload(
            table=user_tags,
            builder=lambda value, user_id: and_(
                user_tags.c.user_id == user_id,
                user_tags.c.tag_id == value,
            ),
        )

        predicate = apply_filter_operator(User.id, FilterOperator.EXISTS, 3, payload)
        sql = _sql(select(User.id).where(predicate))

        assert "EXISTS (SELECT 1" in sql
        assert "FROM user_tags" in sql
        assert "user_tags.user_id = users.id" in sql
        assert "user_tags.tag_id = 3" in sql

    def test_exists_without_payload(self):
        with pytest.raises(FilterConfigurationError, match="builder function is required for 'exists'"):
            apply_filter_operator(User.id, FilterOperator.EXISTS, 3)

    def test_exists_without_table(self):
        payload = ExistsPayload(table=None, builder=lambda value, col: col == value)

        with pytest.raises(FilterConfigurationError, match="table is required"):
            apply_filter_operator(User.id, FilterOperator.EXISTS, 3, payload)


@pytest.mark.unit
class TestSwitchOperator:
    """switch picks a predicate by the value received."""

    def test_selects_condition(self):
        predicate = apply_filter_operator(User.balance, FilterOperator.SWITCH, "positive", BALANCE_CONDITIONS)

        assert _sql(predicate) == "users.balance > 0"

    def test_unknown_value_lists_options(self):
        with pytest.raises(UnknownSwitchValueError) as exc_info:
            apply_filter_operator(User.balance, FilterOperator.SWITCH, "unknown", BALANCE_CONDITIONS)

        error = exc_info.value
        assert error.status_code == 400
        assert error.options == ["positive", "negative", "zero"]
        assert error.detail == (
            "Invalid value 'unknown' for switch filter. Available options: positive, negative, zero"
        )

    def test_non_string_value_is_unknown(self):
        with pytest.raises(UnknownSwitchValueError):
            apply_filter_operator(User.balance, FilterOperator.SWITCH, ["positive"], BALANCE_CONDITIONS)

    def test_switch_without_conditions(self):
        with pytest.raises(FilterConfigurationError, match="conditions mapping is required"):
            apply_filter_operator(User.balance, FilterOperator.SWITCH, "zero", SwitchPayload(conditions={}))


@pytest.mark.unit
class TestCustomOperator:
    """custom delegates entirely to the builder."""

    def test_builder_receives_value_and_column(self):
        received = {}

        def builder(value, column):
            received["value"] = value
            received["column"] = column
            return column >= Decimal(value)

        predicate = apply_filter_operator(User.balance, FilterOperator.CUSTOM, "2.5", CustomPayload(builder=builder))

        assert received["value"] == "2.5"
        assert received["column"] is User.balance
        assert _sql(predicate) == "users.balance >= 2.5"

    def test_custom_without_builder(self):
        with pytest.raises(FilterConfigurationError, match="'custom' filter operator"):
            apply_filter_operator(User.name, FilterOperator.CUSTOM, "x")


@pytest.mark.unit
def test_build_filter_predicate_uses_instruction_column():
    """Parsed instructions evaluate against their column expression."""
    instruction = FilterInstruction(
        field_name="age",
        column=ColumnRef.of(User.age),
        operator=FilterOperator.LT,
        value=40,
    )

    assert _sql(build_filter_predicate(instruction)) == "users.age < 40"
