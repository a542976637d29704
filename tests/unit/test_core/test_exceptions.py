"""Tests for core and pagination exceptions."""

from querypage.core import exceptions as exc
from querypage.core.pagination import exceptions as pexc


def test_app_exception_defaults_title() -> None:
    error = exc.AppException(status_code=400, detail="bad")
    assert error.title == "Bad Request"
    assert error.extra == {}
    assert error.type == "about:blank"


def test_app_exception_unknown_status_title() -> None:
    error = exc.AppException(status_code=418, detail="teapot")
    assert error.title == "Error"


def test_bad_request_exception_fields() -> None:
    error = exc.BadRequestException(detail="nope", extra={"parameter": "limit"})
    assert error.status_code == 400
    assert error.type == "bad-request"
    assert error.title == "Bad Request"
    assert str(error) == "nope"


def test_query_validation_error_context() -> None:
    error = pexc.QueryValidationError(
        "bad sort",
        parameter="sortBy",
        allowed=("name", "age"),
        extra={"received": ["nickname"]},
    )
    assert isinstance(error, exc.BadRequestException)
    assert error.type == "invalid-query"
    assert error.parameter == "sortBy"
    assert error.extra == {
        "parameter": "sortBy",
        "allowed": ["name", "age"],
        "received": ["nickname"],
    }


def test_invalid_cursor_error_names_parameter() -> None:
    error = pexc.InvalidCursorError("Invalid cursor: empty value")
    assert error.status_code == 400
    assert error.extra == {"parameter": "cursor"}


def test_missing_cursor_field_error() -> None:
    error = pexc.MissingCursorFieldError("createdAt")
    assert isinstance(error, pexc.InvalidCursorError)
    assert error.field == "createdAt"
    assert error.detail == "Cursor missing value for field: createdAt"
    assert error.extra["field"] == "createdAt"


def test_unknown_switch_value_error() -> None:
    error = pexc.UnknownSwitchValueError("huge", ["positive", "negative", "zero"])
    assert error.detail == "Invalid value 'huge' for switch filter. Available options: positive, negative, zero"
    assert error.extra["allowed"] == ["positive", "negative", "zero"]


def test_configuration_errors_are_not_bad_requests() -> None:
    for error_cls in (
        pexc.FieldConfigurationError,
        pexc.FilterConfigurationError,
        pexc.CursorConfigurationError,
    ):
        error = error_cls("misconfigured")
        assert isinstance(error, pexc.PaginationConfigurationError)
        assert not isinstance(error, exc.AppException)


def test_configuration_error_formats_details() -> None:
    error = pexc.FilterConfigurationError("table is required", details={"alias": "tagId"})
    assert str(error) == "table is required (alias='tagId')"
    assert str(pexc.FilterConfigurationError("plain")) == "plain"
