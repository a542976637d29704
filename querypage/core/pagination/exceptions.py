"""Pagination exceptions.

Two families live here:

- Request errors (``BadRequestException`` subclasses) raised when query
  parameters or cursors sent by a client are invalid. They map to HTTP 400.
- Configuration errors (``PaginationConfigurationError`` subclasses) raised
  when a field registry or pagination config is wired incorrectly. These are
  programming errors and are never shown to clients as a bad request.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from querypage.core.exceptions import BadRequestException


class QueryValidationError(BadRequestException):
    """Query parameters failed validation.

    Attributes:
        parameter: Name of the offending query parameter.
    """

    def __init__(
        self,
        detail: str,
        *,
        parameter: str,
        allowed: Sequence[Any] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.parameter = parameter
        context: dict[str, Any] = {"parameter": parameter}
        if allowed is not None:
            context["allowed"] = list(allowed)
        if extra:
            context.update(extra)
        super().__init__(detail, type="invalid-query", extra=context)


class InvalidCursorError(BadRequestException):
    """Cursor token could not be decoded."""

    def __init__(self, detail: str, *, extra: dict[str, Any] | None = None) -> None:
        context: dict[str, Any] = {"parameter": "cursor"}
        if extra:
            context.update(extra)
        super().__init__(detail, type="invalid-cursor", extra=context)


class MissingCursorFieldError(InvalidCursorError):
    """Cursor does not carry a value the current sort order needs.

    Happens when a cursor issued under one sort configuration is replayed
    against another.

    Attributes:
        field: Cursor key that was expected but absent.
    """

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(
            f"Cursor missing value for field: {field}",
            extra={"field": field},
        )


class UnknownSwitchValueError(BadRequestException):
    """Switch filter received a value with no matching condition.

    Attributes:
        value: Value received from the client.
        options: Keys the filter accepts.
    """

    def __init__(self, value: Any, options: Sequence[str]) -> None:
        self.value = value
        self.options = list(options)
        super().__init__(
            f"Invalid value '{value}' for switch filter. "
            f"Available options: {', '.join(self.options)}",
            type="invalid-filter-value",
            extra={"value": value, "allowed": self.options},
        )


class PaginationConfigurationError(Exception):
    """Base exception for misconfigured pagination.

    Raised when a field registry, filter descriptor or pagination config
    is wired incorrectly. This indicates a bug in the endpoint definition,
    not bad client input.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize configuration error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class FieldConfigurationError(PaginationConfigurationError):
    """Field registry definition is invalid (duplicate names, unnamed columns)."""


class FilterConfigurationError(PaginationConfigurationError):
    """Filter operator is missing the payload it requires."""


class CursorConfigurationError(PaginationConfigurationError):
    """Cursor pagination cannot run with the given configuration or rows."""


__all__ = [
    "CursorConfigurationError",
    "FieldConfigurationError",
    "FilterConfigurationError",
    "InvalidCursorError",
    "MissingCursorFieldError",
    "PaginationConfigurationError",
    "QueryValidationError",
    "UnknownSwitchValueError",
]
