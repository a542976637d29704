"""Cursor encoding and decoding for pagination.

Cursors are opaque strings that encode the position in a result set.
They contain the values of the sort fields for the last row of a page,
allowing the next query to seek directly past that row.

The cursor format is:
1. JSON object holding ``[key, type_tag, value]`` triples in sort order
2. Base64 URL-safe encoded, padding stripped, for use in query strings

Example cursor payload:
    {"v": [["createdAt", "dt", "2025-01-15T10:30:00+00:00"], ["id", "i", 42]]}

Type tags keep ``decode(encode(values)) == values`` exact for datetimes,
UUIDs and decimals, which JSON alone would flatten to strings.

Cursors are not signed. They hide nothing from a determined client and
must not be trusted as authenticated data.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from collections.abc import Callable, Mapping
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from querypage.core.pagination.exceptions import (
    CursorConfigurationError,
    InvalidCursorError,
)

MAX_CURSOR_LENGTH = 4096

_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]+$")

# Order matters: bool before int, datetime before date.
_ENCODERS: tuple[tuple[type, str, Callable[[Any], Any]], ...] = (
    (bool, "b", lambda v: v),
    (int, "i", lambda v: v),
    (float, "f", repr),
    (str, "s", lambda v: v),
    (datetime, "dt", lambda v: v.isoformat()),
    (date, "d", lambda v: v.isoformat()),
    (time, "t", lambda v: v.isoformat()),
    (UUID, "u", str),
    (Decimal, "dec", str),
)

_DECODERS: Mapping[str, Callable[[Any], Any]] = {
    "n": lambda v: None,
    "b": lambda v: _expect(v, bool),
    "i": lambda v: _expect(v, int),
    "f": lambda v: float(_expect(v, str)),
    "s": lambda v: _expect(v, str),
    "dt": lambda v: datetime.fromisoformat(_expect(v, str)),
    "d": lambda v: date.fromisoformat(_expect(v, str)),
    "t": lambda v: time.fromisoformat(_expect(v, str)),
    "u": lambda v: UUID(_expect(v, str)),
    "dec": lambda v: Decimal(_expect(v, str)),
}


def _expect(value: Any, kind: type) -> Any:
    # bool is an int subclass; keep the two tags apart
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        msg = f"expected {kind.__name__}, got {type(value).__name__}"
        raise TypeError(msg)
    return value


class CursorData(BaseModel):
    """Wire representation of a cursor.

    Attributes:
        values: ``(key, type_tag, value)`` triples in sort order
    """

    values: list[tuple[str, str, Any]] = Field(
        description="Tagged sort field values for seeking"
    )

    model_config = ConfigDict(frozen=True)


class CursorCodec:
    """Encode and decode pagination cursors.

    Usage:
        cursor = CursorCodec.encode({"createdAt": datetime.now(UTC), "id": 42})
        values = CursorCodec.decode(cursor)
        # {"createdAt": datetime(...), "id": 42}
    """

    @staticmethod
    def encode(values: Mapping[str, Any]) -> str:
        """Encode ordered field values to an opaque string.

        Args:
            values: Sort field values keyed by cursor key, in sort order

        Returns:
            URL-safe base64 string without padding

        Raises:
            CursorConfigurationError: If a value has an unsupported type
        """
        data = CursorData(
            values=[(key, *CursorCodec._serialize_value(key, value)) for key, value in values.items()]
        )
        json_str = json.dumps({"v": data.values}, separators=(",", ":"))
        return base64.urlsafe_b64encode(json_str.encode()).decode().rstrip("=")

    @staticmethod
    def decode(cursor: str) -> dict[str, Any]:
        """Decode a cursor string back to ordered field values.

        Args:
            cursor: Token previously produced by :meth:`encode`

        Returns:
            Field values in the order they were encoded

        Raises:
            InvalidCursorError: If the cursor is malformed or tampered with
        """
        if not isinstance(cursor, str) or not cursor:
            raise InvalidCursorError("Invalid cursor: empty value")
        if len(cursor) > MAX_CURSOR_LENGTH:
            raise InvalidCursorError(
                f"Invalid cursor: longer than {MAX_CURSOR_LENGTH} characters"
            )
        if not _TOKEN_RE.match(cursor):
            raise InvalidCursorError("Invalid cursor: unexpected characters")

        try:
            padded = cursor + "=" * (-len(cursor) % 4)
            json_str = base64.urlsafe_b64decode(padded.encode()).decode()
            payload = json.loads(json_str)
            if not isinstance(payload, dict):
                raise TypeError("payload is not an object")
            data = CursorData.model_validate({"values": payload.get("v")})
            return {
                key: CursorCodec._deserialize_value(tag, raw)
                for key, tag, raw in data.values
            }
        except (
            binascii.Error,
            UnicodeDecodeError,
            ValueError,
            TypeError,
            KeyError,
            InvalidOperation,
            RecursionError,
        ) as e:
            # json.JSONDecodeError and pydantic.ValidationError are ValueErrors
            raise InvalidCursorError(f"Invalid cursor: {_describe(e)}") from e

    @staticmethod
    def _serialize_value(key: str, value: Any) -> tuple[str, Any]:
        """Return ``(type_tag, json_value)`` for one cursor value."""
        if value is None:
            return "n", None
        for kind, tag, convert in _ENCODERS:
            if isinstance(value, kind):
                return tag, convert(value)
        raise CursorConfigurationError(
            f"Unsupported cursor value type {type(value).__name__}",
            details={"field": key},
        )

    @staticmethod
    def _deserialize_value(tag: str, raw: Any) -> Any:
        decoder = _DECODERS.get(tag)
        if decoder is None:
            raise ValueError(f"unknown value tag {tag!r}")
        return decoder(raw)


def _describe(error: Exception) -> str:
    if isinstance(error, ValidationError):
        return "unexpected payload shape"
    return str(error) or type(error).__name__


__all__ = ["MAX_CURSOR_LENGTH", "CursorCodec", "CursorData"]
