"""Unit tests for the page response models."""
from __future__ import annotations

import pytest

from querypage.core.pagination import CursorPage, OffsetPage


@pytest.mark.unit
class TestOffsetPage:
    def test_json_shape(self):
        page = OffsetPage[int](rows=[1, 2], page=2, limit=2)

        assert page.model_dump(by_alias=True) == {"rows": [1, 2], "page": 2, "limit": 2}


@pytest.mark.unit
class TestCursorPage:
    """Cursor fields are camelCase on the wire and snake_case in Python."""

    def test_json_shape(self):
        page = CursorPage[int](rows=[1], next_cursor="abc")

        assert page.model_dump(by_alias=True) == {"rows": [1], "nextCursor": "abc", "hasMore": True}

    def test_python_names(self):
        page = CursorPage[int](rows=[1], next_cursor="abc")

        assert page.next_cursor == "abc"
        assert page.model_dump()["next_cursor"] == "abc"

    def test_last_page(self):
        page = CursorPage[int](rows=[])

        assert page.model_dump(by_alias=True) == {"rows": [], "nextCursor": None, "hasMore": False}
