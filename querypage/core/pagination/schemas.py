"""Pagination response schemas.

Two page shapes, one per strategy:

1. OffsetPage: rows plus the page number and page size that produced them.
2. CursorPage: rows plus the cursor for the following page, or None when
   the result set is exhausted.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field, computed_field

T = TypeVar("T")


class OffsetPage(BaseModel, Generic[T]):
    """Offset pagination response.

    Usage:
        @router.get("/users", response_model=OffsetPage[UserResponse])
        async def list_users(request: Request, session: AsyncSession = Depends(get_session)):
            instructions = parse_query(USER_FIELDS, USER_PAGINATION, raw_query_params(request))
            return await PaginationExecutor(SQLAlchemyBackend(session)).execute(select(User), instructions)

    Attributes:
        rows: Rows for the requested page
        page: 1-based page number
        limit: Page size used for the query
    """

    rows: list[T] = Field(
        default_factory=list,
        description="Rows for this page",
    )
    page: int = Field(
        default=1,
        ge=1,
        description="1-based page number",
    )
    limit: int = Field(
        gt=0,
        description="Page size",
    )


class CursorPage(BaseModel, Generic[T]):
    """Cursor pagination response.

    Client navigation:
        # First page
        GET /users?limit=10

        # Next page (using nextCursor from the previous response)
        GET /users?limit=10&cursor=eyJ2IjpbWyJjcmVhdGVkQXQi...

    Attributes:
        rows: Rows for this page
        next_cursor: Cursor for the next page (None if no more), serialized
            as ``nextCursor``
    """

    rows: list[T] = Field(
        default_factory=list,
        description="Rows for this page",
    )
    next_cursor: str | None = Field(
        default=None,
        serialization_alias="nextCursor",
        description="Cursor to fetch next page",
    )

    @computed_field(alias="hasMore")  # type: ignore[prop-decorator]
    @property
    def has_more(self) -> bool:
        """Whether more items exist after this page."""
        return self.next_cursor is not None


__all__ = [
    "CursorPage",
    "OffsetPage",
]
