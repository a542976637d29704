"""Query parameter extraction for FastAPI routes.

The pagination parser consumes a plain mapping of parameter name to value.
Starlette keeps repeated parameters (``?sortBy=name&sortBy=age``) as
multiple entries, and ``request.query_params[name]`` only returns the last
one, so routes should convert through :func:`raw_query_params`.

Usage:
    from querypage.core.dependencies.pagination import RawQueryParams

    @router.get("/users", response_model=CursorPage[UserResponse])
    async def list_users(params: RawQueryParams, session: SessionDep):
        instructions = parse_query(USER_FIELDS, USER_PAGINATION, params)
        return await PaginationExecutor(SQLAlchemyBackend(session)).execute(
            select(User), instructions
        )
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request


def raw_query_params(request: Request) -> dict[str, str | list[str]]:
    """Collect query parameters, keeping repeated names as lists.

    Returns:
        Mapping of name to its single value, or to all values in order when
        the parameter was repeated.
    """
    params: dict[str, str | list[str]] = {}
    for key, value in request.query_params.multi_items():
        existing = params.get(key)
        if existing is None:
            params[key] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            params[key] = [existing, value]
    return params


RawQueryParams = Annotated[dict[str, str | list[str]], Depends(raw_query_params)]
