"""FastAPI dependencies."""

from querypage.core.dependencies.pagination import RawQueryParams, raw_query_params

__all__ = ["RawQueryParams", "raw_query_params"]
