"""Pagination settings for API responses.

Process-wide defaults that individual endpoint configurations start from.
``PaginationConfig.from_settings`` copies these into a per-endpoint config,
where they can still be overridden.

Environment variables use PAGINATION_ prefix.
Example: PAGINATION_DEFAULT_LIMIT=25, PAGINATION_MAX_LIMIT=200
"""

from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PaginationSettings(BaseSettings):
    """Pagination configuration settings.

    Attributes:
        default_limit: Page size used when the client sends no ``limit``.
        max_limit: Largest ``limit`` a client may request.
        allow_custom_limit: Whether clients may send ``limit`` at all.
        allow_custom_sort: Whether clients may send ``sortBy``/``sortOrder``.
        allow_multiple_sort: Whether ``sortBy`` may name more than one field.

    Example:
        settings = PaginationSettings()
        config = PaginationConfig.from_settings(settings, mode="cursor", cursor_id_field=User.id)
    """

    default_limit: int = Field(
        default=10,
        ge=1,
        le=10000,
        description="Default page size when limit not specified",
    )
    max_limit: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum allowed page size (hard limit)",
    )
    allow_custom_limit: bool = Field(
        default=True,
        description="Accept the limit query parameter",
    )
    allow_custom_sort: bool = Field(
        default=True,
        description="Accept sortBy/sortOrder query parameters",
    )
    allow_multiple_sort: bool = Field(
        default=True,
        description="Accept more than one field in sortBy",
    )

    model_config = SettingsConfigDict(
        env_prefix="PAGINATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_limits(self) -> PaginationSettings:
        if self.default_limit > self.max_limit:
            msg = f"default_limit ({self.default_limit}) must not exceed max_limit ({self.max_limit})"
            raise ValueError(msg)
        return self
