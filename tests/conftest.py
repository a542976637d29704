"""Pytest configuration and shared fixtures.

Organization:
    - Registry Fixtures: field registry and pagination configs for the test models
    - Database Fixtures: async in-memory SQLite engine, session and seed data
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from querypage.core.pagination import FieldRegistry, PaginationConfig
from querypage.core.settings import get_pagination_settings
from tests.models import USER_FIELDS, Base, Tag, User, user_tags

# ============================================================================
# Registry Fixtures
# ============================================================================


@pytest.fixture
def user_fields() -> FieldRegistry:
    """Field registry covering every operator kind."""
    return USER_FIELDS


@pytest.fixture
def cursor_config() -> PaginationConfig:
    return PaginationConfig(mode="cursor", cursor_id_field=User.id)


@pytest.fixture
def offset_config() -> PaginationConfig:
    return PaginationConfig(mode="offset", default_sort=[(User.id, "asc")])


@pytest.fixture
def both_config() -> PaginationConfig:
    return PaginationConfig(mode="both", cursor_id_field=User.id)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Drop cached settings so env overrides in one test don't leak."""
    get_pagination_settings.cache_clear()
    yield
    get_pagination_settings.cache_clear()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine with in-memory SQLite and the test schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create async database session bound to the in-memory database."""
    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded_session(db_session: AsyncSession) -> AsyncSession:
    """Session with ten users, several sharing names and ages.

    User i (1-10): name cycles ann/bob/cid, age is 20 for odd ids and 30
    for even ids, balance cycles -5/0/5, created_at is 2025-01-i 12:00.
    Tags: user 2 -> admin, user 5 -> admin + staff.
    """
    names = ["ann", "bob", "cid"]
    balances = [Decimal("-5"), Decimal("0"), Decimal("5")]
    db_session.add_all(
        [
            User(
                id=i,
                name=names[(i - 1) % 3],
                age=20 if i % 2 else 30,
                balance=balances[(i - 1) % 3],
                created_at=datetime(2025, 1, i, 12, 0),
            )
            for i in range(1, 11)
        ]
    )
    db_session.add_all([Tag(id=1, label="admin"), Tag(id=2, label="staff")])
    await db_session.flush()
    await db_session.execute(
        user_tags.insert(),
        [{"user_id": 2, "tag_id": 1}, {"user_id": 5, "tag_id": 1}, {"user_id": 5, "tag_id": 2}],
    )
    await db_session.commit()
    return db_session
