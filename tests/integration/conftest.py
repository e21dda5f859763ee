"""Shared fixtures for integration tests requiring live infrastructure."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine

from profyld.config import get_settings
from profyld.storage.orm import Profile

# ── Engine (module-scoped, shared across test module) ──────────────


@pytest.fixture(scope="module")
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an async engine from settings (module-scoped)."""
    engine = create_async_engine(
        get_settings().database_url,
        pool_size=5,
        max_overflow=0,
    )
    yield engine
    await engine.dispose()


# ── Session with savepoint rollback ───────────────────────────────


@pytest.fixture()
async def db_session(
    async_engine: AsyncEngine,
) -> AsyncGenerator[AsyncSession]:
    """Provide a session wrapped in a transaction, rolled back after test."""
    async with async_engine.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(bind=conn, expire_on_commit=False)

        yield session

        await session.close()
        await trans.rollback()


# ── Seeds ─────────────────────────────────────────────────────────


def _username() -> str:
    return f"it_{uuid.uuid4().hex[:12]}"


@pytest.fixture()
async def seed_profile(db_session: AsyncSession) -> Profile:
    """Free-tier profile without a custom domain."""
    profile = Profile(user_id=uuid.uuid4(), username=_username())
    db_session.add(profile)
    await db_session.flush()
    return profile


@pytest.fixture()
async def seed_domain_profile(db_session: AsyncSession) -> Profile:
    """Pro profile with a verified custom domain."""
    profile = Profile(
        user_id=uuid.uuid4(),
        username=_username(),
        subscription_tier="pro",
        custom_domain=f"{uuid.uuid4().hex[:10]}.example.org",
        custom_domain_verified=True,
    )
    db_session.add(profile)
    await db_session.flush()
    return profile
