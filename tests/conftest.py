"""
Pytest Configuration and Fixtures

Shared test fixtures for unit, API and integration tests.
"""

import os

# Must be set before skillgauge.config builds the global settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import configure_mappers  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from skillgauge.core.models import Base  # noqa: E402

# Ensure all mappers are configured
configure_mappers()


@pytest.fixture
async def async_engine():
    """Create async engine on a fresh in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncSession:
    """Create database session for testing."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
