"""
Database Engine and Sessions

Async SQLAlchemy engine built from settings, plus the FastAPI dependency
that yields one session per request.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from skillgauge.config import settings

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True, echo=False)
SessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for the duration of a request."""
    async with SessionLocal() as session:
        yield session


async def close_db() -> None:
    """Dispose of the connection pool on shutdown."""
    await engine.dispose()
