"""
SQLAlchemy Base Model and Mixins

Provides base class and common mixins for all SkillGauge models.
Column types are portable (no dialect-specific arrays) so the same models
run on PostgreSQL in deployment and SQLite in tests.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import DateTime, String, event
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def new_id() -> str:
    return str(uuid4())


class StringIdPrimaryKeyMixin:
    """Mixin for string primary keys.

    Content ids come from the authoring tooling and are opaque strings;
    engine-created rows get a UUID string.
    """

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=new_id, comment="Opaque string id"
    )


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps.

    All timestamps use UTC (timezone-aware).
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
        comment="Creation timestamp (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
        comment="Last update timestamp (UTC)",
    )


# Event listeners to auto-generate ids and timestamps for in-memory objects
@event.listens_for(StringIdPrimaryKeyMixin, "init", propagate=True)
def receive_init_id(target, args, kwargs):  # type: ignore[no-untyped-def]
    """Auto-generate an id on instance creation if not provided."""
    if "id" not in kwargs:
        target.id = new_id()


@event.listens_for(TimestampMixin, "init", propagate=True)
def receive_init_timestamps(target, args, kwargs):  # type: ignore[no-untyped-def]
    """Auto-generate timestamps on instance creation if not provided."""
    now = datetime.now(UTC)
    if "created_at" not in kwargs:
        target.created_at = now
    if "updated_at" not in kwargs:
        target.updated_at = now
