"""
ORM base classes and mixins.

Every model inherits from ``Base`` and opts into ``IdMixin`` (integer
surrogate key) and ``TimestampMixin`` (created/updated audit columns).
Models are schema only: behavior lives in services and domain models.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, BigInteger, DateTime, Integer, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# JSONB on PostgreSQL, generic JSON elsewhere (SQLite in tests)
json_column_type = JSON().with_variant(JSONB(), "postgresql")

# SQLite only autoincrements INTEGER PRIMARY KEY columns
_id_column_type = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """Declarative base shared by all Questforge models."""


class IdMixin:
    """Integer surrogate primary key."""

    id: Mapped[int] = mapped_column(
        _id_column_type,
        primary_key=True,
        autoincrement=True,
    )


class TimestampMixin:
    """Creation and last-update timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )
