"""
Quest - a community-defined quest definition.
Schema only: requirement/reward records are stored as ordered JSON lists and
materialised as frozen dataclasses by questforge.domain.models.quest.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import BigInteger, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from questforge.core.database.base import Base, IdMixin, TimestampMixin, json_column_type
from questforge.database.models.enums import JoinOperator


class Quest(Base, IdMixin, TimestampMixin):
    """
    Quest definition owned by one community.

    ``requirements`` holds ``[{"type", "title", "data": [{"key", "value"}]}]``
    and ``rewards`` holds
    ``[{"type", "title", "reward_id", "quantity", "is_sponsored", "category"}]``.
    """

    __tablename__ = "quests"
    __table_args__ = (Index("ix_quests_community_created", "community_id", "created_at"),)

    community_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    schedule: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    starts_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    # Stored for clients; claims do not check it
    ends_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    requirement_join_operator: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default=JoinOperator.OR.value,
        server_default=JoinOperator.OR.value,
    )

    requirements: Mapped[List[Dict[str, Any]]] = mapped_column(
        json_column_type, nullable=False, default=list
    )
    rewards: Mapped[List[Dict[str, Any]]] = mapped_column(
        json_column_type, nullable=False, default=list
    )

    def __repr__(self) -> str:
        return f"<Quest(id={self.id}, community_id={self.community_id}, title={self.title!r})>"
