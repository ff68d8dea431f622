"""
CommunityQuest - binds a quest to a community and tracks participants.
Schema only.
"""

from __future__ import annotations

from typing import List

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column

from questforge.core.database.base import Base, IdMixin, TimestampMixin, json_column_type


class CommunityQuest(Base, IdMixin, TimestampMixin):
    """
    One row per (community, quest).

    ``accounts`` is the participant list counted by COMMUNITY_PARTICIPATION
    requirements. ``is_archived`` overrides every other status input.
    """

    __tablename__ = "community_quests"
    __table_args__ = (
        UniqueConstraint("community_id", "quest_id", name="uq_community_quests_community_quest"),
        Index("ix_community_quests_archived_community", "is_archived", "community_id"),
    )

    community_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    quest_id: Mapped[int] = mapped_column(
        ForeignKey("quests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    accounts: Mapped[List[int]] = mapped_column(json_column_type, nullable=False, default=list)
    is_archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    @property
    def participant_count(self) -> int:
        return len(self.accounts or [])

    def __repr__(self) -> str:
        return (
            f"<CommunityQuest(id={self.id}, community_id={self.community_id}, "
            f"quest_id={self.quest_id}, archived={self.is_archived})>"
        )
