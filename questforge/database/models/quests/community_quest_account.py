"""
CommunityQuestAccount - the per-account claim ledger for community quests.
Schema only.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column

from questforge.core.database.base import Base, IdMixin, TimestampMixin


class CommunityQuestAccount(Base, IdMixin, TimestampMixin):
    """
    Ledger row for one (account, community quest).

    The unique constraint is what makes insert-if-absent safe under
    concurrency. ``reward_claimed`` only ever moves from False to True and
    rows are never deleted.
    """

    __tablename__ = "community_quest_accounts"
    __table_args__ = (
        UniqueConstraint(
            "account_id",
            "community_quest_id",
            name="uq_community_quest_accounts_account_quest",
        ),
        Index("ix_community_quest_accounts_notified_account", "is_notified", "account_id"),
    )

    account_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    community_quest_id: Mapped[int] = mapped_column(
        ForeignKey("community_quests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    reward_claimed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    is_notified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    def __repr__(self) -> str:
        return (
            f"<CommunityQuestAccount(account_id={self.account_id}, "
            f"community_quest_id={self.community_quest_id}, "
            f"reward_claimed={self.reward_claimed})>"
        )
