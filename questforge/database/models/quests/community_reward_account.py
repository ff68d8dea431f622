"""
CommunityRewardAccount - the per-account claim counter for community rewards.
Schema only.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column

from questforge.core.database.base import Base, IdMixin, TimestampMixin


class CommunityRewardAccount(Base, IdMixin, TimestampMixin):
    """
    Ledger row for one (account, community reward).

    ``reward_claimed_count`` never exceeds the reward's claimable quantity
    unless that quantity is unlimited.
    """

    __tablename__ = "community_reward_accounts"
    __table_args__ = (
        UniqueConstraint(
            "account_id",
            "community_reward_id",
            name="uq_community_reward_accounts_account_reward",
        ),
    )

    account_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    community_reward_id: Mapped[int] = mapped_column(
        ForeignKey("community_rewards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    reward_claimed_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    is_notified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    def __repr__(self) -> str:
        return (
            f"<CommunityRewardAccount(account_id={self.account_id}, "
            f"community_reward_id={self.community_reward_id}, "
            f"count={self.reward_claimed_count})>"
        )
