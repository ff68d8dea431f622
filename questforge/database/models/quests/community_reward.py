"""
CommunityReward - a reward a community offers in exchange for score.
Schema only.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import BigInteger, Boolean, Integer, String, false
from sqlalchemy.orm import Mapped, mapped_column

from questforge.core.database.base import Base, IdMixin, TimestampMixin, json_column_type

UNLIMITED_QUANTITY = -1


class CommunityReward(Base, IdMixin, TimestampMixin):
    """
    ``score`` is the community score required (BATTLE_PASS) or spent
    (EXCHANGE). ``claimable_quantity`` caps claims per account; -1 means
    unlimited.
    """

    __tablename__ = "community_rewards"

    community_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reward: Mapped[Dict[str, Any]] = mapped_column(json_column_type, nullable=False, default=dict)
    type: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    claimable_quantity: Mapped[int] = mapped_column(
        Integer, nullable=False, default=UNLIMITED_QUANTITY
    )
    is_archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    @property
    def is_unlimited(self) -> bool:
        return self.claimable_quantity == UNLIMITED_QUANTITY

    def __repr__(self) -> str:
        return (
            f"<CommunityReward(id={self.id}, community_id={self.community_id}, "
            f"type={self.type}, score={self.score})>"
        )
