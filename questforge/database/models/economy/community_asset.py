"""
CommunityAsset - a 3D asset placed in a community, with a copy limit.
Schema only.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from questforge.core.database.base import Base, IdMixin, TimestampMixin
from questforge.database.models.enums import RewardType


class CommunityAsset(Base, IdMixin, TimestampMixin):
    """``max_quantity`` is the number of copies the community may place."""

    __tablename__ = "community_assets"
    __table_args__ = (
        UniqueConstraint("community_id", "asset_id", name="uq_community_assets_community_asset"),
    )

    community_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    asset_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    type: Mapped[str] = mapped_column(
        String(16), nullable=False, default=RewardType.ASSET_3D.value
    )
    max_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return (
            f"<CommunityAsset(community_id={self.community_id}, asset_id={self.asset_id}, "
            f"max_quantity={self.max_quantity})>"
        )
