"""
RewardItem - the payload behind a quest reward (3D asset, image, NFT image).
Schema only.
"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from questforge.core.database.base import Base, IdMixin, TimestampMixin, json_column_type


class RewardItem(Base, IdMixin, TimestampMixin):
    __tablename__ = "reward_items"

    type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    data: Mapped[Dict[str, Any]] = mapped_column(json_column_type, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<RewardItem(id={self.id}, type={self.type})>"
