"""
AccountInventory - items an account owns, keyed by (reward_id, reward_type).
Schema only.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from questforge.core.database.base import Base, IdMixin, TimestampMixin


class AccountInventory(Base, IdMixin, TimestampMixin):
    __tablename__ = "account_inventories"
    __table_args__ = (
        UniqueConstraint(
            "account_id",
            "reward_id",
            "reward_type",
            name="uq_account_inventories_account_reward",
        ),
    )

    account_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    reward_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    reward_type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return (
            f"<AccountInventory(account_id={self.account_id}, reward_id={self.reward_id}, "
            f"type={self.reward_type}, quantity={self.quantity})>"
        )
