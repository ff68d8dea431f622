"""
ScoreBalance - community score per (address, score type).
Schema only.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from questforge.core.database.base import Base, IdMixin, TimestampMixin


class ScoreBalance(Base, IdMixin, TimestampMixin):
    """Score never goes below zero; ScoreService clamps modifications."""

    __tablename__ = "score_balances"
    __table_args__ = (
        UniqueConstraint("address", "score_type", name="uq_score_balances_address_type"),
    )

    address: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    score_type: Mapped[str] = mapped_column(String(64), nullable=False)
    score: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<ScoreBalance(address={self.address!r}, type={self.score_type!r}, "
            f"score={self.score})>"
        )
