"""
Community score balances.

Default ``ScoreEffect`` and ``ScoreTotalProvider``. Scores are kept per
(address, score type) and never drop below zero: a modifier that would take
a balance negative leaves it at 0. ``spend_score`` is the refusing
counterpart used for purchases.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import select, update

from questforge.core.database.service import DatabaseService
from questforge.core.logging.logger import get_logger
from questforge.database.models import ScoreBalance
from questforge.modules.shared.base_repository import BaseRepository, insert_if_absent
from questforge.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def normalize_address(address: str) -> str:
    return address.strip().lower()


class ScoreBalanceRepository(BaseRepository[ScoreBalance]):
    async def find_balance(
        self,
        session: AsyncSession,
        address: str,
        score_type: str,
        *,
        for_update: bool = False,
    ) -> ScoreBalance | None:
        return await self.find_one_where(
            session,
            ScoreBalance.address == address,
            ScoreBalance.score_type == score_type,
            for_update=for_update,
        )


class ScoreService:
    def __init__(self) -> None:
        self.log = get_logger(__name__)
        self._repo = ScoreBalanceRepository(
            ScoreBalance, get_logger(f"{__name__}.ScoreBalanceRepository")
        )

    async def modify_score(
        self,
        session: AsyncSession,
        *,
        address: str,
        score_type: str,
        modifier: int,
    ) -> int:
        """Apply a signed modifier; returns the clamped new score."""
        if not address:
            raise ValidationError("address", "a score needs an address")
        if not score_type:
            raise ValidationError("score_type", "a score needs a score type")

        address = normalize_address(address)
        await session.execute(
            insert_if_absent(
                session,
                ScoreBalance,
                {"address": address, "score_type": score_type, "score": 0},
                ["address", "score_type"],
            )
        )
        balance = await self._repo.find_balance(
            session, address, score_type, for_update=True
        )
        assert balance is not None
        previous = balance.score
        balance.score = max(previous + modifier, 0)
        await self._repo.flush(session)

        self.log.info(
            "Score modified",
            extra={
                "address": address,
                "score_type": score_type,
                "modifier": modifier,
                "previous_score": previous,
                "new_score": balance.score,
            },
        )
        return balance.score

    async def spend_score(
        self,
        session: AsyncSession,
        *,
        address: str,
        score_type: str,
        amount: int,
    ) -> Optional[int]:
        """
        Debit ``amount`` only if the balance covers it.

        A single conditional UPDATE, so concurrent spends of the same
        balance cannot both succeed.

        Returns:
            The new score, or None when the balance is below ``amount``
        """
        if not address:
            raise ValidationError("address", "a score needs an address")
        if amount < 0:
            raise ValidationError("amount", "cannot spend a negative amount")

        address = normalize_address(address)
        result = await session.execute(
            update(ScoreBalance)
            .where(
                ScoreBalance.address == address,
                ScoreBalance.score_type == score_type,
                ScoreBalance.score >= amount,
            )
            .values(score=ScoreBalance.score - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.log.info(
                "Score spend refused; balance too low",
                extra={"address": address, "score_type": score_type, "amount": amount},
            )
            return None

        score = await session.scalar(
            select(ScoreBalance.score).where(
                ScoreBalance.address == address,
                ScoreBalance.score_type == score_type,
            )
        )
        self.log.info(
            "Score spent",
            extra={"address": address, "score_type": score_type, "amount": amount, "new_score": score},
        )
        return int(score)

    async def get_score(self, session: AsyncSession, address: str, score_type: str) -> int:
        balance = await self._repo.find_balance(
            session, normalize_address(address), score_type
        )
        return balance.score if balance else 0

    async def get_community_score(self, address: str, score_type: str) -> int:
        """Read-only total used for community reward eligibility."""
        async with DatabaseService.get_session() as session:
            return await self.get_score(session, address, score_type)
