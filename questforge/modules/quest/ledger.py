"""
Claim Ledger
============

Purpose
-------
Repositories over the quest claim tables, plus the two atomic writes that
make claims idempotent under concurrency:

- ``CommunityQuestAccountRepository.claim_slot``: insert the (account,
  community quest) row if absent, then flip ``reward_claimed`` with a
  conditional UPDATE. Exactly one concurrent caller sees a row count of 1.
- ``CommunityRewardAccountRepository.increment_claimed_count``: insert the
  (account, community reward) row if absent, then a bounded counter UPDATE
  guarded by the claimable quantity.

Both are meant to be the first statements of the claim transaction; nothing
is issued unless they succeed.

Design Notes
------------
- ``insert_if_absent`` emits ``ON CONFLICT DO NOTHING`` (PostgreSQL
  and SQLite both support it) against the ledger's unique constraint.
- Rows are never deleted; ``reward_claimed`` never reverts.
- Callers own the transaction (``DatabaseService.get_transaction``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import select, update

from questforge.database.models import (
    UNLIMITED_QUANTITY,
    CommunityQuest,
    CommunityQuestAccount,
    CommunityReward,
    CommunityRewardAccount,
    Quest,
)
from questforge.modules.shared.base_repository import BaseRepository, insert_if_absent

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


# ============================================================================
# Repositories
# ============================================================================


class QuestRepository(BaseRepository[Quest]):
    pass


class CommunityQuestRepository(BaseRepository[CommunityQuest]):
    async def find_by_pair(
        self,
        session: AsyncSession,
        community_id: int,
        quest_id: int,
        *,
        for_update: bool = False,
    ) -> Optional[CommunityQuest]:
        return await self.find_one_where(
            session,
            CommunityQuest.community_id == community_id,
            CommunityQuest.quest_id == quest_id,
            for_update=for_update,
        )


class CommunityQuestAccountRepository(BaseRepository[CommunityQuestAccount]):
    """Ledger of quest claims, one row per (account, community quest)."""

    async def find_entry(
        self, session: AsyncSession, account_id: int, community_quest_id: int
    ) -> Optional[CommunityQuestAccount]:
        return await self.find_one_where(
            session,
            CommunityQuestAccount.account_id == account_id,
            CommunityQuestAccount.community_quest_id == community_quest_id,
        )

    async def ensure_entry(
        self, session: AsyncSession, account_id: int, community_quest_id: int
    ) -> None:
        """Create the unclaimed row if it does not exist yet."""
        await session.execute(
            insert_if_absent(
                session,
                CommunityQuestAccount,
                {
                    "account_id": account_id,
                    "community_quest_id": community_quest_id,
                    "reward_claimed": False,
                    "is_notified": False,
                },
                ["account_id", "community_quest_id"],
            )
        )

    async def claim_slot(
        self, session: AsyncSession, account_id: int, community_quest_id: int
    ) -> bool:
        """
        Atomically mark the reward as claimed.

        Returns:
            True if this call flipped ``reward_claimed``; False if the reward
            was already claimed (by this or a concurrent caller).
        """
        await self.ensure_entry(session, account_id, community_quest_id)

        stmt = (
            update(CommunityQuestAccount)
            .where(
                CommunityQuestAccount.account_id == account_id,
                CommunityQuestAccount.community_quest_id == community_quest_id,
                CommunityQuestAccount.reward_claimed.is_(False),
            )
            .values(reward_claimed=True, is_notified=True)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        claimed = result.rowcount == 1

        self.log.debug(
            "Ledger claim slot",
            extra={
                "account_id": account_id,
                "community_quest_id": community_quest_id,
                "claimed": claimed,
            },
        )
        return claimed

    async def is_claimed(
        self, session: AsyncSession, account_id: int, community_quest_id: int
    ) -> bool:
        entry = await self.find_entry(session, account_id, community_quest_id)
        return bool(entry and entry.reward_claimed)

    async def mark_notified(
        self, session: AsyncSession, account_id: int, community_quest_id: int
    ) -> bool:
        stmt = (
            update(CommunityQuestAccount)
            .where(
                CommunityQuestAccount.account_id == account_id,
                CommunityQuestAccount.community_quest_id == community_quest_id,
            )
            .values(is_notified=True)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount > 0


class CommunityRewardRepository(BaseRepository[CommunityReward]):
    pass


class CommunityRewardAccountRepository(BaseRepository[CommunityRewardAccount]):
    """Per-account claim counters of community rewards."""

    async def find_entry(
        self, session: AsyncSession, account_id: int, community_reward_id: int
    ) -> Optional[CommunityRewardAccount]:
        return await self.find_one_where(
            session,
            CommunityRewardAccount.account_id == account_id,
            CommunityRewardAccount.community_reward_id == community_reward_id,
        )

    async def claimed_count(
        self, session: AsyncSession, account_id: int, community_reward_id: int
    ) -> int:
        entry = await self.find_entry(session, account_id, community_reward_id)
        return entry.reward_claimed_count if entry else 0

    async def increment_claimed_count(
        self,
        session: AsyncSession,
        account_id: int,
        community_reward_id: int,
        claimable_quantity: int,
    ) -> Optional[int]:
        """
        Bounded counter claim.

        Returns:
            The new claimed count, or None when the account already reached
            ``claimable_quantity``. Unlimited rewards (-1) always increment.
        """
        await session.execute(
            insert_if_absent(
                session,
                CommunityRewardAccount,
                {
                    "account_id": account_id,
                    "community_reward_id": community_reward_id,
                    "reward_claimed_count": 0,
                    "is_notified": False,
                },
                ["account_id", "community_reward_id"],
            )
        )

        conditions = [
            CommunityRewardAccount.account_id == account_id,
            CommunityRewardAccount.community_reward_id == community_reward_id,
        ]
        if claimable_quantity != UNLIMITED_QUANTITY:
            conditions.append(
                CommunityRewardAccount.reward_claimed_count < claimable_quantity
            )

        result = await session.execute(
            update(CommunityRewardAccount)
            .where(*conditions)
            .values(reward_claimed_count=CommunityRewardAccount.reward_claimed_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.log.debug(
                "Community reward claim limit reached",
                extra={
                    "account_id": account_id,
                    "community_reward_id": community_reward_id,
                    "claimable_quantity": claimable_quantity,
                },
            )
            return None

        count = await session.scalar(
            select(CommunityRewardAccount.reward_claimed_count).where(
                CommunityRewardAccount.account_id == account_id,
                CommunityRewardAccount.community_reward_id == community_reward_id,
            )
        )
        return int(count)

    async def mark_notified(
        self, session: AsyncSession, account_id: int, community_reward_id: int
    ) -> bool:
        result = await session.execute(
            update(CommunityRewardAccount)
            .where(
                CommunityRewardAccount.account_id == account_id,
                CommunityRewardAccount.community_reward_id == community_reward_id,
            )
            .values(is_notified=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
