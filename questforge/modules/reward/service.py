"""
Community Reward Service
========================

Purpose
-------
Rewards a community offers for its score: BATTLE_PASS rewards require a
score total, EXCHANGE rewards also spend it.

Domain
------
- Eligibility: not archived, invoker with a linked address, claimed count
  below the claimable quantity (unless -1), score total >= reward score
- Claim: bounded counter first, then the EXCHANGE debit, then issuance, all
  in one transaction

Guarantees
----------
- An account never claims a limited reward more than ``claimable_quantity``
  times, even under concurrent claims.
- An EXCHANGE debit is a conditional write: concurrent claims cannot spend
  the same score twice, and a balance below the price rejects the claim.
- A failed issuance or debit rolls back the counter increment.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from questforge.core.config.config import Config
from questforge.core.database.circuit_breaker import CircuitBreakerOpenError
from questforge.core.database.service import DatabaseService
from questforge.core.logging.logger import LogContext, get_logger
from questforge.database.models import CommunityReward, CommunityRewardAccount
from questforge.database.models.enums import CommunityRewardType
from questforge.domain.models.base import DomainValidationError
from questforge.domain.models.quest import CommunityRewardClaimResult, Invoker, Reward
from questforge.modules.oracles.guard import OracleGuard
from questforge.modules.quest.ledger import (
    CommunityRewardAccountRepository,
    CommunityRewardRepository,
)
from questforge.modules.quest.rewards import Recipient
from questforge.modules.shared.base_service import BaseService
from questforge.modules.shared.exceptions import (
    ClaimRejectedError,
    InternalError,
    InvalidOperationError,
    NotFoundError,
    OracleUnavailableError,
    UnauthorizedError,
)

if TYPE_CHECKING:
    from questforge.core.event.bus import EventBus
    from questforge.modules.oracles.interfaces import ScoreTotalProvider
    from questforge.modules.quest.rewards import RewardIssuer


class CommunityRewardService(BaseService):
    """
    Service for community reward claims.

    ``score_type_for`` maps a community to the score category its rewards
    are priced in; by default every community uses ``Config.score_type()``.
    """

    def __init__(
        self,
        issuer: RewardIssuer,
        score_provider: ScoreTotalProvider,
        *,
        event_bus: Optional[EventBus] = None,
        guard: Optional[OracleGuard] = None,
        score_type_for: Optional[Callable[[int], Optional[str]]] = None,
    ) -> None:
        super().__init__(Config, event_bus, get_logger(__name__))
        self._issuer = issuer
        self._scores = score_provider
        self._guard = guard or OracleGuard()
        self._score_type_for = score_type_for or (lambda _community_id: Config.score_type())

        self._rewards = CommunityRewardRepository(
            CommunityReward, get_logger(f"{__name__}.CommunityRewardRepository")
        )
        self._counters = CommunityRewardAccountRepository(
            CommunityRewardAccount,
            get_logger(f"{__name__}.CommunityRewardAccountRepository"),
        )

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def can_claim_community_reward(
        self, community_reward_id: int, invoker: Optional[Invoker]
    ) -> bool:
        async with DatabaseService.get_session() as session:
            community_reward = await self._rewards.get(session, community_reward_id)
            if community_reward is None:
                return False
            claimed = (
                await self._counters.claimed_count(session, invoker.account_id, community_reward.id)
                if invoker is not None
                else 0
            )
        return await self._is_eligible(community_reward, invoker, claimed)

    async def list_community_rewards(
        self,
        community_id: int,
        limit: int = 20,
        offset: int = 0,
        sort: Optional[str] = None,
        include_archived: bool = False,
    ) -> List[CommunityReward]:
        self.validate_positive_int(limit, "limit")
        self.validate_non_negative_int(offset, "offset")
        conditions = [CommunityReward.community_id == community_id]
        if not include_archived:
            conditions.append(CommunityReward.is_archived.is_(False))
        async with DatabaseService.get_session() as session:
            return await self._rewards.find_many_where(
                session, *conditions, limit=limit, offset=offset, sort=sort
            )

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def claim_community_reward_or_error(
        self, community_reward_id: int, invoker: Optional[Invoker]
    ) -> CommunityRewardClaimResult:
        """
        Claim a community reward.

        Raises:
            NotFoundError: Unknown community reward
            UnauthorizedError: No invoker
            ClaimRejectedError: Not eligible, or the claim limit or the score
                was used up by a concurrent claim
            InvalidOperationError: The stored reward cannot be issued
            InternalError: Persistence failure (rolled back)
        """
        async with DatabaseService.get_session() as session:
            community_reward = await self._rewards.get(session, community_reward_id)
            if community_reward is None:
                raise NotFoundError("CommunityReward", community_reward_id)
            if invoker is None:
                raise UnauthorizedError("claim_community_reward")
            claimed = await self._counters.claimed_count(
                session, invoker.account_id, community_reward.id
            )

        async with LogContext(
            account_id=invoker.account_id,
            community_id=community_reward.community_id,
            operation="claim_community_reward",
        ):
            if not await self._is_eligible(community_reward, invoker, claimed):
                raise ClaimRejectedError("Reward cannot be claimed at this time")

            try:
                reward = Reward.from_dict(community_reward.reward)
            except DomainValidationError as exc:
                raise InvalidOperationError("claim_community_reward", str(exc)) from exc

            assert invoker.primary_address is not None
            score_type = self._score_type_for(community_reward.community_id)
            is_exchange = community_reward.type == CommunityRewardType.EXCHANGE.value
            recipient = Recipient(
                community_id=community_reward.community_id,
                account_id=invoker.account_id,
                address=invoker.primary_address,
            )

            self.log_operation(
                "claim_community_reward",
                community_reward_id=community_reward.id,
                reward_type=reward.type.value,
                exchange=is_exchange,
            )

            try:
                async with DatabaseService.get_transaction() as session:
                    new_count = await self._counters.increment_claimed_count(
                        session,
                        invoker.account_id,
                        community_reward.id,
                        community_reward.claimable_quantity,
                    )
                    if new_count is None:
                        raise ClaimRejectedError("Claim limit reached")

                    if is_exchange and community_reward.score:
                        remaining = await self._issuer.score_effect.spend_score(
                            session,
                            address=invoker.primary_address,
                            score_type=score_type,
                            amount=community_reward.score,
                        )
                        if remaining is None:
                            raise ClaimRejectedError("Not enough score for this reward")

                    await self._issuer.issue(session, reward, recipient)
            except (SQLAlchemyError, CircuitBreakerOpenError) as exc:
                self.log_error("claim_community_reward", exc, community_reward_id=community_reward.id)
                raise InternalError("claim_community_reward", exc) from exc

        score_debited = community_reward.score if is_exchange else 0
        await self.emit_event(
            "community_reward.claimed",
            {
                "account_id": invoker.account_id,
                "community_id": community_reward.community_id,
                "community_reward_id": community_reward.id,
                "reward": reward.to_dict(),
                "reward_claimed_count": new_count,
                "score_debited": score_debited,
            },
        )
        return CommunityRewardClaimResult(
            community_reward=community_reward,
            reward=reward,
            reward_claimed_count=new_count,
            score_debited=score_debited,
        )

    async def mark_notified(self, community_reward_id: int, account_id: int) -> bool:
        try:
            async with DatabaseService.get_transaction() as session:
                return await self._counters.mark_notified(session, account_id, community_reward_id)
        except SQLAlchemyError as exc:
            raise InternalError("mark_notified", exc) from exc

    # ========================================================================
    # PRIVATE HELPERS
    # ========================================================================

    async def _is_eligible(
        self,
        community_reward: CommunityReward,
        invoker: Optional[Invoker],
        claimed_count: int,
    ) -> bool:
        if community_reward.is_archived:
            return False
        if invoker is None or not invoker.primary_address:
            return False
        score_type = self._score_type_for(community_reward.community_id)
        if not score_type:
            return False
        if not community_reward.is_unlimited and claimed_count >= community_reward.claimable_quantity:
            return False

        address = invoker.primary_address
        try:
            score = await self._guard.call(
                "score_total", lambda: self._scores.get_community_score(address, score_type)
            )
        except OracleUnavailableError as exc:
            self.log.warning(
                "Score total unavailable; reward treated as unclaimable",
                extra={"oracle": exc.oracle, "reason": exc.reason},
            )
            return False
        return int(score or 0) >= community_reward.score
