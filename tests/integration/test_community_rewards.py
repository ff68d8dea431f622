"""
Integration Tests for Community Reward Claims
=============================================

Test Coverage
-------------
- BATTLE_PASS score threshold and per-account claim limits
- Unlimited rewards (claimable_quantity = -1)
- EXCHANGE score debit, including concurrent spends
- Per-community score categories
- Archived, unknown and anonymous claims
- Bounded counter under concurrent claims
- Listing and notification flag
"""

import asyncio

import pytest

from questforge.core.config.config import Config
from questforge.core.database.service import DatabaseService
from questforge.domain.models.quest import CommunityRewardClaimResult, Invoker
from questforge.modules.shared.exceptions import (
    ClaimRejectedError,
    InvalidOperationError,
    NotFoundError,
    UnauthorizedError,
)


@pytest.fixture
def seed_score(container, invoker):
    async def seed(amount: int) -> None:
        async with DatabaseService.get_transaction() as session:
            await container.scores.modify_score(
                session,
                address=invoker.primary_address,
                score_type=Config.score_type(),
                modifier=amount,
            )

    return seed


@pytest.fixture
def current_score(container, invoker):
    async def read() -> int:
        return await container.scores.get_community_score(invoker.primary_address, Config.score_type())

    return read


@pytest.mark.integration
@pytest.mark.database
class TestBattlePass:
    """Score threshold rewards."""

    @pytest.mark.asyncio
    async def test_claim_limit_enforced(
        self, container, invoker, seed_score, current_score, make_community_reward
    ):
        """Test an account may claim up to claimable_quantity times."""
        # Arrange
        await seed_score(50)
        community_reward = await make_community_reward(score=10, claimable_quantity=2)
        service = container.community_rewards

        # Act
        first = await service.claim_community_reward_or_error(community_reward.id, invoker)
        second = await service.claim_community_reward_or_error(community_reward.id, invoker)

        # Assert
        assert first.reward_claimed_count == 1
        assert second.reward_claimed_count == 2
        assert second.score_debited == 0
        assert not await service.can_claim_community_reward(community_reward.id, invoker)
        with pytest.raises(ClaimRejectedError):
            await service.claim_community_reward_or_error(community_reward.id, invoker)
        assert await current_score() == 52

    @pytest.mark.asyncio
    async def test_below_threshold_rejected(self, container, invoker, seed_score, make_community_reward):
        """Test a score below the requirement cannot claim."""
        await seed_score(5)
        community_reward = await make_community_reward(score=10)

        assert not await container.community_rewards.can_claim_community_reward(
            community_reward.id, invoker
        )
        with pytest.raises(ClaimRejectedError):
            await container.community_rewards.claim_community_reward_or_error(
                community_reward.id, invoker
            )

    @pytest.mark.asyncio
    async def test_unlimited_reward(self, container, invoker, make_community_reward):
        """Test -1 claimable quantity never runs out."""
        community_reward = await make_community_reward(claimable_quantity=-1)
        service = container.community_rewards

        for _ in range(3):
            result = await service.claim_community_reward_or_error(community_reward.id, invoker)

        assert result.reward_claimed_count == 3
        assert await service.can_claim_community_reward(community_reward.id, invoker)

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_concurrent_claims_respect_limit(self, container, invoker, make_community_reward):
        """Test racing claims of a single-use reward succeed exactly once."""
        community_reward = await make_community_reward(claimable_quantity=1)
        service = container.community_rewards

        results = await asyncio.gather(
            *(service.claim_community_reward_or_error(community_reward.id, invoker) for _ in range(5)),
            return_exceptions=True,
        )

        successes = [r for r in results if isinstance(r, CommunityRewardClaimResult)]
        assert len(successes) == 1
        assert sum(isinstance(r, ClaimRejectedError) for r in results) == 4


@pytest.mark.integration
@pytest.mark.database
class TestExchange:
    """Score spending rewards."""

    @pytest.mark.asyncio
    async def test_exchange_debits_score(
        self, container, invoker, seed_score, current_score, make_community_reward, recorded_events
    ):
        """Test EXCHANGE rewards spend their score and report the debit."""
        await seed_score(50)
        community_reward = await make_community_reward(
            type="EXCHANGE", score=20, claimable_quantity=-1
        )
        service = container.community_rewards

        result = await service.claim_community_reward_or_error(community_reward.id, invoker)

        assert result.score_debited == 20
        # +1 from the SCORE reward itself, -20 for the exchange
        assert await current_score() == 31
        events = [payload for name, payload in recorded_events if name == "community_reward.claimed"]
        assert events[0]["score_debited"] == 20
        assert events[0]["reward_claimed_count"] == 1

    @pytest.mark.asyncio
    async def test_exchange_stops_when_score_spent(
        self, container, invoker, seed_score, current_score, make_community_reward
    ):
        """Test an account cannot exchange once its score drops below the price."""
        await seed_score(50)
        community_reward = await make_community_reward(
            type="EXCHANGE", score=20, claimable_quantity=-1
        )
        service = container.community_rewards

        await service.claim_community_reward_or_error(community_reward.id, invoker)
        await service.claim_community_reward_or_error(community_reward.id, invoker)

        assert await current_score() == 12
        with pytest.raises(ClaimRejectedError):
            await service.claim_community_reward_or_error(community_reward.id, invoker)

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_concurrent_exchanges_spend_score_once(
        self, container, invoker, seed_score, current_score, make_community_reward
    ):
        """Test racing EXCHANGE claims cannot spend the same score twice."""
        # Arrange
        await seed_score(20)
        community_reward = await make_community_reward(
            type="EXCHANGE", score=20, claimable_quantity=-1
        )
        service = container.community_rewards

        # Act
        results = await asyncio.gather(
            *(service.claim_community_reward_or_error(community_reward.id, invoker) for _ in range(5)),
            return_exceptions=True,
        )

        # Assert
        assert sum(isinstance(r, CommunityRewardClaimResult) for r in results) == 1
        assert sum(isinstance(r, ClaimRejectedError) for r in results) == 4
        # 20 spent, +1 from the single SCORE reward issued
        assert await current_score() == 1

    @pytest.mark.asyncio
    async def test_priced_in_community_score(
        self, container, invoker, current_score, make_community_reward, community_score_types
    ):
        """Test a community with its own score category is priced and debited in it."""
        community_score_types[1] = "moonbase"
        async with DatabaseService.get_transaction() as session:
            await container.scores.modify_score(
                session, address=invoker.primary_address, score_type="moonbase", modifier=30
            )
        community_reward = await make_community_reward(
            type="EXCHANGE", score=20, claimable_quantity=-1
        )
        service = container.community_rewards

        await service.claim_community_reward_or_error(community_reward.id, invoker)

        scores = container.scores
        assert await scores.get_community_score(invoker.primary_address, "moonbase") == 10
        # The SCORE reward itself still credits the quest score category
        assert await current_score() == 1
        assert not await service.can_claim_community_reward(community_reward.id, invoker)

    @pytest.mark.asyncio
    async def test_threshold_ignores_other_categories(
        self, container, invoker, seed_score, make_community_reward, community_score_types
    ):
        """Test quest score does not count towards a community priced in its own category."""
        community_score_types[1] = "moonbase"
        await seed_score(50)
        community_reward = await make_community_reward(score=10)

        assert not await container.community_rewards.can_claim_community_reward(
            community_reward.id, invoker
        )


@pytest.mark.integration
@pytest.mark.database
class TestRewardClaimErrors:
    """Refused community reward claims."""

    @pytest.mark.asyncio
    async def test_unknown_reward(self, container, invoker):
        """Test claiming a reward that does not exist."""
        with pytest.raises(NotFoundError) as exc_info:
            await container.community_rewards.claim_community_reward_or_error(999, invoker)

        assert exc_info.value.error_code == "COMMUNITYREWARD_NOT_FOUND"
        assert not await container.community_rewards.can_claim_community_reward(999, invoker)

    @pytest.mark.asyncio
    async def test_anonymous_claim(self, container, make_community_reward):
        """Test a claim without an invoker is unauthorized."""
        community_reward = await make_community_reward()

        with pytest.raises(UnauthorizedError):
            await container.community_rewards.claim_community_reward_or_error(community_reward.id, None)

    @pytest.mark.asyncio
    async def test_account_without_address(self, container, make_community_reward):
        """Test accounts without a linked address are not eligible."""
        community_reward = await make_community_reward()

        with pytest.raises(ClaimRejectedError):
            await container.community_rewards.claim_community_reward_or_error(
                community_reward.id, Invoker(account_id=8)
            )

    @pytest.mark.asyncio
    async def test_archived_reward(self, container, invoker, make_community_reward):
        """Test archived rewards cannot be claimed."""
        community_reward = await make_community_reward(is_archived=True)

        with pytest.raises(ClaimRejectedError):
            await container.community_rewards.claim_community_reward_or_error(
                community_reward.id, invoker
            )

    @pytest.mark.asyncio
    async def test_unissuable_reward(self, container, invoker, make_community_reward):
        """Test a stored reward of unknown type is an invalid operation."""
        community_reward = await make_community_reward(reward={"type": "COUPON"})

        with pytest.raises(InvalidOperationError):
            await container.community_rewards.claim_community_reward_or_error(
                community_reward.id, invoker
            )


@pytest.mark.integration
@pytest.mark.database
class TestListAndNotify:
    @pytest.mark.asyncio
    async def test_list_excludes_archived(self, container, make_community_reward):
        """Test archived rewards are hidden unless requested."""
        active = await make_community_reward()
        archived = await make_community_reward(is_archived=True)
        await make_community_reward(community_id=2)

        listed = await container.community_rewards.list_community_rewards(1)
        everything = await container.community_rewards.list_community_rewards(
            1, sort="-id", include_archived=True
        )

        assert [r.id for r in listed] == [active.id]
        assert [r.id for r in everything] == [archived.id, active.id]

    @pytest.mark.asyncio
    async def test_mark_notified(self, container, invoker, make_community_reward):
        """Test the notified flag is set on the claim counter row."""
        community_reward = await make_community_reward()
        service = container.community_rewards

        assert not await service.mark_notified(community_reward.id, invoker.account_id)
        await service.claim_community_reward_or_error(community_reward.id, invoker)
        assert await service.mark_notified(community_reward.id, invoker.account_id)
