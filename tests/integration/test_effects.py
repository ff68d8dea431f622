"""
Integration Tests for Reward Effects
====================================

Test Coverage
-------------
- ScoreService clamping, refused spends and address normalization
- AccountInventoryService quantity upserts
- CommunityAssetService copy limits and asset validation
- Item rewards issued through a quest claim
"""

import pytest
from sqlalchemy import select

from questforge.core.config.config import Config
from questforge.core.database.service import DatabaseService
from questforge.database.models import AccountInventory, CommunityAsset, RewardItem
from questforge.modules.effects import AccountInventoryService, CommunityAssetService, ScoreService
from questforge.modules.shared.exceptions import InvalidOperationError, ValidationError

ASSET_DATA = {"url": "https://cdn.example/chair.glb", "format": "glb", "name": "Chair"}
IMAGE_DATA = {"src": "https://cdn.example/badge.png", "verifyOrigin": "upload", "name": "Badge"}


async def create_item(item_type: str, data: dict) -> RewardItem:
    async with DatabaseService.get_transaction() as session:
        item = RewardItem(type=item_type, data=data)
        session.add(item)
        await session.flush()
    return item


@pytest.mark.integration
@pytest.mark.database
class TestScoreService:
    @pytest.mark.asyncio
    async def test_scores_never_negative(self, database):
        """Test a debit larger than the balance leaves the score at zero."""
        scores = ScoreService()

        async with DatabaseService.get_transaction() as session:
            assert await scores.modify_score(session, address="0xABC", score_type="beta", modifier=5) == 5
        async with DatabaseService.get_transaction() as session:
            assert await scores.modify_score(session, address="0xabc", score_type="beta", modifier=-10) == 0

        assert await scores.get_community_score(" 0xAbc ", "beta") == 0

    @pytest.mark.asyncio
    async def test_score_types_are_separate(self, database):
        """Test balances are kept per score type."""
        scores = ScoreService()

        async with DatabaseService.get_transaction() as session:
            await scores.modify_score(session, address="0xabc", score_type="beta", modifier=3)
            await scores.modify_score(session, address="0xabc", score_type="playground", modifier=7)

        assert await scores.get_community_score("0xabc", "beta") == 3
        assert await scores.get_community_score("0xabc", "playground") == 7
        assert await scores.get_community_score("0xdef", "beta") == 0

    @pytest.mark.asyncio
    async def test_spend_refused_below_price(self, database):
        """Test a spend larger than the balance debits nothing."""
        scores = ScoreService()

        async with DatabaseService.get_transaction() as session:
            await scores.modify_score(session, address="0xabc", score_type="beta", modifier=15)
        async with DatabaseService.get_transaction() as session:
            assert await scores.spend_score(session, address="0xABC", score_type="beta", amount=20) is None
            assert await scores.spend_score(session, address="0xdef", score_type="beta", amount=1) is None
        async with DatabaseService.get_transaction() as session:
            assert await scores.spend_score(session, address="0xabc", score_type="beta", amount=15) == 0

        assert await scores.get_community_score("0xabc", "beta") == 0

    @pytest.mark.asyncio
    async def test_address_required(self, database):
        """Test a score change without an address is a validation error."""
        async with DatabaseService.get_session() as session:
            with pytest.raises(ValidationError):
                await ScoreService().modify_score(session, address="", score_type="beta", modifier=1)


@pytest.mark.integration
@pytest.mark.database
class TestInventory:
    @pytest.mark.asyncio
    async def test_quantities_sum(self, database):
        """Test repeated grants of the same item add up on one row."""
        inventory = AccountInventoryService()

        async with DatabaseService.get_transaction() as session:
            await inventory.add_item(session, account_id=7, reward_id=5, reward_type="IMAGE", quantity=1)
        async with DatabaseService.get_transaction() as session:
            total = await inventory.add_item(
                session, account_id=7, reward_id=5, reward_type="IMAGE", quantity=2
            )

        assert total == 3
        async with DatabaseService.get_session() as session:
            rows = (await session.execute(select(AccountInventory))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_reward_id_required(self, database):
        """Test items without a reward_id are refused."""
        async with DatabaseService.get_session() as session:
            with pytest.raises(ValidationError):
                await AccountInventoryService().add_item(
                    session, account_id=7, reward_id=0, reward_type="NFT", quantity=1
                )


@pytest.mark.integration
@pytest.mark.database
class TestCommunityAssets:
    @pytest.mark.asyncio
    async def test_copies_accumulate(self, database):
        """Test the first grant creates the community asset and later grants add copies."""
        asset = await create_item("ASSET_3D", ASSET_DATA)
        assets = CommunityAssetService()

        async with DatabaseService.get_transaction() as session:
            first = await assets.add_asset_copies(session, community_id=1, asset_id=asset.id, quantity=2)
        async with DatabaseService.get_transaction() as session:
            second = await assets.add_asset_copies(session, community_id=1, asset_id=asset.id, quantity=3)

        assert (first, second) == (2, 5)

    @pytest.mark.asyncio
    async def test_non_asset_item_rejected(self, database):
        """Test an item that is not a 3D asset is invalid asset data."""
        image = await create_item("IMAGE", IMAGE_DATA)

        with pytest.raises(InvalidOperationError) as exc_info:
            async with DatabaseService.get_transaction() as session:
                await CommunityAssetService().add_asset_copies(
                    session, community_id=1, asset_id=image.id, quantity=1
                )

        assert exc_info.value.reason == "Invalid asset data"


@pytest.mark.integration
@pytest.mark.database
class TestItemRewardsThroughClaims:
    """Item rewards issued by the quest claim transaction."""

    @pytest.mark.asyncio
    async def test_asset_and_image_rewards(self, container, invoker):
        """Test a claim creates the community asset and the inventory item."""
        quest = await container.definitions.create_quest(
            1,
            "Collector",
            rewards=[
                {"type": "ASSET_3D", "quantity": 2, "data": ASSET_DATA},
                {"type": "IMAGE", "data": IMAGE_DATA},
            ],
        )

        result = await container.community_quests.claim_reward_or_error(1, quest.id, None, invoker)

        asset_reward, image_reward = result.rewards
        async with DatabaseService.get_session() as session:
            community_asset = (
                await session.execute(select(CommunityAsset).where(CommunityAsset.community_id == 1))
            ).scalar_one()
            inventory = (
                await session.execute(
                    select(AccountInventory).where(AccountInventory.account_id == invoker.account_id)
                )
            ).scalar_one()

        assert community_asset.asset_id == asset_reward.reward_id
        assert community_asset.max_quantity == 2
        assert inventory.reward_id == image_reward.reward_id
        assert inventory.reward_type == "IMAGE"
        assert inventory.quantity == 1

    @pytest.mark.asyncio
    async def test_invalid_asset_rolls_back_claim(self, container, invoker):
        """Test an ASSET_3D reward pointing at an image fails and leaves the quest unclaimed."""
        image = await create_item("IMAGE", IMAGE_DATA)
        quest = await container.definitions.create_quest(
            1, "Broken", rewards=[{"type": "SCORE", "quantity": 5}, {"type": "ASSET_3D", "reward_id": image.id}]
        )
        service = container.community_quests

        with pytest.raises(InvalidOperationError):
            await service.claim_reward_or_error(1, quest.id, None, invoker)

        community_quest = await container.definitions.find_or_create_community_quest(1, quest.id)
        assert not await service.is_claimed_by(community_quest.id, invoker)
        assert await container.scores.get_community_score(invoker.primary_address, Config.score_type()) == 0
