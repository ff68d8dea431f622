"""
Unit Tests for Reward Issuance
==============================

Test Coverage
-------------
- RewardIssuer dispatch per reward type
- Issuance preconditions (linked address, reward_id)
- Score type injection
- RewardItemFactory payload building and failure handling

Testing Strategy
----------------
- Effect collaborators and sessions mocked with pytest-mock
"""

import pytest

from questforge.core.config.config import Config
from questforge.database.models import RewardItem
from questforge.database.models.enums import RewardType
from questforge.domain.models.quest import Reward
from questforge.modules.quest.rewards import Recipient, RewardIssuer, RewardItemFactory
from questforge.modules.shared.exceptions import InvalidOperationError

RECIPIENT = Recipient(community_id=1, account_id=7, address="0xabc")


@pytest.fixture
def effects(mocker):
    return {
        "asset_effect": mocker.AsyncMock(),
        "score_effect": mocker.AsyncMock(),
        "inventory_effect": mocker.AsyncMock(),
    }


@pytest.fixture
def issuer(effects) -> RewardIssuer:
    return RewardIssuer(score_type="beta", **effects)


@pytest.fixture
def session(mocker):
    session = mocker.MagicMock()
    session.flush = mocker.AsyncMock()
    session.get = mocker.AsyncMock()
    return session


@pytest.mark.unit
class TestRewardIssuer:
    """Dispatch of granted rewards to effect collaborators."""

    @pytest.mark.asyncio
    async def test_score_reward(self, issuer, effects, session):
        """Test SCORE rewards modify the score of the recipient's address."""
        reward = Reward(type=RewardType.SCORE, quantity=10)

        issued = await issuer.issue(session, reward, RECIPIENT)

        assert issued is reward
        effects["score_effect"].modify_score.assert_awaited_once_with(
            session, address="0xabc", score_type="beta", modifier=10
        )

    @pytest.mark.asyncio
    async def test_score_reward_needs_address(self, issuer, effects, session):
        """Test SCORE rewards are refused for recipients without an address."""
        reward = Reward(type=RewardType.SCORE, quantity=10)

        with pytest.raises(InvalidOperationError):
            await issuer.issue(session, reward, Recipient(community_id=1, account_id=7))

        effects["score_effect"].modify_score.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_asset_reward(self, issuer, effects, session):
        """Test ASSET_3D rewards raise the community's copy limit."""
        reward = Reward(type=RewardType.ASSET_3D, reward_id=42, quantity=2)

        await issuer.issue(session, reward, RECIPIENT)

        effects["asset_effect"].add_asset_copies.assert_awaited_once_with(
            session, community_id=1, asset_id=42, quantity=2
        )

    @pytest.mark.asyncio
    async def test_asset_reward_needs_reward_id(self, issuer, effects, session):
        """Test ASSET_3D rewards without a payload are refused."""
        with pytest.raises(InvalidOperationError):
            await issuer.issue(session, Reward(type=RewardType.ASSET_3D), RECIPIENT)

        effects["asset_effect"].add_asset_copies.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reward_type", [RewardType.IMAGE, RewardType.NFT])
    async def test_inventory_rewards(self, issuer, effects, session, reward_type):
        """Test IMAGE and NFT rewards land in the account inventory."""
        reward = Reward(type=reward_type, reward_id=5, quantity=1)

        await issuer.issue(session, reward, RECIPIENT)

        effects["inventory_effect"].add_item.assert_awaited_once_with(
            session, account_id=7, reward_id=5, reward_type=reward_type.value, quantity=1
        )

    def test_default_score_type_from_config(self, effects):
        """Test the configured score type is used when none is injected."""
        assert RewardIssuer(**effects).score_type == Config.score_type()


@pytest.mark.unit
class TestRewardItemFactory:
    """Payload creation for quest rewards."""

    @pytest.mark.asyncio
    async def test_image_payload_created(self, session):
        """Test IMAGE data is mapped onto the stored payload shape."""
        item = await RewardItemFactory().create(
            session, "IMAGE", {"src": "https://img/1.png", "verifyOrigin": "upload", "name": "Badge"}
        )

        assert isinstance(item, RewardItem)
        assert item.type == "IMAGE"
        assert item.data["src"] == "https://img/1.png"
        assert item.data["verificationOrigin"] == "upload"
        assert item.data["isVerified"] is False
        session.add.assert_called_once_with(item)
        session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_nft_payload_is_verified(self, session):
        """Test NFT payloads are marked verified with an NFT origin."""
        item = await RewardItemFactory().create(
            session,
            RewardType.NFT,
            {"src": "ipfs://x", "verificationContractAddress": "0xNFT", "verificationTokenId": "7"},
        )

        assert item is not None
        assert item.data["isVerified"] is True
        assert item.data["verificationOrigin"] == "NFT"

    @pytest.mark.asyncio
    async def test_invalid_nft_returns_none(self, session):
        """Test NFT data without contract and token id creates nothing."""
        item = await RewardItemFactory().create(session, "NFT", {"src": "ipfs://x"})

        assert item is None
        session.add.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reward_type", ["COUPON", "SCORE"])
    async def test_unknown_or_payloadless_type_returns_none(self, session, reward_type):
        """Test unknown types and SCORE rewards have no payload row."""
        assert await RewardItemFactory().create(session, reward_type, {}) is None
        session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_matches_image_family(self, session):
        """Test IMAGE and NFT rewards may point at either image payload type."""
        session.get.return_value = RewardItem(id=5, type="NFT", data={})

        item = await RewardItemFactory().get(session, Reward(type=RewardType.IMAGE, reward_id=5))

        assert item is session.get.return_value

    @pytest.mark.asyncio
    async def test_get_rejects_type_mismatch(self, session):
        """Test an ASSET_3D reward pointing at an image payload resolves to None."""
        session.get.return_value = RewardItem(id=5, type="IMAGE", data={})

        item = await RewardItemFactory().get(session, Reward(type=RewardType.ASSET_3D, reward_id=5))

        assert item is None

    @pytest.mark.asyncio
    async def test_get_score_reward_has_no_payload(self, session):
        """Test SCORE rewards never load a payload."""
        assert await RewardItemFactory().get(session, Reward(type=RewardType.SCORE, reward_id=5)) is None
        session.get.assert_not_awaited()
