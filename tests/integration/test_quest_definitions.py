"""
Integration Tests for Quest Definitions
=======================================

Test Coverage
-------------
- create_quest validation (nothing persisted on failure)
- Reward payload creation, including invalid payload data
- Community bindings: idempotent creation and participant merging
- Listing with paging and sorting
- Container health snapshot
"""

import pytest

from questforge.domain.models.quest import Reward
from questforge.modules.shared.exceptions import NotFoundError, ValidationError

QUIZ_WITHOUT_ANSWER = {
    "type": "MULTICHOICE_SINGLE_QUIZ",
    "data": [
        {"key": "question", "value": "What colour is the sky?"},
        {"key": "answers", "value": ["BLUE", "RED"]},
    ],
}


@pytest.mark.integration
@pytest.mark.database
class TestCreateQuest:
    """Quest creation and validation."""

    @pytest.mark.asyncio
    async def test_missing_requirement_data(self, container):
        """Test a quiz without its answer is rejected and nothing is stored."""
        definitions = container.definitions

        with pytest.raises(ValidationError) as exc_info:
            await definitions.create_quest(1, "Quiz", requirements=[QUIZ_WITHOUT_ANSWER])

        assert exc_info.value.missing_keys == ["correctAnswer"]
        assert await definitions.list_quests(1) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"requirement_join_operator": "XOR"}, "requirement_join_operator"),
            ({"schedule": "HOURLY"}, "schedule"),
            ({"rewards": [{"type": "COUPON"}]}, "rewards"),
        ],
    )
    async def test_invalid_choices(self, container, overrides, field):
        """Test unknown operators, schedules and reward types are validation errors."""
        with pytest.raises(ValidationError) as exc_info:
            await container.definitions.create_quest(1, "Quest", **overrides)

        assert exc_info.value.field == field

    @pytest.mark.asyncio
    async def test_blank_title(self, container):
        """Test a quest needs a title."""
        with pytest.raises(ValidationError):
            await container.definitions.create_quest(1, "   ")

    @pytest.mark.asyncio
    async def test_quest_bound_and_announced(self, container, recorded_events):
        """Test a created quest is bound to its community and quest.created is published."""
        quest = await container.definitions.create_quest(
            1, " Weekly check-in ", schedule="WEEKLY", requirement_join_operator="AND"
        )

        community_quest = await container.definitions.find_or_create_community_quest(1, quest.id)

        assert quest.title == "Weekly check-in"
        assert quest.schedule == "WEEKLY"
        assert quest.requirement_join_operator == "AND"
        assert community_quest.accounts == []
        assert recorded_events == [
            (
                "quest.created",
                {"quest_id": quest.id, "community_id": 1, "community_quest_id": community_quest.id},
            )
        ]

    @pytest.mark.asyncio
    async def test_reward_payloads(self, container):
        """Test payloads are created from reward data; invalid NFT data leaves reward_id empty."""
        quest = await container.definitions.create_quest(
            1,
            "Badges",
            rewards=[
                {"type": "IMAGE", "data": {"src": "https://cdn.example/badge.png"}},
                {"type": "NFT", "data": {"src": "ipfs://missing-contract"}},
                {"type": "SCORE", "quantity": 25},
            ],
        )

        image, nft, score = (Reward.from_dict(raw) for raw in quest.rewards)

        assert image.reward_id is not None
        assert nft.reward_id is None
        assert score.reward_id is None and score.quantity == 25

        item = await container.definitions.get_quest_reward_item(image)
        assert item is not None
        assert item.data["src"] == "https://cdn.example/badge.png"
        assert await container.definitions.get_quest_reward_item(score) is None


@pytest.mark.integration
@pytest.mark.database
class TestCommunityBindings:
    @pytest.mark.asyncio
    async def test_find_or_create_is_idempotent(self, container):
        """Test repeated binding returns the same row and merges participants."""
        quest = await container.definitions.create_quest(1, "Quest")
        definitions = container.definitions

        first = await definitions.find_or_create_community_quest(2, quest.id, accounts=[1, 2])
        second = await definitions.find_or_create_community_quest(2, quest.id, accounts=[2, 3])

        assert first.id == second.id
        assert second.accounts == [1, 2, 3]
        assert second.is_archived is False

    @pytest.mark.asyncio
    async def test_archive_flag_applied(self, container):
        """Test is_archived is written only when given."""
        quest = await container.definitions.create_quest(1, "Quest")
        definitions = container.definitions

        archived = await definitions.find_or_create_community_quest(1, quest.id, is_archived=True)
        unchanged = await definitions.find_or_create_community_quest(1, quest.id)

        assert archived.is_archived is True
        assert unchanged.is_archived is True

    @pytest.mark.asyncio
    async def test_unknown_quest(self, container):
        """Test binding a quest that does not exist."""
        with pytest.raises(NotFoundError):
            await container.definitions.find_or_create_community_quest(1, 404)
        with pytest.raises(NotFoundError):
            await container.definitions.get_quest(404)


@pytest.mark.integration
@pytest.mark.database
class TestListQuests:
    @pytest.mark.asyncio
    async def test_paging_and_sorting(self, container):
        """Test limit, offset and descending sort."""
        definitions = container.definitions
        created = [await definitions.create_quest(1, f"Quest {i}") for i in range(4)]
        await definitions.create_quest(2, "Other community")

        page = await definitions.list_quests(1, limit=2, offset=1, sort="-id")
        default = await definitions.list_quests(1)

        assert [q.id for q in page] == [created[2].id, created[1].id]
        assert [q.id for q in default] == [q.id for q in created]

    @pytest.mark.asyncio
    async def test_invalid_paging(self, container):
        """Test unknown sort fields and non-positive limits are rejected."""
        with pytest.raises(ValidationError):
            await container.definitions.list_quests(1, sort="-popularity")
        with pytest.raises(ValidationError):
            await container.definitions.list_quests(1, limit=0)


@pytest.mark.integration
class TestContainerHealth:
    @pytest.mark.asyncio
    async def test_health_snapshot(self, container):
        """Test the health snapshot reports infrastructure state."""
        health = container.health()

        assert health["initialized"] is True
        assert health["redis_healthy"] is None
        assert health["database_circuit"]["state"] == "closed"
        assert isinstance(health["oracle_circuits"], dict)
        assert health["logging_initialized"] is True
