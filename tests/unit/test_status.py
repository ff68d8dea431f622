"""
Unit Tests for Quest Status Resolution
======================================

Test Coverage
-------------
- Precedence: archived, anonymous, claimable, claimed, in progress
- Start date gating (aware and naive datetimes)
- Lazy eligibility: the evaluator is only awaited when it matters
"""

from datetime import datetime, timedelta, timezone

import pytest

from questforge.database.models import CommunityQuest, CommunityQuestAccount
from questforge.database.models.enums import QuestStatus
from questforge.domain.models.quest import Invoker, QuestDefinition
from questforge.modules.quest.status import as_utc, has_started, resolve_quest_status

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
INVOKER = Invoker(account_id=7, primary_address="0xabc")


class Eligibility:
    """Awaitable eligibility answer that counts how often it was asked."""

    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        return self.answer


def community_quest(archived: bool = False) -> CommunityQuest:
    return CommunityQuest(id=100, community_id=1, quest_id=10, accounts=[], is_archived=archived)


def ledger(claimed: bool) -> CommunityQuestAccount:
    return CommunityQuestAccount(
        account_id=INVOKER.account_id,
        community_quest_id=100,
        reward_claimed=claimed,
        is_notified=claimed,
    )


def definition(starts_at=None) -> QuestDefinition:
    return QuestDefinition(id=10, community_id=1, title="Quiz", starts_at=starts_at)


@pytest.mark.unit
class TestResolveQuestStatus:
    """Status transitions for one invoker."""

    @pytest.mark.asyncio
    async def test_archived_wins_over_everything(self):
        """Test an archived community quest is COMPLETED even when claimed."""
        eligible = Eligibility(True)

        status = await resolve_quest_status(
            community_quest(archived=True), definition(), ledger(True), INVOKER, eligible, NOW
        )

        assert status is QuestStatus.COMPLETED
        assert eligible.calls == 0

    @pytest.mark.asyncio
    async def test_anonymous_is_in_progress(self):
        """Test a caller without an account is IN_PROGRESS."""
        eligible = Eligibility(True)

        status = await resolve_quest_status(
            community_quest(), definition(), None, None, eligible, NOW
        )

        assert status is QuestStatus.IN_PROGRESS
        assert eligible.calls == 0

    @pytest.mark.asyncio
    async def test_eligible_unclaimed_can_claim(self):
        """Test a satisfied, started, unclaimed quest is claimable."""
        status = await resolve_quest_status(
            community_quest(), definition(), ledger(False), INVOKER, Eligibility(True), NOW
        )

        assert status is QuestStatus.CAN_CLAIM_REWARD

    @pytest.mark.asyncio
    async def test_claimed_is_checked_in_without_evaluation(self):
        """Test a claimed quest is CHECKED_IN and requirements are not re-evaluated."""
        eligible = Eligibility(True)

        status = await resolve_quest_status(
            community_quest(), definition(), ledger(True), INVOKER, eligible, NOW
        )

        assert status is QuestStatus.CHECKED_IN
        assert eligible.calls == 0

    @pytest.mark.asyncio
    async def test_unsatisfied_is_in_progress(self):
        """Test unmet requirements leave the quest IN_PROGRESS."""
        status = await resolve_quest_status(
            community_quest(), definition(), None, INVOKER, Eligibility(False), NOW
        )

        assert status is QuestStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_missing_definition_is_in_progress(self):
        """Test a community quest whose quest row is gone is never claimable."""
        eligible = Eligibility(True)

        status = await resolve_quest_status(community_quest(), None, None, INVOKER, eligible, NOW)

        assert status is QuestStatus.IN_PROGRESS
        assert eligible.calls == 0

    @pytest.mark.asyncio
    async def test_future_start_is_in_progress(self):
        """Test a quest that has not started yet is not claimable."""
        eligible = Eligibility(True)
        upcoming = definition(starts_at=NOW + timedelta(hours=1))

        status = await resolve_quest_status(
            community_quest(), upcoming, None, INVOKER, eligible, NOW
        )

        assert status is QuestStatus.IN_PROGRESS
        assert eligible.calls == 0


@pytest.mark.unit
class TestStartDates:
    """Start date comparisons across aware and naive datetimes."""

    def test_naive_datetime_read_as_utc(self):
        """Test naive values get the UTC timezone attached."""
        naive = datetime(2024, 6, 1, 12, 0)

        assert as_utc(naive) == NOW
        assert as_utc(None) is None

    def test_has_started(self):
        """Test start boundaries, including quests without a start date."""
        assert has_started(definition(), NOW)
        assert has_started(definition(starts_at=NOW), NOW)
        assert has_started(definition(starts_at=datetime(2024, 6, 1, 11, 0)), NOW)
        assert not has_started(definition(starts_at=NOW + timedelta(seconds=1)), NOW)
