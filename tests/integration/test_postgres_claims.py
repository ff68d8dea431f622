"""
Integration Tests for Claims on PostgreSQL
==========================================

Purpose
-------
Run the concurrency-sensitive claim paths against a real PostgreSQL server
started with testcontainers, where the ledger and counter updates race
under row locks instead of SQLite's database lock.

Test Coverage
-------------
- Concurrent quest claims issue rewards exactly once
- Concurrent community reward claims respect the per-account limit

Testing Strategy
----------------
- One PostgreSQL container per module; skipped when Docker is unavailable
- Schema dropped and recreated for every test
"""

import asyncio
from typing import Generator

import pytest
import pytest_asyncio

from questforge.core.config.config import Config
from questforge.core.database.base import Base
from questforge.core.database.service import DatabaseService
from questforge.core.services.container import OracleSet, ServiceContainer
from questforge.database.models import CommunityReward
from questforge.domain.models.quest import ClaimResult, CommunityRewardClaimResult
from questforge.modules.shared.exceptions import ClaimRejectedError

pytestmark = [pytest.mark.integration, pytest.mark.database, pytest.mark.slow]


@pytest.fixture(scope="module")
def postgres_url() -> Generator[str, None, None]:
    """Start a PostgreSQL testcontainer; skip the module if it cannot start."""
    from testcontainers.postgres import PostgresContainer

    try:
        container = PostgresContainer(image="postgres:16-alpine", driver="asyncpg")
        container.start()
    except Exception as exc:
        pytest.skip(f"PostgreSQL testcontainer unavailable: {exc}")

    yield container.get_connection_url()

    container.stop()


@pytest_asyncio.fixture
async def pg_container(postgres_url: str, event_bus):
    services = ServiceContainer(OracleSet(), event_bus=event_bus)
    await services.initialize(database_url=postgres_url)
    engine = DatabaseService._engine
    assert engine is not None
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield services
    finally:
        await services.shutdown()


class TestConcurrentClaimsOnPostgres:
    @pytest.mark.asyncio
    async def test_quest_claimed_once(self, pg_container, invoker):
        """Test ten racing claims credit the score exactly once."""
        quest = await pg_container.definitions.create_quest(
            1, "Race", rewards=[{"type": "SCORE", "quantity": 10}]
        )
        service = pg_container.community_quests

        results = await asyncio.gather(
            *(service.claim_reward_or_error(1, quest.id, None, invoker) for _ in range(10)),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ClaimResult) for r in results) == 1
        assert sum(isinstance(r, ClaimRejectedError) for r in results) == 9
        assert await pg_container.scores.get_community_score(invoker.primary_address, Config.score_type()) == 10

    @pytest.mark.asyncio
    async def test_community_reward_limit(self, pg_container, invoker):
        """Test racing claims stop at claimable_quantity."""
        async with DatabaseService.get_transaction() as session:
            community_reward = CommunityReward(
                community_id=1,
                score=0,
                reward={"type": "SCORE", "quantity": 1},
                type="BATTLE_PASS",
                claimable_quantity=3,
            )
            session.add(community_reward)
            await session.flush()

        results = await asyncio.gather(
            *(
                pg_container.community_rewards.claim_community_reward_or_error(
                    community_reward.id, invoker
                )
                for _ in range(10)
            ),
            return_exceptions=True,
        )

        successes = [r for r in results if isinstance(r, CommunityRewardClaimResult)]
        assert sorted(r.reward_claimed_count for r in successes) == [1, 2, 3]
        assert sum(isinstance(r, ClaimRejectedError) for r in results) == 7
