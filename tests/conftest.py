"""
Pytest Configuration and Fixtures for the Questforge Test Suite
===============================================================

Purpose
-------
Centralized fixtures for the quest engine tests: environment bootstrap,
a throwaway SQLite database per test, the wired service container, and
in-memory fakes for every oracle the engine talks to.

Responsibilities
----------------
- Force the testing environment before ``questforge`` is imported
- File-backed SQLite database with the schema created (integration tests)
- ServiceContainer wired with fake oracles
- Event recording for domain event assertions

Non-Responsibilities
--------------------
- Test implementation (delegated to test files)
- PostgreSQL containers (tests/integration/test_postgres_claims.py)

Architecture Notes
------------------
- Unit tests use fakes and mocks (fast, isolated)
- Integration tests use a file database so concurrent sessions see each
  other's commits
- Fixtures are function scoped: every test starts from an empty database
"""

from __future__ import annotations

import os

# Config is loaded on import; the environment must be in place first
os.environ["ENVIRONMENT"] = "testing"
os.environ["TESTING"] = "true"
os.environ["REDIS_URL"] = ""
os.environ["SCORE_TYPE"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence, Set, Tuple, Union

import pytest
import pytest_asyncio

from questforge.core.config.config import Config
from questforge.core.database.service import DatabaseService
from questforge.core.event.bus import EventBus
from questforge.core.logging.logger import get_logger
from questforge.core.services.container import OracleSet, ServiceContainer
from questforge.database.models import CommunityReward
from questforge.domain.models.quest import Invoker
from questforge.modules.oracles.guard import OracleGuard
from questforge.modules.oracles.interfaces import DEFAULT_CHAIN, Cast, SocialProfile

logger = get_logger(__name__)

ADDRESS = "0xAbC0000000000000000000000000000000000001"


# ============================================================================
# ORACLE FAKES
# ============================================================================


class FakeNFTOracle:
    """Holdings per (chain, contract); ``fail`` makes every call raise."""

    def __init__(self) -> None:
        self.holdings: Dict[Tuple[str, str], int] = {}
        self.fail = False
        self.delay: float = 0.0
        self.calls: List[Dict[str, Any]] = []

    def hold(self, contract: str, count: int, chain: str = DEFAULT_CHAIN) -> None:
        self.holdings[(chain, contract)] = count

    async def verify_ownership(
        self,
        address: str,
        contract_addresses: Sequence[str],
        *,
        chain: str = DEFAULT_CHAIN,
        count: int = 1,
        attribute_type: Optional[str] = None,
        attribute_value: Optional[str] = None,
        return_count: bool = False,
    ) -> Union[bool, int]:
        self.calls.append(
            {"address": address, "contracts": list(contract_addresses), "chain": chain, "count": count}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("indexer unavailable")
        owned = sum(self.holdings.get((chain, c), 0) for c in contract_addresses)
        return owned if return_count else owned >= count


class FakeSocialGraph:
    def __init__(self) -> None:
        self.profiles: Dict[str, List[SocialProfile]] = {}
        self.casts: Dict[int, int] = {}
        self.likes: Dict[int, int] = {}
        self.mentions: Dict[int, List[Cast]] = {}
        self.failing_fids: Set[int] = set()
        self.fail = False

    def link(self, address: str, *profiles: SocialProfile) -> None:
        self.profiles.setdefault(address, []).extend(profiles)

    async def get_profiles_by_address(self, address: str) -> Sequence[SocialProfile]:
        if self.fail:
            raise ConnectionError("hub unreachable")
        return list(self.profiles.get(address, []))

    async def count_casts(self, fid: int) -> int:
        if fid in self.failing_fids:
            raise ConnectionError("hub unreachable")
        return self.casts.get(fid, 0)

    async def count_likes_received(self, fid: int) -> int:
        if fid in self.failing_fids:
            raise ConnectionError("hub unreachable")
        return self.likes.get(fid, 0)

    async def find_mentions(self, fid: int, mentioned_fid: int, since: datetime) -> Sequence[Cast]:
        return [
            cast
            for cast in self.mentions.get(fid, [])
            if cast.timestamp is None or cast.timestamp >= since
        ]


class FakeMarketplace:
    def __init__(self) -> None:
        self.events: Set[Tuple[str, str]] = set()

    async def exists(self, event_type: str, from_address: str) -> bool:
        return (event_type, from_address) in self.events


@dataclass
class FakeAccessRules:
    rules: Dict[Any, Any] = field(default_factory=dict)
    allowed_addresses: Set[str] = field(default_factory=set)

    async def get_rule_for_block(self, rich_block_id: Any) -> Optional[Any]:
        return self.rules.get(rich_block_id)

    async def can_claim_role(self, rule: Any, community_id: int, address: str) -> bool:
        return address in self.allowed_addresses


# ============================================================================
# UNIT FIXTURES
# ============================================================================


@pytest.fixture
def nft_oracle() -> FakeNFTOracle:
    return FakeNFTOracle()


@pytest.fixture
def social_graph() -> FakeSocialGraph:
    return FakeSocialGraph()


@pytest.fixture
def marketplace() -> FakeMarketplace:
    return FakeMarketplace()


@pytest.fixture
def access_rules() -> FakeAccessRules:
    return FakeAccessRules()


@pytest.fixture
def guard() -> OracleGuard:
    """Guard with a short timeout so slow-oracle tests stay fast."""
    return OracleGuard(timeout_seconds=0.2)


@pytest.fixture
def invoker() -> Invoker:
    return Invoker(account_id=7, primary_address=ADDRESS)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorded_events(event_bus: EventBus) -> List[Tuple[str, Dict[str, Any]]]:
    """Every quest.* and community_reward.* event published on ``event_bus``."""
    events: List[Tuple[str, Dict[str, Any]]] = []

    def recorder(name: str):
        def record(payload: Dict[str, Any]) -> None:
            events.append((name, payload))

        return record

    for name in ("quest.created", "quest.completed", "quest.reward_claimed", "community_reward.claimed"):
        event_bus.subscribe(name, recorder(name), identifier=f"recorder@{name}")
    return events


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'questforge.db'}"


@pytest_asyncio.fixture
async def database(database_url: str) -> AsyncGenerator[None, None]:
    """Initialized DatabaseService on a fresh SQLite file with the schema."""
    await DatabaseService.initialize(database_url)
    await DatabaseService.create_schema()
    try:
        yield
    finally:
        await DatabaseService.shutdown()


@pytest.fixture
def community_score_types() -> Dict[int, str]:
    """Per-community score categories; communities not listed use Config.score_type()."""
    return {}


@pytest_asyncio.fixture
async def container(
    database_url: str,
    event_bus: EventBus,
    nft_oracle: FakeNFTOracle,
    social_graph: FakeSocialGraph,
    marketplace: FakeMarketplace,
    access_rules: FakeAccessRules,
    community_score_types: Dict[int, str],
) -> AsyncGenerator[ServiceContainer, None]:
    """ServiceContainer on a fresh SQLite file, wired with the oracle fakes."""
    services = ServiceContainer(
        OracleSet(
            nft=nft_oracle,
            social_graph=social_graph,
            marketplace=marketplace,
            access_rules=access_rules,
            community_score_type=lambda community_id: community_score_types.get(
                community_id, Config.score_type()
            ),
        ),
        event_bus=event_bus,
    )
    await services.initialize(database_url=database_url)
    await DatabaseService.create_schema()
    try:
        yield services
    finally:
        await services.shutdown()


@pytest.fixture
def make_community_reward():
    """Factory inserting a CommunityReward row; keyword arguments override the defaults."""

    async def create(**values: Any) -> CommunityReward:
        row = CommunityReward(
            community_id=values.pop("community_id", 1),
            score=values.pop("score", 0),
            reward=values.pop("reward", {"type": "SCORE", "quantity": 1}),
            type=values.pop("type", "BATTLE_PASS"),
            claimable_quantity=values.pop("claimable_quantity", 1),
            is_archived=values.pop("is_archived", False),
        )
        async with DatabaseService.get_transaction() as session:
            session.add(row)
            await session.flush()
        return row

    return create
