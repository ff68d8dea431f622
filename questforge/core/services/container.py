"""
Service Container
=================

Purpose
-------
Wires the quest engine: infrastructure (database, optional Redis answer
cache), the oracle guard, the requirement evaluator, the default effect
collaborators and the domain services.

Responsibilities
----------------
- Initialize DatabaseService and RedisService in order
- Build each service once with its dependencies
- Shut infrastructure down in reverse order

Non-Responsibilities
--------------------
- Request transport and authentication (callers build ``Invoker`` values)
- Oracle adapter implementations (passed in as ``OracleSet``)

Usage
-----
>>> container = ServiceContainer(OracleSet(nft=alchemy, social_graph=hub))
>>> await container.initialize()
>>> await container.community_quests.get_quest_status(1, 7, invoker)
>>> await container.shutdown()
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Optional

from questforge.core.config.config import Config
from questforge.core.database.service import DatabaseService
from questforge.core.event.bus import EventBus
from questforge.core.logging.logger import get_logger, get_logging_health
from questforge.core.redis.service import RedisService
from questforge.modules.effects import AccountInventoryService, CommunityAssetService, ScoreService
from questforge.modules.oracles.cache import OracleCache
from questforge.modules.oracles.guard import OracleGuard
from questforge.modules.quest import (
    CommunityQuestService,
    QuestDefinitionService,
    RequirementEvaluator,
    RewardIssuer,
)
from questforge.modules.reward import CommunityRewardService

if TYPE_CHECKING:
    from questforge.modules.oracles.interfaces import (
        AccessRuleCollaborator,
        MarketplaceEventLog,
        NFTOwnershipOracle,
        ScoreTotalProvider,
        SocialGraphOracle,
    )

logger = get_logger(__name__)


@dataclass
class OracleSet:
    """
    External adapters; requirement types whose oracle is missing never pass.

    ``community_score_type`` maps a community id to the score category its
    rewards are priced in. Without it every community uses
    ``Config.score_type()``, the category quest SCORE rewards credit.
    """

    nft: Optional[NFTOwnershipOracle] = None
    social_graph: Optional[SocialGraphOracle] = None
    marketplace: Optional[MarketplaceEventLog] = None
    access_rules: Optional[AccessRuleCollaborator] = None
    score_totals: Optional[ScoreTotalProvider] = None
    community_score_type: Optional[Callable[[int], Optional[str]]] = None


class ServiceContainer:
    """Single instances of every quest engine service."""

    def __init__(
        self,
        oracles: Optional[OracleSet] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._oracles = oracles or OracleSet()
        self.event_bus = event_bus or EventBus()

        self._guard: Optional[OracleGuard] = None
        self._definitions: Optional[QuestDefinitionService] = None
        self._community_quests: Optional[CommunityQuestService] = None
        self._community_rewards: Optional[CommunityRewardService] = None
        self._scores: Optional[ScoreService] = None

        self._initialized = False
        self._service_init_times: Dict[str, float] = {}

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(
        self,
        database_url: Optional[str] = None,
        redis_url: Optional[str] = None,
    ) -> None:
        if self._initialized:
            logger.warning("ServiceContainer already initialized")
            return

        start = time.perf_counter()
        logger.info("Service container initialization starting...")

        await DatabaseService.initialize(database_url)
        await RedisService.initialize(redis_url)

        self.build()

        logger.info(
            "Service container initialized",
            extra={
                "duration_ms": (time.perf_counter() - start) * 1000.0,
                "redis_enabled": RedisService.is_enabled(),
                "score_type": Config.score_type(),
            },
        )

    def build(self) -> None:
        """Construct the services; infrastructure must already be initialized."""
        cache = OracleCache(RedisService) if RedisService.is_enabled() else None
        self._guard = OracleGuard(cache=cache)

        start = time.perf_counter()
        evaluator = RequirementEvaluator.build_default(
            nft_oracle=self._oracles.nft,
            social_graph=self._oracles.social_graph,
            marketplace=self._oracles.marketplace,
            guard=self._guard,
        )
        self._scores = ScoreService()
        issuer = RewardIssuer(
            asset_effect=CommunityAssetService(),
            score_effect=self._scores,
            inventory_effect=AccountInventoryService(),
        )
        self._service_init_times["evaluator"] = time.perf_counter() - start

        start = time.perf_counter()
        self._definitions = QuestDefinitionService(event_bus=self.event_bus)
        self._community_quests = CommunityQuestService(
            evaluator,
            issuer,
            access_rules=self._oracles.access_rules,
            event_bus=self.event_bus,
            guard=self._guard,
        )
        self._community_rewards = CommunityRewardService(
            issuer,
            self._oracles.score_totals or self._scores,
            event_bus=self.event_bus,
            guard=self._guard,
            score_type_for=self._oracles.community_score_type,
        )
        self._service_init_times["services"] = time.perf_counter() - start
        self._initialized = True

    async def shutdown(self) -> None:
        logger.info("Service container shutting down...")
        await RedisService.shutdown()
        await DatabaseService.shutdown()
        self.event_bus.clear()
        self._initialized = False

    # ========================================================================
    # Accessors
    # ========================================================================

    def _require(self, service: Optional[object], name: str) -> object:
        if service is None:
            raise RuntimeError(f"ServiceContainer not initialized: {name} unavailable")
        return service

    @property
    def definitions(self) -> QuestDefinitionService:
        return self._require(self._definitions, "definitions")  # type: ignore[return-value]

    @property
    def community_quests(self) -> CommunityQuestService:
        return self._require(self._community_quests, "community_quests")  # type: ignore[return-value]

    @property
    def community_rewards(self) -> CommunityRewardService:
        return self._require(self._community_rewards, "community_rewards")  # type: ignore[return-value]

    @property
    def scores(self) -> ScoreService:
        return self._require(self._scores, "scores")  # type: ignore[return-value]

    def health(self) -> Dict[str, object]:
        return {
            "initialized": self._initialized,
            "redis_healthy": RedisService.is_healthy() if RedisService.is_enabled() else None,
            "database_circuit": DatabaseService.get_circuit_breaker_metrics(),
            "oracle_circuits": self._guard.get_breaker_states() if self._guard else {},
            "init_times": dict(self._service_init_times),
            "logging_initialized": get_logging_health().initialized,
        }
