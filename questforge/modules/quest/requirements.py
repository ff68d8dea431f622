"""
Requirement Evaluator

Purpose
-------
Decide whether one invoker satisfies the requirements of a quest.

Each requirement type maps to a small handler class registered in a
``RequirementRegistry``. Types that carry a numeric threshold in their
suffix (``FARCASTER_CASTS_250``) are resolved by prefix when no exact
handler exists. ``RequirementEvaluator`` runs every requirement of a quest
concurrently and combines the results with the quest's join operator.

Guarantees
----------
- Evaluation never raises for missing external data: no linked address,
  unknown requirement type, malformed data values, or an unavailable oracle
  all evaluate to False.
- Evaluation is read-only.

Usage
-----
>>> evaluator = RequirementEvaluator.build_default(nft_oracle=alchemy)
>>> await evaluator.evaluate_all(definition.requirements, definition.join_operator,
...                              quest_context, invoker, {"answer": "blue"})
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
)

from questforge.core.config.config import Config
from questforge.core.database.base import utc_now
from questforge.core.logging.logger import get_logger
from questforge.database.models.enums import (
    JoinOperator,
    MarketplaceEventType,
    RequirementType,
)
from questforge.domain.models.quest import (
    Invoker,
    QuestContext,
    Requirement,
    SubmittedData,
    normalize_submitted_data,
)
from questforge.modules.oracles.guard import OracleGuard
from questforge.modules.oracles.interfaces import (
    DEFAULT_CHAIN,
    MarketplaceEventLog,
    NFTOwnershipOracle,
    SocialGraphOracle,
    SocialProfile,
)
from questforge.modules.shared.exceptions import OracleUnavailableError

logger = get_logger(__name__)


@dataclass(frozen=True)
class EvaluationInput:
    """Everything a handler may look at."""

    requirement: Requirement
    quest: QuestContext
    invoker: Invoker
    submitted: Dict[str, Any]

    @property
    def address(self) -> Optional[str]:
        return self.invoker.primary_address


# ============================================================================
# HANDLER BASE
# ============================================================================


class RequirementHandler(ABC):
    """
    Base class for requirement handlers.

    Subclasses declare the exact ``requirement_types`` they answer, or a
    ``prefix`` for threshold families.
    """

    requirement_types: ClassVar[Tuple[RequirementType, ...]] = ()
    prefix: ClassVar[Optional[str]] = None

    @abstractmethod
    async def evaluate(self, ctx: EvaluationInput) -> bool: ...

    @classmethod
    def threshold(cls, requirement_type: str) -> int:
        """Numeric suffix of a prefix-family type, e.g. 250 for FARCASTER_CASTS_250."""
        if cls.prefix is None or not requirement_type.startswith(cls.prefix):
            raise ValueError(f"{requirement_type!r} has no {cls.prefix!r} threshold")
        return int(requirement_type[len(cls.prefix):])


# ============================================================================
# LOCAL HANDLERS (no oracle)
# ============================================================================


class CommunityParticipationHandler(RequirementHandler):
    requirement_types = (RequirementType.COMMUNITY_PARTICIPATION,)

    async def evaluate(self, ctx: EvaluationInput) -> bool:
        required = int(ctx.requirement.get("requiredParticipationCount") or 1)
        return ctx.quest.participant_count >= required


class MultichoiceQuizHandler(RequirementHandler):
    requirement_types = (RequirementType.MULTICHOICE_SINGLE_QUIZ,)

    async def evaluate(self, ctx: EvaluationInput) -> bool:
        answer = ctx.submitted.get("answer")
        if not answer:
            return False
        correct = ctx.requirement.get("correctAnswer")
        if correct is None:
            return False
        return str(answer).lower() == str(correct).lower()


# ============================================================================
# NFT OWNERSHIP
# ============================================================================


class ValidNFTHandler(RequirementHandler):
    requirement_types = (
        RequirementType.VALID_NFT,
        RequirementType.VALID_NFT_3,
        RequirementType.VALID_NFT_5,
    )

    def __init__(self, oracle: NFTOwnershipOracle, guard: OracleGuard) -> None:
        self._oracle = oracle
        self._guard = guard

    async def evaluate(self, ctx: EvaluationInput) -> bool:
        requirement = ctx.requirement
        contract_address = requirement.get("contractAddress")
        if not contract_address or not ctx.address:
            return False

        chain = requirement.get("chain") or DEFAULT_CHAIN
        # Numbered variants share the default; only an explicit count raises it
        count = int(requirement.get("count") or 1)
        attribute_type = requirement.get("attributeType")
        attribute_value = requirement.get("attributeValue")
        address = ctx.address

        return await self._guard.check(
            "nft_ownership",
            lambda: self._oracle.verify_ownership(
                address,
                [contract_address],
                chain=chain,
                count=count,
                attribute_type=attribute_type,
                attribute_value=attribute_value,
            ),
            cache_key=f"own:{chain}:{contract_address}:{address}:{count}:{attribute_type}:{attribute_value}",
        )


class TotalNFTHandler(RequirementHandler):
    """
    Sums holdings across several ``<chain>:<contract>`` entries.

    Entries without a chain prefix are read on the default chain. One failed
    chain fails the whole requirement.
    """

    requirement_types = (RequirementType.TOTAL_NFT,)

    def __init__(self, oracle: NFTOwnershipOracle, guard: OracleGuard) -> None:
        self._oracle = oracle
        self._guard = guard

    @staticmethod
    def parse_contracts(raw: str) -> List[Tuple[str, str]]:
        entries: List[Tuple[str, str]] = []
        for entry in str(raw).split(","):
            entry = entry.strip()
            if not entry:
                continue
            chain, sep, contract = entry.partition(":")
            if not sep:
                chain, contract = DEFAULT_CHAIN, entry
            entries.append((chain.strip(), contract.strip()))
        return entries

    async def _count_on(self, address: str, chain: str, contract: str, ctx: EvaluationInput) -> int:
        attribute_type = ctx.requirement.get("attributeType")
        attribute_value = ctx.requirement.get("attributeValue")
        owned = await self._guard.call(
            "nft_ownership",
            lambda: self._oracle.verify_ownership(
                address,
                [contract],
                chain=chain,
                attribute_type=attribute_type,
                attribute_value=attribute_value,
                return_count=True,
            ),
            cache_key=f"count:{chain}:{contract}:{address}:{attribute_type}:{attribute_value}",
        )
        return int(owned or 0)

    async def evaluate(self, ctx: EvaluationInput) -> bool:
        raw = ctx.requirement.get("contractAddress")
        if not raw or not ctx.address:
            return False
        contracts = self.parse_contracts(raw)
        if not contracts:
            return False

        required = int(ctx.requirement.get("count") or 1)
        address = ctx.address
        counts = await asyncio.gather(
            *(self._count_on(address, chain, contract, ctx) for chain, contract in contracts)
        )
        total = sum(counts)

        logger.debug(
            "TOTAL_NFT holdings summed",
            extra={"chains": len(contracts), "total": total, "required": required},
        )
        return total >= required


# ============================================================================
# SOCIAL GRAPH
# ============================================================================


class SocialProfileHandler(RequirementHandler):
    """
    Resolves every social profile linked to the invoker's primary address;
    the requirement passes if any one profile satisfies ``profile_satisfies``.
    """

    def __init__(self, oracle: SocialGraphOracle, guard: OracleGuard) -> None:
        self._oracle = oracle
        self._guard = guard

    async def evaluate(self, ctx: EvaluationInput) -> bool:
        if not ctx.address:
            return False
        address = ctx.address
        profiles: Sequence[SocialProfile] = await self._guard.call(
            "social_graph", lambda: self._oracle.get_profiles_by_address(address)
        )
        for profile in profiles or ():
            if await self.profile_satisfies(profile, ctx):
                return True
        return False

    @abstractmethod
    async def profile_satisfies(self, profile: SocialProfile, ctx: EvaluationInput) -> bool: ...


class FarcasterAccountHandler(SocialProfileHandler):
    requirement_types = (RequirementType.FARCASTER_ACCOUNT,)

    async def profile_satisfies(self, profile: SocialProfile, ctx: EvaluationInput) -> bool:
        return True


class FarcasterFollowersHandler(SocialProfileHandler):
    prefix = "FARCASTER_FOLLOWERS_"

    async def profile_satisfies(self, profile: SocialProfile, ctx: EvaluationInput) -> bool:
        return profile.followers >= self.threshold(ctx.requirement.type)


class FarcasterCastsHandler(SocialProfileHandler):
    prefix = "FARCASTER_CASTS_"

    async def profile_satisfies(self, profile: SocialProfile, ctx: EvaluationInput) -> bool:
        required = self.threshold(ctx.requirement.type)
        # A failing profile lookup does not hide the remaining profiles
        try:
            casts = await self._guard.call(
                "social_graph", lambda: self._oracle.count_casts(profile.fid)
            )
        except OracleUnavailableError:
            return False
        return int(casts) >= required


class FarcasterLikesHandler(SocialProfileHandler):
    prefix = "FARCASTER_LIKES_"

    async def profile_satisfies(self, profile: SocialProfile, ctx: EvaluationInput) -> bool:
        required = self.threshold(ctx.requirement.type)
        try:
            likes = await self._guard.call(
                "social_graph", lambda: self._oracle.count_likes_received(profile.fid)
            )
        except OracleUnavailableError:
            return False
        return int(likes) >= required


class FarquestTaggedHandler(SocialProfileHandler):
    """
    A cast that mentions the quest bot and contains the keyword, within the
    rolling window. Casts that only embed the season certificate image do
    not count.
    """

    requirement_types = (RequirementType.FARCASTER_FARQUEST_TAGGED,)

    def __init__(
        self,
        oracle: SocialGraphOracle,
        guard: OracleGuard,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(oracle, guard)
        self._clock = clock

    async def profile_satisfies(self, profile: SocialProfile, ctx: EvaluationInput) -> bool:
        since = self._clock() - timedelta(days=Config.FARQUEST_WINDOW_DAYS)
        try:
            casts = await self._guard.call(
                "social_graph",
                lambda: self._oracle.find_mentions(profile.fid, Config.FARQUEST_FID, since),
            )
        except OracleUnavailableError:
            return False

        keyword = Config.FARQUEST_KEYWORD.lower()
        excluded = Config.FARQUEST_EXCLUDED_TEXT
        return any(
            keyword in cast.text.lower() and excluded not in cast.text
            for cast in casts or ()
        )


# ============================================================================
# MARKETPLACE
# ============================================================================


class MarketplaceFirstHandler(RequirementHandler):
    requirement_types = (
        RequirementType.FARMARKET_LISTING_FIRST,
        RequirementType.FARMARKET_BUY_FIRST,
        RequirementType.FARMARKET_OFFER_FIRST,
    )

    EVENT_TYPES: ClassVar[Dict[str, MarketplaceEventType]] = {
        RequirementType.FARMARKET_LISTING_FIRST.value: MarketplaceEventType.LISTED,
        RequirementType.FARMARKET_BUY_FIRST.value: MarketplaceEventType.BOUGHT,
        RequirementType.FARMARKET_OFFER_FIRST.value: MarketplaceEventType.OFFER_MADE,
    }

    def __init__(self, log: MarketplaceEventLog, guard: OracleGuard) -> None:
        self._log = log
        self._guard = guard

    async def evaluate(self, ctx: EvaluationInput) -> bool:
        if ctx.invoker.is_external or not ctx.address:
            return False
        event_type = self.EVENT_TYPES[ctx.requirement.type]
        address = ctx.address
        return await self._guard.check(
            "marketplace",
            lambda: self._log.exists(event_type.value, address),
            cache_key=f"{event_type.value}:{address}",
        )


# ============================================================================
# REGISTRY
# ============================================================================


class RequirementRegistry:
    """Maps requirement type strings to handlers; exact match beats prefix."""

    def __init__(self) -> None:
        self._exact: Dict[str, RequirementHandler] = {}
        self._prefixed: List[Tuple[str, RequirementHandler]] = []

    def register(self, handler: RequirementHandler) -> None:
        for requirement_type in handler.requirement_types:
            self._exact[requirement_type.value] = handler
        if handler.prefix:
            self._prefixed = [(p, h) for p, h in self._prefixed if p != handler.prefix]
            self._prefixed.append((handler.prefix, handler))
            # Longest prefix first so nested families resolve predictably
            self._prefixed.sort(key=lambda item: len(item[0]), reverse=True)

    def resolve(self, requirement_type: str) -> Optional[RequirementHandler]:
        handler = self._exact.get(requirement_type)
        if handler is not None:
            return handler
        for prefix, candidate in self._prefixed:
            if requirement_type.startswith(prefix):
                return candidate
        return None

    def registered_types(self) -> List[str]:
        return sorted(self._exact) + [f"{prefix}*" for prefix, _ in self._prefixed]


def combine_results(results: Iterable[bool], operator: JoinOperator) -> bool:
    """
    OR: any satisfied. AND: all satisfied.

    A quest without requirements is satisfied under either operator.
    """
    results = list(results)
    if not results:
        return True
    if operator is JoinOperator.AND:
        return all(results)
    return any(results)


# ============================================================================
# EVALUATOR
# ============================================================================


class RequirementEvaluator:
    def __init__(self, registry: RequirementRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> RequirementRegistry:
        return self._registry

    @classmethod
    def build_default(
        cls,
        *,
        nft_oracle: Optional[NFTOwnershipOracle] = None,
        social_graph: Optional[SocialGraphOracle] = None,
        marketplace: Optional[MarketplaceEventLog] = None,
        guard: Optional[OracleGuard] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> RequirementEvaluator:
        """
        Registry with the local handlers plus a handler family for every
        oracle supplied. Types whose oracle is missing evaluate to False.
        """
        guard = guard or OracleGuard()
        registry = RequirementRegistry()
        registry.register(CommunityParticipationHandler())
        registry.register(MultichoiceQuizHandler())

        if nft_oracle is not None:
            registry.register(ValidNFTHandler(nft_oracle, guard))
            registry.register(TotalNFTHandler(nft_oracle, guard))

        if social_graph is not None:
            registry.register(FarcasterAccountHandler(social_graph, guard))
            registry.register(FarcasterFollowersHandler(social_graph, guard))
            registry.register(FarcasterCastsHandler(social_graph, guard))
            registry.register(FarcasterLikesHandler(social_graph, guard))
            registry.register(FarquestTaggedHandler(social_graph, guard, clock=clock))

        if marketplace is not None:
            registry.register(MarketplaceFirstHandler(marketplace, guard))

        return cls(registry)

    async def evaluate(
        self,
        requirement: Requirement,
        quest: QuestContext,
        invoker: Invoker,
        submitted: SubmittedData = None,
    ) -> bool:
        """Evaluate one requirement. Never raises for missing external data."""
        handler = self._registry.resolve(requirement.type)
        if handler is None:
            logger.debug(
                "No handler for requirement type; treated as unsatisfied",
                extra={"requirement_type": requirement.type},
            )
            return False

        ctx = EvaluationInput(
            requirement=requirement,
            quest=quest,
            invoker=invoker,
            submitted=normalize_submitted_data(submitted),
        )
        try:
            return bool(await handler.evaluate(ctx))
        except OracleUnavailableError as exc:
            logger.warning(
                "Oracle unavailable during evaluation",
                extra={
                    "requirement_type": requirement.type,
                    "oracle": exc.oracle,
                    "reason": exc.reason,
                },
            )
            return False
        except (ValueError, TypeError) as exc:
            logger.warning(
                "Malformed requirement data; treated as unsatisfied",
                extra={"requirement_type": requirement.type, "error": str(exc)},
            )
            return False

    async def evaluate_each(
        self,
        requirements: Sequence[Requirement],
        quest: QuestContext,
        invoker: Invoker,
        submitted: SubmittedData = None,
    ) -> List[bool]:
        """Evaluate all requirements concurrently, preserving order."""
        submitted_dict = normalize_submitted_data(submitted)
        return list(
            await asyncio.gather(
                *(self.evaluate(r, quest, invoker, submitted_dict) for r in requirements)
            )
        )

    async def evaluate_all(
        self,
        requirements: Sequence[Requirement],
        operator: JoinOperator,
        quest: QuestContext,
        invoker: Invoker,
        submitted: SubmittedData = None,
    ) -> bool:
        results = await self.evaluate_each(requirements, quest, invoker, submitted)
        satisfied = combine_results(results, operator)

        logger.debug(
            "Requirements evaluated",
            extra={
                "requirement_count": len(results),
                "satisfied_count": sum(results),
                "join_operator": operator.value,
                "satisfied": satisfied,
            },
        )
        return satisfied
