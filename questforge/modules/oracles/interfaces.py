"""
Oracle and collaborator protocols.

Everything the quest engine reads from or writes to outside its own ledger
goes through one of these structural interfaces. Production adapters (NFT
indexers, the social graph, the marketplace log, the access-rule system)
live outside this package; tests pass in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol, Sequence, Union, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

DEFAULT_CHAIN = "eth-mainnet"


@dataclass(frozen=True)
class SocialProfile:
    """One social-graph identity linked to an address."""

    fid: int
    followers: int = 0
    username: Optional[str] = None


@dataclass(frozen=True)
class Cast:
    fid: int
    text: str
    timestamp: Optional[datetime] = None


# ============================================================================
# READ ORACLES
# ============================================================================


@runtime_checkable
class NFTOwnershipOracle(Protocol):
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
        """
        True when ``address`` holds at least ``count`` matching tokens, or the
        number held when ``return_count`` is set.
        """
        ...


@runtime_checkable
class SocialGraphOracle(Protocol):
    async def get_profiles_by_address(self, address: str) -> Sequence[SocialProfile]: ...

    async def count_casts(self, fid: int) -> int: ...

    async def count_likes_received(self, fid: int) -> int:
        """Likes on ``fid``'s casts from other accounts."""
        ...

    async def find_mentions(
        self, fid: int, mentioned_fid: int, since: datetime
    ) -> Sequence[Cast]: ...


@runtime_checkable
class MarketplaceEventLog(Protocol):
    async def exists(self, event_type: str, from_address: str) -> bool: ...


@runtime_checkable
class AccessRuleCollaborator(Protocol):
    async def get_rule_for_block(self, rich_block_id: Any) -> Optional[Any]: ...

    async def can_claim_role(self, rule: Any, community_id: int, address: str) -> bool: ...


@runtime_checkable
class ScoreTotalProvider(Protocol):
    async def get_community_score(self, address: str, score_type: str) -> int: ...


# ============================================================================
# EFFECT COLLABORATORS (write inside the claim transaction)
# ============================================================================


@runtime_checkable
class AssetEffect(Protocol):
    async def add_asset_copies(
        self,
        session: AsyncSession,
        *,
        community_id: int,
        asset_id: int,
        quantity: int,
    ) -> None: ...


@runtime_checkable
class ScoreEffect(Protocol):
    async def modify_score(
        self,
        session: AsyncSession,
        *,
        address: str,
        score_type: str,
        modifier: int,
    ) -> int: ...

    async def spend_score(
        self,
        session: AsyncSession,
        *,
        address: str,
        score_type: str,
        amount: int,
    ) -> Optional[int]:
        """None when the balance is below ``amount``; nothing is debited then."""
        ...


@runtime_checkable
class InventoryEffect(Protocol):
    async def add_item(
        self,
        session: AsyncSession,
        *,
        account_id: int,
        reward_id: int,
        reward_type: str,
        quantity: int,
    ) -> int: ...
