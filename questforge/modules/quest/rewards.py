"""
Reward Issuer & Reward Item Factory
===================================

Purpose
-------
``RewardIssuer`` applies one granted reward through the effect collaborator
registered for its type:

- ASSET_3D -> ``AssetEffect.add_asset_copies`` (community copy limit += quantity)
- SCORE    -> ``ScoreEffect.modify_score`` (signed modifier, configured score type)
- IMAGE    -> ``InventoryEffect.add_item`` (upsert by reward_id/type)
- NFT      -> ``InventoryEffect.add_item``

``RewardItemFactory`` creates and loads the payload rows (``reward_items``)
that quest rewards point to through ``reward_id``.

Design Notes
------------
- Issuance runs in the caller's session; a raised error rolls the whole
  claim back, including the ledger write that preceded it.
- The score type is injected once (``Config.score_type()`` by default)
  instead of being read from the environment at issue time.
- Factory failures never raise: an unknown type or invalid payload yields
  None and the reward is stored without a reward_id.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Mapping, Optional

from questforge.core.config.config import Config
from questforge.core.logging.logger import get_logger
from questforge.database.models import RewardItem
from questforge.database.models.enums import RewardType
from questforge.domain.models.quest import Reward
from questforge.modules.shared.exceptions import InvalidOperationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from questforge.modules.oracles.interfaces import (
        AssetEffect,
        InventoryEffect,
        ScoreEffect,
    )

logger = get_logger(__name__)


@dataclass(frozen=True)
class Recipient:
    """Who a reward is issued to, and in which community."""

    community_id: int
    account_id: int
    address: Optional[str] = None


IssueHandler = Callable[["AsyncSession", Reward, Recipient], Awaitable[None]]


# ============================================================================
# ISSUER
# ============================================================================


class RewardIssuer:
    def __init__(
        self,
        *,
        asset_effect: AssetEffect,
        score_effect: ScoreEffect,
        inventory_effect: InventoryEffect,
        score_type: Optional[str] = None,
    ) -> None:
        self._assets = asset_effect
        self._scores = score_effect
        self._inventory = inventory_effect
        self.score_type = score_type or Config.score_type()
        self._handlers: Dict[RewardType, IssueHandler] = {
            RewardType.ASSET_3D: self._issue_asset,
            RewardType.SCORE: self._issue_score,
            RewardType.IMAGE: self._issue_inventory_item,
            RewardType.NFT: self._issue_inventory_item,
        }

    @property
    def score_effect(self) -> ScoreEffect:
        return self._scores

    async def issue(self, session: AsyncSession, reward: Reward, recipient: Recipient) -> Reward:
        """
        Apply one reward.

        Raises:
            InvalidOperationError: If the reward cannot be applied for this
                recipient (no linked address, missing reward_id)
        """
        handler = self._handlers.get(reward.type)
        if handler is None:
            raise InvalidOperationError("issue_reward", f"unsupported reward type {reward.type}")

        await handler(session, reward, recipient)

        logger.info(
            "Reward issued",
            extra={
                "reward_type": reward.type.value,
                "reward_id": reward.reward_id,
                "quantity": reward.quantity,
                "account_id": recipient.account_id,
                "community_id": recipient.community_id,
            },
        )
        return reward

    async def _issue_asset(self, session: AsyncSession, reward: Reward, recipient: Recipient) -> None:
        if reward.reward_id is None:
            raise InvalidOperationError("issue_reward", "ASSET_3D reward has no reward_id")
        await self._assets.add_asset_copies(
            session,
            community_id=recipient.community_id,
            asset_id=reward.reward_id,
            quantity=reward.quantity,
        )

    async def _issue_score(self, session: AsyncSession, reward: Reward, recipient: Recipient) -> None:
        if not recipient.address:
            raise InvalidOperationError("issue_reward", "score rewards need a linked address")
        await self._scores.modify_score(
            session,
            address=recipient.address,
            score_type=self.score_type,
            modifier=reward.quantity,
        )

    async def _issue_inventory_item(
        self, session: AsyncSession, reward: Reward, recipient: Recipient
    ) -> None:
        if reward.reward_id is None:
            raise InvalidOperationError("issue_reward", f"{reward.type.value} reward has no reward_id")
        await self._inventory.add_item(
            session,
            account_id=recipient.account_id,
            reward_id=reward.reward_id,
            reward_type=reward.type.value,
            quantity=reward.quantity,
        )


# ============================================================================
# REWARD ITEM FACTORY
# ============================================================================


def _asset_3d_payload(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "url": data.get("url"),
        "format": data.get("format"),
        "assetType": data.get("assetType"),
        "name": data.get("name"),
        "previewImage": data.get("previewImage"),
    }


def _image_payload(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "src": data.get("src"),
        "isVerified": bool(data.get("isVerified")),
        "verificationOrigin": data.get("verifyOrigin"),
        "verificationTokenId": data.get("verificationTokenId"),
        "verificationChainId": data.get("verificationChainId"),
        "verificationContractAddress": data.get("verificationContractAddress"),
        "verificationExternalUrl": data.get("verificationExternalUrl"),
        "name": data.get("name"),
        "metadata": data.get("metadata"),
        "description": data.get("description"),
        "layers": data.get("layers"),
    }


def _nft_payload(data: Mapping[str, Any]) -> Dict[str, Any]:
    if not data.get("verificationContractAddress") or not data.get("verificationTokenId"):
        raise ValueError("NFT requires a verificationContractAddress and a verificationTokenId")
    payload = _image_payload(data)
    payload["isVerified"] = True
    payload["verificationOrigin"] = "NFT"
    return payload


# IMAGE and NFT rewards share the image payload shape
IMAGE_TYPES = frozenset({RewardType.IMAGE, RewardType.NFT})
IMAGE_TYPE_VALUES = frozenset(t.value for t in IMAGE_TYPES)


class RewardItemFactory:
    """Type-keyed creation and lookup of reward payloads."""

    BUILDERS: Dict[RewardType, Callable[[Mapping[str, Any]], Dict[str, Any]]] = {
        RewardType.ASSET_3D: _asset_3d_payload,
        RewardType.IMAGE: _image_payload,
        RewardType.NFT: _nft_payload,
    }

    async def create(
        self,
        session: AsyncSession,
        reward_type: Any,
        data: Optional[Mapping[str, Any]],
    ) -> Optional[RewardItem]:
        """Create a payload row, or return None on unknown type or invalid data."""
        try:
            parsed = RewardType(reward_type)
        except ValueError:
            return None
        builder = self.BUILDERS.get(parsed)
        if builder is None:
            return None

        try:
            payload = builder(data or {})
        except (ValueError, TypeError, AttributeError) as exc:
            logger.warning(
                "Reward item could not be created",
                extra={"reward_type": parsed.value, "error": str(exc)},
            )
            return None

        item = RewardItem(type=parsed.value, data=payload)
        session.add(item)
        await session.flush()
        return item

    async def get(self, session: AsyncSession, reward: Reward) -> Optional[RewardItem]:
        """Payload behind a reward; None for SCORE rewards or dangling ids."""
        if reward.reward_id is None or reward.type not in self.BUILDERS:
            return None
        item = await session.get(RewardItem, reward.reward_id)
        if item is None:
            return None
        if reward.type in IMAGE_TYPES:
            return item if item.type in IMAGE_TYPE_VALUES else None
        return item if item.type == reward.type.value else None
