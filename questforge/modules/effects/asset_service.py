"""
Community asset effect.

Default ``AssetEffect``: an ASSET_3D reward raises the number of copies of a
3D asset its community may place, creating the community asset on first
grant. The asset itself must exist as a reward item.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from questforge.core.logging.logger import get_logger
from questforge.database.models import CommunityAsset, RewardItem
from questforge.database.models.enums import RewardType
from questforge.modules.shared.base_repository import BaseRepository
from questforge.modules.shared.exceptions import InvalidOperationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class CommunityAssetRepository(BaseRepository[CommunityAsset]):
    async def find_by_pair(
        self, session: AsyncSession, community_id: int, asset_id: int
    ) -> CommunityAsset | None:
        return await self.find_one_where(
            session,
            CommunityAsset.community_id == community_id,
            CommunityAsset.asset_id == asset_id,
            for_update=True,
        )


class CommunityAssetService:
    def __init__(self) -> None:
        self.log = get_logger(__name__)
        self._repo = CommunityAssetRepository(
            CommunityAsset, get_logger(f"{__name__}.CommunityAssetRepository")
        )

    async def add_asset_copies(
        self,
        session: AsyncSession,
        *,
        community_id: int,
        asset_id: int,
        quantity: int,
    ) -> int:
        """
        Add ``quantity`` placeable copies; returns the new max quantity.

        Raises:
            InvalidOperationError: If the asset is not a known 3D asset
        """
        asset = await session.get(RewardItem, asset_id) if asset_id else None
        if asset is None or asset.type != RewardType.ASSET_3D.value:
            raise InvalidOperationError("add_asset_copies", "Invalid asset data")

        existing = await self._repo.find_by_pair(session, community_id, asset_id)
        if existing is not None:
            existing.max_quantity = existing.max_quantity + quantity
            community_asset = existing
        else:
            community_asset = self._repo.add(
                session,
                CommunityAsset(
                    community_id=community_id,
                    asset_id=asset_id,
                    type=RewardType.ASSET_3D.value,
                    max_quantity=quantity,
                ),
            )
        await self._repo.flush(session)

        self.log.info(
            "Community asset copies added",
            extra={
                "community_id": community_id,
                "asset_id": asset_id,
                "quantity": quantity,
                "max_quantity": community_asset.max_quantity,
                "asset_created": existing is None,
            },
        )
        return community_asset.max_quantity
