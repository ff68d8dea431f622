"""
Account inventory effect.

Default ``InventoryEffect``: IMAGE and NFT rewards land in the claimant's
inventory, one row per (account, reward_id, reward_type), quantity summed.
Runs inside the caller's session so it commits or rolls back with the claim.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from questforge.core.logging.logger import get_logger
from questforge.database.models import AccountInventory
from questforge.modules.shared.base_repository import BaseRepository, insert_if_absent
from questforge.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class AccountInventoryRepository(BaseRepository[AccountInventory]):
    pass


class AccountInventoryService:
    def __init__(self) -> None:
        self.log = get_logger(__name__)
        self._repo = AccountInventoryRepository(
            AccountInventory, get_logger(f"{__name__}.AccountInventoryRepository")
        )

    async def add_item(
        self,
        session: AsyncSession,
        *,
        account_id: int,
        reward_id: int,
        reward_type: str,
        quantity: int,
    ) -> int:
        """
        Add ``quantity`` copies of an item; returns the new quantity.

        Raises:
            ValidationError: If reward_id or account_id is missing
        """
        if not reward_id or not account_id:
            raise ValidationError("reward_id", "inventory items need an account and a reward_id")

        await session.execute(
            insert_if_absent(
                session,
                AccountInventory,
                {
                    "account_id": account_id,
                    "reward_id": reward_id,
                    "reward_type": reward_type,
                    "quantity": 0,
                },
                ["account_id", "reward_id", "reward_type"],
            )
        )
        item = await self._repo.find_one_where(
            session,
            AccountInventory.account_id == account_id,
            AccountInventory.reward_id == reward_id,
            AccountInventory.reward_type == reward_type,
            for_update=True,
        )
        assert item is not None
        item.quantity = item.quantity + quantity
        await self._repo.flush(session)

        self.log.info(
            "Inventory item added",
            extra={
                "account_id": account_id,
                "reward_id": reward_id,
                "reward_type": reward_type,
                "quantity": quantity,
                "new_quantity": item.quantity,
            },
        )
        return item.quantity
