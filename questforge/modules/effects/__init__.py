"""
Effects Module
==============

SQL-backed default collaborators that apply a granted reward:

- AccountInventoryService: IMAGE / NFT rewards into account inventories
- CommunityAssetService: ASSET_3D rewards into community asset limits
- ScoreService: SCORE rewards and EXCHANGE debits, plus score totals

All writes take the caller's session and join its transaction.
"""

from .asset_service import CommunityAssetService
from .inventory_service import AccountInventoryService
from .score_service import ScoreService, normalize_address

__all__ = [
    "AccountInventoryService",
    "CommunityAssetService",
    "ScoreService",
    "normalize_address",
]
