"""
Economy domain ORM models.

Exports:
- AccountInventory
- CommunityAsset
- RewardItem
- ScoreBalance
"""

from .account_inventory import AccountInventory
from .community_asset import CommunityAsset
from .reward_item import RewardItem
from .score_balance import ScoreBalance

__all__ = [
    "AccountInventory",
    "CommunityAsset",
    "RewardItem",
    "ScoreBalance",
]
