"""
Oracle module: protocols for external data sources and effect
collaborators, plus the guard and cache every oracle call goes through.
"""

from .cache import OracleCache
from .guard import OracleGuard
from .interfaces import (
    DEFAULT_CHAIN,
    AccessRuleCollaborator,
    AssetEffect,
    Cast,
    InventoryEffect,
    MarketplaceEventLog,
    NFTOwnershipOracle,
    ScoreEffect,
    ScoreTotalProvider,
    SocialGraphOracle,
    SocialProfile,
)

__all__ = [
    "DEFAULT_CHAIN",
    "AccessRuleCollaborator",
    "AssetEffect",
    "Cast",
    "InventoryEffect",
    "MarketplaceEventLog",
    "NFTOwnershipOracle",
    "OracleCache",
    "OracleGuard",
    "ScoreEffect",
    "ScoreTotalProvider",
    "SocialGraphOracle",
    "SocialProfile",
]
