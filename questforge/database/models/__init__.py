"""
Database Models Package
========================

SQLAlchemy ORM models for the quest engine, organized by domain:

- quests: quest definitions and the two claim ledgers
- economy: tables written by the default reward effect collaborators
- enums: closed enumerations shared by models and services

All models are schema only and inherit IdMixin/TimestampMixin.
"""

from questforge.core.database.base import Base

from .economy import AccountInventory, CommunityAsset, RewardItem, ScoreBalance
from .enums import (
    CommunityRewardType,
    JoinOperator,
    MarketplaceEventType,
    QuestSchedule,
    QuestStatus,
    RequirementType,
    RewardType,
)
from .quests import (
    UNLIMITED_QUANTITY,
    CommunityQuest,
    CommunityQuestAccount,
    CommunityReward,
    CommunityRewardAccount,
    Quest,
)

__all__ = [
    "Base",
    "AccountInventory",
    "CommunityAsset",
    "RewardItem",
    "ScoreBalance",
    "CommunityRewardType",
    "JoinOperator",
    "MarketplaceEventType",
    "QuestSchedule",
    "QuestStatus",
    "RequirementType",
    "RewardType",
    "UNLIMITED_QUANTITY",
    "CommunityQuest",
    "CommunityQuestAccount",
    "CommunityReward",
    "CommunityRewardAccount",
    "Quest",
]
