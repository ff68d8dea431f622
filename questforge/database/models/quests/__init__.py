"""
Quest domain ORM models.

Exports:
- Quest
- CommunityQuest
- CommunityQuestAccount
- CommunityReward
- CommunityRewardAccount
"""

from .community_quest import CommunityQuest
from .community_quest_account import CommunityQuestAccount
from .community_reward import UNLIMITED_QUANTITY, CommunityReward
from .community_reward_account import CommunityRewardAccount
from .quest import Quest

__all__ = [
    "CommunityQuest",
    "CommunityQuestAccount",
    "CommunityReward",
    "CommunityRewardAccount",
    "Quest",
    "UNLIMITED_QUANTITY",
]
