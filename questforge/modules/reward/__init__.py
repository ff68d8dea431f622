"""
Reward Module
=============

- CommunityRewardService: score-priced community rewards (EXCHANGE, BATTLE_PASS)
"""

from .service import CommunityRewardService

__all__ = ["CommunityRewardService"]
