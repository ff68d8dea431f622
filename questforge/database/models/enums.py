"""
Database Model Enums
====================

Closed enumerations for the quest domain. Models persist the ``value`` of
these enums as plain strings so unknown values read back from JSON columns
can still be represented (and evaluated as unsatisfied) instead of failing
to load.
"""

from __future__ import annotations

import enum
from typing import Optional


class RequirementType(str, enum.Enum):
    """
    Kinds of quest requirements.

    The FARCASTER_CASTS_/LIKES_/FOLLOWERS_ families carry their numeric
    threshold in the suffix.
    """

    COMMUNITY_PARTICIPATION = "COMMUNITY_PARTICIPATION"
    SCORE = "SCORE"
    FARCASTER_ACCOUNT = "FARCASTER_ACCOUNT"
    FARCASTER_FOLLOWERS_10 = "FARCASTER_FOLLOWERS_10"
    FARCASTER_FOLLOWERS_100 = "FARCASTER_FOLLOWERS_100"
    FARCASTER_FOLLOWERS_1000 = "FARCASTER_FOLLOWERS_1000"
    FARCASTER_FOLLOWERS_5000 = "FARCASTER_FOLLOWERS_5000"
    FARCASTER_FOLLOWERS_10000 = "FARCASTER_FOLLOWERS_10000"
    FARCASTER_CASTS_250 = "FARCASTER_CASTS_250"
    FARCASTER_CASTS_100 = "FARCASTER_CASTS_100"
    FARCASTER_CASTS_1 = "FARCASTER_CASTS_1"
    FARCASTER_COMMENT_10 = "FARCASTER_COMMENT_10"
    FARCASTER_LIKES_10 = "FARCASTER_LIKES_10"
    FARCASTER_LIKES_100 = "FARCASTER_LIKES_100"
    FARCASTER_LIKES_500 = "FARCASTER_LIKES_500"
    FARCASTER_FARQUEST_TAGGED = "FARCASTER_FARQUEST_TAGGED"
    VALID_NFT = "VALID_NFT"
    TOTAL_NFT = "TOTAL_NFT"
    VALID_NFT_3 = "VALID_NFT_3"
    VALID_NFT_5 = "VALID_NFT_5"
    SHARE = "SHARE"
    FARMARKET_LISTING_FIRST = "FARMARKET_LISTING_FIRST"
    FARMARKET_BUY_FIRST = "FARMARKET_BUY_FIRST"
    FARMARKET_OFFER_FIRST = "FARMARKET_OFFER_FIRST"
    MULTICHOICE_SINGLE_QUIZ = "MULTICHOICE_SINGLE_QUIZ"

    @classmethod
    def parse(cls, value: object) -> Optional["RequirementType"]:
        """Member for ``value`` or None when it is not a known type."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None


class RewardType(str, enum.Enum):
    ASSET_3D = "ASSET_3D"
    SCORE = "SCORE"
    IMAGE = "IMAGE"
    NFT = "NFT"


class JoinOperator(str, enum.Enum):
    """How a quest combines its requirement results."""

    AND = "AND"
    OR = "OR"


class QuestSchedule(str, enum.Enum):
    ONCE = "ONCE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class QuestStatus(str, enum.Enum):
    """
    Per-account quest status.

    IN_PROGRESS -> CAN_CLAIM_REWARD -> CHECKED_IN; COMPLETED only through
    archival of the community quest.
    """

    IN_PROGRESS = "IN_PROGRESS"
    CAN_CLAIM_REWARD = "CAN_CLAIM_REWARD"
    CHECKED_IN = "CHECKED_IN"
    COMPLETED = "COMPLETED"


class CommunityRewardType(str, enum.Enum):
    """EXCHANGE debits the score it costs; BATTLE_PASS only requires it."""

    EXCHANGE = "EXCHANGE"
    BATTLE_PASS = "BATTLE_PASS"


class MarketplaceEventType(str, enum.Enum):
    LISTED = "Listed"
    BOUGHT = "Bought"
    OFFER_MADE = "OfferMade"
