"""
Domain models package.

Immutable value objects for quest definitions, evaluation inputs, and claim
results. Database models (questforge.database.models) stay schema only;
services convert between the two.
"""

from .base import DomainValidationError, validate_non_negative, validate_not_empty
from .quest import (
    ClaimResult,
    CommunityRewardClaimResult,
    Invoker,
    KeyValue,
    QuestContext,
    QuestDefinition,
    Requirement,
    Reward,
    SubmittedData,
    normalize_submitted_data,
)

__all__ = [
    "DomainValidationError",
    "validate_non_negative",
    "validate_not_empty",
    "ClaimResult",
    "CommunityRewardClaimResult",
    "Invoker",
    "KeyValue",
    "QuestContext",
    "QuestDefinition",
    "Requirement",
    "Reward",
    "SubmittedData",
    "normalize_submitted_data",
]
