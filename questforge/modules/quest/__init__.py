"""
Quest Module
============

Requirement evaluation, status resolution, the claim ledger and reward
issuance for community quests.

Services
--------
- QuestDefinitionService: create, bind and list quests
- CommunityQuestService: status, completion and reward claims

Building blocks
---------------
- RequirementEvaluator / RequirementRegistry: requirement handlers by type
- resolve_quest_status: pure status transition
- RewardIssuer / RewardItemFactory: reward effects and payloads
"""

from .definition_service import QuestDefinitionService, validate_requirement
from .requirements import (
    RequirementEvaluator,
    RequirementHandler,
    RequirementRegistry,
    combine_results,
)
from .rewards import Recipient, RewardIssuer, RewardItemFactory
from .service import CommunityQuestService
from .status import resolve_quest_status

__all__ = [
    "CommunityQuestService",
    "QuestDefinitionService",
    "Recipient",
    "RequirementEvaluator",
    "RequirementHandler",
    "RequirementRegistry",
    "RewardIssuer",
    "RewardItemFactory",
    "combine_results",
    "resolve_quest_status",
    "validate_requirement",
]
