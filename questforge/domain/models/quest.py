"""
Quest domain value objects.

Purpose
-------
Immutable views of the JSON records embedded in quest rows (requirements,
rewards, key/value data) plus the request-scoped inputs of evaluation and
claiming (invoker, quest context) and the results handed back to callers.

Design Notes
------------
- Requirement keeps its ``type`` as the raw string so unknown types survive a
  round trip and simply evaluate to False.
- Data lookups are by key; the first matching entry wins, like a list scan.
- Submitted data accepts either a mapping or the ``[{"key", "value"}]`` list
  form clients send.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from questforge.database.models.enums import (
    JoinOperator,
    QuestStatus,
    RequirementType,
    RewardType,
)
from questforge.domain.models.base import (
    DomainValidationError,
    validate_non_negative,
    validate_not_empty,
)

if TYPE_CHECKING:
    from questforge.database.models import CommunityQuest, CommunityReward, Quest


SubmittedData = Union[Mapping[str, Any], Iterable[Mapping[str, Any]], None]


# ============================================================================
# EMBEDDED RECORDS
# ============================================================================


@dataclass(frozen=True)
class KeyValue:
    key: str
    value: Any = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> KeyValue:
        if not isinstance(raw, Mapping) or "key" not in raw:
            raise DomainValidationError("data entries need a 'key'", field="data")
        return cls(key=str(raw["key"]), value=raw.get("value"))

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "value": self.value}


def _lookup(entries: Iterable[KeyValue], key: str, default: Any = None) -> Any:
    for entry in entries:
        if entry.key == key:
            return entry.value
    return default


@dataclass(frozen=True)
class Requirement:
    """One eligibility condition of a quest."""

    type: str
    title: Optional[str] = None
    data: Tuple[KeyValue, ...] = ()

    @property
    def requirement_type(self) -> Optional[RequirementType]:
        """Enum member, or None for a type this engine does not know."""
        return RequirementType.parse(self.type)

    def get(self, key: str, default: Any = None) -> Any:
        return _lookup(self.data, key, default)

    def has(self, key: str) -> bool:
        return any(entry.key == key for entry in self.data)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Requirement:
        if not isinstance(raw, Mapping):
            raise DomainValidationError("requirement must be an object", field="requirements")
        raw_type = raw.get("type")
        if isinstance(raw_type, RequirementType):
            raw_type = raw_type.value
        validate_not_empty(raw_type, "requirements.type")
        return cls(
            type=str(raw_type),
            title=raw.get("title"),
            data=tuple(KeyValue.from_dict(entry) for entry in raw.get("data") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "data": [entry.to_dict() for entry in self.data],
        }


@dataclass(frozen=True)
class Reward:
    """
    One reward of a quest (or the reward of a CommunityReward).

    For SCORE rewards ``quantity`` is the signed score modifier; for items it
    is the number of copies granted.
    """

    type: RewardType
    title: Optional[str] = None
    reward_id: Optional[int] = None
    quantity: int = 1
    is_sponsored: bool = False
    category: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Reward:
        if not isinstance(raw, Mapping):
            raise DomainValidationError("reward must be an object", field="rewards")
        try:
            reward_type = RewardType(raw.get("type"))
        except ValueError as exc:
            raise DomainValidationError(
                f"unknown reward type {raw.get('type')!r}", field="rewards.type"
            ) from exc

        quantity = raw.get("quantity")
        reward_id = raw.get("reward_id")
        return cls(
            type=reward_type,
            title=raw.get("title"),
            reward_id=int(reward_id) if reward_id is not None else None,
            quantity=1 if quantity is None else int(quantity),
            is_sponsored=bool(raw.get("is_sponsored", False)),
            category=raw.get("category"),
        )

    def with_reward_id(self, reward_id: Optional[int]) -> Reward:
        return replace(self, reward_id=reward_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "reward_id": self.reward_id,
            "quantity": self.quantity,
            "is_sponsored": self.is_sponsored,
            "category": self.category,
        }


# ============================================================================
# QUEST DEFINITION
# ============================================================================


@dataclass(frozen=True)
class QuestDefinition:
    """Materialised quest row with parsed requirements and rewards."""

    id: int
    community_id: int
    title: str
    join_operator: JoinOperator = JoinOperator.OR
    requirements: Tuple[Requirement, ...] = ()
    rewards: Tuple[Reward, ...] = ()
    schedule: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, quest: Quest) -> QuestDefinition:
        try:
            operator = JoinOperator(quest.requirement_join_operator or JoinOperator.OR.value)
        except ValueError:
            operator = JoinOperator.OR
        return cls(
            id=quest.id,
            community_id=quest.community_id,
            title=quest.title,
            join_operator=operator,
            requirements=tuple(Requirement.from_dict(r) for r in quest.requirements or ()),
            rewards=tuple(Reward.from_dict(r) for r in quest.rewards or ()),
            schedule=quest.schedule,
            starts_at=quest.starts_at,
            ends_at=quest.ends_at,
        )

    def has_requirement(self, requirement_type: RequirementType) -> bool:
        return any(r.type == requirement_type.value for r in self.requirements)


# ============================================================================
# REQUEST-SCOPED INPUTS
# ============================================================================


@dataclass(frozen=True)
class Invoker:
    """
    The account asking for status or a claim.

    ``is_external`` marks accounts authenticated through a third-party
    identity; marketplace requirements never pass for them.
    """

    account_id: int
    primary_address: Optional[str] = None
    is_external: bool = False


@dataclass(frozen=True)
class QuestContext:
    """What requirement handlers may know about the quest being evaluated."""

    community_id: int
    quest_id: int
    community_quest_id: int
    participant_count: int = 0

    def __post_init__(self) -> None:
        validate_non_negative(self.participant_count, "participant_count")

    @classmethod
    def from_community_quest(cls, community_quest: CommunityQuest) -> QuestContext:
        return cls(
            community_id=community_quest.community_id,
            quest_id=community_quest.quest_id,
            community_quest_id=community_quest.id,
            participant_count=community_quest.participant_count,
        )


def normalize_submitted_data(submitted: SubmittedData) -> Dict[str, Any]:
    """
    Flatten submitted answers into a dict.

    Accepts ``{"answer": "blue"}`` or ``[{"key": "answer", "value": "blue"}]``.
    Later duplicates do not override the first entry.
    """
    if submitted is None:
        return {}
    if isinstance(submitted, Mapping):
        return dict(submitted)

    flattened: Dict[str, Any] = {}
    for entry in submitted:
        if isinstance(entry, KeyValue):
            key, value = entry.key, entry.value
        elif isinstance(entry, Mapping) and "key" in entry:
            key, value = str(entry["key"]), entry.get("value")
        else:
            continue
        flattened.setdefault(key, value)
    return flattened


# ============================================================================
# RESULTS
# ============================================================================


@dataclass(frozen=True)
class ClaimResult:
    community_quest: CommunityQuest
    rewards: Tuple[Reward, ...]
    status: QuestStatus = QuestStatus.CHECKED_IN


@dataclass(frozen=True)
class CommunityRewardClaimResult:
    community_reward: CommunityReward
    reward: Reward
    reward_claimed_count: int
    score_debited: int = 0

