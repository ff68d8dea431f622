"""
Quest Definition Service
========================

Purpose
-------
Creates and lists quest definitions and their community bindings.

Domain
------
- Requirement data validation against the static required-key table
- Reward payload creation through ``RewardItemFactory`` for rewards
  submitted without a ``reward_id``
- CommunityQuest find-or-create with participant merge and archive toggle
- Paged quest listing with ``-field`` descending sort

Design Notes
------------
- Validation happens before any write; a quest with invalid requirement
  data is never persisted.
- ``quest.created`` is emitted after the transaction commits.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from questforge.core.config.config import Config
from questforge.core.database.service import DatabaseService
from questforge.core.logging.logger import LogContext, get_logger
from questforge.database.models import CommunityQuest, Quest, RewardItem
from questforge.database.models.enums import JoinOperator, QuestSchedule, RequirementType
from questforge.domain.models.base import DomainValidationError
from questforge.domain.models.quest import Requirement, Reward
from questforge.modules.quest.ledger import CommunityQuestRepository, QuestRepository
from questforge.modules.quest.rewards import RewardItemFactory
from questforge.modules.shared.base_repository import insert_if_absent
from questforge.modules.shared.base_service import BaseService
from questforge.modules.shared.exceptions import InternalError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from questforge.core.event.bus import EventBus


REQUIRED_DATA_BY_TYPE: Dict[RequirementType, Tuple[str, ...]] = {
    # richBlockId selects the access rule checked when an account completes
    RequirementType.COMMUNITY_PARTICIPATION: ("richBlockId", "requiredParticipationCount"),
    RequirementType.MULTICHOICE_SINGLE_QUIZ: ("question", "answers", "correctAnswer"),
}


def required_keys(requirement_type: str) -> Tuple[str, ...]:
    parsed = RequirementType.parse(requirement_type)
    if parsed is None:
        return ()
    return REQUIRED_DATA_BY_TYPE.get(parsed, ())


def validate_requirement(requirement: Requirement) -> Requirement:
    """
    Check that a requirement carries every data key its type needs.

    Raises:
        ValidationError: Naming the missing keys
    """
    missing = [key for key in required_keys(requirement.type) if not requirement.has(key)]
    if missing:
        raise ValidationError(
            "requirements",
            f"Missing data for {requirement.type} requirement: {', '.join(missing)}",
            missing_keys=missing,
        )
    return requirement


def parse_requirements(raw_requirements: Iterable[Mapping[str, Any]]) -> List[Requirement]:
    requirements: List[Requirement] = []
    for raw in raw_requirements or ():
        try:
            requirement = Requirement.from_dict(raw)
        except DomainValidationError as exc:
            raise ValidationError(exc.field or "requirements", str(exc)) from exc
        requirements.append(validate_requirement(requirement))
    return requirements


def merge_participants(existing: Sequence[int], added: Iterable[int]) -> List[int]:
    """Union preserving first-seen order."""
    merged = list(existing or [])
    seen = set(merged)
    for account_id in added:
        if account_id not in seen:
            merged.append(account_id)
            seen.add(account_id)
    return merged


class QuestDefinitionService(BaseService):
    """
    Service for quest definitions.

    Public Methods
    --------------
    - create_quest() -> Validate, create reward items, persist quest and binding
    - find_or_create_community_quest() -> Bind a quest to a community
    - get_quest() -> Load one quest
    - list_quests() -> Paged quests of a community
    - get_quest_reward_item() -> Payload behind a reward
    """

    def __init__(
        self,
        event_bus: Optional[EventBus] = None,
        reward_items: Optional[RewardItemFactory] = None,
    ) -> None:
        super().__init__(Config, event_bus, get_logger(__name__))
        self._reward_items = reward_items or RewardItemFactory()
        self._quests = QuestRepository(Quest, get_logger(f"{__name__}.QuestRepository"))
        self._community_quests = CommunityQuestRepository(
            CommunityQuest, get_logger(f"{__name__}.CommunityQuestRepository")
        )

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def create_quest(
        self,
        community_id: int,
        title: str,
        *,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
        schedule: Optional[str] = None,
        starts_at: Optional[datetime] = None,
        ends_at: Optional[datetime] = None,
        requirement_join_operator: str = JoinOperator.OR.value,
        requirements: Iterable[Mapping[str, Any]] = (),
        rewards: Iterable[Mapping[str, Any]] = (),
    ) -> Quest:
        """
        Create a quest with requirements and rewards, and bind it to its
        community.

        Rewards submitted without ``reward_id`` get a payload created from
        their ``data``; if that fails the reward is stored with
        ``reward_id=None``.

        Raises:
            ValidationError: Missing requirement data, unknown reward type,
                bad schedule or join operator
            InternalError: Persistence failure (nothing was written)
        """
        self.validate_positive_int(community_id, "community_id")
        if not title or not title.strip():
            raise ValidationError("title", "title cannot be empty")
        operator = self._parse_choice(JoinOperator, requirement_join_operator, "requirement_join_operator")
        if schedule is not None:
            schedule = self._parse_choice(QuestSchedule, schedule, "schedule").value

        parsed_requirements = parse_requirements(requirements)
        raw_rewards = list(rewards or ())
        parsed_rewards = [self._parse_reward(raw) for raw in raw_rewards]

        async with LogContext(community_id=community_id, operation="create_quest"):
            self.log_operation(
                "create_quest",
                title=title,
                requirement_count=len(parsed_requirements),
                reward_count=len(parsed_rewards),
            )
            try:
                async with DatabaseService.get_transaction() as session:
                    stored_rewards = []
                    for raw, reward in zip(raw_rewards, parsed_rewards):
                        if reward.reward_id is None:
                            item = await self._reward_items.create(
                                session, reward.type, raw.get("data")
                            )
                            reward = reward.with_reward_id(item.id if item else None)
                        stored_rewards.append(reward.to_dict())

                    quest = self._quests.add(
                        session,
                        Quest(
                            community_id=community_id,
                            title=title.strip(),
                            description=description,
                            image_url=image_url,
                            schedule=schedule,
                            starts_at=starts_at,
                            ends_at=ends_at,
                            requirement_join_operator=operator.value,
                            requirements=[r.to_dict() for r in parsed_requirements],
                            rewards=stored_rewards,
                        ),
                    )
                    await self._quests.flush(session)
                    community_quest = await self._find_or_create(session, community_id, quest.id)
            except SQLAlchemyError as exc:
                self.log_error("create_quest", exc)
                raise InternalError("create_quest", exc) from exc

        await self.emit_event(
            "quest.created",
            {
                "quest_id": quest.id,
                "community_id": community_id,
                "community_quest_id": community_quest.id,
            },
        )
        return quest

    async def find_or_create_community_quest(
        self,
        community_id: int,
        quest_id: int,
        *,
        accounts: Optional[Iterable[int]] = None,
        is_archived: Optional[bool] = None,
    ) -> CommunityQuest:
        """
        Bind ``quest_id`` to ``community_id``, merging ``accounts`` into the
        participant list and applying ``is_archived`` when given.

        Raises:
            NotFoundError: If the quest does not exist
        """
        async with LogContext(community_id=community_id, quest_id=quest_id):
            try:
                async with DatabaseService.get_transaction() as session:
                    if await self._quests.get(session, quest_id) is None:
                        raise NotFoundError("Quest", quest_id)
                    return await self._find_or_create(
                        session, community_id, quest_id, accounts=accounts, is_archived=is_archived
                    )
            except SQLAlchemyError as exc:
                self.log_error("find_or_create_community_quest", exc)
                raise InternalError("find_or_create_community_quest", exc) from exc

    async def _find_or_create(
        self,
        session: AsyncSession,
        community_id: int,
        quest_id: int,
        *,
        accounts: Optional[Iterable[int]] = None,
        is_archived: Optional[bool] = None,
    ) -> CommunityQuest:
        await session.execute(
            insert_if_absent(
                session,
                CommunityQuest,
                {
                    "community_id": community_id,
                    "quest_id": quest_id,
                    "accounts": [],
                    "is_archived": False,
                },
                ["community_id", "quest_id"],
            )
        )
        community_quest = await self._community_quests.find_by_pair(
            session, community_id, quest_id, for_update=True
        )
        assert community_quest is not None

        if accounts:
            community_quest.accounts = merge_participants(community_quest.accounts, accounts)
        if is_archived is not None:
            community_quest.is_archived = is_archived
        await self._community_quests.flush(session)
        return community_quest

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_quest(self, quest_id: int) -> Quest:
        async with DatabaseService.get_session() as session:
            quest = await self._quests.get(session, quest_id)
            if quest is None:
                raise NotFoundError("Quest", quest_id)
            return quest

    async def list_quests(
        self,
        community_id: int,
        limit: int = 20,
        offset: int = 0,
        sort: Optional[str] = None,
    ) -> List[Quest]:
        """
        Quests owned by a community.

        ``sort`` names a column; a leading "-" sorts descending
        (e.g. ``"-created_at"``).
        """
        self.validate_positive_int(limit, "limit")
        self.validate_non_negative_int(offset, "offset")
        async with DatabaseService.get_session() as session:
            return await self._quests.find_many_where(
                session,
                Quest.community_id == community_id,
                limit=limit,
                offset=offset,
                sort=sort,
            )

    async def get_quest_reward_item(self, reward: Reward) -> Optional[RewardItem]:
        async with DatabaseService.get_session() as session:
            return await self._reward_items.get(session, reward)

    # ========================================================================
    # PRIVATE HELPERS
    # ========================================================================

    @staticmethod
    def _parse_choice(enum_class: Any, value: Any, field: str) -> Any:
        try:
            return enum_class(value)
        except ValueError as exc:
            allowed = ", ".join(member.value for member in enum_class)
            raise ValidationError(field, f"must be one of {allowed}, got {value!r}") from exc

    @staticmethod
    def _parse_reward(raw: Mapping[str, Any]) -> Reward:
        try:
            return Reward.from_dict(raw)
        except (DomainValidationError, ValueError, TypeError) as exc:
            raise ValidationError("rewards", str(exc)) from exc
