"""
Community Quest Service
=======================

Purpose
-------
Per-account quest status and the reward claim orchestration for community
quests.

Domain
------
- Status: archived -> COMPLETED; anonymous -> IN_PROGRESS; satisfied and
  unclaimed -> CAN_CLAIM_REWARD; claimed -> CHECKED_IN
- Claims: ledger slot first, then sequential reward issuance, all in one
  transaction
- Completion: ledger row plus participant list entry for eligible accounts

Guarantees
----------
- N concurrent claims for one (account, quest) issue rewards exactly once;
  the losers get ClaimRejectedError without touching the issuer.
- Status reads never write and never raise for oracle outages.
- Domain events are emitted only after commit.

Usage
-----
>>> service = CommunityQuestService(evaluator, issuer, event_bus=bus)
>>> status = await service.get_quest_status(community_id, quest_id, invoker, {"answer": "blue"})
>>> result = await service.claim_reward_or_error(community_id, quest_id, {"answer": "blue"}, invoker)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from questforge.core.config.config import Config
from questforge.core.database.base import utc_now
from questforge.core.database.circuit_breaker import CircuitBreakerOpenError
from questforge.core.database.service import DatabaseService
from questforge.core.logging.logger import LogContext, get_logger
from questforge.database.models import CommunityQuest, CommunityQuestAccount, Quest
from questforge.database.models.enums import QuestStatus, RequirementType
from questforge.domain.models.base import DomainValidationError
from questforge.domain.models.quest import (
    ClaimResult,
    Invoker,
    QuestContext,
    QuestDefinition,
    Requirement,
    Reward,
    SubmittedData,
    normalize_submitted_data,
)
from questforge.modules.oracles.guard import OracleGuard
from questforge.modules.quest.definition_service import merge_participants
from questforge.modules.quest.ledger import (
    CommunityQuestAccountRepository,
    CommunityQuestRepository,
    QuestRepository,
)
from questforge.modules.quest.rewards import Recipient
from questforge.modules.quest.status import has_started, resolve_quest_status
from questforge.modules.shared.base_service import BaseService
from questforge.modules.shared.exceptions import (
    ClaimRejectedError,
    InternalError,
    InvalidOperationError,
    NotFoundError,
    UnauthorizedError,
)

if TYPE_CHECKING:
    from questforge.core.event.bus import EventBus
    from questforge.modules.oracles.interfaces import AccessRuleCollaborator
    from questforge.modules.quest.requirements import RequirementEvaluator
    from questforge.modules.quest.rewards import RewardIssuer


@dataclass
class _StatusInputs:
    """Rows read for one status resolution; loaded before any oracle call."""

    community_quest: CommunityQuest
    quest: Optional[QuestDefinition]
    ledger_row: Optional[CommunityQuestAccount]


def _participation_requirements(quest: Optional[QuestDefinition]) -> List[Requirement]:
    if quest is None:
        return []
    return [
        r for r in quest.requirements
        if r.type == RequirementType.COMMUNITY_PARTICIPATION.value
    ]


class CommunityQuestService(BaseService):
    """
    Service for community quest status, completion and reward claims.

    Dependencies
    ------------
    - RequirementEvaluator: requirement checks against the oracles
    - RewardIssuer: applies rewards inside the claim transaction
    - AccessRuleCollaborator: role rule checks on completion (optional)
    - EventBus: quest.completed / quest.reward_claimed (optional)

    Public Methods
    --------------
    - get_quest_status() -> QuestStatus for an invoker
    - can_claim_reward() -> True when the status is CAN_CLAIM_REWARD
    - claim_reward_or_error() -> ClaimResult or a domain error
    - complete_quest() -> Record an eligible account as participant
    - is_claimed_by() -> Ledger lookup
    - mark_notified() -> Flag the ledger row as notified
    """

    def __init__(
        self,
        evaluator: RequirementEvaluator,
        issuer: RewardIssuer,
        *,
        access_rules: Optional[AccessRuleCollaborator] = None,
        event_bus: Optional[EventBus] = None,
        guard: Optional[OracleGuard] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(Config, event_bus, get_logger(__name__))
        self._evaluator = evaluator
        self._issuer = issuer
        self._access_rules = access_rules
        self._guard = guard or OracleGuard()
        self._clock = clock

        self._quests = QuestRepository(Quest, get_logger(f"{__name__}.QuestRepository"))
        self._community_quests = CommunityQuestRepository(
            CommunityQuest, get_logger(f"{__name__}.CommunityQuestRepository")
        )
        self._ledger = CommunityQuestAccountRepository(
            CommunityQuestAccount,
            get_logger(f"{__name__}.CommunityQuestAccountRepository"),
        )

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_quest_status(
        self,
        community_id: int,
        quest_id: int,
        invoker: Optional[Invoker],
        submitted_data: SubmittedData = None,
    ) -> QuestStatus:
        """
        Status of a community quest for ``invoker``.

        This is a **read-only** operation. A quest not bound to the
        community is IN_PROGRESS.
        """
        async with LogContext(
            account_id=invoker.account_id if invoker else None,
            community_id=community_id,
            quest_id=quest_id,
            operation="get_quest_status",
        ):
            inputs = await self._load_status_inputs(community_id, quest_id, invoker)
            if inputs is None:
                return QuestStatus.IN_PROGRESS
            return await self._resolve(inputs, invoker, submitted_data)

    async def can_claim_reward(
        self,
        community_id: int,
        quest_id: int,
        invoker: Optional[Invoker],
        submitted_data: SubmittedData = None,
    ) -> bool:
        status = await self.get_quest_status(community_id, quest_id, invoker, submitted_data)
        return status is QuestStatus.CAN_CLAIM_REWARD

    async def is_claimed_by(self, community_quest_id: int, invoker: Optional[Invoker]) -> bool:
        if invoker is None:
            return False
        async with DatabaseService.get_session() as session:
            return await self._ledger.is_claimed(session, invoker.account_id, community_quest_id)

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def claim_reward_or_error(
        self,
        community_id: int,
        quest_id: int,
        submitted_data: SubmittedData,
        invoker: Optional[Invoker],
    ) -> ClaimResult:
        """
        Claim the rewards of a community quest.

        The ledger slot is taken first; rewards are issued only by the
        caller that flipped it. Any failure rolls everything back.

        Raises:
            UnauthorizedError: No invoker
            NotFoundError: Quest not bound to the community
            ClaimRejectedError: Status is not CAN_CLAIM_REWARD, or the slot
                was already taken
            InvalidOperationError: Quest has no rewards, or a reward cannot
                be applied to this invoker
            InternalError: Persistence failure (rolled back)
        """
        if invoker is None:
            raise UnauthorizedError("claim_reward")

        async with LogContext(
            account_id=invoker.account_id,
            community_id=community_id,
            quest_id=quest_id,
            operation="claim_reward",
        ):
            inputs = await self._load_status_inputs(community_id, quest_id, invoker)
            if inputs is None:
                raise NotFoundError("CommunityQuest", f"{community_id}:{quest_id}")

            status = await self._resolve(inputs, invoker, submitted_data)
            if status is not QuestStatus.CAN_CLAIM_REWARD:
                raise ClaimRejectedError(
                    "Reward cannot be claimed at this time", status=status.value
                )

            assert inputs.quest is not None
            rewards = inputs.quest.rewards
            if not rewards:
                raise InvalidOperationError("claim_reward", "No rewards found for this quest")

            community_quest = inputs.community_quest
            recipient = Recipient(
                community_id=community_id,
                account_id=invoker.account_id,
                address=invoker.primary_address,
            )

            self.log_operation(
                "claim_reward",
                community_quest_id=community_quest.id,
                reward_count=len(rewards),
            )

            issued: List[Reward] = []
            try:
                async with DatabaseService.get_transaction() as session:
                    # Ledger first: must be the first statement of the transaction
                    claimed = await self._ledger.claim_slot(
                        session, invoker.account_id, community_quest.id
                    )
                    if not claimed:
                        raise ClaimRejectedError(
                            "Reward already claimed", status=QuestStatus.CHECKED_IN.value
                        )

                    for reward in rewards:
                        issued.append(await self._issuer.issue(session, reward, recipient))
            except (SQLAlchemyError, CircuitBreakerOpenError) as exc:
                self.log_error("claim_reward", exc, community_quest_id=community_quest.id)
                raise InternalError("claim_reward", exc) from exc

        await self.emit_event(
            "quest.reward_claimed",
            {
                "account_id": invoker.account_id,
                "community_id": community_id,
                "quest_id": quest_id,
                "community_quest_id": community_quest.id,
                "rewards": [reward.to_dict() for reward in issued],
            },
        )
        return ClaimResult(community_quest=community_quest, rewards=tuple(issued))

    async def complete_quest(
        self,
        community_id: int,
        quest_id: int,
        invoker: Optional[Invoker],
    ) -> bool:
        """
        Record ``invoker`` as having completed the quest.

        Accounts whose status is CAN_CLAIM_REWARD complete. A
        COMMUNITY_PARTICIPATION quest is joined instead: it must be started,
        unarchived and not yet claimed by the account, and the access rule
        named by ``richBlockId`` must pass. Completing creates the (unclaimed)
        ledger row and adds the account to the participant list.

        Returns:
            True if the account was recorded, False if it was not eligible

        Raises:
            UnauthorizedError: No invoker
            NotFoundError: Quest not bound to the community
        """
        if invoker is None:
            raise UnauthorizedError("complete_quest")

        async with LogContext(
            account_id=invoker.account_id,
            community_id=community_id,
            quest_id=quest_id,
            operation="complete_quest",
        ):
            inputs = await self._load_status_inputs(community_id, quest_id, invoker)
            if inputs is None:
                raise NotFoundError("CommunityQuest", f"{community_id}:{quest_id}")

            if _participation_requirements(inputs.quest):
                # Participant count not checked: joining is what raises it
                if not self._can_join(inputs):
                    return False
            else:
                status = await self._resolve(inputs, invoker, None)
                if status is not QuestStatus.CAN_CLAIM_REWARD:
                    return False
            if not await self._passes_access_rules(inputs.quest, community_id, invoker):
                return False

            try:
                async with DatabaseService.get_transaction() as session:
                    await self._ledger.ensure_entry(
                        session, invoker.account_id, inputs.community_quest.id
                    )
                    community_quest = await self._community_quests.get_for_update(
                        session, inputs.community_quest.id
                    )
                    assert community_quest is not None
                    community_quest.accounts = merge_participants(
                        community_quest.accounts, [invoker.account_id]
                    )
                    await self._community_quests.flush(session)
                    participant_count = community_quest.participant_count
            except (SQLAlchemyError, CircuitBreakerOpenError) as exc:
                self.log_error("complete_quest", exc)
                raise InternalError("complete_quest", exc) from exc

            self.log_operation("complete_quest", participant_count=participant_count)

        await self.emit_event(
            "quest.completed",
            {
                "account_id": invoker.account_id,
                "community_id": community_id,
                "quest_id": quest_id,
                "community_quest_id": inputs.community_quest.id,
                "participant_count": participant_count,
            },
        )
        return True

    async def mark_notified(self, community_quest_id: int, account_id: int) -> bool:
        try:
            async with DatabaseService.get_transaction() as session:
                return await self._ledger.mark_notified(session, account_id, community_quest_id)
        except SQLAlchemyError as exc:
            raise InternalError("mark_notified", exc) from exc

    # ========================================================================
    # PRIVATE HELPERS
    # ========================================================================

    async def _load_status_inputs(
        self, community_id: int, quest_id: int, invoker: Optional[Invoker]
    ) -> Optional[_StatusInputs]:
        async with DatabaseService.get_session() as session:
            community_quest = await self._community_quests.find_by_pair(
                session, community_id, quest_id
            )
            if community_quest is None:
                return None

            quest_row = await self._quests.get(session, community_quest.quest_id)
            ledger_row = None
            if invoker is not None:
                ledger_row = await self._ledger.find_entry(
                    session, invoker.account_id, community_quest.id
                )

        return _StatusInputs(
            community_quest=community_quest,
            quest=self._definition(quest_row),
            ledger_row=ledger_row,
        )

    def _definition(self, quest_row: Optional[Quest]) -> Optional[QuestDefinition]:
        if quest_row is None:
            return None
        try:
            return QuestDefinition.from_model(quest_row)
        except (DomainValidationError, ValueError, TypeError) as exc:
            self.log.warning(
                "Stored quest could not be parsed; treated as unsatisfiable",
                extra={"quest_id": quest_row.id, "error": str(exc)},
            )
            return None

    async def _resolve(
        self,
        inputs: _StatusInputs,
        invoker: Optional[Invoker],
        submitted_data: SubmittedData,
    ) -> QuestStatus:
        submitted = normalize_submitted_data(submitted_data)

        async def eligible() -> bool:
            assert inputs.quest is not None and invoker is not None
            return await self._evaluator.evaluate_all(
                inputs.quest.requirements,
                inputs.quest.join_operator,
                QuestContext.from_community_quest(inputs.community_quest),
                invoker,
                submitted,
            )

        status = await resolve_quest_status(
            inputs.community_quest,
            inputs.quest,
            inputs.ledger_row,
            invoker,
            eligible,
            self._clock(),
        )
        self.log.debug(
            "Quest status resolved",
            extra={"community_quest_id": inputs.community_quest.id, "status": status.value},
        )
        return status

    def _can_join(self, inputs: _StatusInputs) -> bool:
        if inputs.community_quest.is_archived or inputs.quest is None:
            return False
        if inputs.ledger_row is not None and inputs.ledger_row.reward_claimed:
            return False
        return has_started(inputs.quest, self._clock())

    async def _passes_access_rules(
        self,
        quest: Optional[QuestDefinition],
        community_id: int,
        invoker: Invoker,
    ) -> bool:
        if quest is None:
            return False
        participation = _participation_requirements(quest)
        if not participation:
            return True
        if self._access_rules is None or not invoker.primary_address:
            return False

        access_rules = self._access_rules
        address = invoker.primary_address
        for requirement in participation:
            rich_block_id = requirement.get("richBlockId")
            if not rich_block_id:
                return False

            async def check_rule(block_id: Any = rich_block_id) -> bool:
                rule = await access_rules.get_rule_for_block(block_id)
                if rule is None:
                    return False
                return await access_rules.can_claim_role(rule, community_id, address)

            if not await self._guard.check("access_rules", check_rule):
                return False
        return True
