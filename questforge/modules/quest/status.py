"""
Quest status resolution.

Pure transition from the inputs gathered by ``CommunityQuestService`` to a
``QuestStatus``. Nothing here touches the database or an oracle; the
``eligible`` callable is only awaited when its answer can change the result.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from questforge.database.models import CommunityQuest, CommunityQuestAccount
from questforge.database.models.enums import QuestStatus
from questforge.domain.models.quest import Invoker, QuestDefinition


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes (SQLite round trips) are read as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def has_started(quest: QuestDefinition, now: datetime) -> bool:
    starts_at = as_utc(quest.starts_at)
    return starts_at is None or starts_at <= as_utc(now)


async def resolve_quest_status(
    community_quest: CommunityQuest,
    quest: Optional[QuestDefinition],
    ledger_row: Optional[CommunityQuestAccount],
    invoker: Optional[Invoker],
    eligible: Callable[[], Awaitable[bool]],
    now: datetime,
) -> QuestStatus:
    """
    Resolve the status of one community quest for one invoker.

    Order matters: archival wins over everything, an anonymous caller is
    always IN_PROGRESS, and a satisfied unclaimed quest is claimable before
    a claimed one is reported as CHECKED_IN.
    """
    if community_quest.is_archived:
        return QuestStatus.COMPLETED

    if invoker is None:
        return QuestStatus.IN_PROGRESS

    claimed = ledger_row is not None and ledger_row.reward_claimed

    if not claimed and quest is not None and has_started(quest, now) and await eligible():
        return QuestStatus.CAN_CLAIM_REWARD

    if claimed:
        return QuestStatus.CHECKED_IN

    return QuestStatus.IN_PROGRESS
