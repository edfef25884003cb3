"""Shared quests: one quest instance owned jointly by two friends."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from questline.core.exceptions import NotFriends
from questline.db.session import atomic
from questline.models.shared_quest import SharedQuest, SharedQuestStatus
from questline.services import ledger_service
from questline.services.catalog_service import get_quest
from questline.services.friend_service import are_friends
from questline.services.progression_service import apply_purchase, apply_start

logger = logging.getLogger(__name__)


def create_shared_quest(db: Session, user_a: int, user_b: int, quest_id: int) -> SharedQuest:
    """Link two friends to a quest, then purchase and start it for both.

    Everything happens in one transaction: if either purchase fails (already owned, not enough
    coins) no shared row, debit or user quest is kept.
    """
    now = datetime.now(timezone.utc)
    with atomic(db):
        if not are_friends(db, user_a, user_b):
            raise NotFriends(user_a, user_b)
        quest = get_quest(db, quest_id)

        # Both users up front, ascending id, so two opposite invitations cannot deadlock.
        ledger_service.lock_users(db, [user_a, user_b])

        shared = SharedQuest(
            user1_id=user_a,
            user2_id=user_b,
            quest_id=quest.id,
            status=SharedQuestStatus.ACTIVE.value,
        )
        db.add(shared)
        db.flush()

        for user_id in (user_a, user_b):
            user_quest = apply_purchase(db, user_id, quest)
            apply_start(db, user_quest, quest, now)

    db.refresh(shared)
    logger.info(
        "shared_quest_created shared_quest_id=%s quest_id=%s user1_id=%s user2_id=%s",
        shared.id,
        quest_id,
        user_a,
        user_b,
    )
    return shared


def list_shared_quests(db: Session, user_id: int) -> list[SharedQuest]:
    """Shared quests the user takes part in, newest first."""
    result = db.execute(
        select(SharedQuest)
        .where(or_(SharedQuest.user1_id == user_id, SharedQuest.user2_id == user_id))
        .order_by(SharedQuest.created_at.desc(), SharedQuest.id.desc())
    )
    return list(result.scalars().all())
