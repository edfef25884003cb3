"""Quest catalog: creation and read-only views."""

from __future__ import annotations

import logging

from sqlalchemy import and_, select
from sqlalchemy.orm import Session, selectinload

from questline.core.exceptions import QuestNotFound, UserNotFound
from questline.db.session import atomic
from questline.models.quest import Quest, Task
from questline.models.shared_quest import SharedQuest
from questline.models.user import User
from questline.models.user_quest import QuestStatus, UserQuest
from questline.models.user_task import UserTask
from questline.schemas.quest import QuestCreate

logger = logging.getLogger(__name__)


def get_quest(db: Session, quest_id: int) -> Quest:
    quest = db.get(Quest, quest_id)
    if quest is None:
        raise QuestNotFound(quest_id)
    return quest


def create_quest(db: Session, data: QuestCreate) -> Quest:
    """Store a quest and its ordered tasks in one transaction."""
    quest = Quest(
        title=data.title,
        description=data.description,
        category=data.category,
        rarity=data.rarity,
        difficulty=data.difficulty,
        price=data.price,
        reward_xp=data.reward_xp,
        reward_coin=data.reward_coin,
        time_limit_hours=data.time_limit_hours,
        is_sequential=data.is_sequential,
        tasks=[
            Task(
                task_order=item.task_order,
                title=item.title,
                description=item.description,
                difficulty=item.difficulty,
                base_xp_reward=item.base_xp_reward,
                base_coin_reward=item.base_coin_reward,
            )
            for item in data.tasks
        ],
    )
    with atomic(db):
        db.add(quest)
    db.refresh(quest)
    logger.info("quest_created quest_id=%s tasks=%s price=%s", quest.id, len(quest.tasks), quest.price)
    return quest


def list_shop(db: Session, user_id: int) -> list[Quest]:
    """Quests the user has never purchased."""
    owned = select(UserQuest.id).where(UserQuest.quest_id == Quest.id, UserQuest.user_id == user_id)
    result = db.execute(
        select(Quest).options(selectinload(Quest.tasks)).where(~owned.exists()).order_by(Quest.id.asc())
    )
    return list(result.scalars().all())


def list_available(db: Session, user_id: int) -> list[Quest]:
    """Unowned quests the user can afford, at most one difficulty step above their level."""
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound(user_id)
    owned = select(UserQuest.id).where(UserQuest.quest_id == Quest.id, UserQuest.user_id == user_id)
    result = db.execute(
        select(Quest)
        .options(selectinload(Quest.tasks))
        .where(
            Quest.difficulty <= user.level + 1,
            Quest.price <= user.coin_balance,
            ~owned.exists(),
        )
        .order_by(Quest.difficulty.asc(), Quest.id.asc())
    )
    return list(result.scalars().all())


def _list_by_status(db: Session, user_id: int, statuses: list[str]) -> list[Quest]:
    result = db.execute(
        select(Quest)
        .options(selectinload(Quest.tasks))
        .join(UserQuest, and_(UserQuest.quest_id == Quest.id, UserQuest.user_id == user_id))
        .where(UserQuest.status.in_(statuses))
        .order_by(UserQuest.purchased_at.desc(), Quest.id.desc())
    )
    return list(result.scalars().all())


def list_active(db: Session, user_id: int) -> list[Quest]:
    return _list_by_status(db, user_id, [QuestStatus.PURCHASED.value, QuestStatus.STARTED.value])


def list_completed(db: Session, user_id: int) -> list[Quest]:
    return _list_by_status(db, user_id, [QuestStatus.COMPLETED.value])


def list_user_quest_ids(db: Session, user_id: int) -> list[int]:
    result = db.execute(
        select(UserQuest.quest_id).where(UserQuest.user_id == user_id).order_by(UserQuest.quest_id.asc())
    )
    return list(result.scalars().all())


def get_quest_details(db: Session, quest_id: int, user_id: int) -> dict:
    """Quest with every task merged with the user's progress on it (empty progress when absent)."""
    quest = get_quest(db, quest_id)
    user_quest = db.execute(
        select(UserQuest).where(UserQuest.user_id == user_id, UserQuest.quest_id == quest_id)
    ).scalar_one_or_none()
    user_tasks = {
        row.task_id: row
        for row in db.execute(
            select(UserTask).where(UserTask.user_id == user_id, UserTask.quest_id == quest_id)
        ).scalars()
    }
    shared = db.execute(
        select(SharedQuest).where(
            SharedQuest.quest_id == quest_id,
            (SharedQuest.user1_id == user_id) | (SharedQuest.user2_id == user_id),
        )
    ).scalar_one_or_none()

    tasks = []
    for task in quest.tasks:
        progress = user_tasks.get(task.id)
        tasks.append(
            {
                "id": task.id,
                "task_order": task.task_order,
                "title": task.title,
                "description": task.description,
                "difficulty": task.difficulty,
                "base_xp_reward": task.base_xp_reward,
                "base_coin_reward": task.base_coin_reward,
                "status": progress.status if progress else None,
                "scheduled_start": progress.scheduled_start if progress else None,
                "scheduled_end": progress.scheduled_end if progress else None,
                "deadline": progress.deadline if progress else None,
                "duration_minutes": progress.duration_minutes if progress else None,
                "completed_at": progress.completed_at if progress else None,
                "xp_gained": progress.xp_gained if progress else 0,
                "coin_gained": progress.coin_gained if progress else 0,
                "is_confirmed": progress.is_confirmed if progress else False,
            }
        )

    return {
        "quest": quest,
        "status": user_quest.status if user_quest else QuestStatus.ABSENT.value,
        "started_at": user_quest.started_at if user_quest else None,
        "expires_at": user_quest.expires_at if user_quest else None,
        "completed_at": user_quest.completed_at if user_quest else None,
        "shared_with": shared.partner_of(user_id) if shared else None,
        "tasks": tasks,
    }


def list_my_quests_with_details(db: Session, user_id: int) -> list[dict]:
    """Every quest the user owns, newest purchase first, each merged with the user's task progress."""
    quest_ids = db.execute(
        select(UserQuest.quest_id)
        .where(UserQuest.user_id == user_id)
        .order_by(UserQuest.purchased_at.desc(), UserQuest.quest_id.desc())
    ).scalars().all()
    return [get_quest_details(db, quest_id, user_id) for quest_id in quest_ids]
