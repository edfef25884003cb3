"""Quest/task progression engine.

Per (user, quest): ``absent -> purchased -> started -> completed``.
Per (user, task):  ``not_started -> active -> completed``.

Each public function is one transaction (``atomic``): every row it touches (user balance, ledger
entry, user quest, user tasks, shared quest) changes together or not at all. Coins, XP and level
are only written through ``ledger_service``.

``apply_purchase`` / ``apply_start`` are the transaction-less building blocks, reused by the
shared quest coordinator to purchase and start for both partners inside one transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from questline.core.exceptions import (
    AlreadyOwned,
    NotEligible,
    NotPurchased,
    NotStarted,
    PartnerIncomplete,
    TasksIncomplete,
)
from questline.db.session import atomic
from questline.models.quest import Quest, Task
from questline.models.shared_quest import SharedQuest, SharedQuestStatus
from questline.models.user_quest import QuestStatus, UserQuest
from questline.models.user_task import COMPLETABLE_TASK_STATUSES, TaskStatus, UserTask
from questline.schemas.quest import TaskScheduleItem
from questline.services import ledger_service
from questline.services.catalog_service import get_quest

logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = ("scheduled_start", "scheduled_end", "deadline", "duration_minutes")


@dataclass(frozen=True)
class Solo:
    """Quest instance owned by the acting user alone."""


@dataclass(frozen=True)
class Shared:
    """Quest instance linked to a partner through an active shared quest row."""

    shared_quest: SharedQuest
    partner_id: int


QuestMode = Solo | Shared


@dataclass
class QuestCompletion:
    quest_id: int
    completed: list[UserQuest] = field(default_factory=list)
    shared_quest_id: int | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands stored timestamps back without tzinfo.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def load_quest_state(
    db: Session,
    user_id: int,
    quest_id: int,
    *,
    for_update: bool = False,
) -> tuple[QuestStatus, UserQuest | None]:
    """Return the explicit state of (user, quest); a missing row is ``QuestStatus.ABSENT``."""
    stmt = select(UserQuest).where(UserQuest.user_id == user_id, UserQuest.quest_id == quest_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    row = db.execute(stmt).scalar_one_or_none()
    if row is None:
        return QuestStatus.ABSENT, None
    return QuestStatus(row.status), row


def count_incomplete_tasks(db: Session, user_id: int, quest_id: int) -> int:
    return db.execute(
        select(func.count(UserTask.id)).where(
            UserTask.user_id == user_id,
            UserTask.quest_id == quest_id,
            UserTask.status != TaskStatus.COMPLETED.value,
        )
    ).scalar_one()


def apply_purchase(db: Session, user_id: int, quest: Quest) -> UserQuest:
    """Debit the price, create the user quest and one user task per template. Does not commit."""
    # A failed flush expires every loaded object, so read the quest up front.
    quest_id = quest.id
    task_ids = [task.id for task in quest.tasks]

    ledger_service.lock_user(db, user_id)

    status, _ = load_quest_state(db, user_id, quest_id)
    if status is not QuestStatus.ABSENT:
        raise AlreadyOwned(user_id, quest_id)

    ledger_service.debit(
        db,
        user_id,
        quest.price,
        reference_type="quest",
        reference_id=quest_id,
        description=f"Purchased quest: {quest.title}",
    )

    user_quest = UserQuest(user_id=user_id, quest_id=quest_id, status=QuestStatus.PURCHASED.value)
    db.add(user_quest)
    try:
        db.flush()
    except IntegrityError as exc:
        # A concurrent purchase inserted the row first.
        raise AlreadyOwned(user_id, quest_id) from exc

    db.add_all(
        [
            UserTask(
                user_id=user_id,
                task_id=task_id,
                quest_id=quest_id,
                status=TaskStatus.NOT_STARTED.value,
            )
            for task_id in task_ids
        ]
    )
    db.flush()
    return user_quest


def apply_start(db: Session, user_quest: UserQuest, quest: Quest, now: datetime) -> None:
    """Stamp start/expiry and activate the not-started tasks. Does not commit."""
    user_quest.status = QuestStatus.STARTED.value
    user_quest.started_at = now
    user_quest.expires_at = now + timedelta(hours=quest.time_limit_hours)
    db.execute(
        update(UserTask)
        .where(
            UserTask.user_id == user_quest.user_id,
            UserTask.quest_id == quest.id,
            UserTask.status == TaskStatus.NOT_STARTED.value,
        )
        .values(status=TaskStatus.ACTIVE.value)
    )
    db.flush()


def purchase_quest(db: Session, user_id: int, quest_id: int) -> UserQuest:
    with atomic(db):
        quest = get_quest(db, quest_id)
        user_quest = apply_purchase(db, user_id, quest)
    logger.info("quest_purchased user_id=%s quest_id=%s price=%s", user_id, quest_id, quest.price)
    return user_quest


def start_quest(db: Session, user_id: int, quest_id: int) -> UserQuest:
    with atomic(db):
        quest = get_quest(db, quest_id)
        status, user_quest = load_quest_state(db, user_id, quest_id, for_update=True)
        if status is not QuestStatus.PURCHASED:
            raise NotPurchased(user_id, quest_id, status.value)
        apply_start(db, user_quest, quest, _now())
    logger.info("quest_started user_id=%s quest_id=%s expires_at=%s", user_id, quest_id, user_quest.expires_at)
    return user_quest


def _ensure_previous_tasks_completed(db: Session, user_id: int, task: Task) -> None:
    pending = db.execute(
        select(func.count(UserTask.id))
        .join(Task, Task.id == UserTask.task_id)
        .where(
            UserTask.user_id == user_id,
            UserTask.quest_id == task.quest_id,
            Task.task_order < task.task_order,
            UserTask.status != TaskStatus.COMPLETED.value,
        )
    ).scalar_one()
    if pending:
        raise NotEligible(
            "Earlier tasks of this sequential quest are not completed",
            user_id=user_id,
            quest_id=task.quest_id,
            task_id=task.id,
            pending=pending,
        )


def complete_task(db: Session, user_id: int, quest_id: int, task_id: int) -> UserTask:
    """Complete one task and grant its reward immediately.

    Completing a task of a purchased but not yet started quest starts the quest first.
    """
    now = _now()
    with atomic(db):
        status, user_quest = load_quest_state(db, user_id, quest_id, for_update=True)
        if status not in (QuestStatus.PURCHASED, QuestStatus.STARTED):
            raise NotEligible(
                "Quest is not purchased or started",
                user_id=user_id,
                quest_id=quest_id,
                status=status.value,
            )

        task = db.get(Task, task_id)
        if task is None or task.quest_id != quest_id:
            raise NotEligible("Task does not belong to this quest", quest_id=quest_id, task_id=task_id)

        user_task = db.execute(
            select(UserTask)
            .where(UserTask.user_id == user_id, UserTask.task_id == task_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if user_task is None or user_task.status not in COMPLETABLE_TASK_STATUSES:
            raise NotEligible(
                "Task not found or already completed",
                user_id=user_id,
                task_id=task_id,
                status=user_task.status if user_task else None,
            )

        quest = task.quest
        if quest.is_sequential:
            _ensure_previous_tasks_completed(db, user_id, task)

        if status is QuestStatus.PURCHASED:
            apply_start(db, user_quest, quest, now)

        ledger_service.credit(
            db,
            user_id,
            xp=task.base_xp_reward,
            coins=task.base_coin_reward,
            reference_type="task",
            reference_id=task.id,
            description=f"Completed task: {task.title}",
        )

        user_task.status = TaskStatus.COMPLETED.value
        user_task.completed_at = now
        user_task.xp_gained = task.base_xp_reward
        user_task.coin_gained = task.base_coin_reward
        db.flush()

    logger.info("task_completed user_id=%s quest_id=%s task_id=%s", user_id, quest_id, task_id)
    return user_task


def resolve_completion_mode(db: Session, user_id: int, quest_id: int) -> QuestMode:
    """Decide once whether the user's quest instance is solo or shared.

    The active shared quest row stays locked until the transaction ends, which serializes the
    partners' completion checks against each other.
    """
    shared = db.execute(
        select(SharedQuest)
        .where(
            SharedQuest.quest_id == quest_id,
            SharedQuest.status == SharedQuestStatus.ACTIVE.value,
            or_(SharedQuest.user1_id == user_id, SharedQuest.user2_id == user_id),
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if shared is None:
        return Solo()
    return Shared(shared_quest=shared, partner_id=shared.partner_of(user_id))


def _reward_and_finalize(db: Session, user_id: int, quest: Quest, now: datetime) -> UserQuest:
    status, user_quest = load_quest_state(db, user_id, quest.id, for_update=True)
    if user_quest is None:
        raise NotStarted(user_id, quest.id, status.value)

    ledger_service.credit(
        db,
        user_id,
        xp=quest.reward_xp,
        coins=quest.reward_coin,
        reference_type="quest",
        reference_id=quest.id,
        description=f"Completed quest: {quest.title}",
    )

    user_quest.status = QuestStatus.COMPLETED.value
    user_quest.completed_at = now
    user_quest.xp_gained = quest.reward_xp
    user_quest.coin_gained = quest.reward_coin

    db.execute(
        update(UserTask)
        .where(UserTask.user_id == user_id, UserTask.quest_id == quest.id)
        .values(is_confirmed=True)
    )
    db.flush()
    return user_quest


def complete_quest(db: Session, user_id: int, quest_id: int) -> QuestCompletion:
    """Finish a quest and grant the quest-level reward.

    For a shared quest the first partner to finish is rejected with ``PartnerIncomplete``;
    the second partner's call rewards and finalizes both.
    """
    now = _now()
    with atomic(db):
        quest = get_quest(db, quest_id)
        mode = resolve_completion_mode(db, user_id, quest_id)

        status, _ = load_quest_state(db, user_id, quest_id, for_update=True)
        if status is not QuestStatus.STARTED:
            raise NotStarted(user_id, quest_id, status.value)

        remaining = count_incomplete_tasks(db, user_id, quest_id)
        if remaining:
            raise TasksIncomplete(user_id, quest_id, remaining)

        completion = QuestCompletion(quest_id=quest_id)
        if isinstance(mode, Shared):
            if count_incomplete_tasks(db, mode.partner_id, quest_id):
                logger.info(
                    "shared_quest_waiting user_id=%s partner_id=%s quest_id=%s",
                    user_id,
                    mode.partner_id,
                    quest_id,
                )
                raise PartnerIncomplete(user_id, mode.partner_id, quest_id)

            ledger_service.lock_users(db, [user_id, mode.partner_id])
            for participant in (user_id, mode.partner_id):
                completion.completed.append(_reward_and_finalize(db, participant, quest, now))
            mode.shared_quest.status = SharedQuestStatus.COMPLETED.value
            mode.shared_quest.completed_at = now
            completion.shared_quest_id = mode.shared_quest.id
            db.flush()
        else:
            completion.completed.append(_reward_and_finalize(db, user_id, quest, now))

    logger.info(
        "quest_completed user_id=%s quest_id=%s shared_quest_id=%s",
        user_id,
        quest_id,
        completion.shared_quest_id,
    )
    return completion


def schedule_tasks(
    db: Session,
    user_id: int,
    quest_id: int,
    items: list[TaskScheduleItem],
) -> list[UserTask]:
    """Fill scheduling fields of the user's tasks. Values already set are kept."""
    with atomic(db):
        status, _ = load_quest_state(db, user_id, quest_id)
        if status is QuestStatus.ABSENT:
            raise NotPurchased(user_id, quest_id, status.value)

        rows = {
            row.task_id: row
            for row in db.execute(
                select(UserTask)
                .where(UserTask.user_id == user_id, UserTask.quest_id == quest_id)
                .with_for_update()
            ).scalars()
        }
        for item in items:
            row = rows.get(item.task_id)
            if row is None:
                raise NotEligible("Task does not belong to this quest", quest_id=quest_id, task_id=item.task_id)
            merged = {name: getattr(row, name) for name in SCHEDULE_FIELDS}
            for name in SCHEDULE_FIELDS:
                if merged[name] is None:
                    merged[name] = getattr(item, name)
            start, end = merged["scheduled_start"], merged["scheduled_end"]
            if start is not None and end is not None and _as_utc(end) < _as_utc(start):
                raise NotEligible(
                    "scheduled_end must not be before scheduled_start",
                    quest_id=quest_id,
                    task_id=item.task_id,
                )
            for name, value in merged.items():
                if value is not None and getattr(row, name) is None:
                    setattr(row, name, value)
        db.flush()

    return sorted(rows.values(), key=lambda row: row.task_id)
