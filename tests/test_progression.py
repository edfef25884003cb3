"""Quest/task progression tests: purchase, start, task and quest completion."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, text

from questline.core.exceptions import (
    AlreadyOwned,
    InsufficientFunds,
    NotEligible,
    NotPurchased,
    NotStarted,
    PersistenceFailure,
    QuestNotFound,
    TasksIncomplete,
)
from questline.models.user import User
from questline.models.user_quest import QuestStatus, UserQuest
from questline.models.user_task import TaskStatus, UserTask
from questline.schemas.quest import TaskScheduleItem
from questline.services import ledger_service, progression_service

from conftest import TestingSessionLocal


def _user_tasks(db, user_id, quest_id):
    return list(
        db.execute(
            select(UserTask).where(UserTask.user_id == user_id, UserTask.quest_id == quest_id).order_by(UserTask.task_id)
        ).scalars()
    )


def _user_quest_count(db, user_id):
    return len(list(db.execute(select(UserQuest).where(UserQuest.user_id == user_id)).scalars()))


def test_purchase_debits_and_creates_progress(db, make_user, make_quest):
    user = make_user(coins=100)
    quest = make_quest(price=30, task_count=3)

    user_quest = progression_service.purchase_quest(db, user.id, quest.id)

    assert user_quest.status == QuestStatus.PURCHASED.value
    assert user_quest.started_at is None
    assert user_quest.expires_at is None
    assert db.get(User, user.id).coin_balance == 70

    tasks = _user_tasks(db, user.id, quest.id)
    assert [t.task_id for t in tasks] == [t.id for t in quest.tasks]
    assert all(t.status == TaskStatus.NOT_STARTED.value for t in tasks)

    entry = ledger_service.list_entries(db, user.id)[0]
    assert entry.coin_amount == -30
    assert entry.description == f"Purchased quest: {quest.title}"


def test_purchase_twice_is_rejected(db, make_user, make_quest):
    user = make_user(coins=100)
    quest = make_quest(price=10)
    progression_service.purchase_quest(db, user.id, quest.id)

    with pytest.raises(AlreadyOwned):
        progression_service.purchase_quest(db, user.id, quest.id)

    assert db.get(User, user.id).coin_balance == 90
    assert _user_quest_count(db, user.id) == 1


def test_purchase_unknown_quest(db, make_user):
    user = make_user()
    with pytest.raises(QuestNotFound):
        progression_service.purchase_quest(db, user.id, 999_999)


def test_purchase_insufficient_funds_leaves_state_untouched(db, make_user, make_quest):
    user = make_user(coins=5)
    quest = make_quest(price=10)

    with pytest.raises(InsufficientFunds):
        progression_service.purchase_quest(db, user.id, quest.id)

    assert db.get(User, user.id).coin_balance == 5
    assert _user_quest_count(db, user.id) == 0
    assert _user_tasks(db, user.id, quest.id) == []
    assert ledger_service.list_entries(db, user.id) == []


def test_free_quest_can_be_purchased_with_zero_balance(db, make_user, make_quest):
    user = make_user(coins=0)
    quest = make_quest(price=0)
    assert progression_service.purchase_quest(db, user.id, quest.id).status == QuestStatus.PURCHASED.value


def test_stale_balance_cannot_double_spend(db, make_user, make_quest):
    """A session that read the balance before another purchase committed cannot spend it again."""
    user = make_user(coins=10)
    first = make_quest(price=10)
    second = make_quest(price=10)

    other = TestingSessionLocal()
    try:
        assert other.get(User, user.id).coin_balance == 10

        progression_service.purchase_quest(db, user.id, first.id)

        with pytest.raises(InsufficientFunds):
            progression_service.purchase_quest(other, user.id, second.id)
    finally:
        other.close()

    db.expire_all()
    assert db.get(User, user.id).coin_balance == 0
    assert _user_quest_count(db, user.id) == 1


def test_concurrent_duplicate_purchase_reports_already_owned(db, make_user, make_quest, monkeypatch):
    """A purchase that passes the ownership check but loses the insert race is AlreadyOwned."""
    user = make_user(coins=100)
    quest = make_quest(price=10)
    progression_service.purchase_quest(db, user.id, quest.id)

    # Simulate the other transaction committing between the check and the insert.
    monkeypatch.setattr(
        progression_service, "load_quest_state", lambda db, user_id, quest_id, **kw: (QuestStatus.ABSENT, None)
    )
    with pytest.raises(AlreadyOwned):
        progression_service.purchase_quest(db, user.id, quest.id)

    db.expire_all()
    assert db.get(User, user.id).coin_balance == 90
    assert _user_quest_count(db, user.id) == 1
    assert len(ledger_service.list_entries(db, user.id)) == 1


def test_database_error_after_debit_rolls_back_purchase(db, make_user, make_quest, monkeypatch):
    user = make_user(coins=100)
    quest = make_quest(price=30)
    real_debit = ledger_service.debit

    def debit_then_fail(session, *args, **kwargs):
        balance = real_debit(session, *args, **kwargs)
        session.execute(text("SELECT no_such_function()"))
        return balance

    monkeypatch.setattr(ledger_service, "debit", debit_then_fail)

    with pytest.raises(PersistenceFailure):
        progression_service.purchase_quest(db, user.id, quest.id)

    db.expire_all()
    assert db.get(User, user.id).coin_balance == 100
    assert _user_quest_count(db, user.id) == 0
    assert _user_tasks(db, user.id, quest.id) == []
    assert ledger_service.list_entries(db, user.id) == []


def test_start_sets_expiry_and_activates_tasks(db, make_user, make_quest):
    user = make_user()
    quest = make_quest(time_limit_hours=48)
    progression_service.purchase_quest(db, user.id, quest.id)

    user_quest = progression_service.start_quest(db, user.id, quest.id)

    assert user_quest.status == QuestStatus.STARTED.value
    assert user_quest.expires_at - user_quest.started_at == timedelta(hours=48)
    assert all(t.status == TaskStatus.ACTIVE.value for t in _user_tasks(db, user.id, quest.id))


def test_start_requires_purchase(db, make_user, make_quest):
    user = make_user()
    quest = make_quest()

    with pytest.raises(NotPurchased):
        progression_service.start_quest(db, user.id, quest.id)

    progression_service.purchase_quest(db, user.id, quest.id)
    progression_service.start_quest(db, user.id, quest.id)
    with pytest.raises(NotPurchased):
        progression_service.start_quest(db, user.id, quest.id)


def test_complete_task_rewards_immediately(db, make_user, make_quest):
    user = make_user(coins=100, xp=95)
    quest = make_quest(price=10, task_xp=10, task_coins=3)
    progression_service.purchase_quest(db, user.id, quest.id)
    progression_service.start_quest(db, user.id, quest.id)

    user_task = progression_service.complete_task(db, user.id, quest.id, quest.tasks[0].id)

    assert user_task.status == TaskStatus.COMPLETED.value
    assert user_task.completed_at is not None
    assert user_task.xp_gained == 10
    assert user_task.coin_gained == 3

    refreshed = db.get(User, user.id)
    assert refreshed.xp_points == 105
    assert refreshed.level == 2
    assert refreshed.coin_balance == 93


def test_complete_task_on_purchased_quest_starts_it(db, make_user, make_quest):
    user = make_user()
    quest = make_quest(task_count=2)
    progression_service.purchase_quest(db, user.id, quest.id)

    progression_service.complete_task(db, user.id, quest.id, quest.tasks[0].id)

    status, user_quest = progression_service.load_quest_state(db, user.id, quest.id)
    assert status is QuestStatus.STARTED
    assert user_quest.started_at is not None
    assert user_quest.expires_at is not None
    statuses = [t.status for t in _user_tasks(db, user.id, quest.id)]
    assert statuses == [TaskStatus.COMPLETED.value, TaskStatus.ACTIVE.value]


def test_complete_task_twice_is_not_eligible(db, make_user, make_quest):
    user = make_user(coins=100)
    quest = make_quest(price=10, task_xp=10, task_coins=1)
    progression_service.purchase_quest(db, user.id, quest.id)
    progression_service.complete_task(db, user.id, quest.id, quest.tasks[0].id)

    with pytest.raises(NotEligible):
        progression_service.complete_task(db, user.id, quest.id, quest.tasks[0].id)

    refreshed = db.get(User, user.id)
    assert refreshed.xp_points == 10
    assert refreshed.coin_balance == 91


def test_complete_task_without_purchase_is_not_eligible(db, make_user, make_quest):
    user = make_user()
    quest = make_quest()
    with pytest.raises(NotEligible):
        progression_service.complete_task(db, user.id, quest.id, quest.tasks[0].id)


def test_complete_task_from_another_quest_is_not_eligible(db, make_user, make_quest):
    user = make_user()
    quest = make_quest()
    other = make_quest()
    progression_service.purchase_quest(db, user.id, quest.id)

    with pytest.raises(NotEligible):
        progression_service.complete_task(db, user.id, quest.id, other.tasks[0].id)


def test_sequential_quest_requires_task_order(db, make_user, make_quest):
    user = make_user()
    quest = make_quest(task_count=3, is_sequential=True)
    progression_service.purchase_quest(db, user.id, quest.id)

    with pytest.raises(NotEligible):
        progression_service.complete_task(db, user.id, quest.id, quest.tasks[1].id)

    for task in quest.tasks:
        progression_service.complete_task(db, user.id, quest.id, task.id)


def test_non_sequential_quest_allows_any_order(db, make_user, make_quest):
    user = make_user()
    quest = make_quest(task_count=3)
    progression_service.purchase_quest(db, user.id, quest.id)

    for task in reversed(quest.tasks):
        progression_service.complete_task(db, user.id, quest.id, task.id)


def test_complete_quest_gated_on_tasks(db, make_user, make_quest):
    user = make_user(coins=100)
    quest = make_quest(price=10, task_count=2, task_xp=10, task_coins=1, reward_xp=50, reward_coin=5)
    progression_service.purchase_quest(db, user.id, quest.id)
    progression_service.start_quest(db, user.id, quest.id)
    progression_service.complete_task(db, user.id, quest.id, quest.tasks[0].id)

    with pytest.raises(TasksIncomplete) as exc:
        progression_service.complete_quest(db, user.id, quest.id)
    assert exc.value.details["remaining"] == 1

    progression_service.complete_task(db, user.id, quest.id, quest.tasks[1].id)
    completion = progression_service.complete_quest(db, user.id, quest.id)

    assert completion.shared_quest_id is None
    assert len(completion.completed) == 1
    finished = completion.completed[0]
    assert finished.status == QuestStatus.COMPLETED.value
    assert finished.xp_gained == 50
    assert finished.coin_gained == 5

    refreshed = db.get(User, user.id)
    assert refreshed.xp_points == 70
    assert refreshed.coin_balance == 100 - 10 + 2 + 5
    assert all(t.is_confirmed for t in _user_tasks(db, user.id, quest.id))


def test_complete_quest_requires_started(db, make_user, make_quest):
    user = make_user()
    quest = make_quest(task_count=0)

    with pytest.raises(NotStarted):
        progression_service.complete_quest(db, user.id, quest.id)

    progression_service.purchase_quest(db, user.id, quest.id)
    with pytest.raises(NotStarted):
        progression_service.complete_quest(db, user.id, quest.id)


def test_complete_quest_twice_is_rejected(db, make_user, make_quest):
    user = make_user()
    quest = make_quest(task_count=1)
    progression_service.purchase_quest(db, user.id, quest.id)
    progression_service.complete_task(db, user.id, quest.id, quest.tasks[0].id)
    progression_service.complete_quest(db, user.id, quest.id)
    xp_after_first = db.get(User, user.id).xp_points

    with pytest.raises(NotStarted):
        progression_service.complete_quest(db, user.id, quest.id)
    with pytest.raises(AlreadyOwned):
        progression_service.purchase_quest(db, user.id, quest.id)

    db.expire_all()
    assert db.get(User, user.id).xp_points == xp_after_first


def test_load_quest_state_absent(db, make_user, make_quest):
    user = make_user()
    quest = make_quest()
    assert progression_service.load_quest_state(db, user.id, quest.id) == (QuestStatus.ABSENT, None)


def test_schedule_fills_only_empty_fields(db, make_user, make_quest):
    user = make_user()
    quest = make_quest(task_count=2)
    progression_service.purchase_quest(db, user.id, quest.id)
    first, second = quest.tasks

    rows = progression_service.schedule_tasks(
        db, user.id, quest.id, [TaskScheduleItem(task_id=first.id, duration_minutes=30)]
    )
    assert [r.duration_minutes for r in rows] == [30, None]

    rows = progression_service.schedule_tasks(
        db,
        user.id,
        quest.id,
        [
            TaskScheduleItem(task_id=first.id, duration_minutes=90),
            TaskScheduleItem(task_id=second.id, duration_minutes=45),
        ],
    )
    assert [r.duration_minutes for r in rows] == [30, 45]


def test_schedule_rejects_foreign_task_and_unowned_quest(db, make_user, make_quest):
    user = make_user()
    quest = make_quest()
    other = make_quest()

    with pytest.raises(NotPurchased):
        progression_service.schedule_tasks(db, user.id, quest.id, [TaskScheduleItem(task_id=quest.tasks[0].id)])

    progression_service.purchase_quest(db, user.id, quest.id)
    with pytest.raises(NotEligible):
        progression_service.schedule_tasks(db, user.id, quest.id, [TaskScheduleItem(task_id=other.tasks[0].id)])


def test_schedule_checks_end_against_stored_start(db, make_user, make_quest):
    user = make_user()
    quest = make_quest(task_count=1)
    progression_service.purchase_quest(db, user.id, quest.id)
    task_id = quest.tasks[0].id
    start = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)

    progression_service.schedule_tasks(db, user.id, quest.id, [TaskScheduleItem(task_id=task_id, scheduled_start=start)])

    with pytest.raises(NotEligible):
        progression_service.schedule_tasks(
            db, user.id, quest.id, [TaskScheduleItem(task_id=task_id, scheduled_end=start - timedelta(hours=1))]
        )
    db.expire_all()
    assert _user_tasks(db, user.id, quest.id)[0].scheduled_end is None

    rows = progression_service.schedule_tasks(
        db, user.id, quest.id, [TaskScheduleItem(task_id=task_id, scheduled_end=start + timedelta(hours=1))]
    )
    assert rows[0].scheduled_end is not None
