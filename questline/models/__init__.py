"""SQLAlchemy models."""

from __future__ import annotations

from questline.models.friendship import Friendship
from questline.models.ledger_entry import LedgerEntry
from questline.models.quest import Quest, Task
from questline.models.shared_quest import SharedQuest, SharedQuestStatus
from questline.models.user import User
from questline.models.user_quest import QuestStatus, UserQuest
from questline.models.user_task import TaskStatus, UserTask

__all__ = [
    "User",
    "Friendship",
    "LedgerEntry",
    "Quest",
    "QuestStatus",
    "SharedQuest",
    "SharedQuestStatus",
    "Task",
    "TaskStatus",
    "UserQuest",
    "UserTask",
]
