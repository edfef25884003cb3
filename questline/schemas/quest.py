"""Quest schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    difficulty: int = Field(default=1, ge=1, le=10)
    base_xp_reward: int = Field(default=0, ge=0)
    base_coin_reward: int = Field(default=0, ge=0)
    task_order: int | None = Field(default=None, ge=1)


class QuestCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(default=None, max_length=50)
    rarity: str = Field(default="common", max_length=20)
    difficulty: int = Field(default=1, ge=1, le=10)
    price: int = Field(default=0, ge=0)
    reward_xp: int = Field(default=0, ge=0)
    reward_coin: int = Field(default=0, ge=0)
    time_limit_hours: int = Field(default=24, ge=1)
    is_sequential: bool = False
    tasks: list[TaskCreate] = Field(default_factory=list, max_length=50)

    @model_validator(mode="after")
    def assign_task_order(self) -> "QuestCreate":
        # Missing orders follow list position; explicit ones must be unique.
        for position, task in enumerate(self.tasks, start=1):
            if task.task_order is None:
                task.task_order = position
        orders = [task.task_order for task in self.tasks]
        if len(set(orders)) != len(orders):
            raise ValueError("task_order values must be unique within a quest")
        return self


class TaskOut(BaseModel):
    id: int
    task_order: int
    title: str
    description: str | None
    difficulty: int
    base_xp_reward: int
    base_coin_reward: int

    model_config = {"from_attributes": True}


class QuestOut(BaseModel):
    id: int
    title: str
    description: str | None
    category: str | None
    rarity: str
    difficulty: int
    price: int
    reward_xp: int
    reward_coin: int
    time_limit_hours: int
    is_sequential: bool
    tasks: list[TaskOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class UserTaskOut(TaskOut):
    """Task template merged with the caller's progress on it."""

    status: str | None = None
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    deadline: datetime | None = None
    duration_minutes: int | None = None
    completed_at: datetime | None = None
    xp_gained: int = 0
    coin_gained: int = 0
    is_confirmed: bool = False


class QuestDetailsOut(BaseModel):
    quest: QuestOut
    status: str
    started_at: datetime | None = None
    expires_at: datetime | None = None
    completed_at: datetime | None = None
    shared_with: int | None = None
    tasks: list[UserTaskOut]


class UserQuestOut(BaseModel):
    user_id: int
    quest_id: int
    status: str
    purchased_at: datetime
    started_at: datetime | None
    expires_at: datetime | None
    completed_at: datetime | None
    xp_gained: int
    coin_gained: int

    model_config = {"from_attributes": True}


class UserTaskStateOut(BaseModel):
    user_id: int
    quest_id: int
    task_id: int
    status: str
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    deadline: datetime | None = None
    duration_minutes: int | None = None
    completed_at: datetime | None
    xp_gained: int
    coin_gained: int
    is_confirmed: bool
    level: int | None = None

    model_config = {"from_attributes": True}


class SharedQuestCreateRequest(BaseModel):
    friend_id: int
    quest_id: int


class SharedQuestOut(BaseModel):
    id: int
    user1_id: int
    user2_id: int
    quest_id: int
    status: str
    created_at: datetime
    completed_at: datetime | None

    model_config = {"from_attributes": True}


class QuestCompletionOut(BaseModel):
    quest_id: int
    completed: list[UserQuestOut]
    shared_quest_id: int | None = None


class TaskScheduleItem(BaseModel):
    task_id: int
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    deadline: datetime | None = None
    duration_minutes: int | None = Field(default=None, ge=1)

    @field_validator("scheduled_end")
    @classmethod
    def end_after_start(cls, value: datetime | None, info) -> datetime | None:
        start = info.data.get("scheduled_start")
        if value is not None and start is not None and value < start:
            raise ValueError("scheduled_end must not be before scheduled_start")
        return value


class TaskScheduleRequest(BaseModel):
    tasks: list[TaskScheduleItem] = Field(min_length=1, max_length=50)
