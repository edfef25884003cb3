"""Quest catalog models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questline.db.base import Base


class Quest(Base):
    """A purchasable multi-task challenge."""

    __tablename__ = "quests"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rarity: Mapped[str] = mapped_column(String(20), nullable=False, default="common")
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reward_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reward_coin: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_limit_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=24)
    is_sequential: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    tasks: Mapped[list[Task]] = relationship(
        back_populates="quest",
        order_by="Task.task_order",
        cascade="all, delete-orphan",
    )


class Task(Base):
    """Task template; belongs to exactly one quest."""

    __tablename__ = "tasks"
    __table_args__ = (
        UniqueConstraint("quest_id", "task_order", name="uq_tasks_quest_order"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    quest_id: Mapped[int] = mapped_column(ForeignKey("quests.id", ondelete="CASCADE"), nullable=False, index=True)
    task_order: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    base_xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    base_coin_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    quest: Mapped[Quest] = relationship(back_populates="tasks")
