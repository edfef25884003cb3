"""Payloads exchanged with the recommendation service."""

from __future__ import annotations

from pydantic import BaseModel, Field


class UserWithQuestIds(BaseModel):
    user_id: int
    quest_ids: list[int] = Field(default_factory=list)


class AddUsersRequest(BaseModel):
    users: list[UserWithQuestIds]
