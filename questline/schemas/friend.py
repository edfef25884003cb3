"""Friendship schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class FriendInviteRequest(BaseModel):
    username: str | None = None
    user_id: int | None = None


class FriendshipResponse(BaseModel):
    id: int
    requester_id: int
    addressee_id: int
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class FriendshipWithUser(FriendshipResponse):
    """Friendship with the other participant's public info."""

    other_id: int
    other_username: str = ""
    other_level: int = 1
