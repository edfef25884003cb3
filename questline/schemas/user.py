"""Profile and ledger schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class LevelProgressOut(BaseModel):
    level: int
    xp: int
    level_floor_xp: int
    next_level_xp: int
    xp_into_level: int
    xp_to_next_level: int


class ProfileOut(BaseModel):
    id: int
    username: str
    coin_balance: int
    xp_points: int
    level: int
    progress: LevelProgressOut
    active_quests: int
    completed_quests: int


class LedgerEntryOut(BaseModel):
    id: int
    entry_type: str
    coin_amount: int
    xp_amount: int
    reference_type: str
    reference_id: int
    description: str
    created_at: datetime

    model_config = {"from_attributes": True}
