"""Profile and ledger history of the current user."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from questline.core.deps import get_current_user
from questline.db.session import get_db
from questline.models.user import User
from questline.models.user_quest import QuestStatus, UserQuest
from questline.schemas.user import LedgerEntryOut, LevelProgressOut, ProfileOut
from questline.services.ledger_service import list_entries
from questline.services.level import level_progress

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/profile", response_model=ProfileOut)
def profile(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Balance, XP, level progress and quest counters."""
    counts = dict(
        db.execute(
            select(UserQuest.status, func.count(UserQuest.id))
            .where(UserQuest.user_id == current_user.id)
            .group_by(UserQuest.status)
        ).all()
    )
    progress = level_progress(current_user.xp_points)
    return ProfileOut(
        id=current_user.id,
        username=current_user.username,
        coin_balance=current_user.coin_balance,
        xp_points=current_user.xp_points,
        level=current_user.level,
        progress=LevelProgressOut(
            level=progress.level,
            xp=progress.xp,
            level_floor_xp=progress.level_floor_xp,
            next_level_xp=progress.next_level_xp,
            xp_into_level=progress.xp_into_level,
            xp_to_next_level=progress.xp_to_next_level,
        ),
        active_quests=counts.get(QuestStatus.PURCHASED.value, 0) + counts.get(QuestStatus.STARTED.value, 0),
        completed_quests=counts.get(QuestStatus.COMPLETED.value, 0),
    )


@router.get("/me/ledger", response_model=list[LedgerEntryOut])
def ledger(
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return list_entries(db, current_user.id, limit=limit)
