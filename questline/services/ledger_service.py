"""Balance ledger: the only writer of a user's coins, XP and level.

Functions here never commit. They run inside the caller's transaction so a ledger change lands
together with the quest/task state change that caused it, or not at all.
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from questline.core.exceptions import InsufficientFunds, UserNotFound
from questline.models.ledger_entry import LedgerEntry
from questline.models.user import User
from questline.services.level import compute_level

logger = logging.getLogger(__name__)

ENTRY_SPENT = "spent"
ENTRY_EARNED = "earned"


def lock_user(db: Session, user_id: int) -> User:
    """Load the user row with a row lock held until the transaction ends."""
    user = db.execute(
        select(User)
        .where(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if user is None:
        raise UserNotFound(user_id)
    return user


def lock_users(db: Session, user_ids: list[int]) -> dict[int, User]:
    """Lock several users in ascending id order (fixed order avoids lock cycles)."""
    return {user_id: lock_user(db, user_id) for user_id in sorted(set(user_ids))}


def debit(
    db: Session,
    user_id: int,
    amount: int,
    *,
    reference_type: str,
    reference_id: int,
    description: str,
) -> int:
    """Spend ``amount`` coins. Returns the new balance.

    Balance check and decrement are a single conditional UPDATE, so two concurrent debits
    cannot both pass the check against the same balance.
    """
    if amount < 0:
        raise ValueError("debit amount must be non-negative")

    result = db.execute(
        update(User)
        .where(User.id == user_id, User.coin_balance >= amount)
        .values(coin_balance=User.coin_balance - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = db.execute(select(User.coin_balance).where(User.id == user_id)).scalar_one_or_none()
        if current is None:
            raise UserNotFound(user_id)
        logger.info("debit_rejected user_id=%s amount=%s balance=%s", user_id, amount, current)
        raise InsufficientFunds(user_id, required=amount, current=current)

    db.add(
        LedgerEntry(
            user_id=user_id,
            entry_type=ENTRY_SPENT,
            coin_amount=-amount,
            xp_amount=0,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
        )
    )
    user = lock_user(db, user_id)
    return user.coin_balance


def credit(
    db: Session,
    user_id: int,
    *,
    xp: int,
    coins: int,
    reference_type: str,
    reference_id: int,
    description: str,
) -> int:
    """Grant XP and coins, recompute the level. Returns the new (authoritative) level."""
    if xp < 0 or coins < 0:
        raise ValueError("credit amounts must be non-negative")

    user = lock_user(db, user_id)
    old_level = user.level
    user.xp_points += xp
    user.coin_balance += coins
    user.level = compute_level(user.xp_points)

    if xp or coins:
        db.add(
            LedgerEntry(
                user_id=user_id,
                entry_type=ENTRY_EARNED,
                coin_amount=coins,
                xp_amount=xp,
                reference_type=reference_type,
                reference_id=reference_id,
                description=description,
            )
        )
    db.flush()

    if user.level > old_level:
        logger.info("level_up user_id=%s from=%s to=%s xp=%s", user_id, old_level, user.level, user.xp_points)
    return user.level


def list_entries(db: Session, user_id: int, limit: int = 50) -> list[LedgerEntry]:
    """Ledger history for a user, newest first."""
    result = db.execute(
        select(LedgerEntry)
        .where(LedgerEntry.user_id == user_id)
        .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
