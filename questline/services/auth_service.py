"""Auth service."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from questline.core.config import settings
from questline.core.security import hash_password, verify_password
from questline.db.session import atomic
from questline.models.user import User
from questline.schemas.auth import RegisterRequest

logger = logging.getLogger(__name__)


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.execute(select(User).where(User.username == username)).scalar_one_or_none()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def create_user(db: Session, data: RegisterRequest) -> User:
    """Create a new user with the configured starting balance at level 1."""
    user = User(
        username=data.username,
        email=data.email,
        hashed_password=hash_password(data.password),
        coin_balance=settings.starting_coin_balance,
        xp_points=0,
        level=1,
    )
    with atomic(db):
        db.add(user)
    db.refresh(user)
    logger.info("user_registered user_id=%s username=%s", user.id, user.username)
    return user


def authenticate_user(db: Session, username: str, password: str) -> User | None:
    """Authenticate user by username and password."""
    user = get_user_by_username(db, username)
    if not user or not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        return None
    return user
