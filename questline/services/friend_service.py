"""Friendship service."""

from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from questline.core.exceptions import FriendshipError, UserNotFound
from questline.db.session import atomic
from questline.models.friendship import Friendship
from questline.models.user import User

logger = logging.getLogger(__name__)

PENDING = "PENDING"
ACCEPTED = "ACCEPTED"
BLOCKED = "BLOCKED"


def _between(user_a: int, user_b: int):
    return or_(
        (Friendship.requester_id == user_a) & (Friendship.addressee_id == user_b),
        (Friendship.requester_id == user_b) & (Friendship.addressee_id == user_a),
    )


def are_friends(db: Session, user_a: int, user_b: int) -> bool:
    """True when an accepted friendship exists in either direction."""
    if user_a == user_b:
        return False
    found = db.execute(
        select(Friendship.id).where(_between(user_a, user_b), Friendship.status == ACCEPTED).limit(1)
    ).scalar_one_or_none()
    return found is not None


def invite_friend(
    db: Session,
    requester_id: int,
    *,
    username: str | None = None,
    user_id: int | None = None,
) -> Friendship:
    """Send a friend request by username or user id."""
    addressee: User | None = None
    if username:
        addressee = db.execute(select(User).where(User.username == username)).scalar_one_or_none()
    elif user_id:
        addressee = db.get(User, user_id)

    if not addressee:
        raise UserNotFound(user_id)
    if addressee.id == requester_id:
        raise FriendshipError("Cannot invite yourself")

    # The unique constraint is per direction, so up to two rows can link the pair.
    existing = {
        link.status
        for link in db.execute(select(Friendship).where(_between(requester_id, addressee.id))).scalars()
    }
    if BLOCKED in existing:
        raise FriendshipError("This connection has been blocked")
    if ACCEPTED in existing:
        raise FriendshipError("Already friends with this user")
    if existing:
        raise FriendshipError("Invite already pending")

    link = Friendship(requester_id=requester_id, addressee_id=addressee.id, status=PENDING)
    with atomic(db):
        db.add(link)
    db.refresh(link)
    logger.info("friend_invited requester_id=%s addressee_id=%s", requester_id, addressee.id)
    return link


def accept_invite(db: Session, link_id: int, user_id: int) -> Friendship:
    """The invited user accepts a pending request."""
    link = db.get(Friendship, link_id)
    if not link:
        raise FriendshipError("Friend request not found")
    if link.addressee_id != user_id:
        raise FriendshipError("Only the invited user can accept")
    if link.status != PENDING:
        raise FriendshipError(f"Cannot accept request with status {link.status}")

    with atomic(db):
        link.status = ACCEPTED
    db.refresh(link)
    return link


def block_link(db: Session, link_id: int, user_id: int) -> Friendship:
    """Either side can block."""
    link = db.get(Friendship, link_id)
    if not link:
        raise FriendshipError("Friend request not found")
    if user_id not in (link.requester_id, link.addressee_id):
        raise FriendshipError("Only a participant can block this connection")

    with atomic(db):
        link.status = BLOCKED
    db.refresh(link)
    return link


def list_friendships(db: Session, user_id: int) -> list[Friendship]:
    """Pending and accepted links where the user is on either side."""
    result = db.execute(
        select(Friendship)
        .where(or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id))
        .where(Friendship.status.in_([PENDING, ACCEPTED]))
        .order_by(Friendship.created_at.desc(), Friendship.id.desc())
    )
    return list(result.scalars().all())
