"""Friendship API."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from questline.core.deps import get_current_user
from questline.db.session import get_db
from questline.models.friendship import Friendship
from questline.models.user import User
from questline.schemas.friend import FriendInviteRequest, FriendshipResponse, FriendshipWithUser
from questline.services.friend_service import accept_invite, block_link, invite_friend, list_friendships

router = APIRouter(prefix="/friends", tags=["friends"])


def _with_other(link: Friendship, db: Session, current_user_id: int) -> FriendshipWithUser:
    other_id = link.addressee_id if link.requester_id == current_user_id else link.requester_id
    other = db.get(User, other_id)
    return FriendshipWithUser(
        id=link.id,
        requester_id=link.requester_id,
        addressee_id=link.addressee_id,
        status=link.status,
        created_at=link.created_at,
        other_id=other_id,
        other_username=other.username if other else "",
        other_level=other.level if other else 1,
    )


@router.post("/invite", response_model=FriendshipResponse, status_code=status.HTTP_201_CREATED)
def invite(
    data: FriendInviteRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Invite another user by username or user_id."""
    if not data.username and not data.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide username or user_id",
        )
    return invite_friend(db, current_user.id, username=data.username, user_id=data.user_id)


@router.post("/{link_id}/accept", response_model=FriendshipResponse)
def accept(
    link_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return accept_invite(db, link_id, current_user.id)


@router.post("/{link_id}/block", response_model=FriendshipResponse)
def block(
    link_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return block_link(db, link_id, current_user.id)


@router.get("", response_model=list[FriendshipWithUser])
def list_friends(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Pending and accepted friendships of the current user."""
    return [_with_other(link, db, current_user.id) for link in list_friendships(db, current_user.id)]
