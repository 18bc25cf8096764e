import logging

from sqlalchemy.orm import Session, joinedload

from app.errors import InvalidState, NotFound
from app.models import FriendRequest, Friendship, User
from app.models.friend_request import (
    FRIEND_REQUEST_ACCEPTED,
    FRIEND_REQUEST_PENDING,
    FRIEND_REQUEST_REJECTED,
)
from app.services.time_utils import db_datetime, utcnow

logger = logging.getLogger(__name__)


def list_pending_requests(
    db: Session,
    user_id: int,
    page: int,
    page_size: int,
) -> tuple[list[FriendRequest], int]:
    """Pending requests addressed to ``user_id``, newest first, plus the total count."""
    base = db.query(FriendRequest).filter(
        FriendRequest.to_user_id == user_id,
        FriendRequest.status == FRIEND_REQUEST_PENDING,
    )
    total = base.count()
    requests = (
        base.options(joinedload(FriendRequest.from_user))
        .order_by(FriendRequest.created_at.desc(), FriendRequest.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return requests, total


def are_friends(db: Session, user_id: int, friend_id: int) -> bool:
    return (
        db.query(Friendship)
        .filter(Friendship.user_id == user_id, Friendship.friend_id == friend_id)
        .first()
        is not None
    )


def _add_friendship_pair(db: Session, user_id: int, friend_id: int) -> None:
    for left, right in ((user_id, friend_id), (friend_id, user_id)):
        if not are_friends(db, left, right):
            db.add(Friendship(user_id=left, friend_id=right))


def resolve_request(db: Session, user_id: int, request_id: int, accept: bool) -> FriendRequest:
    """Accept or reject a pending request addressed to ``user_id``."""
    request = (
        db.query(FriendRequest)
        .filter(FriendRequest.id == request_id, FriendRequest.to_user_id == user_id)
        .first()
    )
    if not request:
        raise NotFound("Friend request not found")

    new_status = FRIEND_REQUEST_ACCEPTED if accept else FRIEND_REQUEST_REJECTED
    updated = (
        db.query(FriendRequest)
        .filter(FriendRequest.id == request_id, FriendRequest.status == FRIEND_REQUEST_PENDING)
        .update(
            {
                FriendRequest.status: new_status,
                FriendRequest.handled_at: db_datetime(db, utcnow()),
            },
            synchronize_session=False,
        )
    )
    if updated != 1:
        db.rollback()
        raise InvalidState("Friend request was already handled")

    if accept:
        _add_friendship_pair(db, user_id, request.from_user_id)
    db.commit()
    db.refresh(request)
    logger.info("Friend request %s %s by user %s", request_id, new_status, user_id)
    return request


def send_request(db: Session, from_user: User, to_user_id: int, remark: str = "") -> FriendRequest:
    """Send a request, or accept the one already pending in the other direction."""
    if to_user_id == from_user.id:
        raise InvalidState("Cannot send a friend request to yourself")
    if not db.query(User).filter(User.id == to_user_id).first():
        raise NotFound("User not found")
    if are_friends(db, from_user.id, to_user_id):
        raise InvalidState("Already friends")

    duplicate = (
        db.query(FriendRequest)
        .filter(
            FriendRequest.from_user_id == from_user.id,
            FriendRequest.to_user_id == to_user_id,
            FriendRequest.status == FRIEND_REQUEST_PENDING,
        )
        .first()
    )
    if duplicate:
        raise InvalidState("Friend request already pending")

    reverse = (
        db.query(FriendRequest)
        .filter(
            FriendRequest.from_user_id == to_user_id,
            FriendRequest.to_user_id == from_user.id,
            FriendRequest.status == FRIEND_REQUEST_PENDING,
        )
        .first()
    )
    if reverse:
        logger.info("Friend request %s crossed by user %s, accepting it", reverse.id, from_user.id)
        return resolve_request(db, from_user.id, reverse.id, True)

    request = FriendRequest(
        from_user_id=from_user.id,
        to_user_id=to_user_id,
        remark=remark,
        status=FRIEND_REQUEST_PENDING,
    )
    db.add(request)
    db.commit()
    db.refresh(request)
    return request
