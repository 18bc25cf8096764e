from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.dependencies import get_current_user
from app.models import FriendRequest, User, get_db
from app.schemas.relations import (
    FriendRequestItem,
    FriendRequestListResponse,
    HandleFriendRequestRequest,
    HandleFriendRequestResponse,
    Pagination,
    SendFriendRequestRequest,
    SendFriendRequestResponse,
)
from app.services import friend_requests
from app.services.time_utils import isoformat_or_none

router = APIRouter()


def request_to_item(request: FriendRequest) -> FriendRequestItem:
    sender = request.from_user
    return FriendRequestItem(
        id=request.id,
        user_id=request.from_user_id,
        name=sender.display_name,
        avatar=sender.avatar or "",
        personal_sign=sender.personal_sign,
        region=sender.region or "",
        timestamp=isoformat_or_none(request.created_at) or "",
        remark=request.remark or "",
    )


@router.get(
    "/friend-requests",
    response_model=FriendRequestListResponse,
    summary="List pending friend requests",
)
def get_friend_requests(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(alias="pageSize", ge=1, le=100)] = 20,
):
    """Returns one page of pending requests sent to the current user, newest first."""
    requests, total = friend_requests.list_pending_requests(db, current_user.id, page, page_size)
    return FriendRequestListResponse(
        requests=[request_to_item(r) for r in requests],
        pagination=Pagination(total=total, page=page, page_size=page_size),
    )


@router.post(
    "/friend-requests/handle",
    response_model=HandleFriendRequestResponse,
    summary="Accept or reject a friend request",
)
def handle_friend_request(
    body: HandleFriendRequestRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    friend_requests.resolve_request(db, current_user.id, body.request_id, body.accept)
    return HandleFriendRequestResponse(success=True, accept=body.accept)


@router.post(
    "/friend-requests",
    response_model=SendFriendRequestResponse,
    summary="Send a friend request",
)
def send_friend_request(
    body: SendFriendRequestRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    request = friend_requests.send_request(db, current_user, body.to_user_id, body.remark)
    return SendFriendRequestResponse(request_id=request.id, status=request.status)
