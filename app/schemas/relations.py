from pydantic import Field

from app.schemas.base import CamelModel


class FriendRequestItem(CamelModel):
    id: int
    user_id: int = Field(alias="userId")
    name: str
    avatar: str = ""
    personal_sign: str | None = Field(default=None, alias="personalSign")
    region: str = ""
    timestamp: str
    remark: str = ""


class Pagination(CamelModel):
    total: int
    page: int
    page_size: int = Field(alias="pageSize")


class FriendRequestListResponse(CamelModel):
    requests: list[FriendRequestItem]
    pagination: Pagination


class HandleFriendRequestRequest(CamelModel):
    request_id: int = Field(alias="requestId", gt=0)
    accept: bool


class HandleFriendRequestResponse(CamelModel):
    success: bool = True
    accept: bool


class SendFriendRequestRequest(CamelModel):
    to_user_id: int = Field(alias="toUserId", gt=0)
    remark: str = Field(default="", max_length=255)


class SendFriendRequestResponse(CamelModel):
    request_id: int = Field(alias="requestId")
    status: str
