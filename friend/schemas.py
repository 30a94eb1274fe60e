from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class SendFriendRequestForm(BaseModel):
    targetEmail: EmailStr

    class Config:
        extra = "forbid"


class FriendListAdminForm(BaseModel):
    email: EmailStr

    class Config:
        extra = "forbid"


class FriendListResponse(BaseModel):
    friendList: List[str]


class ReceivedFriendRequestItem(BaseModel):
    requestId: str
    sender: str = Field(alias="from")
    createdAt: datetime

    class Config:
        populate_by_name = True


class SentFriendRequestItem(BaseModel):
    requestId: str
    to: str
    createdAt: datetime


class ReceivedFriendRequestsResponse(BaseModel):
    friendRequests: List[ReceivedFriendRequestItem]


class SentFriendRequestsResponse(BaseModel):
    friendRequests: List[SentFriendRequestItem]


class MessageResponse(BaseModel):
    message: str
    requestId: Optional[str] = None
