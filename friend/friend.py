import base64
import binascii
from typing import Annotated, Optional

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Body, Depends, Request, status

from authentication.authentication import (
    check_origin_or_app_key,
    get_current_user,
    get_current_user_or_admin,
)
from authentication.models import AuthToken
from config import Settings, get_settings
from exceptions import BadInputError
from friend.lifecycle import FriendLifecycleManager
from friend.schemas import (
    FriendListAdminForm,
    FriendListResponse,
    MessageResponse,
    ReceivedFriendRequestItem,
    ReceivedFriendRequestsResponse,
    SendFriendRequestForm,
    SentFriendRequestItem,
    SentFriendRequestsResponse,
)
from user_profile.profile import UserProfileService, get_profile_service

friend_router = APIRouter(dependencies=[Depends(check_origin_or_app_key)])


def get_friend_manager(
        request: Request,
        settings: Annotated[Settings, Depends(get_settings)],
        profile_service: Annotated[UserProfileService, Depends(get_profile_service)],
) -> FriendLifecycleManager:
    return FriendLifecycleManager(
        request.app.state.record_store,
        profile_service,
        settings.hash_salt,
    )


def decode_email(base64_email: str) -> str:
    try:
        padded = base64_email + "=" * (-len(base64_email) % 4)
        email = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
        validate_email(email, check_deliverability=False)
    except (binascii.Error, UnicodeError, ValueError, EmailNotValidError):
        raise BadInputError("Invalid email")
    return email


@friend_router.get("", response_model=FriendListResponse)
async def list_friends(
        current_user: Annotated[AuthToken, Depends(get_current_user_or_admin)],
        manager: Annotated[FriendLifecycleManager, Depends(get_friend_manager)],
        form: Optional[FriendListAdminForm] = Body(None),
):
    if current_user.is_admin_access:
        if form is None:
            raise BadInputError("Admin requests must name the user")
        email = form.email
    else:
        if form is not None:
            raise BadInputError("Request body is not allowed")
        email = current_user.id

    return FriendListResponse(friendList=await manager.list_friends(email))


@friend_router.delete("/{base64_email}", response_model=MessageResponse, response_model_exclude_none=True)
async def unfriend(
        base64_email: str,
        current_user: Annotated[AuthToken, Depends(get_current_user)],
        manager: Annotated[FriendLifecycleManager, Depends(get_friend_manager)],
):
    await manager.unfriend(current_user.id, decode_email(base64_email))
    return MessageResponse(message="Friend removed")


@friend_router.post(
    "/request",
    status_code=status.HTTP_201_CREATED,
    response_model=MessageResponse,
    response_model_exclude_none=True,
)
async def send_friend_request(
        form: SendFriendRequestForm,
        current_user: Annotated[AuthToken, Depends(get_current_user)],
        manager: Annotated[FriendLifecycleManager, Depends(get_friend_manager)],
):
    friend_request = await manager.send_request(current_user.id, str(form.targetEmail))
    return MessageResponse(message="Friend request sent!", requestId=friend_request.id)


@friend_router.get("/request/received", response_model=ReceivedFriendRequestsResponse)
async def list_received_friend_requests(
        current_user: Annotated[AuthToken, Depends(get_current_user)],
        manager: Annotated[FriendLifecycleManager, Depends(get_friend_manager)],
):
    received = await manager.list_received_requests(current_user.id)
    return ReceivedFriendRequestsResponse(
        friendRequests=[
            ReceivedFriendRequestItem(
                requestId=friend_request.id,
                sender=friend_request.sender,
                createdAt=friend_request.createdAt,
            )
            for friend_request in received
        ]
    )


@friend_router.delete(
    "/request/received/{request_id}",
    response_model=MessageResponse,
    response_model_exclude_none=True,
)
async def reject_friend_request(
        request_id: str,
        current_user: Annotated[AuthToken, Depends(get_current_user)],
        manager: Annotated[FriendLifecycleManager, Depends(get_friend_manager)],
):
    await manager.reject_request(request_id, current_user.id)
    return MessageResponse(message="Friend request rejected")


@friend_router.post(
    "/request/received/{request_id}/accept",
    response_model=MessageResponse,
    response_model_exclude_none=True,
)
async def accept_friend_request(
        request_id: str,
        current_user: Annotated[AuthToken, Depends(get_current_user)],
        manager: Annotated[FriendLifecycleManager, Depends(get_friend_manager)],
):
    await manager.accept_request(request_id, current_user.id)
    return MessageResponse(message="Friend request accepted!")


@friend_router.get("/request/sent", response_model=SentFriendRequestsResponse)
async def list_sent_friend_requests(
        current_user: Annotated[AuthToken, Depends(get_current_user)],
        manager: Annotated[FriendLifecycleManager, Depends(get_friend_manager)],
):
    sent = await manager.list_sent_requests(current_user.id)
    return SentFriendRequestsResponse(
        friendRequests=[
            SentFriendRequestItem(
                requestId=friend_request.id,
                to=friend_request.receiver,
                createdAt=friend_request.createdAt,
            )
            for friend_request in sent
        ]
    )


@friend_router.delete(
    "/request/sent/{request_id}",
    response_model=MessageResponse,
    response_model_exclude_none=True,
)
async def cancel_friend_request(
        request_id: str,
        current_user: Annotated[AuthToken, Depends(get_current_user)],
        manager: Annotated[FriendLifecycleManager, Depends(get_friend_manager)],
):
    await manager.cancel_request(request_id, current_user.id)
    return MessageResponse(message="Friend request cancelled")
