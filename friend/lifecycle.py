import logging
from datetime import datetime, timezone
from typing import List, Optional

from db_connections import (
    FRIEND,
    FRIEND_REQUEST,
    RecordConflict,
    RecordNotFound,
    RecordStore,
)
from exceptions import BadInputError, ConflictError, ForbiddenError, NotFoundError
from friend.keys import canonical_pair_key
from friend.models import FriendRelationship, FriendRequest
from user_profile.profile import UserProfileService

logger = logging.getLogger("collegemate.friend.lifecycle")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FriendLifecycleManager:
    """Friend and friend-request transitions for a pair of users.

    Per unordered pair the state is one of: no relation, a single pending
    request (in either direction), or friends. Every guard is a fresh read
    against the record store; the uniqueness constraints declared on the
    store close the races between a guard read and the following write.
    """

    def __init__(self, store: RecordStore, profile_service: UserProfileService, key_secret: str):
        self.store = store
        self.profile_service = profile_service
        self.key_secret = key_secret

    async def list_friends(self, email: str) -> List[str]:
        records = await self.store.query(
            FRIEND, {"$or": [{"userA": email}, {"userB": email}]}
        )
        return [FriendRelationship(**record).other(email) for record in records]

    async def list_received_requests(self, email: str) -> List[FriendRequest]:
        records = await self.store.query(FRIEND_REQUEST, {"to": email})
        return sorted((FriendRequest(**record) for record in records), key=lambda r: r.createdAt)

    async def list_sent_requests(self, email: str) -> List[FriendRequest]:
        records = await self.store.query(FRIEND_REQUEST, {"from": email})
        return sorted((FriendRequest(**record) for record in records), key=lambda r: r.createdAt)

    async def get_request(self, request_id: str) -> FriendRequest:
        try:
            return FriendRequest(**await self.store.get(FRIEND_REQUEST, request_id))
        except RecordNotFound:
            raise NotFoundError("Friend request not found")

    async def relationship_exists(self, first: str, second: str) -> bool:
        try:
            await self.store.get(FRIEND, canonical_pair_key(first, second, self.key_secret))
        except RecordNotFound:
            return False
        return True

    async def pending_request_exists(self, first: str, second: str) -> bool:
        records = await self.store.query(
            FRIEND_REQUEST,
            {
                "$or": [
                    {"from": first, "to": second},
                    {"from": second, "to": first},
                ]
            },
        )
        return len(records) > 0

    async def send_request(
            self, sender: str, receiver: str, now: Optional[datetime] = None
    ) -> FriendRequest:
        if sender == receiver:
            raise BadInputError("Cannot send a friend request to yourself")

        profile = await self.profile_service.get_profile(receiver)
        if not profile.is_eligible:
            raise NotFoundError(f"User {receiver} not found")

        if await self.relationship_exists(sender, receiver):
            raise ConflictError("Already friends")
        if await self.pending_request_exists(sender, receiver):
            raise ConflictError("Friend request already pending")

        friend_request = FriendRequest.create(sender, receiver, now or utcnow(), self.key_secret)
        try:
            await self.store.put(FRIEND_REQUEST, friend_request.to_record())
        except RecordConflict:
            raise ConflictError("Friend request already pending")

        logger.info("Friend request %s sent: %s -> %s", friend_request.id, sender, receiver)
        return friend_request

    async def accept_request(
            self, request_id: str, acting_user: str, now: Optional[datetime] = None
    ) -> FriendRelationship:
        friend_request = await self.get_request(request_id)
        if friend_request.receiver != acting_user:
            raise ForbiddenError("Only the recipient can accept a friend request")

        if await self.relationship_exists(friend_request.sender, acting_user):
            raise ConflictError("Already friends")

        try:
            await self.store.delete(FRIEND_REQUEST, request_id)
        except RecordNotFound:
            # Rejected, cancelled or accepted since the read above
            raise NotFoundError("Friend request not found")

        relationship = FriendRelationship.create(
            friend_request.sender, acting_user, now or utcnow(), self.key_secret
        )
        try:
            await self.store.put(FRIEND, relationship.to_record())
        except RecordConflict:
            logger.error(
                "Orphaned friend request %s: request deleted but relationship %s already existed",
                request_id,
                relationship.id,
            )
            raise ConflictError("Already friends")
        except Exception:
            logger.exception(
                "Orphaned friend request %s: request deleted but relationship creation failed",
                request_id,
            )
            raise

        logger.info("Friend request %s accepted: %s <-> %s", request_id, relationship.userA, relationship.userB)
        return relationship

    async def reject_request(self, request_id: str, acting_user: str) -> None:
        friend_request = await self.get_request(request_id)
        if friend_request.receiver != acting_user:
            raise ForbiddenError("Only the recipient can reject a friend request")
        await self._delete_request(request_id)
        logger.info("Friend request %s rejected by %s", request_id, acting_user)

    async def cancel_request(self, request_id: str, acting_user: str) -> None:
        friend_request = await self.get_request(request_id)
        if friend_request.sender != acting_user:
            raise ForbiddenError("Only the sender can cancel a friend request")
        await self._delete_request(request_id)
        logger.info("Friend request %s cancelled by %s", request_id, acting_user)

    async def unfriend(self, acting_user: str, other: str) -> None:
        try:
            await self.store.delete(FRIEND, canonical_pair_key(acting_user, other, self.key_secret))
        except RecordNotFound:
            raise NotFoundError("Friend relationship not found")
        logger.info("Friend relationship removed: %s <-> %s", acting_user, other)

    async def _delete_request(self, request_id: str) -> None:
        try:
            await self.store.delete(FRIEND_REQUEST, request_id)
        except RecordNotFound:
            raise NotFoundError("Friend request not found")
