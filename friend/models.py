from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field

from friend.keys import canonical_pair_key, format_timestamp, ordered_pair, request_key


class FriendRelationship(BaseModel):
    id: str
    userA: str
    userB: str
    since: datetime

    @classmethod
    def create(cls, first: str, second: str, since: datetime, secret: str) -> "FriendRelationship":
        user_a, user_b = ordered_pair(first, second)
        return cls(
            id=canonical_pair_key(user_a, user_b, secret),
            userA=user_a,
            userB=user_b,
            since=since,
        )

    def other(self, email: str) -> str:
        return self.userB if self.userA == email else self.userA

    def to_record(self) -> Dict[str, Any]:
        record = self.model_dump()
        record["since"] = format_timestamp(self.since)
        return record


class FriendRequest(BaseModel):
    id: str
    sender: str = Field(alias="from")
    receiver: str = Field(alias="to")
    createdAt: datetime
    pairKey: str

    class Config:
        populate_by_name = True

    @classmethod
    def create(cls, sender: str, receiver: str, created_at: datetime, secret: str) -> "FriendRequest":
        return cls(
            id=request_key(sender, receiver, created_at, secret),
            sender=sender,
            receiver=receiver,
            createdAt=created_at,
            pairKey=canonical_pair_key(sender, receiver, secret),
        )

    def to_record(self) -> Dict[str, Any]:
        record = self.model_dump(by_alias=True)
        record["createdAt"] = format_timestamp(self.createdAt)
        return record
