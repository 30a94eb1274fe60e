from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class UserProfile(BaseModel):
    email: str
    nickname: Optional[str] = None
    lastLogin: Optional[datetime] = None
    signUpDate: Optional[datetime] = None
    nicknameChanged: Optional[datetime] = None
    major: Optional[str] = None
    graduationYear: Optional[int] = None
    tncVersion: Optional[str] = None
    deleted: bool = False
    deletedAt: Optional[datetime] = None
    locked: bool = False
    lockedAt: Optional[datetime] = None
    lockedDescription: Optional[str] = None

    @property
    def is_eligible(self) -> bool:
        return not self.deleted and not self.locked


class ServerAdminTokenResponse(BaseModel):
    serverAdminToken: str
