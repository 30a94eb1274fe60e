from typing import Literal, Optional

from pydantic import BaseModel


class AuthToken(BaseModel):
    id: str
    type: Literal["access", "refresh"]
    tokenType: Literal["user", "serverAdmin"]
    accountType: Optional[str] = None

    @property
    def is_user_access(self) -> bool:
        return self.type == "access" and self.tokenType == "user"

    @property
    def is_admin_access(self) -> bool:
        return (
            self.type == "access"
            and self.tokenType == "serverAdmin"
            and self.accountType == "admin"
        )
