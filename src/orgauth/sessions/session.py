from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AuthenticatedUser(BaseModel):
    """The signed-in user as carried in the session.

    Frozen: changing the organization context produces a new object, so a
    reader never observes a half-updated user.
    """

    model_config = ConfigDict(frozen=True)

    sub: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    org_id: Optional[str] = None
    org_name: Optional[str] = None


class Session(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: AuthenticatedUser
    access_token: str
    id_token: Optional[str] = None
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now

    def with_organization(self, org_id: Optional[str], org_name: Optional[str]) -> "Session":
        user = self.user.model_copy(update={"org_id": org_id, "org_name": org_name})
        return self.model_copy(update={"user": user})


class SessionUserPublic(BaseModel):
    user: AuthenticatedUser
    expires_at: datetime
