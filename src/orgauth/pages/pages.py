from typing import Optional

from pydantic import BaseModel

from orgauth.organizations.organization import (
    Organization,
    OrganizationContext,
    OrganizationWithMembers,
)
from orgauth.roles.role import UserRole
from orgauth.sessions.session import AuthenticatedUser


class FrontDoorPage(BaseModel):
    error: str


class DashboardPage(BaseModel):
    user: AuthenticatedUser
    organization: OrganizationContext
    organizations: list[OrganizationWithMembers]
    error: Optional[str] = None


class AdminPage(BaseModel):
    user: AuthenticatedUser
    organizations: list[Organization]
    user_roles: list[UserRole]


class InternalAppPage(BaseModel):
    app: str
    user: AuthenticatedUser
    sso_login: bool = False
