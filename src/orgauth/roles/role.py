from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"
    VIEWER = "viewer"

    @property
    def rank(self) -> int:
        return ROLE_RANKS[self]


ROLE_RANKS = {
    Role.ADMIN: 3,
    Role.USER: 2,
    Role.VIEWER: 1,
}

DEFAULT_ROLE = Role.VIEWER


class UserRole(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    organization_id: str
    role: Role


class SetRoleRequest(BaseModel):
    role: Role
