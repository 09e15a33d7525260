from orgauth.main.logging import get_logger
from orgauth.roles.role import DEFAULT_ROLE, Role, UserRole
from orgauth.roles.role_store import RoleStore

logger = get_logger(__name__)


class RbacService:
    def __init__(self, role_store: RoleStore):
        self.role_store = role_store

    def get_role(self, user_id: str, organization_id: str) -> Role:
        return self.role_store.get(user_id, organization_id) or DEFAULT_ROLE

    def has_role(self, user_id: str, organization_id: str, required: Role) -> bool:
        return self.get_role(user_id, organization_id).rank >= Role(required).rank

    def is_admin(self, user_id: str, organization_id: str) -> bool:
        return self.has_role(user_id, organization_id, Role.ADMIN)

    def can_invite_users(self, user_id: str, organization_id: str) -> bool:
        return self.has_role(user_id, organization_id, Role.USER)

    def set_user_role(self, user_id: str, organization_id: str, role: Role) -> None:
        self.role_store.upsert(user_id, organization_id, Role(role))
        logger.info(
            "Role assigned",
            extra={"user_id": user_id, "org_id": organization_id, "role": Role(role).value},
        )

    def get_all_user_roles(self, user_id: str) -> list[UserRole]:
        return self.role_store.list_for_user(user_id)
