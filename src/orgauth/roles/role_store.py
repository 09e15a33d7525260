import threading
from typing import Iterable, Optional

from orgauth.roles.role import Role, UserRole


class RoleStore:
    """In-memory role table keyed by (user_id, organization_id).

    One instance is shared process-wide. A dict keyed by the pair makes the
    uniqueness rule structural; the lock makes each upsert a single atomic
    replace-or-insert.
    """

    def __init__(self, assignments: Iterable[UserRole] = ()):
        self._lock = threading.Lock()
        self._roles: dict[tuple[str, str], Role] = {}
        for assignment in assignments:
            self.upsert(assignment.user_id, assignment.organization_id, assignment.role)

    def get(self, user_id: str, organization_id: str) -> Optional[Role]:
        with self._lock:
            return self._roles.get((user_id, organization_id))

    def upsert(self, user_id: str, organization_id: str, role: Role) -> None:
        with self._lock:
            self._roles[(user_id, organization_id)] = role

    def list_for_user(self, user_id: str) -> list[UserRole]:
        with self._lock:
            return [
                UserRole(user_id=uid, organization_id=org_id, role=role)
                for (uid, org_id), role in self._roles.items()
                if uid == user_id
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._roles)
