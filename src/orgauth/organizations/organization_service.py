import asyncio

from fastapi import Request, Response

from orgauth.main.config import Settings
from orgauth.main.exceptions import (
    AuthorizationError,
    BadRequestException,
    ManagementApiError,
    NotFoundException,
)
from orgauth.main.logging import get_logger
from orgauth.management.management_client import ManagementApiClient, ManagementResult
from orgauth.organizations.organization import (
    CreatedMember,
    CreateMemberRequest,
    Organization,
    OrganizationContext,
    OrganizationWithMembers,
)
from orgauth.organizations.organization_resolver import OrganizationResolver
from orgauth.roles.rbac_service import RbacService
from orgauth.roles.role import Role, UserRole
from orgauth.sessions.session import Session

logger = get_logger(__name__)


def _raise_for_result(result: ManagementResult, action: str) -> None:
    if not result.success:
        raise ManagementApiError(result.error or f"Failed to {action}", status=result.status)


class OrganizationService:
    """Organization use cases behind the dashboard, admin and invite endpoints.

    Read paths degrade to empty values; mutating paths verify membership
    against the provider, then the caller's role, and report upstream
    failures as ``ManagementApiError``.
    """

    def __init__(
        self,
        settings: Settings,
        management_client: ManagementApiClient,
        organization_resolver: OrganizationResolver,
        rbac_service: RbacService,
    ):
        self.settings = settings
        self.management_client = management_client
        self.organization_resolver = organization_resolver
        self.rbac_service = rbac_service

    async def get_context(
        self, request: Request, response: Response, session: Session
    ) -> OrganizationContext:
        organizations = await self.organization_resolver.list_organizations(session.user.sub)
        return await self.organization_resolver.resolve(
            request, response, session, organizations=organizations
        )

    async def count_members(self, organization: Organization) -> OrganizationWithMembers:
        result = await self.management_client.list_organization_members(organization.id)
        if not result.success:
            logger.warning(
                "Could not count organization members",
                extra={"org_id": organization.id, "error": result.error},
            )
        member_count = len(result.data or []) if result.success else 0
        return OrganizationWithMembers(**organization.model_dump(), member_count=member_count)

    async def list_with_member_counts(
        self, organizations: list[Organization]
    ) -> list[OrganizationWithMembers]:
        return list(await asyncio.gather(*(self.count_members(org) for org in organizations)))

    async def get_admin_organizations(self, session: Session) -> list[Organization]:
        """Organizations where the user is admin.

        Raises ``AuthorizationError`` when there are none.
        """
        organizations = await self.organization_resolver.list_organizations(session.user.sub)
        admin_of = [
            org for org in organizations if self.rbac_service.is_admin(session.user.sub, org.id)
        ]
        if not admin_of:
            raise AuthorizationError("Admin role required")
        return admin_of

    def get_user_roles(self, session: Session) -> list[UserRole]:
        return self.rbac_service.get_all_user_roles(session.user.sub)

    async def _require_role(self, session: Session, organization_id: str, required: Role) -> None:
        await self.organization_resolver.verify_membership(session.user.sub, organization_id)

        if not self.rbac_service.has_role(session.user.sub, organization_id, required):
            logger.warning(
                "Insufficient role",
                extra={
                    "user_sub": session.user.sub,
                    "org_id": organization_id,
                    "required_role": required.value,
                },
            )
            raise AuthorizationError(f"Role '{required.value}' or higher required")

    async def invite(self, session: Session, email: str, organization_id: str) -> None:
        if not email or not organization_id:
            raise BadRequestException("Email and organization are required")

        await self._require_role(session, organization_id, Role.USER)

        inviter = session.user.name or session.user.email or session.user.sub
        result = await self.management_client.invite_member(
            organization_id, inviter, email, self.settings.client_id
        )
        _raise_for_result(result, "send invitation")

        logger.info(
            "Invitation sent",
            extra={"user_sub": session.user.sub, "org_id": organization_id},
        )

    async def create_member(
        self, session: Session, organization_id: str, member: CreateMemberRequest
    ) -> CreatedMember:
        await self._require_role(session, organization_id, Role.ADMIN)

        result = await self.management_client.create_user(
            email=member.email,
            name=member.name,
            org_id=organization_id,
            password=member.password,
            send_verification_email=member.send_verification_email,
        )
        _raise_for_result(result, "create user")

        return CreatedMember(
            user_id=result.data.user_id, email=member.email, organization_id=organization_id
        )

    async def add_member(self, session: Session, organization_id: str, user_id: str) -> None:
        await self._require_role(session, organization_id, Role.ADMIN)
        result = await self.management_client.add_member(organization_id, user_id)
        _raise_for_result(result, "add organization member")

    async def remove_member(self, session: Session, organization_id: str, user_id: str) -> None:
        await self._require_role(session, organization_id, Role.ADMIN)

        if user_id == session.user.sub:
            raise BadRequestException("Admins cannot remove themselves")

        result = await self.management_client.remove_member(organization_id, user_id)
        _raise_for_result(result, "remove organization member")

    async def set_role(
        self, session: Session, organization_id: str, user_id: str, role: Role
    ) -> UserRole:
        await self._require_role(session, organization_id, Role.ADMIN)

        members = await self.management_client.list_organization_members(organization_id)
        _raise_for_result(members, "list organization members")
        if not any(member.user_id == user_id for member in members.data or []):
            raise NotFoundException("User is not a member of this organization")

        self.rbac_service.set_user_role(user_id, organization_id, role)
        return UserRole(user_id=user_id, organization_id=organization_id, role=role)
