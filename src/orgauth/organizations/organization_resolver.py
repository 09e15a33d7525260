from typing import Optional

from fastapi import Request, Response

from orgauth.main.exceptions import (
    AuthorizationError,
    ManagementApiError,
    NotFoundException,
)
from orgauth.main.logging import get_logger
from orgauth.main.request_context import set_request_context
from orgauth.management.management_client import ManagementApiClient
from orgauth.organizations.organization import (
    Organization,
    OrganizationContext,
    OrganizationContextStatus,
)
from orgauth.sessions.session import Session
from orgauth.sessions.session_store import SessionStore

logger = get_logger(__name__)


class OrganizationResolver:
    """Decides the organization context of a session.

    The provider's membership list is the only source of truth: an
    organization id is written to the session only after it has been found
    in that list.
    """

    def __init__(self, management_client: ManagementApiClient, session_store: SessionStore):
        self.management_client = management_client
        self.session_store = session_store

    async def list_organizations(self, user_id: str) -> list[Organization]:
        """Organizations for display. Failures degrade to an empty list."""
        result = await self.management_client.list_user_organizations(user_id)
        if not result.success:
            logger.warning(
                "Could not list user organizations, continuing without them",
                extra={"user_sub": user_id, "error": result.error},
            )
            return []
        return result.data or []

    def decide(self, session: Session, organizations: list[Organization]) -> OrganizationContext:
        """Pure decision; does not touch the session."""
        if session.user.org_id:
            return OrganizationContext(
                status=OrganizationContextStatus.RESOLVED,
                org_id=session.user.org_id,
                org_name=session.user.org_name,
                organizations=organizations,
            )

        if len(organizations) == 1:
            org = organizations[0]
            return OrganizationContext(
                status=OrganizationContextStatus.AUTO_SELECTED,
                org_id=org.id,
                org_name=org.label,
                organizations=organizations,
            )

        if len(organizations) > 1:
            return OrganizationContext(
                status=OrganizationContextStatus.SELECTION_REQUIRED,
                organizations=organizations,
            )

        return OrganizationContext(status=OrganizationContextStatus.NO_ORGANIZATION)

    async def resolve(
        self,
        request: Request,
        response: Response,
        session: Session,
        organizations: Optional[list[Organization]] = None,
    ) -> OrganizationContext:
        """Resolve the context, auto-selecting a sole organization.

        Pass ``organizations`` when the caller already fetched them.
        """
        if session.user.org_id:
            return self.decide(session, organizations or [])

        if organizations is None:
            organizations = await self.list_organizations(session.user.sub)
        context = self.decide(session, organizations)

        if context.status == OrganizationContextStatus.AUTO_SELECTED:
            self.session_store.update(
                request, response, session.with_organization(context.org_id, context.org_name)
            )
            set_request_context(org_id=context.org_id)
            logger.info(
                "Auto-selected the user's only organization",
                extra={"user_sub": session.user.sub, "org_id": context.org_id},
            )
        elif context.selection_required:
            logger.info(
                "Organization selection required",
                extra={"user_sub": session.user.sub, "organization_count": len(organizations)},
            )

        return context

    async def verify_membership(self, user_id: str, organization_id: str) -> None:
        """Raise unless the provider lists ``organization_id`` for the user.

        An upstream failure is not treated as "not a member": it surfaces as
        ``ManagementApiError`` so the caller reports an outage, not a 403.
        """
        result = await self.management_client.list_user_organizations(user_id)
        if not result.success:
            raise ManagementApiError(
                result.error or "Failed to verify organization membership", status=result.status
            )

        if not any(org.id == organization_id for org in result.data or []):
            logger.warning(
                "Rejected organization not in user's memberships",
                extra={"user_sub": user_id, "org_id": organization_id},
            )
            raise AuthorizationError("User does not belong to this organization")

    async def select(
        self, request: Request, response: Response, session: Session, organization_id: str
    ) -> Organization:
        """Switch the session to a client-requested organization.

        The session is left unchanged unless membership is verified and the
        organization lookup succeeds.
        """
        await self.verify_membership(session.user.sub, organization_id)

        result = await self.management_client.get_organization(organization_id)
        if not result.success or result.data is None:
            raise NotFoundException("Organization not found")

        org = result.data
        self.session_store.update(request, response, session.with_organization(org.id, org.label))
        set_request_context(org_id=org.id)
        logger.info(
            "Organization selected",
            extra={"user_sub": session.user.sub, "org_id": org.id},
        )
        return org
