from fastapi import APIRouter, Depends, Request, Response

from orgauth.main.container.container import Container
from orgauth.main.exceptions import BadRequestException
from orgauth.main.models import SuccessResponse
from orgauth.organizations.organization import (
    CreatedMember,
    CreateMemberRequest,
    OrganizationContext,
    SelectOrganizationRequest,
    SelectOrganizationResponse,
)
from orgauth.roles.role import SetRoleRequest, UserRole
from orgauth.server.dependencies.container import get_container, get_current_session
from orgauth.server.protocol import responses
from orgauth.sessions.session import Session

router = APIRouter()


@router.post(
    "/select-organization",
    response_model=SelectOrganizationResponse,
    responses=responses.get_responses([400, 401, 403, 404, 502]),
)
async def select_organization(
    select_request: SelectOrganizationRequest,
    request: Request,
    response: Response,
    session: Session = Depends(get_current_session),
    container: Container = Depends(get_container()),
):
    """Switch the session to one of the user's organizations.

    The id is only an intent: membership is re-verified against the identity
    provider before the session is touched.
    """
    if not select_request.organizationId:
        raise BadRequestException("Organization ID is required")

    organization = await container.organization_resolver().select(
        request, response, session, select_request.organizationId
    )
    return SelectOrganizationResponse(organization=organization)


@router.get(
    "/organizations",
    response_model=OrganizationContext,
    responses=responses.get_responses([401]),
)
async def get_organization_context(
    request: Request,
    response: Response,
    session: Session = Depends(get_current_session),
    container: Container = Depends(get_container()),
):
    return await container.organization_service().get_context(request, response, session)


@router.post(
    "/organizations/{org_id}/members",
    response_model=CreatedMember,
    status_code=201,
    responses=responses.get_responses([401, 403, 502]),
)
async def create_member(
    org_id: str,
    member: CreateMemberRequest,
    session: Session = Depends(get_current_session),
    container: Container = Depends(get_container()),
):
    """Create a user in the signup connection and add it to the organization.

    Without a password the user receives a password-change ticket.
    """
    return await container.organization_service().create_member(session, org_id, member)


@router.put(
    "/organizations/{org_id}/members/{user_id}",
    response_model=SuccessResponse,
    responses=responses.get_responses([401, 403, 502]),
)
async def add_member(
    org_id: str,
    user_id: str,
    session: Session = Depends(get_current_session),
    container: Container = Depends(get_container()),
):
    await container.organization_service().add_member(session, org_id, user_id)
    return SuccessResponse(message="Member added")


@router.delete(
    "/organizations/{org_id}/members/{user_id}",
    response_model=SuccessResponse,
    responses=responses.get_responses([400, 401, 403, 502]),
)
async def remove_member(
    org_id: str,
    user_id: str,
    session: Session = Depends(get_current_session),
    container: Container = Depends(get_container()),
):
    await container.organization_service().remove_member(session, org_id, user_id)
    return SuccessResponse(message="Member removed")


@router.put(
    "/organizations/{org_id}/roles/{user_id}",
    response_model=UserRole,
    responses=responses.get_responses([401, 403, 404, 502]),
)
async def set_role(
    org_id: str,
    user_id: str,
    role_request: SetRoleRequest,
    session: Session = Depends(get_current_session),
    container: Container = Depends(get_container()),
):
    return await container.organization_service().set_role(
        session, org_id, user_id, role_request.role
    )
