from fastapi import APIRouter, Depends

from orgauth.main.container.container import Container
from orgauth.main.models import SuccessResponse
from orgauth.organizations.organization import InviteRequest
from orgauth.server.dependencies.container import get_container, get_current_session
from orgauth.server.protocol import responses
from orgauth.sessions.session import Session

router = APIRouter()


@router.post(
    "/invite",
    response_model=SuccessResponse,
    responses=responses.get_responses([400, 401, 403, 502]),
)
async def invite(
    invite_request: InviteRequest,
    session: Session = Depends(get_current_session),
    container: Container = Depends(get_container()),
):
    """Invite someone to an organization the caller belongs to.

    Requires the `user` role or higher in that organization.
    """
    await container.organization_service().invite(
        session, invite_request.email, invite_request.organizationId
    )
    return SuccessResponse(message=f"Invitation sent to {invite_request.email}")
