"""Data loaders for the front-end pages.

Anonymous visitors are redirected rather than rejected, so these routes never
answer 401.
"""

from typing import Optional, Union
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from orgauth.main.config import get_settings
from orgauth.main.container.container import Container
from orgauth.main.exceptions import AuthorizationError, NotFoundException
from orgauth.main.logging import get_logger
from orgauth.main.models import AuthErrorCode
from orgauth.pages.pages import AdminPage, DashboardPage, FrontDoorPage, InternalAppPage
from orgauth.server.dependencies.container import get_container, get_optional_session
from orgauth.sessions.session import Session

logger = get_logger(__name__)

router = APIRouter()


def _login_url(**params: Optional[str]) -> str:
    login_path = f"{get_settings().api_prefix}/auth/login"
    query = urlencode({key: value for key, value in params.items() if value})
    return f"{login_path}?{query}" if query else login_path


@router.get("/", response_model=None)
async def front_door(
    error: Optional[str] = Query(None),
    invitation: Optional[str] = Query(None),
    organization: Optional[str] = Query(None),
    session: Optional[Session] = Depends(get_optional_session),
) -> Union[FrontDoorPage, RedirectResponse]:
    if session is not None:
        return RedirectResponse("/dashboard", status_code=303)

    if error:
        return FrontDoorPage(error=error)

    return RedirectResponse(
        _login_url(invitation=invitation, organization=organization), status_code=303
    )


@router.get("/dashboard", response_model=None)
async def dashboard(
    request: Request,
    response: Response,
    error: Optional[str] = Query(None),
    session: Optional[Session] = Depends(get_optional_session),
    container: Container = Depends(get_container()),
) -> Union[DashboardPage, RedirectResponse]:
    if session is None:
        return RedirectResponse("/", status_code=303)

    service = container.organization_service()
    context = await service.get_context(request, response, session)
    organizations = await service.list_with_member_counts(context.organizations)

    # Auto-selection may have rewritten the session during this request
    current = container.session_store().read(request) or session
    return DashboardPage(
        user=current.user,
        organization=context,
        organizations=organizations,
        error=error,
    )


@router.get("/admin", response_model=None)
async def admin(
    session: Optional[Session] = Depends(get_optional_session),
    container: Container = Depends(get_container()),
) -> Union[AdminPage, RedirectResponse]:
    if session is None:
        return RedirectResponse("/", status_code=303)

    service = container.organization_service()
    try:
        organizations = await service.get_admin_organizations(session)
    except AuthorizationError:
        logger.info("Non-admin sent back to dashboard", extra={"user_sub": session.user.sub})
        query = urlencode({"error": AuthErrorCode.ACCESS_DENIED.value})
        return RedirectResponse(f"/dashboard?{query}", status_code=303)

    return AdminPage(
        user=session.user,
        organizations=organizations,
        user_roles=service.get_user_roles(session),
    )


@router.get("/apps/{slug}", response_model=None)
async def internal_app(
    slug: str,
    sso: Optional[str] = Query(None),
    session: Optional[Session] = Depends(get_optional_session),
) -> Union[InternalAppPage, RedirectResponse]:
    if slug not in get_settings().internal_apps:
        raise NotFoundException("App not found")

    if session is None:
        return RedirectResponse(_login_url(returnTo=f"/apps/{slug}?sso=true"), status_code=303)

    return InternalAppPage(app=slug, user=session.user, sso_login=sso == "true")
