from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from orgauth.authentication.auth_models import LoginRequest, LoginResponse, LogoutResponse
from orgauth.main.container.container import Container
from orgauth.main.exceptions import BadRequestException
from orgauth.server.dependencies.container import get_container, get_current_session
from orgauth.server.protocol import responses
from orgauth.sessions.session import Session, SessionUserPublic

router = APIRouter()


def _redirect(url: str, cookies: Response) -> RedirectResponse:
    """303 to ``url`` carrying the Set-Cookie headers collected on ``cookies``."""
    response = RedirectResponse(url, status_code=303)
    response.raw_headers.extend(
        header for header in cookies.raw_headers if header[0] == b"set-cookie"
    )
    return response


@router.get("/login", status_code=302, response_class=RedirectResponse)
async def login(
    returnTo: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    invitation: Optional[str] = Query(None),
    organization: Optional[str] = Query(None),
    container: Container = Depends(get_container()),
):
    """Start a login and redirect the browser to the identity provider."""
    service = container.auth_flow_service()
    initiation = service.begin_login(
        return_to=returnTo, email=email, organization=organization, invitation=invitation
    )

    response = RedirectResponse(initiation.authorization_url, status_code=302)
    service.store_flow_cookies(response, initiation)
    return response


@router.post("/login", response_model=LoginResponse, responses=responses.get_responses([400]))
async def login_with_email(
    login_request: LoginRequest,
    response: Response,
    container: Container = Depends(get_container()),
):
    """Start a login for a known email; the client performs the redirect."""
    if not login_request.email:
        raise BadRequestException("Email is required")

    service = container.auth_flow_service()
    initiation = service.begin_login(return_to=login_request.returnTo, email=login_request.email)
    service.store_flow_cookies(response, initiation)

    return LoginResponse(authorization_url=initiation.authorization_url)


@router.get("/callback", status_code=303, response_class=RedirectResponse)
async def callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    error_description: Optional[str] = Query(None),
    container: Container = Depends(get_container()),
):
    cookies = Response()
    redirect_url = await container.auth_flow_service().complete_login(
        request,
        cookies,
        code=code,
        state=state,
        error=error,
        error_description=error_description,
    )
    return _redirect(redirect_url, cookies)


@router.get("/logout", status_code=303, response_class=RedirectResponse)
async def logout(request: Request, container: Container = Depends(get_container())):
    cookies = Response()
    logout_url = container.auth_flow_service().logout(request, cookies)
    return _redirect(logout_url, cookies)


@router.post("/logout", response_model=LogoutResponse)
async def logout_for_client(
    request: Request,
    response: Response,
    container: Container = Depends(get_container()),
):
    logout_url = container.auth_flow_service().logout(request, response)
    return LogoutResponse(logout_url=logout_url)


@router.get("/me", response_model=SessionUserPublic, responses=responses.get_responses([401]))
async def get_me(session: Session = Depends(get_current_session)):
    return SessionUserPublic(user=session.user, expires_at=session.expires_at)
