from typing import Optional

from dependency_injector import providers
from fastapi import Depends, Request

from orgauth.main.config import get_settings
from orgauth.main.container.container import Container
from orgauth.main.exceptions import AuthenticationException
from orgauth.main.request_context import bind_user
from orgauth.sessions.session import Session


def get_container():
    def _get_container(request: Request) -> Container:
        state = request.app.state
        return Container(
            settings=providers.Object(get_settings()),
            http_session=providers.Object(state.http_session),
            management_token_cache=providers.Object(state.management_token_cache),
            role_store=providers.Object(state.role_store),
        )

    return _get_container


def get_current_session(
    request: Request,
    container: Container = Depends(get_container()),
) -> Session:
    """Require a valid session; raise 401 otherwise."""
    session = container.session_store().read(request)
    if session is None:
        raise AuthenticationException("No active session")

    bind_user(session.user.sub, session.user.org_id)
    return session


def get_optional_session(
    request: Request,
    container: Container = Depends(get_container()),
) -> Optional[Session]:
    """Session if present; page loaders decide where to send anonymous users."""
    session = container.session_store().read(request)
    if session is not None:
        bind_user(session.user.sub, session.user.org_id)
    return session
