"""Login -> provider redirect -> callback -> session orchestration.

Flow parameters live in three short-lived cookies between the login redirect
and the callback. They are read once at the callback and cleared on every
outcome, successful or not.
"""

import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from urllib.parse import unquote, urlencode, urlsplit

from fastapi import Request, Response

from orgauth.authentication import pkce
from orgauth.authentication.auth_models import LoginInitiation
from orgauth.authentication.email_routing import build_authorization_hints
from orgauth.authentication.idp_client import IdentityProviderClient
from orgauth.main.config import Settings
from orgauth.main.exceptions import CorrelationError, UpstreamProtocolError
from orgauth.main.logging import get_logger
from orgauth.main.models import AuthErrorCode
from orgauth.main.request_context import bind_user
from orgauth.organizations.organization_resolver import OrganizationResolver
from orgauth.sessions.session import AuthenticatedUser, Session
from orgauth.sessions.session_store import SessionStore

logger = get_logger(__name__)

STATE_COOKIE = "auth_state"
CODE_VERIFIER_COOKIE = "auth_code_verifier"
RETURN_TO_COOKIE = "auth_return_to"
FLOW_COOKIES = (STATE_COOKIE, CODE_VERIFIER_COOKIE, RETURN_TO_COOKIE)

# Provider error codes are echoed back only if they look like an error code
_PROVIDER_ERROR_PATTERN = re.compile(r"^[a-z0-9_]{1,64}$")


def _has_control_or_space(value: str) -> bool:
    return any(ord(c) < 0x21 or c == "\x7f" for c in value)


def safe_return_to(path: Optional[str], fallback: str) -> str:
    """Only local absolute paths are valid post-login destinations.

    Browsers drop tabs and newlines while parsing a URL, so any control
    character or whitespace, raw or percent-encoded, disqualifies the path.
    """
    if not path:
        return fallback
    value = path.strip()
    for candidate in (value, unquote(value)):
        if _has_control_or_space(candidate) or "\\" in candidate:
            return fallback
        if not candidate.startswith("/") or candidate.startswith("//"):
            return fallback
    parts = urlsplit(value)
    if parts.scheme or parts.netloc:
        return fallback
    return value


def error_redirect_url(error_code: str) -> str:
    return f"/?{urlencode({'error': error_code})}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuthFlowService:
    def __init__(
        self,
        settings: Settings,
        idp_client: IdentityProviderClient,
        session_store: SessionStore,
        organization_resolver: OrganizationResolver,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.settings = settings
        self.idp_client = idp_client
        self.session_store = session_store
        self.organization_resolver = organization_resolver
        self.clock = clock

    def begin_login(
        self,
        return_to: Optional[str] = None,
        email: Optional[str] = None,
        organization: Optional[str] = None,
        invitation: Optional[str] = None,
    ) -> LoginInitiation:
        flow = pkce.create_flow_parameters(
            safe_return_to(return_to, self.settings.default_return_to)
        )
        hints = build_authorization_hints(
            email,
            connections=self.settings.email_domain_connections,
            organizations=self.settings.email_domain_organizations,
            organization=organization,
            invitation=invitation,
        )
        authorization_url = self.idp_client.build_authorization_url(flow, hints)

        logger.info(
            "Login initiated",
            extra={
                "has_login_hint": bool(hints.login_hint),
                "connection": hints.connection,
                "organization": hints.organization,
                "has_invitation": bool(hints.invitation),
                "return_to": flow.return_to,
            },
        )
        return LoginInitiation(authorization_url=authorization_url, flow=flow)

    def store_flow_cookies(self, response: Response, initiation: LoginInitiation) -> None:
        flow = initiation.flow
        values = {
            STATE_COOKIE: flow.state,
            CODE_VERIFIER_COOKIE: flow.code_verifier,
            RETURN_TO_COOKIE: flow.return_to,
        }
        for name, value in values.items():
            response.set_cookie(
                key=name,
                value=value,
                max_age=self.settings.flow_cookie_max_age_seconds,
                path="/",
                httponly=True,
                secure=self.settings.cookie_secure,
                samesite="lax",
            )

    def clear_flow_cookies(self, response: Response) -> None:
        for name in FLOW_COOKIES:
            response.delete_cookie(
                key=name,
                path="/",
                httponly=True,
                secure=self.settings.cookie_secure,
                samesite="lax",
            )

    @staticmethod
    def _check_correlation(
        state: Optional[str],
        stored_state: Optional[str],
        code: Optional[str],
        code_verifier: Optional[str],
    ) -> None:
        if (
            not state
            or not stored_state
            or not secrets.compare_digest(state.encode("utf-8"), stored_state.encode("utf-8"))
        ):
            raise CorrelationError(
                "Callback state does not match the login attempt",
                AuthErrorCode.INVALID_STATE,
            )
        if not code or not code_verifier:
            raise CorrelationError(
                "Callback is missing the code or the code verifier",
                AuthErrorCode.MISSING_PARAMETERS,
            )

    async def complete_login(
        self,
        request: Request,
        response: Response,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> str:
        """Finish the login and return the URL to redirect the browser to."""
        stored_state = request.cookies.get(STATE_COOKIE)
        code_verifier = request.cookies.get(CODE_VERIFIER_COOKIE)
        return_to = safe_return_to(
            request.cookies.get(RETURN_TO_COOKIE), self.settings.default_return_to
        )

        # Transient state is single-use whatever happens below
        self.clear_flow_cookies(response)

        if error:
            logger.warning(
                "Identity provider returned an error",
                extra={"error": error, "error_description": error_description},
            )
            code_to_show = error if _PROVIDER_ERROR_PATTERN.match(error) else (
                AuthErrorCode.AUTHENTICATION_FAILED.value
            )
            return error_redirect_url(code_to_show)

        try:
            self._check_correlation(state, stored_state, code, code_verifier)
        except CorrelationError as e:
            logger.warning(
                f"Aborting login: {e}",
                extra={
                    "error_code": e.error_code.value,
                    "has_state": bool(state),
                    "has_stored_state": bool(stored_state),
                },
            )
            return error_redirect_url(e.error_code.value)

        session_created = False
        try:
            tokens = await self.idp_client.exchange_code(code, code_verifier)
            user_info = await self.idp_client.fetch_user_info(tokens.access_token)

            # org_id/org_name come from the provider's back channel, never the browser
            session = Session(
                user=AuthenticatedUser(
                    sub=user_info.sub,
                    email=user_info.email,
                    name=user_info.name,
                    picture=user_info.picture,
                    org_id=user_info.org_id,
                    org_name=user_info.org_name,
                ),
                access_token=tokens.access_token,
                id_token=tokens.id_token,
                expires_at=self.clock() + timedelta(seconds=tokens.expires_in),
            )
            self.session_store.create(request, response, session)
            session_created = True
            bind_user(session.user.sub, session.user.org_id)

            await self.organization_resolver.resolve(request, response, session)
        except UpstreamProtocolError as e:
            if session_created:
                self.session_store.destroy(request, response)
            return error_redirect_url(e.error_code)
        except Exception:
            logger.exception("Unexpected error while completing login")
            if session_created:
                self.session_store.destroy(request, response)
            return error_redirect_url(AuthErrorCode.AUTHENTICATION_FAILED.value)

        logger.info(
            "Login completed",
            extra={"user_sub": session.user.sub, "return_to": return_to},
        )
        return return_to

    def logout(self, request: Request, response: Response) -> str:
        """Destroy the session and return the provider logout URL."""
        session = self.session_store.read(request)
        self.session_store.destroy(request, response)

        return_url = self.settings.post_logout_return_url or str(request.base_url).rstrip("/")
        logger.info(
            "Logged out",
            extra={"user_sub": session.user.sub if session else None},
        )
        return self.idp_client.build_logout_url(return_url)
