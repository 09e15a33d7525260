from typing import Any, Optional
from urllib.parse import urlencode

import aiohttp
from pydantic import ValidationError

from orgauth.authentication.auth_models import (
    AuthorizationHints,
    FlowParameters,
    TokenSet,
    UserInfo,
)
from orgauth.main.config import Settings
from orgauth.main.exceptions import TokenExchangeError, UserInfoError
from orgauth.main.logging import get_logger

logger = get_logger(__name__)

SCOPES = "openid profile email"


async def _read_error_body(resp) -> Any:
    try:
        return await resp.json()
    except Exception:
        return await resp.text()


class IdentityProviderClient:
    """The three end-user calls against the identity provider.

    Authorization URL construction is pure; the code exchange and userinfo
    calls are attempted once and fail with a typed upstream error.
    """

    def __init__(self, settings: Settings, http_session: aiohttp.ClientSession):
        self.settings = settings
        self.http_session = http_session

    @property
    def authorization_endpoint(self) -> str:
        return f"{self.settings.idp_base_url}/authorize"

    @property
    def token_endpoint(self) -> str:
        return f"{self.settings.idp_base_url}/oauth/token"

    @property
    def userinfo_endpoint(self) -> str:
        return f"{self.settings.idp_base_url}/userinfo"

    def build_authorization_url(
        self,
        flow: FlowParameters,
        hints: Optional[AuthorizationHints] = None,
    ) -> str:
        params = {
            "client_id": self.settings.client_id,
            "response_type": "code",
            "redirect_uri": self.settings.callback_url,
            "scope": SCOPES,
            "state": flow.state,
            "code_challenge": flow.code_challenge,
            "code_challenge_method": "S256",
        }

        if self.settings.audience:
            params["audience"] = self.settings.audience

        if hints is not None:
            optional = {
                "login_hint": hints.login_hint,
                "connection": hints.connection,
                "organization": hints.organization,
                "invitation": hints.invitation,
            }
            params.update({key: value for key, value in optional.items() if value})

        return f"{self.authorization_endpoint}?{urlencode(params)}"

    def build_logout_url(self, return_to: str) -> str:
        params = {"client_id": self.settings.client_id, "returnTo": return_to}
        return f"{self.settings.idp_base_url}/v2/logout?{urlencode(params)}"

    async def exchange_code(self, code: str, code_verifier: str) -> TokenSet:
        token_data = {
            "grant_type": "authorization_code",
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "code": code,
            "code_verifier": code_verifier,
            "redirect_uri": self.settings.callback_url,
        }

        logger.debug(
            "Exchanging authorization code for tokens",
            extra={"token_endpoint": self.token_endpoint},
        )

        try:
            async with self.http_session.post(self.token_endpoint, data=token_data) as resp:
                if resp.status != 200:
                    error_body = await _read_error_body(resp)
                    logger.error(
                        f"Token exchange failed: HTTP {resp.status}",
                        extra={
                            "http_status": resp.status,
                            "token_endpoint": self.token_endpoint,
                            "error_response": error_body,
                        },
                    )
                    raise TokenExchangeError(
                        "Failed to exchange authorization code for tokens",
                        status=resp.status,
                        detail=str(error_body),
                    )
                payload = await resp.json()
        except aiohttp.ClientError as e:
            logger.error(
                "Token endpoint unreachable",
                extra={"token_endpoint": self.token_endpoint, "error": str(e)},
            )
            raise TokenExchangeError("Token endpoint unreachable", detail=str(e)) from e
        except ValueError as e:
            logger.error("Token response is not JSON", extra={"error": str(e)})
            raise TokenExchangeError("Malformed token response", detail=str(e)) from e

        if not isinstance(payload, dict):
            logger.error("Token response is not an object")
            raise TokenExchangeError("Malformed token response")

        try:
            return TokenSet.model_validate(payload)
        except ValidationError as e:
            logger.error(
                "Token response missing required fields",
                extra={
                    "has_access_token": bool(payload.get("access_token")),
                    "has_expires_in": "expires_in" in payload,
                },
            )
            raise TokenExchangeError("Malformed token response", detail=str(e)) from e

    async def fetch_user_info(self, access_token: str) -> UserInfo:
        headers = {"Authorization": f"Bearer {access_token}"}

        try:
            async with self.http_session.get(self.userinfo_endpoint, headers=headers) as resp:
                if resp.status != 200:
                    error_body = await _read_error_body(resp)
                    logger.error(
                        f"Userinfo request failed: HTTP {resp.status}",
                        extra={
                            "http_status": resp.status,
                            "userinfo_endpoint": self.userinfo_endpoint,
                            "error_response": error_body,
                        },
                    )
                    raise UserInfoError(
                        "Failed to fetch user info",
                        status=resp.status,
                        detail=str(error_body),
                    )
                payload = await resp.json()
        except aiohttp.ClientError as e:
            logger.error(
                "Userinfo endpoint unreachable",
                extra={"userinfo_endpoint": self.userinfo_endpoint, "error": str(e)},
            )
            raise UserInfoError("Userinfo endpoint unreachable", detail=str(e)) from e
        except ValueError as e:
            logger.error("Userinfo response is not JSON", extra={"error": str(e)})
            raise UserInfoError("Malformed userinfo response", detail=str(e)) from e

        try:
            return UserInfo.model_validate(payload)
        except ValidationError as e:
            logger.error("Userinfo response missing subject")
            raise UserInfoError("Malformed userinfo response", detail=str(e)) from e
