"""Client for the identity provider's management API.

Every call returns a ``ManagementResult`` instead of raising: list/lookup
callers degrade to an empty value, mutating callers report ``error`` to the
end user. ``error`` is a short public message; upstream bodies go to logs.
"""

from typing import Any, Generic, Optional, TypeVar
from urllib.parse import quote

import aiohttp
from pydantic import BaseModel, TypeAdapter, ValidationError

from orgauth.main.config import Settings
from orgauth.main.exceptions import ManagementApiError, UpstreamProtocolError
from orgauth.main.logging import get_logger
from orgauth.management.token_cache import ManagementTokenCache
from orgauth.organizations.organization import Organization, OrganizationMember

logger = get_logger(__name__)

T = TypeVar("T")

_ORGANIZATIONS = TypeAdapter(list[Organization])
_MEMBERS = TypeAdapter(list[OrganizationMember])


class ManagementResult(BaseModel, Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    status: Optional[int] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "ManagementResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str, status: Optional[int] = None) -> "ManagementResult[T]":
        return cls(success=False, error=error, status=status)


class CreatedUser(BaseModel):
    user_id: str


def _segment(value: str) -> str:
    return quote(value, safe="")


class ManagementApiClient:
    def __init__(
        self,
        settings: Settings,
        http_session: aiohttp.ClientSession,
        token_cache: ManagementTokenCache,
    ):
        self.settings = settings
        self.http_session = http_session
        self.token_cache = token_cache

    @property
    def base_url(self) -> str:
        return f"{self.settings.idp_base_url}/api/v2"

    async def _request(
        self, method: str, endpoint: str, *, body: Optional[dict[str, Any]] = None
    ) -> Any:
        token = await self.token_cache.get_token()
        url = f"{self.base_url}/{endpoint}"
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

        try:
            async with self.http_session.request(method, url, json=body, headers=headers) as resp:
                if resp.status < 200 or resp.status >= 300:
                    error_body = await resp.text()
                    logger.error(
                        f"Management API error: {method} {endpoint} returned HTTP {resp.status}",
                        extra={
                            "http_status": resp.status,
                            "endpoint": endpoint,
                            "method": method,
                            "error_response": error_body,
                        },
                    )
                    raise ManagementApiError(
                        "Management API request failed",
                        status=resp.status,
                        detail=error_body,
                    )
                if resp.status == 204:
                    return None
                text = await resp.text()
                return await resp.json() if text else None
        except aiohttp.ClientError as e:
            logger.error(
                f"Management API unreachable: {method} {endpoint}",
                extra={"endpoint": endpoint, "method": method, "error": str(e)},
            )
            raise ManagementApiError("Management API unreachable", detail=str(e)) from e
        except ValueError as e:
            logger.error(
                f"Management API returned invalid JSON: {method} {endpoint}",
                extra={"endpoint": endpoint, "method": method, "error": str(e)},
            )
            raise ManagementApiError("Malformed management API response", detail=str(e)) from e

    async def _call(
        self,
        description: str,
        method: str,
        endpoint: str,
        *,
        body: Optional[dict[str, Any]] = None,
        adapter: Optional[TypeAdapter] = None,
    ) -> ManagementResult:
        try:
            payload = await self._request(method, endpoint, body=body)
        except UpstreamProtocolError as e:
            return ManagementResult.failed(f"Failed to {description}", status=e.status)

        if adapter is None:
            return ManagementResult.ok(payload)

        try:
            return ManagementResult.ok(adapter.validate_python(payload))
        except ValidationError as e:
            logger.error(
                f"Unexpected management API response while trying to {description}",
                extra={"endpoint": endpoint, "error": str(e)},
            )
            return ManagementResult.failed(f"Failed to {description}")

    async def list_user_organizations(self, user_id: str) -> ManagementResult[list[Organization]]:
        return await self._call(
            "list user organizations",
            "GET",
            f"users/{_segment(user_id)}/organizations",
            adapter=_ORGANIZATIONS,
        )

    async def get_organization(self, org_id: str) -> ManagementResult[Organization]:
        return await self._call(
            "fetch organization",
            "GET",
            f"organizations/{_segment(org_id)}",
            adapter=TypeAdapter(Organization),
        )

    async def list_organization_members(
        self, org_id: str
    ) -> ManagementResult[list[OrganizationMember]]:
        return await self._call(
            "list organization members",
            "GET",
            f"organizations/{_segment(org_id)}/members",
            adapter=_MEMBERS,
        )

    async def invite_member(
        self, org_id: str, inviter_name: str, invitee_email: str, client_id: str
    ) -> ManagementResult[None]:
        result = await self._call(
            "send invitation",
            "POST",
            f"organizations/{_segment(org_id)}/invitations",
            body={
                "inviter": {"name": inviter_name},
                "invitee": {"email": invitee_email},
                "client_id": client_id,
                "send_invitation_email": True,
            },
        )
        return ManagementResult(success=result.success, error=result.error, status=result.status)

    async def add_member(self, org_id: str, user_id: str) -> ManagementResult[None]:
        result = await self._call(
            "add organization member",
            "POST",
            f"organizations/{_segment(org_id)}/members",
            body={"members": [user_id]},
        )
        return ManagementResult(success=result.success, error=result.error, status=result.status)

    async def remove_member(self, org_id: str, user_id: str) -> ManagementResult[None]:
        # Members go in the body, not the path
        result = await self._call(
            "remove organization member",
            "DELETE",
            f"organizations/{_segment(org_id)}/members",
            body={"members": [user_id]},
        )
        return ManagementResult(success=result.success, error=result.error, status=result.status)

    async def create_user(
        self,
        email: str,
        name: str,
        org_id: str,
        password: Optional[str] = None,
        send_verification_email: bool = True,
    ) -> ManagementResult[CreatedUser]:
        """Create a database user, add it to ``org_id`` and, without a
        password, send a password-change ticket so the user can set one."""
        body: dict[str, Any] = {
            "email": email,
            "name": name,
            "connection": self.settings.signup_connection,
            "email_verified": False,
            "verify_email": send_verification_email,
        }
        if password:
            body["password"] = password

        created = await self._call(
            "create user", "POST", "users", body=body, adapter=TypeAdapter(CreatedUser)
        )
        if not created.success:
            return created

        user = created.data
        membership = await self.add_member(org_id, user.user_id)
        if not membership.success:
            logger.error(
                "User created but could not be added to organization",
                extra={"user_id": user.user_id, "org_id": org_id},
            )
            return ManagementResult.failed(membership.error, status=membership.status)

        if not password:
            ticket = await self._call(
                "create password change ticket",
                "POST",
                "tickets/password-change",
                body={
                    "user_id": user.user_id,
                    "client_id": self.settings.client_id,
                    "mark_email_as_verified": True,
                    "ttl_sec": self.settings.password_ticket_ttl_seconds,
                },
            )
            if not ticket.success:
                return ManagementResult.failed(ticket.error, status=ticket.status)

        logger.info("Created user", extra={"user_id": user.user_id, "org_id": org_id})
        return ManagementResult.ok(user)
