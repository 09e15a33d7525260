"""Process-wide cache for the management API access token.

One ``ManagementTokenCache`` is built at start-up and shared by every request.
Refreshes are single-flight: concurrent callers that find the token stale
queue on one lock and re-check the cache before fetching, so exactly one
client-credentials grant runs per expiry.
"""

import asyncio
import time
from typing import Callable, Optional

import aiohttp

from orgauth.main.config import Settings
from orgauth.main.exceptions import ManagementTokenError
from orgauth.main.logging import get_logger

logger = get_logger(__name__)


class ManagementToken:
    """Token obtained via client credentials flow."""

    def __init__(self, access_token: str, expires_at: float):
        self.access_token = access_token
        # Epoch seconds, already shortened by the refresh margin
        self.expires_at = expires_at

    def is_usable(self, now: float) -> bool:
        return now < self.expires_at


class ManagementTokenCache:
    def __init__(
        self,
        settings: Settings,
        http_session: aiohttp.ClientSession,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.http_session = http_session
        self.clock = clock
        self._token: Optional[ManagementToken] = None
        self._lock = asyncio.Lock()

    @property
    def token_endpoint(self) -> str:
        return f"{self.settings.idp_base_url}/oauth/token"

    @property
    def current(self) -> Optional[ManagementToken]:
        return self._token

    async def get_token(self) -> str:
        token = self._token
        if token is not None and token.is_usable(self.clock()):
            return token.access_token

        async with self._lock:
            # Another coroutine may have refreshed while we waited
            token = self._token
            if token is not None and token.is_usable(self.clock()):
                logger.debug("Management token refreshed by concurrent caller")
                return token.access_token

            self._token = await self._acquire_token()
            return self._token.access_token

    def clear(self) -> None:
        self._token = None

    async def _acquire_token(self) -> ManagementToken:
        body = {
            "client_id": self.settings.management_client_id,
            "client_secret": self.settings.management_client_secret,
            "audience": self.settings.management_audience,
            "grant_type": "client_credentials",
        }

        logger.info("Acquiring new management API token")
        requested_at = self.clock()

        try:
            async with self.http_session.post(self.token_endpoint, json=body) as resp:
                if resp.status != 200:
                    error_body = await resp.text()
                    logger.error(
                        f"Failed to acquire management token: HTTP {resp.status}",
                        extra={
                            "http_status": resp.status,
                            "token_endpoint": self.token_endpoint,
                            "error_response": error_body,
                        },
                    )
                    raise ManagementTokenError(
                        "Failed to acquire management token",
                        status=resp.status,
                        detail=error_body,
                    )
                payload = await resp.json()
        except aiohttp.ClientError as e:
            logger.error(
                "Management token endpoint unreachable",
                extra={"token_endpoint": self.token_endpoint, "error": str(e)},
            )
            raise ManagementTokenError("Token endpoint unreachable", detail=str(e)) from e
        except ValueError as e:
            logger.error(
                "Management token response is not JSON",
                extra={"token_endpoint": self.token_endpoint, "error": str(e)},
            )
            raise ManagementTokenError("Malformed management token response") from e

        if not isinstance(payload, dict):
            logger.error(
                "Management token response is not an object",
                extra={"token_endpoint": self.token_endpoint},
            )
            raise ManagementTokenError("Malformed management token response")

        access_token = payload.get("access_token")
        expires_in = payload.get("expires_in")
        if not access_token or not isinstance(expires_in, (int, float)):
            logger.error(
                "Management token response missing fields",
                extra={
                    "has_access_token": bool(access_token),
                    "has_expires_in": expires_in is not None,
                },
            )
            raise ManagementTokenError("Malformed management token response")

        expires_at = requested_at + expires_in - self.settings.management_token_margin_seconds

        logger.info(
            "Acquired management API token",
            extra={"expires_in": expires_in, "usable_for_seconds": int(expires_at - requested_at)},
        )
        return ManagementToken(access_token=access_token, expires_at=expires_at)
