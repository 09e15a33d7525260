"""Signed-cookie session storage.

The whole ``Session`` travels in one HS256-signed JWT cookie. Anything that
fails verification is treated exactly like a missing session. The decoded
session is memoised on ``request.state`` so a read later in the same request
observes an earlier create/update/destroy.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

import jwt
from fastapi import Request, Response
from pydantic import ValidationError

from orgauth.main.config import Settings
from orgauth.main.logging import get_logger
from orgauth.sessions.session import Session

logger = get_logger(__name__)

_STATE_ATTR = "orgauth_session"
_DISCARDED_ATTR = "orgauth_session_discarded"
_UNSET = object()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    def __init__(self, settings: Settings, clock: Callable[[], datetime] = _utc_now):
        self.settings = settings
        self.clock = clock

    @property
    def cookie_name(self) -> str:
        return self.settings.session_cookie_name

    def _encode(self, session: Session) -> str:
        payload = {
            "session": session.model_dump(mode="json"),
            "exp": int(session.expires_at.timestamp()),
        }
        return jwt.encode(
            payload,
            self.settings.session_secret,
            algorithm=self.settings.session_signing_algorithm,
        )

    def _decode(self, token: str) -> Optional[Session]:
        try:
            payload = jwt.decode(
                token,
                self.settings.session_secret,
                algorithms=[self.settings.session_signing_algorithm],
                # Expiry is checked in read() against the store clock
                options={"require": ["exp"], "verify_exp": False},
            )
            return Session.model_validate(payload["session"])
        except jwt.InvalidTokenError as e:
            logger.warning(
                "Rejected session cookie that failed verification",
                extra={"error_type": type(e).__name__},
            )
        except (KeyError, ValidationError) as e:
            logger.warning(
                "Rejected session cookie with unexpected payload",
                extra={"error_type": type(e).__name__},
            )
        return None

    def _write_cookie(self, response: Response, session: Session) -> None:
        max_age = int((session.expires_at - self.clock()).total_seconds())
        response.set_cookie(
            key=self.cookie_name,
            value=self._encode(session),
            max_age=max(max_age, 0),
            path="/",
            httponly=True,
            secure=self.settings.cookie_secure,
            samesite="lax",
        )

    def _delete_cookie(self, response: Response) -> None:
        response.delete_cookie(
            key=self.cookie_name,
            path="/",
            httponly=True,
            secure=self.settings.cookie_secure,
            samesite="lax",
        )

    def create(self, request: Request, response: Response, session: Session) -> None:
        self._write_cookie(response, session)
        setattr(request.state, _STATE_ATTR, session)
        logger.info(
            "Session created",
            extra={"user_sub": session.user.sub, "expires_at": session.expires_at.isoformat()},
        )

    def read(self, request: Request, response: Optional[Response] = None) -> Optional[Session]:
        """Return the current valid session or None.

        An expired or unverifiable cookie is marked as discarded on the request
        and deleted right away when a response is given. ``clear_discarded``
        deletes it on whatever response the request ends with.
        """
        cached = getattr(request.state, _STATE_ATTR, _UNSET)
        discarded = False
        if cached is not _UNSET:
            session = cached
        else:
            token = request.cookies.get(self.cookie_name)
            session = self._decode(token) if token else None
            discarded = bool(token) and session is None

        if session is not None and session.is_expired(self.clock()):
            logger.info("Session expired", extra={"user_sub": session.user.sub})
            session = None
            discarded = True

        if discarded:
            setattr(request.state, _DISCARDED_ATTR, True)
            if response is not None:
                self._delete_cookie(response)

        setattr(request.state, _STATE_ATTR, session)
        return session

    def update(self, request: Request, response: Response, session: Session) -> None:
        self._write_cookie(response, session)
        setattr(request.state, _STATE_ATTR, session)
        logger.debug(
            "Session updated",
            extra={"user_sub": session.user.sub, "org_id": session.user.org_id},
        )

    def destroy(self, request: Request, response: Response) -> None:
        self._delete_cookie(response)
        setattr(request.state, _STATE_ATTR, None)

    def clear_discarded(self, request: Request, response: Response) -> None:
        """Delete a cookie that read() discarded, unless the response already sets it."""
        if not getattr(request.state, _DISCARDED_ATTR, False):
            return
        prefix = f"{self.cookie_name}=".encode("latin-1")
        for name, value in response.raw_headers:
            if name == b"set-cookie" and value.startswith(prefix):
                return
        self._delete_cookie(response)
