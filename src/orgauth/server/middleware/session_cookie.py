from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from orgauth.main.config import get_settings
from orgauth.sessions.session_store import SessionStore


class SessionCookieMiddleware(BaseHTTPMiddleware):
    """Delete expired or unverifiable session cookies on the way out.

    Covers responses built outside the endpoint, such as the 401 from the
    exception handlers and the page loaders' redirects.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        SessionStore(get_settings()).clear_discarded(request, response)
        return response
