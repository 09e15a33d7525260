import secrets

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from orgauth.main.request_context import clear_request_context, set_request_context

CORRELATION_HEADER = "X-Correlation-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach a correlation id to every log line of a request."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or secrets.token_hex(8)
        clear_request_context()
        set_request_context(correlation_id=correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
