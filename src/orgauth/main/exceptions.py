from typing import Optional

from orgauth.main.models import AuthErrorCode


class OrgAuthException(Exception):
    pass


class CorrelationError(OrgAuthException):
    """The callback could not be tied to a login this server started.

    Treated as a potential CSRF attempt: the flow is aborted before any token
    exchange takes place.
    """

    def __init__(self, message: str, error_code: AuthErrorCode):
        super().__init__(message)
        self.error_code = error_code


class UpstreamProtocolError(OrgAuthException):
    """Non-success response from the identity provider.

    ``detail`` holds the raw upstream body for server-side logs only.
    """

    error_code: str = "upstream_error"

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.detail = detail


class TokenExchangeError(UpstreamProtocolError):
    error_code = AuthErrorCode.TOKEN_EXCHANGE_FAILED.value


class UserInfoError(UpstreamProtocolError):
    error_code = AuthErrorCode.USERINFO_FAILED.value


class ManagementTokenError(UpstreamProtocolError):
    error_code = "management_token_failed"


class ManagementApiError(UpstreamProtocolError):
    error_code = "management_api_failed"


class AuthenticationException(OrgAuthException):
    pass


class AuthorizationError(OrgAuthException):
    pass


class NotFoundException(OrgAuthException):
    pass


class BadRequestException(OrgAuthException):
    pass


# Map exceptions to (status code, public message, error code).
# A public message of None means str(exc) is safe to show.
EXCEPTION_MAP = {
    AuthenticationException: (401, "Unauthorized", "unauthorized"),
    AuthorizationError: (403, None, "forbidden"),
    NotFoundException: (404, None, "not_found"),
    BadRequestException: (400, None, "bad_request"),
    CorrelationError: (400, "Invalid login attempt", AuthErrorCode.INVALID_STATE.value),
    TokenExchangeError: (
        502,
        "Authentication with the identity provider failed",
        AuthErrorCode.TOKEN_EXCHANGE_FAILED.value,
    ),
    UserInfoError: (
        502,
        "Authentication with the identity provider failed",
        AuthErrorCode.USERINFO_FAILED.value,
    ),
    ManagementTokenError: (
        502,
        "The identity provider is currently unavailable",
        "management_token_failed",
    ),
    ManagementApiError: (
        502,
        "The identity provider rejected the request",
        "management_api_failed",
    ),
}
