from enum import Enum
from typing import Optional

from pydantic import BaseModel


class AuthErrorCode(str, Enum):
    """Machine-readable codes carried by failed login redirects."""

    INVALID_STATE = "invalid_state"
    MISSING_PARAMETERS = "missing_parameters"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    USERINFO_FAILED = "userinfo_failed"
    AUTHENTICATION_FAILED = "authentication_failed"
    ACCESS_DENIED = "access_denied"


class GeneralError(BaseModel):
    message: str
    error_code: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
