from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FlowParameters(BaseModel):
    """Transient parameters of one in-flight login attempt."""

    model_config = ConfigDict(frozen=True)

    state: str
    code_verifier: str
    code_challenge: str
    return_to: str


class AuthorizationHints(BaseModel):
    """Optional routing hints forwarded to the authorization endpoint.

    Absent hints leave realm discovery to the identity provider.
    """

    login_hint: Optional[str] = None
    connection: Optional[str] = None
    organization: Optional[str] = None
    invitation: Optional[str] = None


class TokenSet(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    id_token: Optional[str] = None
    expires_in: int = Field(gt=0)
    token_type: Optional[str] = None


class UserInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sub: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    org_id: Optional[str] = None
    org_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    returnTo: Optional[str] = None


class LoginResponse(BaseModel):
    authorization_url: str


class LogoutResponse(BaseModel):
    logout_url: str


class LoginInitiation(BaseModel):
    authorization_url: str
    flow: FlowParameters
