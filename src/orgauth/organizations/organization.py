from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrganizationBranding(BaseModel):
    model_config = ConfigDict(extra="allow")

    logo_url: Optional[str] = None
    colors: Optional[dict[str, str]] = None


class Organization(BaseModel):
    """Organization as owned by the identity provider. Fetched per request."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    display_name: Optional[str] = None
    branding: Optional[OrganizationBranding] = None
    metadata: Optional[dict[str, Any]] = None

    @property
    def label(self) -> str:
        return self.display_name or self.name


class OrganizationMember(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None


class OrganizationWithMembers(Organization):
    member_count: int = 0


class OrganizationContextStatus(str, Enum):
    RESOLVED = "resolved"
    AUTO_SELECTED = "auto_selected"
    SELECTION_REQUIRED = "selection_required"
    NO_ORGANIZATION = "no_organization"


class OrganizationContext(BaseModel):
    status: OrganizationContextStatus
    org_id: Optional[str] = None
    org_name: Optional[str] = None
    organizations: list[Organization] = Field(default_factory=list)

    @property
    def selection_required(self) -> bool:
        return self.status == OrganizationContextStatus.SELECTION_REQUIRED


class SelectOrganizationRequest(BaseModel):
    organizationId: Optional[str] = None


class SelectOrganizationResponse(BaseModel):
    success: bool = True
    organization: Organization


class InviteRequest(BaseModel):
    email: Optional[str] = None
    organizationId: Optional[str] = None


class CreateMemberRequest(BaseModel):
    email: str
    name: str
    password: Optional[str] = None
    send_verification_email: bool = True


class CreatedMember(BaseModel):
    user_id: str
    email: str
    organization_id: str
