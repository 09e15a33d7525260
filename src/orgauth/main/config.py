import logging
import os
import sys
from typing import Optional
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_SESSION_SECRET = "your-session-secret-change-this"


def normalize_idp_domain(domain: str) -> str:
    """
    Normalize the identity provider domain to a bare host.

    The provider URLs are always built as ``https://{domain}/...`` so a
    configured value carrying a scheme or trailing slash is reduced to the
    host (and port, if any).

    Examples:
        >>> normalize_idp_domain("https://Tenant.eu.auth0.com/")
        "tenant.eu.auth0.com"

        >>> normalize_idp_domain("https://tenant.auth0.com/some/path")
        ValueError: idp_domain must not include a path
    """
    domain = domain.strip()
    if not domain:
        return domain

    parsed = urlparse(domain if "://" in domain else f"https://{domain}")

    if not parsed.hostname:
        raise ValueError(f"idp_domain missing hostname: {domain}")

    if parsed.path not in ("", "/"):
        raise ValueError(f"idp_domain must not include a path: {domain}")

    if parsed.query or parsed.fragment:
        raise ValueError(f"idp_domain must not include query or fragment: {domain}")

    port = f":{parsed.port}" if parsed.port else ""
    return f"{parsed.hostname.lower()}{port}"


class RoleAssignmentSeed(BaseModel):
    user_id: str
    organization_id: str
    role: str


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", extra="allow", populate_by_name=True
    )

    app_version: str = "0.1.0"

    # Identity provider
    idp_domain: str = Field(
        default="", validation_alias=AliasChoices("idp_domain", "auth0_domain")
    )
    client_id: str = Field(
        default="", validation_alias=AliasChoices("client_id", "auth0_client_id")
    )
    client_secret: str = Field(
        default="",
        validation_alias=AliasChoices("client_secret", "auth0_client_secret"),
    )
    callback_url: str = Field(
        default="http://localhost:5173/api/auth/callback",
        validation_alias=AliasChoices("callback_url", "auth0_callback_url"),
    )
    audience: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("audience", "auth0_audience")
    )

    # Management API (client credentials grant)
    management_client_id: str = Field(
        default="",
        validation_alias=AliasChoices(
            "management_client_id", "auth0_management_api_client_id"
        ),
    )
    management_client_secret: str = Field(
        default="",
        validation_alias=AliasChoices(
            "management_client_secret", "auth0_management_api_client_secret"
        ),
    )
    management_token_margin_seconds: int = 300
    signup_connection: str = "Username-Password-Authentication"
    password_ticket_ttl_seconds: int = 60 * 60 * 24

    # Session and transient flow cookies
    session_secret: str = PLACEHOLDER_SESSION_SECRET
    session_cookie_name: str = "session"
    session_signing_algorithm: str = "HS256"
    flow_cookie_max_age_seconds: int = 60 * 10

    # Routing
    api_prefix: str = "/api"
    default_return_to: str = "/dashboard"
    post_logout_return_url: Optional[str] = None

    # Optional routing hints keyed by lowercase email domain.
    # Without a hint the provider falls back to its own home realm discovery.
    email_domain_connections: dict[str, str] = Field(default_factory=dict)
    email_domain_organizations: dict[str, str] = Field(default_factory=dict)

    # Front ends that delegate authentication to this service
    internal_apps: list[str] = Field(
        default_factory=lambda: ["internal-app-1", "internal-app-2"]
    )

    # In-memory RBAC table seed, e.g.
    # INITIAL_ROLE_ASSIGNMENTS='[{"user_id": "auth0|1", "organization_id": "org_1", "role": "admin"}]'
    initial_role_assignments: list[RoleAssignmentSeed] = Field(default_factory=list)

    # Dev
    testing: bool = False
    dev: bool = False

    @model_validator(mode="after")
    def validate_durations(self):
        """Ensure TTL-like values are usable."""
        if self.flow_cookie_max_age_seconds <= 0:
            logging.error(
                "FLOW_COOKIE_MAX_AGE_SECONDS must be greater than zero. Current value: %s",
                self.flow_cookie_max_age_seconds,
            )
            sys.exit(1)

        if self.management_token_margin_seconds < 0:
            logging.error(
                "MANAGEMENT_TOKEN_MARGIN_SECONDS cannot be negative. Current value: %s",
                self.management_token_margin_seconds,
            )
            sys.exit(1)

        if self.password_ticket_ttl_seconds <= 0:
            logging.error(
                "PASSWORD_TICKET_TTL_SECONDS must be greater than zero. Current value: %s",
                self.password_ticket_ttl_seconds,
            )
            sys.exit(1)

        return self

    @model_validator(mode="after")
    def validate_session_secret(self):
        """Refuse to sign sessions with the placeholder secret outside dev."""
        insecure = (
            not self.session_secret.strip()
            or self.session_secret == PLACEHOLDER_SESSION_SECRET
        )
        if insecure and not (self.dev or self.testing):
            logging.error(
                "SESSION_SECRET is unset or still the placeholder value.\n"
                "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(48))'"
            )
            sys.exit(1)

        if insecure:
            logging.warning(
                "⚠️  SESSION_SECRET is the placeholder value. Sessions are not tamper-proof."
            )

        return self

    @model_validator(mode="after")
    def validate_idp_domain_format(self):
        """Validate and normalize idp_domain."""
        try:
            self.idp_domain = normalize_idp_domain(self.idp_domain)
        except ValueError as e:
            logging.error(
                f"Invalid AUTH0_DOMAIN configuration: {e}\n"
                f"Example: AUTH0_DOMAIN=your-tenant.eu.auth0.com"
            )
            sys.exit(1)

        self.email_domain_connections = {
            k.lower(): v for k, v in self.email_domain_connections.items()
        }
        self.email_domain_organizations = {
            k.lower(): v for k, v in self.email_domain_organizations.items()
        }
        return self

    @property
    def idp_base_url(self) -> str:
        return f"https://{self.idp_domain}"

    @property
    def management_audience(self) -> str:
        return f"{self.idp_base_url}/api/v2/"

    @property
    def cookie_secure(self) -> bool:
        return not self.dev


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings singleton, creating it if needed.

    Returns:
        Settings: The application settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Override settings (primarily for testing).

    Args:
        settings: The Settings instance to use.
    """
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset settings to None (for test cleanup)."""
    global _settings
    _settings = None


def get_loglevel():
    loglevel = os.getenv("LOGLEVEL", "INFO")

    match loglevel:
        case "INFO":
            return logging.INFO
        case "WARNING":
            return logging.WARNING
        case "ERROR":
            return logging.ERROR
        case "CRITICAL":
            return logging.CRITICAL
        case "DEBUG":
            return logging.DEBUG
        case _:
            return logging.INFO
