from typing import Optional

from orgauth.authentication.auth_models import AuthorizationHints


def get_email_domain(email: str) -> str:
    _, _, domain = email.partition("@")
    return domain.strip().lower()


def get_connection_for_email(email: str, connections: dict[str, str]) -> Optional[str]:
    """Connection configured for the email's domain, if any.

    ``None`` lets the identity provider use home realm discovery.
    """
    return connections.get(get_email_domain(email))


def get_organization_for_email(email: str, organizations: dict[str, str]) -> Optional[str]:
    return organizations.get(get_email_domain(email))


def build_authorization_hints(
    email: Optional[str],
    *,
    connections: dict[str, str],
    organizations: dict[str, str],
    organization: Optional[str] = None,
    invitation: Optional[str] = None,
) -> AuthorizationHints:
    if not email:
        return AuthorizationHints(organization=organization, invitation=invitation)

    return AuthorizationHints(
        login_hint=email,
        connection=get_connection_for_email(email, connections),
        # An explicit organization (e.g. from an invitation link) wins
        organization=organization or get_organization_for_email(email, organizations),
        invitation=invitation,
    )
