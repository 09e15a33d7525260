from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from orgauth.main.config import Settings, reset_settings, set_settings
from orgauth.management.token_cache import ManagementTokenCache
from orgauth.roles.role_store import RoleStore
from orgauth.sessions.session import AuthenticatedUser, Session
from tests.unittests.fakes import TOKEN_URL, FakeResponse, FakeSession, sign_session


@pytest.fixture
def test_settings() -> Settings:
    """Explicit settings that do not depend on .env or the environment."""
    return Settings(
        idp_domain="https://Tenant.example.com/",
        client_id="client-123",
        client_secret="client-secret",
        callback_url="http://testserver/api/auth/callback",
        management_client_id="mgmt-client",
        management_client_secret="mgmt-secret",
        session_secret="unit-test-session-secret-0123456789abcdefghijklmnop",
        email_domain_connections={"Example.COM": "example-sso"},
        email_domain_organizations={"example.com": "org_example"},
        internal_apps=["internal-app-1", "internal-app-2"],
        initial_role_assignments=[],
        testing=True,
        dev=True,
    )


@pytest.fixture(autouse=True)
def _settings_override(test_settings):
    set_settings(test_settings)
    yield
    reset_settings()


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def session_factory(now):
    def _session(
        sub: str = "auth0|alice",
        org_id: str | None = None,
        org_name: str | None = None,
        expires_in: int = 3600,
    ) -> Session:
        return Session(
            user=AuthenticatedUser(
                sub=sub,
                email="alice@example.com",
                name="Alice",
                org_id=org_id,
                org_name=org_name,
            ),
            access_token="user-access-token",
            id_token="user-id-token",
            expires_at=now + timedelta(seconds=expires_in),
        )

    return _session


@pytest.fixture
def http_session():
    """Fake aiohttp session; the management token grant always succeeds."""
    return FakeSession(
        {("POST", TOKEN_URL): FakeResponse({"access_token": "mgmt-token", "expires_in": 86400})}
    )


@pytest.fixture
def role_store():
    return RoleStore()


@pytest.fixture
def app(test_settings, http_session, role_store):
    from orgauth.server.main import get_application

    app = get_application()
    app.state.http_session = http_session
    app.state.management_token_cache = ManagementTokenCache(test_settings, http_session)
    app.state.role_store = role_store
    return app


@pytest.fixture
def client(app):
    return TestClient(app, follow_redirects=False)


@pytest.fixture
def login(client, test_settings, session_factory):
    def _login(**kwargs) -> Session:
        session = session_factory(**kwargs)
        client.cookies.set("session", sign_session(test_settings, session))
        return session

    return _login
