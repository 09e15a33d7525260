import pytest

from orgauth.main.config import PLACEHOLDER_SESSION_SECRET, Settings, normalize_idp_domain


@pytest.mark.parametrize(
    "configured, expected",
    [
        ("tenant.eu.auth0.com", "tenant.eu.auth0.com"),
        ("https://Tenant.eu.auth0.com/", "tenant.eu.auth0.com"),
        ("http://localhost:8080", "localhost:8080"),
        ("", ""),
    ],
)
def test_normalize_idp_domain(configured, expected):
    assert normalize_idp_domain(configured) == expected


def test_idp_domain_with_path_is_rejected():
    with pytest.raises(ValueError):
        normalize_idp_domain("https://tenant.auth0.com/some/path")


def test_derived_urls(test_settings):
    assert test_settings.idp_domain == "tenant.example.com"
    assert test_settings.idp_base_url == "https://tenant.example.com"
    assert test_settings.management_audience == "https://tenant.example.com/api/v2/"
    assert test_settings.cookie_secure is False


def test_email_domain_keys_are_lowercased(test_settings):
    assert test_settings.email_domain_connections == {"example.com": "example-sso"}


def test_legacy_environment_names(monkeypatch):
    monkeypatch.setenv("AUTH0_DOMAIN", "legacy.example.com")
    monkeypatch.setenv("AUTH0_CLIENT_ID", "legacy-client")

    settings = Settings(testing=True)

    assert settings.idp_domain == "legacy.example.com"
    assert settings.client_id == "legacy-client"


def test_placeholder_secret_refused_in_production():
    with pytest.raises(SystemExit):
        Settings(session_secret=PLACEHOLDER_SESSION_SECRET, testing=False, dev=False)


def test_production_cookies_are_secure():
    settings = Settings(session_secret="a-real-secret-" * 4, testing=False, dev=False)

    assert settings.cookie_secure is True


def test_role_assignment_seed_from_environment(monkeypatch):
    monkeypatch.setenv(
        "INITIAL_ROLE_ASSIGNMENTS",
        '[{"user_id": "auth0|1", "organization_id": "org_1", "role": "admin"}]',
    )

    settings = Settings(testing=True)

    assert settings.initial_role_assignments[0].role == "admin"
