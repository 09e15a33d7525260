from urllib.parse import parse_qs, urlparse

from orgauth.roles.role import Role
from tests.unittests.fakes import MGMT, FakeResponse, set_cookies, user_orgs_url

ORG_1 = {"id": "org_1", "name": "one"}
ORG_2 = {"id": "org_2", "name": "two"}


def test_front_door_sends_visitors_to_login(client):
    response = client.get("/", params={"invitation": "inv_1", "organization": "org_1"})

    assert response.status_code == 303
    location = urlparse(response.headers["location"])
    assert location.path == "/api/auth/login"
    assert parse_qs(location.query) == {"invitation": ["inv_1"], "organization": ["org_1"]}


def test_front_door_shows_error(client):
    response = client.get("/", params={"error": "invalid_state"})

    assert response.status_code == 200
    assert response.json() == {"error": "invalid_state"}


def test_front_door_sends_signed_in_users_to_dashboard(client, login):
    login()

    response = client.get("/")

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"


def test_dashboard_requires_session(client):
    response = client.get("/dashboard")

    assert response.status_code == 303
    assert response.headers["location"] == "/"


def test_dashboard_lists_member_counts(client, login, http_session):
    login(org_id="org_1", org_name="one")
    http_session.add("GET", user_orgs_url("auth0|alice"), FakeResponse([ORG_1, ORG_2]))
    http_session.add(
        "GET",
        f"{MGMT}/organizations/org_1/members",
        FakeResponse([{"user_id": "a"}, {"user_id": "b"}]),
    )
    http_session.add(
        "GET", f"{MGMT}/organizations/org_2/members", FakeResponse({"error": "x"}, status=500)
    )

    response = client.get("/dashboard")

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["sub"] == "auth0|alice"
    assert body["organization"]["status"] == "resolved"
    assert [(org["id"], org["member_count"]) for org in body["organizations"]] == [
        ("org_1", 2),
        ("org_2", 0),
    ]


def test_dashboard_survives_listing_failure(client, login, http_session):
    login()
    http_session.add("GET", user_orgs_url("auth0|alice"), FakeResponse({}, status=500))

    response = client.get("/dashboard")

    assert response.status_code == 200
    assert response.json()["organizations"] == []
    assert response.json()["organization"]["status"] == "no_organization"


def test_admin_redirects_non_admins(client, login, http_session):
    login()
    http_session.add("GET", user_orgs_url("auth0|alice"), FakeResponse([ORG_1]))

    response = client.get("/admin")

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard?error=access_denied"


def test_admin_page_for_admin(client, login, http_session, role_store):
    login()
    role_store.upsert("auth0|alice", "org_2", Role.ADMIN)
    role_store.upsert("auth0|alice", "org_1", Role.USER)
    http_session.add("GET", user_orgs_url("auth0|alice"), FakeResponse([ORG_1, ORG_2]))

    response = client.get("/admin")

    assert response.status_code == 200
    body = response.json()
    assert [org["id"] for org in body["organizations"]] == ["org_2"]
    assert sorted((r["organization_id"], r["role"]) for r in body["user_roles"]) == [
        ("org_1", "user"),
        ("org_2", "admin"),
    ]


def test_unknown_app_is_not_found(client, login):
    login()

    response = client.get("/apps/unknown-app")

    assert response.status_code == 404


def test_internal_app_requires_login_with_sso_return(client):
    response = client.get("/apps/internal-app-1")

    assert response.status_code == 303
    location = urlparse(response.headers["location"])
    assert location.path == "/api/auth/login"
    assert parse_qs(location.query) == {"returnTo": ["/apps/internal-app-1?sso=true"]}


def test_internal_app_for_signed_in_user(client, login):
    login()

    response = client.get("/apps/internal-app-2", params={"sso": "true"})

    assert response.status_code == 200
    assert response.json()["app"] == "internal-app-2"
    assert response.json()["sso_login"] is True


def test_dashboard_with_expired_session_clears_cookie(client, login):
    login(expires_in=-60)

    response = client.get("/dashboard")

    assert response.status_code == 303
    assert response.headers["location"] == "/"
    assert set_cookies(response)["session"]["max-age"] == "0"
