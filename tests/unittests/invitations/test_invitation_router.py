from orgauth.roles.role import Role
from tests.unittests.fakes import MGMT, FakeResponse, user_orgs_url

INVITATIONS_URL = f"{MGMT}/organizations/org_1/invitations"


def _member_of_org_1(http_session):
    http_session.add(
        "GET", user_orgs_url("auth0|alice"), FakeResponse([{"id": "org_1", "name": "one"}])
    )


def test_invite_requires_session(client):
    response = client.post(
        "/api/invite", json={"email": "bob@example.com", "organizationId": "org_1"}
    )

    assert response.status_code == 401


def test_invite_requires_email(client, login):
    login()

    response = client.post("/api/invite", json={"organizationId": "org_1"})

    assert response.status_code == 400


def test_viewer_cannot_invite(client, login, http_session):
    login()
    _member_of_org_1(http_session)

    response = client.post(
        "/api/invite", json={"email": "bob@example.com", "organizationId": "org_1"}
    )

    assert response.status_code == 403
    assert http_session.calls_to("POST", INVITATIONS_URL) == []


def test_non_member_cannot_invite(client, login, http_session, role_store):
    login()
    role_store.upsert("auth0|alice", "org_2", Role.ADMIN)
    _member_of_org_1(http_session)

    response = client.post(
        "/api/invite", json={"email": "bob@example.com", "organizationId": "org_2"}
    )

    assert response.status_code == 403


def test_user_can_invite(client, login, http_session, role_store):
    login()
    role_store.upsert("auth0|alice", "org_1", Role.USER)
    _member_of_org_1(http_session)
    http_session.add("POST", INVITATIONS_URL, FakeResponse({"id": "inv_1"}, status=201))

    response = client.post(
        "/api/invite", json={"email": "bob@example.com", "organizationId": "org_1"}
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Invitation sent to bob@example.com"}
    sent = http_session.calls_to("POST", INVITATIONS_URL)[0]["json"]
    assert sent["invitee"] == {"email": "bob@example.com"}
    assert sent["inviter"] == {"name": "Alice"}


def test_rejected_invitation_is_reported(client, login, http_session, role_store):
    login()
    role_store.upsert("auth0|alice", "org_1", Role.USER)
    _member_of_org_1(http_session)
    http_session.add("POST", INVITATIONS_URL, FakeResponse({"message": "boom"}, status=400))

    response = client.post(
        "/api/invite", json={"email": "bob@example.com", "organizationId": "org_1"}
    )

    assert response.status_code == 502
    assert response.json()["error_code"] == "management_api_failed"
