import pytest
from fastapi import Response

from orgauth.main.exceptions import (
    AuthorizationError,
    BadRequestException,
    ManagementApiError,
    NotFoundException,
)
from orgauth.organizations.organization import CreateMemberRequest, Organization
from orgauth.organizations.organization_resolver import OrganizationResolver
from orgauth.organizations.organization_service import OrganizationService
from orgauth.roles.rbac_service import RbacService
from orgauth.roles.role import Role
from orgauth.roles.role_store import RoleStore
from orgauth.sessions.session_store import SessionStore
from tests.unittests.fakes import FakeManagementClient, make_request

ORG_1 = {"id": "org_1", "name": "one"}
ORG_2 = {"id": "org_2", "name": "two"}


def _service(test_settings, management, roles=()):
    rbac = RbacService(RoleStore())
    for user_id, org_id, role in roles:
        rbac.set_user_role(user_id, org_id, role)
    resolver = OrganizationResolver(management, SessionStore(test_settings))
    return OrganizationService(test_settings, management, resolver, rbac)


@pytest.mark.asyncio
async def test_member_counts_are_fetched_for_each_organization(test_settings):
    management = FakeManagementClient(
        members={"org_1": ["a", "b", "c"], "org_2": ["a"]},
    )
    service = _service(test_settings, management)

    organizations = await service.list_with_member_counts(
        [Organization(**ORG_1), Organization(**ORG_2)]
    )

    assert [(org.id, org.member_count) for org in organizations] == [("org_1", 3), ("org_2", 1)]


@pytest.mark.asyncio
async def test_member_count_failure_degrades_to_zero(test_settings):
    service = _service(test_settings, FakeManagementClient(fail={"list_organization_members"}))

    organizations = await service.list_with_member_counts([Organization(**ORG_1)])

    assert organizations[0].member_count == 0


@pytest.mark.asyncio
async def test_context_lists_organizations_once(test_settings, session_factory):
    management = FakeManagementClient({"auth0|alice": [ORG_1, ORG_2]})
    service = _service(test_settings, management)

    context = await service.get_context(make_request(), Response(), session_factory())

    assert context.selection_required
    assert len(management.called("list_user_organizations")) == 1


@pytest.mark.asyncio
async def test_invite_requires_user_role(test_settings, session_factory):
    management = FakeManagementClient({"auth0|alice": [ORG_1]})
    service = _service(test_settings, management)

    with pytest.raises(AuthorizationError):
        await service.invite(session_factory(), "bob@example.com", "org_1")

    assert management.called("invite_member") == []


@pytest.mark.asyncio
async def test_invite_requires_membership(test_settings, session_factory):
    management = FakeManagementClient({"auth0|alice": [ORG_2]})
    service = _service(test_settings, management, [("auth0|alice", "org_1", Role.ADMIN)])

    with pytest.raises(AuthorizationError):
        await service.invite(session_factory(), "bob@example.com", "org_1")


@pytest.mark.asyncio
async def test_invite_sends_invitation(test_settings, session_factory):
    management = FakeManagementClient({"auth0|alice": [ORG_1]})
    service = _service(test_settings, management, [("auth0|alice", "org_1", Role.USER)])

    await service.invite(session_factory(), "bob@example.com", "org_1")

    assert management.called("invite_member") == [
        ("invite_member", "org_1", "Alice", "bob@example.com", "client-123")
    ]


@pytest.mark.asyncio
async def test_invite_upstream_rejection_is_reported(test_settings, session_factory):
    management = FakeManagementClient({"auth0|alice": [ORG_1]}, fail={"invite_member"})
    service = _service(test_settings, management, [("auth0|alice", "org_1", Role.USER)])

    with pytest.raises(ManagementApiError):
        await service.invite(session_factory(), "bob@example.com", "org_1")


@pytest.mark.asyncio
async def test_invite_requires_email_and_organization(test_settings, session_factory):
    service = _service(test_settings, FakeManagementClient())

    with pytest.raises(BadRequestException):
        await service.invite(session_factory(), None, "org_1")


@pytest.mark.asyncio
async def test_admin_organizations(test_settings, session_factory):
    management = FakeManagementClient({"auth0|alice": [ORG_1, ORG_2]})
    service = _service(test_settings, management, [("auth0|alice", "org_2", Role.ADMIN)])

    organizations = await service.get_admin_organizations(session_factory())

    assert [org.id for org in organizations] == ["org_2"]


@pytest.mark.asyncio
async def test_admin_organizations_denied_for_non_admin(test_settings, session_factory):
    management = FakeManagementClient({"auth0|alice": [ORG_1]})
    service = _service(test_settings, management, [("auth0|alice", "org_1", Role.USER)])

    with pytest.raises(AuthorizationError):
        await service.get_admin_organizations(session_factory())


@pytest.mark.asyncio
async def test_create_member_as_admin(test_settings, session_factory):
    management = FakeManagementClient({"auth0|alice": [ORG_1]})
    service = _service(test_settings, management, [("auth0|alice", "org_1", Role.ADMIN)])

    created = await service.create_member(
        session_factory(), "org_1", CreateMemberRequest(email="new@example.com", name="New")
    )

    assert created.user_id == "auth0|created"
    assert created.organization_id == "org_1"


@pytest.mark.asyncio
async def test_admin_role_in_other_org_does_not_count(test_settings, session_factory):
    management = FakeManagementClient({"auth0|alice": [ORG_1, ORG_2]})
    service = _service(test_settings, management, [("auth0|alice", "org_2", Role.ADMIN)])

    with pytest.raises(AuthorizationError):
        await service.add_member(session_factory(), "org_1", "auth0|bob")

    assert management.called("add_member") == []


@pytest.mark.asyncio
async def test_admin_cannot_remove_self(test_settings, session_factory):
    management = FakeManagementClient({"auth0|alice": [ORG_1]})
    service = _service(test_settings, management, [("auth0|alice", "org_1", Role.ADMIN)])

    with pytest.raises(BadRequestException):
        await service.remove_member(session_factory(), "org_1", "auth0|alice")


@pytest.mark.asyncio
async def test_set_role_for_member(test_settings, session_factory):
    management = FakeManagementClient(
        {"auth0|alice": [ORG_1]}, members={"org_1": ["auth0|alice", "auth0|bob"]}
    )
    service = _service(test_settings, management, [("auth0|alice", "org_1", Role.ADMIN)])

    assigned = await service.set_role(session_factory(), "org_1", "auth0|bob", Role.USER)

    assert assigned.role == Role.USER
    assert service.rbac_service.get_role("auth0|bob", "org_1") == Role.USER


@pytest.mark.asyncio
async def test_set_role_for_non_member(test_settings, session_factory):
    management = FakeManagementClient(
        {"auth0|alice": [ORG_1]}, members={"org_1": ["auth0|alice"]}
    )
    service = _service(test_settings, management, [("auth0|alice", "org_1", Role.ADMIN)])

    with pytest.raises(NotFoundException):
        await service.set_role(session_factory(), "org_1", "auth0|stranger", Role.ADMIN)
