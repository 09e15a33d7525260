import pytest
from fastapi import FastAPI

from orgauth.main.config import RoleAssignmentSeed
from orgauth.management.token_cache import ManagementTokenCache
from orgauth.roles.role import Role
from orgauth.server.dependencies.lifespan import init_role_store, lifespan


def test_role_store_is_seeded_from_settings(test_settings):
    test_settings.initial_role_assignments = [
        RoleAssignmentSeed(user_id="auth0|1", organization_id="org_1", role="admin"),
        RoleAssignmentSeed(user_id="auth0|1", organization_id="org_2", role="viewer"),
    ]

    store = init_role_store()

    assert store.get("auth0|1", "org_1") == Role.ADMIN
    assert len(store) == 2


@pytest.mark.asyncio
async def test_lifespan_builds_shared_state():
    app = FastAPI()

    async with lifespan(app):
        assert isinstance(app.state.management_token_cache, ManagementTokenCache)
        assert app.state.management_token_cache.http_session is app.state.http_session
        assert len(app.state.role_store) == 0
        assert not app.state.http_session.closed
