from contextlib import asynccontextmanager

from fastapi import FastAPI

from orgauth.main.aiohttp_client import aiohttp_client
from orgauth.main.config import get_settings
from orgauth.main.logging import get_logger
from orgauth.management.token_cache import ManagementTokenCache
from orgauth.roles.role import Role, UserRole
from orgauth.roles.role_store import RoleStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup(app)
    yield
    await shutdown(app)


def init_role_store() -> RoleStore:
    seeds = get_settings().initial_role_assignments
    store = RoleStore(
        UserRole(user_id=s.user_id, organization_id=s.organization_id, role=Role(s.role))
        for s in seeds
    )
    logger.info("Role table initialised", extra={"assignments": len(store)})
    return store


async def startup(app: FastAPI):
    settings = get_settings()

    aiohttp_client.start()
    app.state.http_session = aiohttp_client()
    app.state.management_token_cache = ManagementTokenCache(
        settings=settings, http_session=app.state.http_session
    )
    app.state.role_store = init_role_store()


async def shutdown(app: FastAPI):
    await aiohttp_client.stop()
