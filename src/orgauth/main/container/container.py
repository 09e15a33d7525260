from dependency_injector import containers, providers

from orgauth.authentication.auth_flow_service import AuthFlowService
from orgauth.authentication.idp_client import IdentityProviderClient
from orgauth.main.config import Settings
from orgauth.management.management_client import ManagementApiClient
from orgauth.management.token_cache import ManagementTokenCache
from orgauth.organizations.organization_resolver import OrganizationResolver
from orgauth.organizations.organization_service import OrganizationService
from orgauth.roles.rbac_service import RbacService
from orgauth.roles.role_store import RoleStore
from orgauth.sessions.session_store import SessionStore


class Container(containers.DeclarativeContainer):
    """Per-request wiring.

    Process-wide objects (HTTP session, token cache, role table) are built once
    in the lifespan and handed in as ``providers.Object``.
    """

    settings = providers.Dependency(instance_of=Settings)
    http_session = providers.Dependency()
    management_token_cache = providers.Dependency(instance_of=ManagementTokenCache)
    role_store = providers.Dependency(instance_of=RoleStore)

    session_store = providers.Singleton(SessionStore, settings=settings)

    idp_client = providers.Factory(
        IdentityProviderClient,
        settings=settings,
        http_session=http_session,
    )
    management_client = providers.Factory(
        ManagementApiClient,
        settings=settings,
        http_session=http_session,
        token_cache=management_token_cache,
    )

    rbac_service = providers.Factory(RbacService, role_store=role_store)

    organization_resolver = providers.Factory(
        OrganizationResolver,
        management_client=management_client,
        session_store=session_store,
    )
    organization_service = providers.Factory(
        OrganizationService,
        settings=settings,
        management_client=management_client,
        organization_resolver=organization_resolver,
        rbac_service=rbac_service,
    )

    auth_flow_service = providers.Factory(
        AuthFlowService,
        settings=settings,
        idp_client=idp_client,
        session_store=session_store,
        organization_resolver=organization_resolver,
    )
