"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from uniadmin.cache.hierarchy_cache import HierarchyCacheService
from uniadmin.config import settings
from uniadmin.errors.exceptions import AuthenticationError, AuthorizationError
from uniadmin.repositories.org_unit_repo import SqlOrganizationalUnitRepository
from uniadmin.services.organizational.context_service import ContextService
from uniadmin.services.organizational.hierarchy_service import OrganizationalHierarchyService
from uniadmin.services.organizational.unit_management import UnitManagementService


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


async def get_redis(request: Request):
    """Return the Redis connection pool from app state (None when disabled)."""
    return getattr(request.app.state, "redis", None)


async def get_current_user(request: Request) -> dict:
    """Return the authenticated user dict or raise 401."""
    user = getattr(request.state, "user", {})
    if "_auth_error" in (user or {}):
        raise AuthenticationError(user["_auth_error"])
    if not user or user.get("sub") in ("anonymous", ""):
        raise AuthenticationError("Authentication required")
    return user


def require_role(*roles: str):
    """Return a dependency that enforces one of the given roles."""

    async def _check(user: dict = Depends(get_current_user)) -> dict:
        user_roles = set(user.get("roles", []))
        if not user_roles.intersection(roles):
            raise AuthorizationError(f"Requires one of: {', '.join(roles)}")
        return user

    return _check


# ── Hierarchy services (one repository per request, app-scoped caches) ────────

def get_unit_repository(db: AsyncSession = Depends(get_db)) -> SqlOrganizationalUnitRepository:
    return SqlOrganizationalUnitRepository(db)


def get_hierarchy_cache(request: Request) -> HierarchyCacheService | None:
    return getattr(request.app.state, "hierarchy_cache", None)


def get_hierarchy_service(
    request: Request,
    repository: SqlOrganizationalUnitRepository = Depends(get_unit_repository),
) -> OrganizationalHierarchyService:
    return OrganizationalHierarchyService(
        repository,
        request.app.state.tree_cache,
        get_hierarchy_cache(request),
    )


def get_unit_management_service(
    request: Request,
    repository: SqlOrganizationalUnitRepository = Depends(get_unit_repository),
    hierarchy: OrganizationalHierarchyService = Depends(get_hierarchy_service),
) -> UnitManagementService:
    return UnitManagementService(
        repository,
        hierarchy,
        request.app.state.event_dispatcher,
        request.app.state.unit_locks,
        settings.max_hierarchy_depth,
    )


def get_context_service(
    repository: SqlOrganizationalUnitRepository = Depends(get_unit_repository),
    hierarchy: OrganizationalHierarchyService = Depends(get_hierarchy_service),
) -> ContextService:
    return ContextService(repository, hierarchy)


# Type aliases for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
RedisConn = Annotated[object, Depends(get_redis)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
HierarchyCache = Annotated[HierarchyCacheService | None, Depends(get_hierarchy_cache)]
HierarchyService = Annotated[OrganizationalHierarchyService, Depends(get_hierarchy_service)]
ManagementService = Annotated[UnitManagementService, Depends(get_unit_management_service)]
Context = Annotated[ContextService, Depends(get_context_service)]
RequireAdmin = Depends(require_role("admin"))
RequireOrgAdmin = Depends(require_role(*settings.organizational_admin_roles))
