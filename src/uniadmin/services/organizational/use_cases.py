"""Application use cases: request models in, DTOs out.

Tree, statistics and unit-context reads go through the external cache when
one is configured; cache errors fall back to the services.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import BaseModel

from uniadmin.cache.hierarchy_cache import HierarchyCacheService
from uniadmin.config import settings
from uniadmin.models.org_unit import (
    DeleteResult,
    HierarchyStatistics,
    HierarchyTreeDTO,
    OrganizationalUnitDTO,
    UnitContext,
    UnitCreate,
    UnitMove,
    UnitPage,
    UnitUpdate,
)
from uniadmin.services.organizational.hierarchy_service import OrganizationalHierarchyService
from uniadmin.services.organizational.unit_management import UnitManagementService

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


async def _read_through(
    cache: HierarchyCacheService | None,
    model: type[M],
    get: Callable[[HierarchyCacheService], Awaitable[Any]],
    put: Callable[[HierarchyCacheService, Any, int], Awaitable[None]],
    compute: Callable[[], Awaitable[M]],
) -> M:
    if cache is None or not settings.hierarchy_cache_enabled:
        return await compute()

    try:
        cached = await get(cache)
    except Exception as exc:
        logger.warning("Hierarchy cache read failed: %s", exc)
        cached = None
    if cached is not None:
        return model.model_validate(cached)

    # Captured before computing so a flush that lands meanwhile voids the write.
    try:
        generation = await cache.generation()
    except Exception as exc:
        logger.warning("Hierarchy cache read failed: %s", exc)
        return await compute()

    result = await compute()
    try:
        await put(cache, result.model_dump(mode="json"), generation)
    except Exception as exc:
        logger.warning("Hierarchy cache write failed: %s", exc)
    return result


# ── Commands ───────────────────────────────────────────────────────────────────

async def create_organizational_unit(service: UnitManagementService, body: UnitCreate) -> OrganizationalUnitDTO:
    return await service.create_unit(body.name, body.type, body.parent_id)


async def update_organizational_unit(
    service: UnitManagementService, unit_id: int, body: UnitUpdate
) -> OrganizationalUnitDTO:
    return await service.update_unit(unit_id, body.name, body.type)


async def move_unit(service: UnitManagementService, unit_id: int, body: UnitMove) -> OrganizationalUnitDTO:
    return await service.move_unit(unit_id, body.new_parent_id)


async def delete_organizational_unit(service: UnitManagementService, unit_id: int, force: bool = False) -> DeleteResult:
    deleted = await service.delete_unit(unit_id, force=force)
    return DeleteResult(unit_id=unit_id, deleted_ids=deleted)


# ── Queries ────────────────────────────────────────────────────────────────────

async def get_organizational_unit(service: UnitManagementService, unit_id: int) -> OrganizationalUnitDTO:
    return await service.get_unit_by_id(unit_id)


async def search_organizational_units(
    service: UnitManagementService,
    page: int = 1,
    limit: int | None = None,
    search: str | None = None,
    unit_type: str | None = None,
) -> UnitPage:
    return await service.search_units(page, limit, search, unit_type)


async def get_hierarchy_tree(
    hierarchy: OrganizationalHierarchyService,
    cache: HierarchyCacheService | None,
    root_id: int | None = None,
) -> HierarchyTreeDTO:
    return await _read_through(
        cache,
        HierarchyTreeDTO,
        lambda c: c.get_hierarchy_tree(root_id),
        lambda c, value, gen: c.set_hierarchy_tree(value, root_id, generation=gen),
        lambda: hierarchy.get_hierarchy_tree(root_id),
    )


async def get_hierarchy_statistics(
    hierarchy: OrganizationalHierarchyService,
    cache: HierarchyCacheService | None,
) -> HierarchyStatistics:
    return await _read_through(
        cache,
        HierarchyStatistics,
        lambda c: c.get_statistics(),
        lambda c, value, gen: c.set_statistics(value, generation=gen),
        hierarchy.get_hierarchy_statistics,
    )


async def get_unit_context(
    hierarchy: OrganizationalHierarchyService,
    cache: HierarchyCacheService | None,
    unit_id: int,
) -> UnitContext:
    return await _read_through(
        cache,
        UnitContext,
        lambda c: c.get_unit_context(unit_id),
        lambda c, value, gen: c.set_unit_context(unit_id, value, generation=gen),
        lambda: hierarchy.get_unit_context(unit_id),
    )
