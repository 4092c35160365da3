"""Read-side engine for the organizational hierarchy."""

import logging

from uniadmin.cache.hierarchy_cache import HierarchyCacheService
from uniadmin.cache.tree_cache import HierarchyTreeCache
from uniadmin.domain.org_unit import OrganizationalUnit
from uniadmin.domain.repository import OrganizationalUnitRepository
from uniadmin.domain.unit_type import UnitType
from uniadmin.errors.exceptions import UnitNotFoundError
from uniadmin.models.org_unit import (
    HierarchyStatistics,
    HierarchyTreeDTO,
    OrganizationalUnitDTO,
    UnitContext,
)

logger = logging.getLogger(__name__)

STATISTICS_LEVELS = range(4)


def _to_dtos(units: list[OrganizationalUnit]) -> list[OrganizationalUnitDTO]:
    return [OrganizationalUnitDTO.from_entity(u) for u in units]


class OrganizationalHierarchyService:
    """Tree assembly, lineage and structural checks over the repository.

    The full forest is held in an app-scoped ``HierarchyTreeCache`` that never
    expires on its own; every write goes through ``clear_hierarchy_cache``.
    The optional external cache is only flushed here, never read.
    """

    def __init__(
        self,
        repository: OrganizationalUnitRepository,
        tree_cache: HierarchyTreeCache,
        cache: HierarchyCacheService | None = None,
    ):
        self.repository = repository
        self.tree_cache = tree_cache
        self.cache = cache

    async def _require(self, unit_id: int) -> OrganizationalUnit:
        unit = await self.repository.find_by_id(unit_id)
        if unit is None:
            raise UnitNotFoundError(unit_id)
        return unit

    # ── Trees ────────────────────────────────────────────────────────────────

    async def _build_full_hierarchy(self) -> list[HierarchyTreeDTO]:
        nodes = await self.repository.find_hierarchy_tree()
        return [HierarchyTreeDTO.from_node(node) for node in nodes]

    async def get_full_hierarchy(self) -> list[HierarchyTreeDTO]:
        """Forest of every active root, served from the in-process cache."""
        return await self.tree_cache.get_or_build(self._build_full_hierarchy)

    async def get_sub_tree_for_unit(self, unit_id: int) -> HierarchyTreeDTO:
        unit = await self._require(unit_id)
        return HierarchyTreeDTO.from_entity(unit)

    async def get_hierarchy_tree(self, root_id: int | None = None) -> HierarchyTreeDTO:
        """Single tree: the given subtree, the only root, or a virtual root.

        Zero or several roots are wrapped under the synthetic ``Sistema`` node
        (id 0, type ``SYSTEM``).
        """
        if root_id is not None:
            return await self.get_sub_tree_for_unit(root_id)

        roots = await self.repository.find_root_units()
        if len(roots) == 1:
            return HierarchyTreeDTO.from_entity(roots[0])

        children = [HierarchyTreeDTO.from_entity(root) for root in roots]
        return HierarchyTreeDTO(
            unit=OrganizationalUnitDTO.virtual_root(children_count=len(children)),
            children=children,
        )

    # ── Traversal ────────────────────────────────────────────────────────────

    async def get_lineage_for_unit(self, unit_id: int) -> list[OrganizationalUnitDTO]:
        """Ancestors ordered root-first, ending with the direct parent."""
        await self._require(unit_id)
        return _to_dtos(await self.repository.find_ancestors(unit_id))

    async def get_descendants_for_unit(self, unit_id: int) -> list[OrganizationalUnitDTO]:
        await self._require(unit_id)
        return _to_dtos(await self.repository.find_descendants(unit_id))

    async def is_ancestor_of(self, ancestor_id: int, descendant_id: int) -> bool:
        if ancestor_id == descendant_id:
            return False
        return await self.repository.is_ancestor_of(ancestor_id, descendant_id)

    async def validate_unit_move(self, unit_id: int, new_parent_id: int | None) -> bool:
        """Structural legality only; type rules are checked by the write side."""
        if unit_id == new_parent_id:
            return False
        if new_parent_id is None:
            return True
        if await self.repository.find_by_id(new_parent_id) is None:
            return False
        return not await self.is_ancestor_of(unit_id, new_parent_id)

    async def can_delete_unit(self, unit_id: int) -> bool:
        unit = await self.repository.find_by_id(unit_id)
        if unit is None:
            return False
        if unit.has_active_children():
            return False
        return await self.repository.count_assigned_users(unit_id) == 0

    async def get_unit_context(self, unit_id: int) -> UnitContext:
        unit = await self._require(unit_id)
        ancestors = await self.repository.find_ancestors(unit_id)
        descendants = await self.repository.find_descendants(unit_id)
        return UnitContext(
            unit=OrganizationalUnitDTO.from_entity(unit),
            ancestors=_to_dtos(ancestors),
            descendants=_to_dtos(descendants),
            descendants_count=len(descendants),
            depth_level=unit.get_depth_level(),
            hierarchy_path=unit.get_hierarchy_path(),
        )

    async def get_hierarchy_statistics(self) -> HierarchyStatistics:
        stats = await self.repository.get_statistics()
        by_level = {
            f"level_{level}": len(await self.repository.find_by_depth_level(level))
            for level in STATISTICS_LEVELS
        }
        return HierarchyStatistics(
            total_units=stats["total_units"],
            active_units=stats["active_units"],
            inactive_units=stats["inactive_units"],
            by_type=stats["by_type"],
            by_level=by_level,
        )

    # ── Listings ─────────────────────────────────────────────────────────────

    async def get_units_by_type(self, unit_type: UnitType | str) -> list[OrganizationalUnitDTO]:
        return _to_dtos(await self.repository.find_by_type(UnitType.create(unit_type)))

    async def get_root_units(self) -> list[OrganizationalUnitDTO]:
        return _to_dtos(await self.repository.find_root_units())

    async def get_units_by_level(self, level: int) -> list[OrganizationalUnitDTO]:
        return _to_dtos(await self.repository.find_by_depth_level(level))

    async def search_units(self, term: str) -> list[OrganizationalUnitDTO]:
        return _to_dtos(await self.repository.search(term))

    # ── Cache control ────────────────────────────────────────────────────────

    def flush_cache(self) -> None:
        """Drop the in-process forest only."""
        self.tree_cache.invalidate()

    async def clear_hierarchy_cache(self) -> None:
        """Drop both cache layers. External cache failures are logged, not raised."""
        self.tree_cache.invalidate()
        if self.cache is None:
            return
        try:
            await self.cache.flush_all()
        except Exception as exc:
            logger.warning("Failed to flush external hierarchy cache: %s", exc)
