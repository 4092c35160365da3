"""Organizational context resolution for selectors, roles and navigation."""

from uniadmin.domain.repository import OrganizationalUnitRepository
from uniadmin.domain.unit_type import UnitType
from uniadmin.errors.exceptions import UnitNotFoundError
from uniadmin.models.org_unit import (
    BreadcrumbItem,
    HierarchyStatistics,
    HierarchyTreeDTO,
    OrganizationalUnitDTO,
    UnitContext,
    UnitOption,
)
from uniadmin.services.organizational.hierarchy_service import OrganizationalHierarchyService

# Role name -> unit type whose units make up that role's context.
ROLE_UNIT_TYPES: dict[str, UnitType] = {
    "decano": UnitType.FACULTAD,
    "director": UnitType.FACULTAD,
    "jefe_departamento": UnitType.DEPARTAMENTO,
    "director_escuela": UnitType.ESCUELA,
}
FULL_TREE_ROLES = frozenset({"coordinador_extension"})


class ContextService:
    def __init__(
        self,
        repository: OrganizationalUnitRepository,
        hierarchy_service: OrganizationalHierarchyService,
    ):
        self.repository = repository
        self.hierarchy_service = hierarchy_service

    async def resolve_context_by_type(self, unit_type: UnitType | str) -> list[OrganizationalUnitDTO]:
        return await self.hierarchy_service.get_units_by_type(unit_type)

    async def get_units_tree_for_selection(self, filter_type: str | None = None) -> list[HierarchyTreeDTO]:
        """Full forest, optionally pruned to branches containing ``filter_type``."""
        forest = await self.hierarchy_service.get_full_hierarchy()
        if filter_type is None:
            return forest
        wanted = UnitType.create(filter_type).value
        pruned = (tree.filter_by_type(wanted) for tree in forest)
        return [tree for tree in pruned if tree is not None]

    async def get_units_for_dropdown(
        self,
        parent_type: str | None = None,
        active_only: bool = True,
    ) -> list[UnitOption]:
        """Options sorted by hierarchy path, optionally limited to children of ``parent_type``."""
        wanted_parent = UnitType.create(parent_type) if parent_type is not None else None
        units = await (self.repository.find_active_units() if active_only else self.repository.find_all())

        options = []
        for unit in units:
            if wanted_parent is not None and (unit.parent is None or unit.parent.unit_type != wanted_parent):
                continue
            options.append(
                UnitOption(
                    value=unit.id,
                    label=unit.name,
                    type=unit.unit_type.value,
                    hierarchy_path=unit.get_hierarchy_path(),
                    depth_level=unit.get_depth_level(),
                    is_academic=unit.is_academic_unit(),
                    is_administrative=unit.is_administrative_unit(),
                    is_teaching=unit.is_teaching_unit(),
                )
            )
        options.sort(key=lambda option: option.hierarchy_path)
        return options

    async def resolve_context_for_role(self, role: str) -> list[OrganizationalUnitDTO] | list[HierarchyTreeDTO]:
        if role in ROLE_UNIT_TYPES:
            return await self.resolve_context_by_type(ROLE_UNIT_TYPES[role])
        if role in FULL_TREE_ROLES:
            return await self.get_units_tree_for_selection()
        return []

    async def get_unit_hierarchy_context(self, unit_id: int) -> UnitContext:
        return await self.hierarchy_service.get_unit_context(unit_id)

    async def unit_belongs_to_hierarchy(self, unit_id: int, root_id: int) -> bool:
        return await self.hierarchy_service.is_ancestor_of(root_id, unit_id)

    async def get_sibling_units(self, unit_id: int) -> list[OrganizationalUnitDTO]:
        """Active units sharing the same parent (other roots, for a root)."""
        unit = await self.repository.find_by_id(unit_id)
        if unit is None:
            raise UnitNotFoundError(unit_id)
        if unit.parent is None:
            siblings = await self.repository.find_root_units()
        else:
            siblings = await self.repository.find_by_parent(unit.parent.id)
        return [OrganizationalUnitDTO.from_entity(s) for s in siblings if s.id != unit_id]

    async def get_breadcrumb_for_unit(self, unit_id: int) -> list[BreadcrumbItem]:
        lineage = await self.hierarchy_service.get_lineage_for_unit(unit_id)
        unit = await self.repository.find_by_id(unit_id)
        if unit is None:
            raise UnitNotFoundError(unit_id)
        trail = lineage + [OrganizationalUnitDTO.from_entity(unit)]
        return [BreadcrumbItem(id=dto.id, name=dto.name, type=dto.type) for dto in trail]

    async def get_context_statistics(self) -> HierarchyStatistics:
        return await self.hierarchy_service.get_hierarchy_statistics()
