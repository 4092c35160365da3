"""Hierarchy navigation, context and move routes."""

from fastapi import APIRouter

from uniadmin.dependencies import (
    Context,
    CurrentUser,
    HierarchyCache,
    HierarchyService,
    ManagementService,
    RequireOrgAdmin,
)
from uniadmin.domain.unit_type import UnitType
from uniadmin.models.org_unit import (
    BreadcrumbItem,
    HierarchyStatistics,
    HierarchyTreeDTO,
    MoveValidation,
    OrganizationalUnitDTO,
    UnitContext,
    UnitMove,
    UnitOption,
)
from uniadmin.services.organizational import use_cases

router = APIRouter(prefix="/organizational/hierarchy", tags=["Organizational Hierarchy"])


@router.get("/tree", response_model=HierarchyTreeDTO)
async def get_tree(hierarchy: HierarchyService, cache: HierarchyCache, _user: CurrentUser, root_id: int | None = None):
    return await use_cases.get_hierarchy_tree(hierarchy, cache, root_id)


@router.get("/stats", response_model=HierarchyStatistics)
async def get_statistics(hierarchy: HierarchyService, cache: HierarchyCache, _user: CurrentUser):
    return await use_cases.get_hierarchy_statistics(hierarchy, cache)


@router.get("/types")
async def get_unit_types(_user: CurrentUser):
    return {
        "types": [
            {
                "value": unit_type.value,
                "is_academic_unit": unit_type.is_academic_unit(),
                "is_administrative_unit": unit_type.is_administrative_unit(),
                "is_teaching_unit": unit_type.is_teaching_unit(),
                "allowed_children": sorted(child.value for child in unit_type.allowed_children()),
            }
            for unit_type in UnitType
        ]
    }


@router.get("/units/{unit_id}/context", response_model=UnitContext)
async def get_unit_context(unit_id: int, hierarchy: HierarchyService, cache: HierarchyCache, _user: CurrentUser):
    return await use_cases.get_unit_context(hierarchy, cache, unit_id)


@router.get("/units/{unit_id}/lineage", response_model=list[OrganizationalUnitDTO])
async def get_lineage(unit_id: int, hierarchy: HierarchyService, _user: CurrentUser):
    return await hierarchy.get_lineage_for_unit(unit_id)


@router.get("/units/{unit_id}/descendants", response_model=list[OrganizationalUnitDTO])
async def get_descendants(unit_id: int, hierarchy: HierarchyService, _user: CurrentUser):
    return await hierarchy.get_descendants_for_unit(unit_id)


@router.get("/units/{unit_id}/siblings", response_model=list[OrganizationalUnitDTO])
async def get_siblings(unit_id: int, context: Context, _user: CurrentUser):
    return await context.get_sibling_units(unit_id)


@router.get("/units/{unit_id}/breadcrumb", response_model=list[BreadcrumbItem])
async def get_breadcrumb(unit_id: int, context: Context, _user: CurrentUser):
    return await context.get_breadcrumb_for_unit(unit_id)


@router.patch("/units/{unit_id}/move", response_model=OrganizationalUnitDTO, dependencies=[RequireOrgAdmin])
async def move_unit(unit_id: int, body: UnitMove, service: ManagementService):
    return await use_cases.move_unit(service, unit_id, body)


@router.get("/units/{unit_id}/validate-move", response_model=MoveValidation)
async def validate_move(
    unit_id: int,
    hierarchy: HierarchyService,
    _user: CurrentUser,
    new_parent_id: int | None = None,
):
    valid = await hierarchy.validate_unit_move(unit_id, new_parent_id)
    return MoveValidation(unit_id=unit_id, new_parent_id=new_parent_id, valid=valid)


@router.get("/selection", response_model=list[HierarchyTreeDTO])
async def get_selection_tree(context: Context, _user: CurrentUser, type: str | None = None):
    return await context.get_units_tree_for_selection(type)


@router.get("/dropdown", response_model=list[UnitOption])
async def get_dropdown(
    context: Context,
    _user: CurrentUser,
    parent_type: str | None = None,
    active_only: bool = True,
):
    return await context.get_units_for_dropdown(parent_type, active_only)


@router.get("/roles/{role}/context")
async def get_role_context(role: str, context: Context, _user: CurrentUser):
    return await context.resolve_context_for_role(role)
