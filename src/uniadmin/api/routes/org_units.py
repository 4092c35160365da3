"""Organizational unit CRUD routes."""

from fastapi import APIRouter, Query

from uniadmin.dependencies import (
    CurrentUser,
    HierarchyService,
    ManagementService,
    RequireOrgAdmin,
)
from uniadmin.models.org_unit import (
    DeleteCheck,
    DeleteResult,
    OrganizationalUnitDTO,
    UnitCreate,
    UnitPage,
    UnitUpdate,
)
from uniadmin.services.organizational import use_cases

router = APIRouter(prefix="/organizational/units", tags=["Organizational Units"])


@router.get("", response_model=UnitPage)
async def list_units(
    service: ManagementService,
    _user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    search: str | None = None,
    type: str | None = None,
):
    return await use_cases.search_organizational_units(service, page, limit, search, type)


@router.post("", response_model=OrganizationalUnitDTO, status_code=201, dependencies=[RequireOrgAdmin])
async def create_unit(body: UnitCreate, service: ManagementService):
    return await use_cases.create_organizational_unit(service, body)


@router.get("/{unit_id}", response_model=OrganizationalUnitDTO)
async def get_unit(unit_id: int, service: ManagementService, _user: CurrentUser):
    return await use_cases.get_organizational_unit(service, unit_id)


@router.put("/{unit_id}", response_model=OrganizationalUnitDTO, dependencies=[RequireOrgAdmin])
async def update_unit(unit_id: int, body: UnitUpdate, service: ManagementService):
    return await use_cases.update_organizational_unit(service, unit_id, body)


@router.delete("/{unit_id}", response_model=DeleteResult, dependencies=[RequireOrgAdmin])
async def delete_unit(unit_id: int, service: ManagementService, force: bool = False):
    return await use_cases.delete_organizational_unit(service, unit_id, force)


@router.patch("/{unit_id}/status", response_model=OrganizationalUnitDTO, dependencies=[RequireOrgAdmin])
async def toggle_unit_status(unit_id: int, service: ManagementService):
    return await service.toggle_unit_status(unit_id)


@router.post("/{unit_id}/restore", response_model=OrganizationalUnitDTO, dependencies=[RequireOrgAdmin])
async def restore_unit(unit_id: int, service: ManagementService):
    return await service.restore_unit(unit_id)


@router.get("/{unit_id}/can-delete", response_model=DeleteCheck)
async def can_delete_unit(unit_id: int, hierarchy: HierarchyService, _user: CurrentUser):
    return DeleteCheck(unit_id=unit_id, can_delete=await hierarchy.can_delete_unit(unit_id))
