"""Write-side engine: create, update, move, delete and restore units."""

import logging

from uniadmin.config import settings
from uniadmin.domain.org_unit import OrganizationalUnit, validate_unit_name
from uniadmin.domain.repository import OrganizationalUnitRepository
from uniadmin.domain.unit_type import UnitType, validate_child_type
from uniadmin.errors.exceptions import (
    CircularHierarchyError,
    DuplicateUnitError,
    InvalidHierarchyError,
    UnitNotFoundError,
)
from uniadmin.events.dispatcher import EventDispatcher
from uniadmin.events.hierarchy_events import HierarchyChanged, UnitCreated, UnitMoved
from uniadmin.models.org_unit import OrganizationalUnitDTO, UnitPage
from uniadmin.services.organizational.hierarchy_service import OrganizationalHierarchyService
from uniadmin.services.organizational.locks import UnitLocks

logger = logging.getLogger(__name__)

ASSIGNED_USERS = "assigned users"


class UnitManagementService:
    """Validates hierarchy rules, persists through the repository, then
    invalidates both cache layers and dispatches events.

    Every check runs before the first mutation, so a rejected operation leaves
    the tree untouched. Events are dispatched only after the commit succeeds.
    """

    def __init__(
        self,
        repository: OrganizationalUnitRepository,
        hierarchy_service: OrganizationalHierarchyService,
        dispatcher: EventDispatcher,
        locks: UnitLocks | None = None,
        max_depth: int | None = None,
    ):
        self.repository = repository
        self.hierarchy_service = hierarchy_service
        self.dispatcher = dispatcher
        self.locks = locks or UnitLocks()
        self.max_depth = max_depth or settings.max_hierarchy_depth

    async def _require(self, unit_id: int) -> OrganizationalUnit:
        unit = await self.repository.find_by_id(unit_id)
        if unit is None:
            raise UnitNotFoundError(unit_id)
        return unit

    async def _persist(self, *units: OrganizationalUnit) -> None:
        """Save ``units`` and commit as one transaction, rolling back on failure."""
        try:
            for unit in units:
                await self.repository.save(unit)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

    async def _after_write(self, *events: object) -> None:
        await self.hierarchy_service.clear_hierarchy_cache()
        for event in events:
            await self.dispatcher.dispatch(event)

    def _check_depth(self, depth: int) -> None:
        if depth >= self.max_depth:
            raise InvalidHierarchyError.max_depth_exceeded(self.max_depth, depth)

    # ── Commands ─────────────────────────────────────────────────────────────

    async def create_unit(self, name: str, unit_type: str, parent_id: int | None = None) -> OrganizationalUnitDTO:
        name = validate_unit_name(name)
        child_type = UnitType.create(unit_type)
        if await self.repository.exists_by_name_and_type(name, child_type):
            raise DuplicateUnitError(name, child_type.value)

        parent = None
        if parent_id is not None:
            parent = await self._require(parent_id)
            validate_child_type(parent.unit_type, child_type)
            self._check_depth(parent.get_depth_level() + 1)

        unit = OrganizationalUnit.create(name, child_type, parent=parent)
        await self._persist(unit)

        logger.info("Created unit %d (%s, %s) under %s", unit.id, unit.name, child_type.value, parent_id)
        await self._after_write(UnitCreated(unit.id, unit.name, child_type.value, parent_id))
        return OrganizationalUnitDTO.from_entity(unit)

    async def update_unit(self, unit_id: int, name: str, unit_type: str) -> OrganizationalUnitDTO:
        name = validate_unit_name(name)
        unit = await self._require(unit_id)
        new_type = UnitType.create(unit_type)
        if await self.repository.exists_by_name_and_type(name, new_type, exclude_id=unit_id):
            raise DuplicateUnitError(name, new_type.value)

        if new_type != unit.unit_type:
            if unit.parent is not None:
                validate_child_type(unit.parent.unit_type, new_type)
            for child in unit.children:
                validate_child_type(new_type, child.unit_type)

        unit.set_name(name)
        unit.set_type(new_type)
        await self._persist(unit)

        logger.info("Updated unit %d (%s, %s)", unit_id, unit.name, new_type.value)
        await self._after_write(HierarchyChanged("updated", unit_id))
        return OrganizationalUnitDTO.from_entity(unit)

    async def move_unit(self, unit_id: int, new_parent_id: int | None) -> OrganizationalUnitDTO:
        async with self.locks.hold(unit_id):
            unit = await self._require(unit_id)
            # A missing target parent raises UnitNotFoundError here, ahead of the move checks.
            new_parent = await self._require(new_parent_id) if new_parent_id is not None else None

            if not await self.hierarchy_service.validate_unit_move(unit_id, new_parent_id):
                if unit_id == new_parent_id:
                    raise CircularHierarchyError.self_reference(unit.name)
                raise CircularHierarchyError.circular_reference(unit.name, new_parent.name)

            if new_parent is not None:
                validate_child_type(new_parent.unit_type, unit.unit_type)
                self._check_depth(new_parent.get_depth_level() + 1 + unit.subtree_height())

            old_parent = unit.parent
            old_parent_id = old_parent.id if old_parent is not None else None
            affected = [unit_id] + [d.id for d in unit.get_descendants()]

            unit.set_parent(new_parent)
            await self._persist(unit)

        logger.info("Moved unit %d from %s to %s (%d affected)", unit_id, old_parent_id, new_parent_id, len(affected))
        await self._after_write(
            UnitMoved(unit_id, unit.name, old_parent_id, new_parent_id),
            HierarchyChanged("moved", unit_id, tuple(affected)),
        )
        return OrganizationalUnitDTO.from_entity(unit)

    async def delete_unit(self, unit_id: int, force: bool = False) -> list[int]:
        """Soft-delete a unit; with ``force`` its whole subtree goes first.

        Returns the ids that were soft-deleted, descendants root-down and the
        unit itself last.
        """
        unit = await self._require(unit_id)

        if not force:
            if unit.has_children():
                raise InvalidHierarchyError.cannot_delete_unit_with_children(unit.name, len(unit.children))
            if not await self.hierarchy_service.can_delete_unit(unit_id):
                raise InvalidHierarchyError.unit_has_dependents(unit.name, ASSIGNED_USERS)

        doomed = unit.get_descendants() + [unit]
        for target in doomed:
            target.delete()
        await self._persist(*doomed)

        deleted_ids = [target.id for target in doomed]
        logger.info("Deleted unit %d (force=%s, %d units soft-deleted)", unit_id, force, len(deleted_ids))
        await self._after_write(*(HierarchyChanged("deleted", i) for i in deleted_ids))
        return deleted_ids

    async def restore_unit(self, unit_id: int) -> OrganizationalUnitDTO:
        unit = await self.repository.find_by_id_including_deleted(unit_id)
        if unit is None:
            raise UnitNotFoundError(unit_id)
        if not unit.soft_deleted:
            return OrganizationalUnitDTO.from_entity(unit)

        if unit.parent is not None and unit.parent.soft_deleted:
            raise InvalidHierarchyError.invalid_structure(
                f"cannot restore '{unit.name}' while its parent '{unit.parent.name}' is deleted"
            )
        if await self.repository.exists_by_name_and_type(unit.name, unit.unit_type, exclude_id=unit_id):
            raise DuplicateUnitError(unit.name, unit.unit_type.value)

        unit.restore()
        await self._persist(unit)

        logger.info("Restored unit %d (%s)", unit_id, unit.name)
        await self._after_write(HierarchyChanged("restored", unit_id))
        return OrganizationalUnitDTO.from_entity(unit)

    async def toggle_unit_status(self, unit_id: int) -> OrganizationalUnitDTO:
        unit = await self._require(unit_id)
        if unit.is_active:
            unit.deactivate()
        else:
            unit.activate()
        await self._persist(unit)

        logger.info("Unit %d is now %s", unit_id, "active" if unit.is_active else "inactive")
        await self._after_write()
        return OrganizationalUnitDTO.from_entity(unit)

    # ── Queries ──────────────────────────────────────────────────────────────

    async def get_unit_by_id(self, unit_id: int) -> OrganizationalUnitDTO:
        return OrganizationalUnitDTO.from_entity(await self._require(unit_id))

    async def search_units(
        self,
        page: int = 1,
        limit: int | None = None,
        search: str | None = None,
        unit_type: str | None = None,
    ) -> UnitPage:
        page = max(page, 1)
        limit = min(max(limit or settings.default_page_size, 1), settings.max_page_size)
        type_filter = UnitType.create(unit_type) if unit_type else None

        units, total = await self.repository.find_paginated(page, limit, search or None, type_filter)
        return UnitPage.build([OrganizationalUnitDTO.from_entity(u) for u in units], total, page, limit)
