"""SQL-backed repository for the organizational unit tree."""

import logging
from typing import Any

from sqlalchemy import Integer, func, literal, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from uniadmin.db.models.org_unit import OrganizationalUnitRow
from uniadmin.db.models.user import UserRow
from uniadmin.domain.org_unit import OrganizationalUnit
from uniadmin.domain.repository import OrganizationalUnitRepository
from uniadmin.domain.unit_type import UnitType
from uniadmin.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

_Unit = OrganizationalUnitRow


def _by_name(units: list[OrganizationalUnit]) -> list[OrganizationalUnit]:
    return sorted(units, key=lambda u: u.name)


class SqlOrganizationalUnitRepository(BaseRepository[OrganizationalUnitRow], OrganizationalUnitRepository):
    """Repository over ``organizational_units``.

    The whole table is loaded once per instance into an id-keyed arena so that
    every finder hands back the same entity objects, already wired to their
    parents and children. Soft-deleted units stay in the arena (restore needs
    them) but are filtered out of every read. Traversals that can be expressed
    in SQL (ancestors, descendants, depth levels, aggregates) run as queries
    and are mapped back through the arena.
    """

    model_class = OrganizationalUnitRow

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self._arena: dict[int, OrganizationalUnit] | None = None
        self._rows: dict[int, OrganizationalUnitRow] = {}

    # ── Arena ────────────────────────────────────────────────────────────────

    @staticmethod
    def _to_entity(row: OrganizationalUnitRow) -> OrganizationalUnit:
        return OrganizationalUnit(
            row.name,
            row.type,
            id=row.id,
            is_active=row.is_active,
            soft_deleted=row.soft_deleted,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    async def _load(self) -> dict[int, OrganizationalUnit]:
        if self._arena is not None:
            return self._arena

        stmt = select(_Unit).order_by(_Unit.name, _Unit.id)
        rows = await self.scalars(stmt)

        arena: dict[int, OrganizationalUnit] = {}
        for row in rows:
            arena[row.id] = self._to_entity(row)
            self._rows[row.id] = row
        for row in rows:
            if row.parent_id is not None and row.parent_id in arena:
                arena[row.id].link_parent(arena[row.parent_id])

        logger.debug("Loaded %d organizational units", len(arena))
        self._arena = arena
        return arena

    async def _resolve(self, ids: list[int]) -> list[OrganizationalUnit]:
        arena = await self._load()
        return [arena[i] for i in ids if i in arena]

    async def _live(self) -> list[OrganizationalUnit]:
        arena = await self._load()
        return [u for u in arena.values() if not u.soft_deleted]

    # ── Finders ──────────────────────────────────────────────────────────────

    async def find_by_id(self, unit_id: int) -> OrganizationalUnit | None:
        unit = await self.find_by_id_including_deleted(unit_id)
        if unit is None or unit.soft_deleted:
            return None
        return unit

    async def find_by_id_including_deleted(self, unit_id: int) -> OrganizationalUnit | None:
        arena = await self._load()
        return arena.get(unit_id)

    async def find_by_name_and_type(self, name: str, unit_type: UnitType) -> OrganizationalUnit | None:
        for unit in await self._live():
            if unit.name == name and unit.unit_type == unit_type:
                return unit
        return None

    async def find_by_type(self, unit_type: UnitType) -> list[OrganizationalUnit]:
        return _by_name([u for u in await self._live() if u.unit_type == unit_type])

    async def find_active_units(self) -> list[OrganizationalUnit]:
        return _by_name([u for u in await self._live() if u.is_active])

    async def find_all(self) -> list[OrganizationalUnit]:
        return _by_name(await self._live())

    async def find_root_units(self) -> list[OrganizationalUnit]:
        return _by_name([u for u in await self._live() if u.parent is None and u.is_active])

    async def find_by_parent(self, parent_id: int) -> list[OrganizationalUnit]:
        parent = await self.find_by_id(parent_id)
        if parent is None:
            return []
        return _by_name([c for c in parent.children if c.is_active])

    async def search(self, term: str) -> list[OrganizationalUnit]:
        stmt = (
            select(_Unit.id)
            .where(_Unit.soft_deleted.is_(False), _Unit.name.ilike(f"%{term}%"))
            .order_by(_Unit.name)
        )
        return await self._resolve(await self.scalars(stmt))

    async def find_paginated(
        self,
        page: int,
        limit: int,
        search: str | None = None,
        unit_type: UnitType | None = None,
    ) -> tuple[list[OrganizationalUnit], int]:
        criteria: list[Any] = [_Unit.soft_deleted.is_(False)]
        if search:
            criteria.append(_Unit.name.ilike(f"%{search}%"))
        if unit_type is not None:
            criteria.append(_Unit.type == unit_type.value)

        total = await self.count(*criteria)
        stmt = (
            select(_Unit.id)
            .where(*criteria)
            .order_by(_Unit.type, _Unit.name)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return await self._resolve(await self.scalars(stmt)), total

    # ── Recursive traversals ─────────────────────────────────────────────────

    async def find_ancestors(self, unit_id: int) -> list[OrganizationalUnit]:
        anchor = (
            select(_Unit.id, _Unit.parent_id, literal(0, Integer).label("distance"))
            .where(_Unit.id == unit_id, _Unit.soft_deleted.is_(False))
            .cte("ancestors", recursive=True)
        )
        parent = aliased(_Unit)
        ancestors = anchor.union_all(
            select(parent.id, parent.parent_id, (anchor.c.distance + 1).label("distance"))
            .join(anchor, parent.id == anchor.c.parent_id)
            .where(parent.soft_deleted.is_(False))
        )
        stmt = (
            select(ancestors.c.id)
            .where(ancestors.c.distance > 0)
            .order_by(ancestors.c.distance.desc())
        )
        return await self._resolve(await self.scalars(stmt))

    async def find_descendants(self, unit_id: int) -> list[OrganizationalUnit]:
        anchor = (
            select(_Unit.id, _Unit.name, literal(1, Integer).label("depth"))
            .where(
                _Unit.parent_id == unit_id,
                _Unit.is_active.is_(True),
                _Unit.soft_deleted.is_(False),
            )
            .cte("descendants", recursive=True)
        )
        child = aliased(_Unit)
        descendants = anchor.union_all(
            select(child.id, child.name, (anchor.c.depth + 1).label("depth"))
            .join(anchor, child.parent_id == anchor.c.id)
            .where(child.is_active.is_(True), child.soft_deleted.is_(False))
        )
        stmt = select(descendants.c.id).order_by(descendants.c.depth, descendants.c.name)
        return await self._resolve(await self.scalars(stmt))

    async def is_ancestor_of(self, ancestor_id: int, descendant_id: int) -> bool:
        if ancestor_id == descendant_id:
            return False
        lineage = await self.find_ancestors(descendant_id)
        return any(unit.id == ancestor_id for unit in lineage)

    async def find_by_depth_level(self, level: int) -> list[OrganizationalUnit]:
        anchor = (
            select(_Unit.id, _Unit.name, literal(0, Integer).label("level"))
            .where(
                _Unit.parent_id.is_(None),
                _Unit.is_active.is_(True),
                _Unit.soft_deleted.is_(False),
            )
            .cte("levels", recursive=True)
        )
        child = aliased(_Unit)
        levels = anchor.union_all(
            select(child.id, child.name, (anchor.c.level + 1).label("level"))
            .join(anchor, child.parent_id == anchor.c.id)
            .where(child.is_active.is_(True), child.soft_deleted.is_(False))
        )
        stmt = select(levels.c.id).where(levels.c.level == level).order_by(levels.c.name)
        return await self._resolve(await self.scalars(stmt))

    async def find_hierarchy_tree(self) -> list[dict[str, Any]]:
        def node(unit: OrganizationalUnit) -> dict[str, Any]:
            children = _by_name([c for c in unit.children if c.is_active])
            return {"unit": unit, "children": [node(c) for c in children]}

        return [node(root) for root in await self.find_root_units()]

    # ── Aggregates ───────────────────────────────────────────────────────────

    async def count_assigned_users(self, unit_id: int) -> int:
        stmt = select(func.count(UserRow.user_id)).where(
            UserRow.org_unit_id == unit_id,
            UserRow.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def get_statistics(self) -> dict[str, Any]:
        total = await self.count(_Unit.soft_deleted.is_(False))
        active = await self.count(_Unit.soft_deleted.is_(False), _Unit.is_active.is_(True))

        stmt = (
            select(_Unit.type, func.count(_Unit.id))
            .where(_Unit.soft_deleted.is_(False))
            .group_by(_Unit.type)
            .order_by(_Unit.type)
        )
        result = await self.session.execute(stmt)
        by_type = {unit_type: int(count) for unit_type, count in result.all()}

        return {
            "total_units": total,
            "active_units": active,
            "inactive_units": total - active,
            "by_type": by_type,
        }

    async def exists_by_name_and_type(
        self,
        name: str,
        unit_type: UnitType,
        exclude_id: int | None = None,
    ) -> bool:
        criteria = [
            _Unit.name == name,
            _Unit.type == unit_type.value,
            _Unit.soft_deleted.is_(False),
        ]
        if exclude_id is not None:
            criteria.append(_Unit.id != exclude_id)
        return await self.exists(*criteria)

    # ── Unit of work ─────────────────────────────────────────────────────────

    async def save(self, unit: OrganizationalUnit) -> OrganizationalUnit:
        arena = await self._load()
        parent = unit.parent
        if parent is not None and parent.id is None:
            raise ValueError("Parent unit must be saved before its children")

        fields = {
            "name": unit.name,
            "type": unit.unit_type.value,
            "parent_id": parent.id if parent is not None else None,
            "is_active": unit.is_active,
            "soft_deleted": unit.soft_deleted,
            "updated_at": unit.updated_at,
        }

        if unit.id is None:
            row = await self.insert(created_at=unit.created_at, **fields)
            unit.id = row.id
        else:
            row = self._rows.get(unit.id) or await self.get_row(unit.id)
            if row is None:
                row = await self.insert(id=unit.id, created_at=unit.created_at, **fields)
            else:
                await self.assign(row, **fields)

        self._rows[unit.id] = row
        arena[unit.id] = unit
        return unit

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
        # In-memory entities may hold the rolled-back changes.
        self._arena = None
        self._rows = {}
