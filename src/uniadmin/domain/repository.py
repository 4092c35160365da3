"""Persistence port consumed by the hierarchy services."""

from abc import ABC, abstractmethod
from typing import Any

from uniadmin.domain.org_unit import OrganizationalUnit
from uniadmin.domain.unit_type import UnitType


class OrganizationalUnitRepository(ABC):
    """Query surface the read and write services depend on.

    Every finder hides soft-deleted units unless its name says otherwise.
    Ancestor results are root-first.
    """

    @abstractmethod
    async def find_by_id(self, unit_id: int) -> OrganizationalUnit | None: ...

    @abstractmethod
    async def find_by_id_including_deleted(self, unit_id: int) -> OrganizationalUnit | None: ...

    @abstractmethod
    async def find_by_name_and_type(self, name: str, unit_type: UnitType) -> OrganizationalUnit | None: ...

    @abstractmethod
    async def find_by_type(self, unit_type: UnitType) -> list[OrganizationalUnit]: ...

    @abstractmethod
    async def find_active_units(self) -> list[OrganizationalUnit]: ...

    @abstractmethod
    async def find_all(self) -> list[OrganizationalUnit]: ...

    @abstractmethod
    async def find_root_units(self) -> list[OrganizationalUnit]:
        """Active root units ordered by name."""

    @abstractmethod
    async def find_by_parent(self, parent_id: int) -> list[OrganizationalUnit]:
        """Active direct children ordered by name."""

    @abstractmethod
    async def find_by_depth_level(self, level: int) -> list[OrganizationalUnit]: ...

    @abstractmethod
    async def find_ancestors(self, unit_id: int) -> list[OrganizationalUnit]: ...

    @abstractmethod
    async def find_descendants(self, unit_id: int) -> list[OrganizationalUnit]: ...

    @abstractmethod
    async def is_ancestor_of(self, ancestor_id: int, descendant_id: int) -> bool: ...

    @abstractmethod
    async def find_hierarchy_tree(self) -> list[dict[str, Any]]:
        """Active forest as nested ``{"unit": ..., "children": [...]}`` nodes."""

    @abstractmethod
    async def search(self, term: str) -> list[OrganizationalUnit]: ...

    @abstractmethod
    async def find_paginated(
        self,
        page: int,
        limit: int,
        search: str | None = None,
        unit_type: UnitType | None = None,
    ) -> tuple[list[OrganizationalUnit], int]: ...

    @abstractmethod
    async def count_assigned_users(self, unit_id: int) -> int: ...

    @abstractmethod
    async def get_statistics(self) -> dict[str, Any]: ...

    @abstractmethod
    async def exists_by_name_and_type(
        self,
        name: str,
        unit_type: UnitType,
        exclude_id: int | None = None,
    ) -> bool: ...

    @abstractmethod
    async def save(self, unit: OrganizationalUnit) -> OrganizationalUnit: ...

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...
