"""Pydantic DTOs and request models for the organizational hierarchy."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from uniadmin.config import settings
from uniadmin.domain.org_unit import OrganizationalUnit
from uniadmin.models.common import Page

VIRTUAL_ROOT_ID = 0
VIRTUAL_ROOT_NAME = "Sistema"
VIRTUAL_ROOT_TYPE = "SYSTEM"


# ── Request models ─────────────────────────────────────────────────────────────

class UnitCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=settings.unit_name_max_length)
    type: str
    parent_id: int | None = Field(None, gt=0)


class UnitUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=settings.unit_name_max_length)
    type: str


class UnitMove(BaseModel):
    new_parent_id: int | None = Field(None, gt=0)


# ── DTOs ───────────────────────────────────────────────────────────────────────

class OrganizationalUnitDTO(BaseModel):
    """Flat, read-only view of one unit."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    type: str
    parent_id: int | None = None
    parent_name: str | None = None
    hierarchy_path: str
    depth_level: int = 0
    children_count: int = 0
    is_active: bool = True
    is_academic_unit: bool = False
    is_administrative_unit: bool = False
    is_teaching_unit: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, unit: OrganizationalUnit) -> OrganizationalUnitDTO:
        parent = unit.parent
        return cls(
            id=unit.id,
            name=unit.name,
            type=unit.unit_type.value,
            parent_id=parent.id if parent is not None else None,
            parent_name=parent.name if parent is not None else None,
            hierarchy_path=unit.get_hierarchy_path(),
            depth_level=unit.get_depth_level(),
            children_count=len(unit.children),
            is_active=unit.is_active,
            is_academic_unit=unit.is_academic_unit(),
            is_administrative_unit=unit.is_administrative_unit(),
            is_teaching_unit=unit.is_teaching_unit(),
            created_at=unit.created_at,
            updated_at=unit.updated_at,
        )

    @classmethod
    def virtual_root(cls, children_count: int = 0) -> OrganizationalUnitDTO:
        """Synthetic node standing in for the whole system above the real roots."""
        return cls(
            id=VIRTUAL_ROOT_ID,
            name=VIRTUAL_ROOT_NAME,
            type=VIRTUAL_ROOT_TYPE,
            hierarchy_path=f"/{VIRTUAL_ROOT_ID}",
            children_count=children_count,
        )


class HierarchyTreeDTO(BaseModel):
    """A unit plus its (already filtered) children, recursively."""

    model_config = ConfigDict(frozen=True)

    unit: OrganizationalUnitDTO
    children: list[HierarchyTreeDTO] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, unit: OrganizationalUnit) -> HierarchyTreeDTO:
        """Build from an entity, keeping only active, non-deleted children."""
        children = sorted((c for c in unit.children if c.is_active), key=lambda c: c.name)
        return cls(
            unit=OrganizationalUnitDTO.from_entity(unit),
            children=[cls.from_entity(child) for child in children],
        )

    @classmethod
    def from_node(cls, node: dict[str, Any]) -> HierarchyTreeDTO:
        """Build from the repository's nested ``{"unit", "children"}`` mapping."""
        return cls(
            unit=OrganizationalUnitDTO.from_entity(node["unit"]),
            children=[cls.from_node(child) for child in node.get("children", [])],
        )

    def has_children(self) -> bool:
        return bool(self.children)

    def children_count(self) -> int:
        return len(self.children)

    def find_unit_by_id(self, unit_id: int) -> OrganizationalUnitDTO | None:
        if self.unit.id == unit_id:
            return self.unit
        for child in self.children:
            found = child.find_unit_by_id(unit_id)
            if found is not None:
                return found
        return None

    def get_path_to_unit(self, unit_id: int) -> list[OrganizationalUnitDTO] | None:
        """Units from this node down to ``unit_id`` (inclusive), or None if absent."""
        if self.unit.id == unit_id:
            return [self.unit]
        for child in self.children:
            path = child.get_path_to_unit(unit_id)
            if path is not None:
                return [self.unit] + path
        return None

    def filter_by_type(self, unit_type: str) -> HierarchyTreeDTO | None:
        """Prune branches that contain no unit of ``unit_type``."""
        kept = []
        for child in self.children:
            filtered = child.filter_by_type(unit_type)
            if filtered is not None:
                kept.append(filtered)
        if self.unit.type == unit_type or kept:
            return HierarchyTreeDTO(unit=self.unit, children=kept)
        return None

    def get_statistics(self) -> dict[str, Any]:
        stats: dict[str, Any] = {
            "total_units": 1,
            "active_units": 1 if self.unit.is_active else 0,
            "max_depth": 1,
            "by_type": {self.unit.type: 1},
        }
        for child in self.children:
            child_stats = child.get_statistics()
            stats["total_units"] += child_stats["total_units"]
            stats["active_units"] += child_stats["active_units"]
            stats["max_depth"] = max(stats["max_depth"], child_stats["max_depth"] + 1)
            for unit_type, count in child_stats["by_type"].items():
                stats["by_type"][unit_type] = stats["by_type"].get(unit_type, 0) + count
        return stats

    def to_flat_list(self) -> list[dict[str, Any]]:
        """Pre-order list of unit dicts."""
        flat = [self.unit.model_dump(mode="json")]
        for child in self.children:
            flat.extend(child.to_flat_list())
        return flat


class UnitContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    unit: OrganizationalUnitDTO
    ancestors: list[OrganizationalUnitDTO]
    descendants: list[OrganizationalUnitDTO]
    descendants_count: int
    depth_level: int
    hierarchy_path: str


class HierarchyStatistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_units: int
    active_units: int
    inactive_units: int
    by_type: dict[str, int]
    by_level: dict[str, int]


class UnitPage(Page[OrganizationalUnitDTO]):
    pass


class UnitOption(BaseModel):
    """One entry of a unit dropdown/select list."""

    model_config = ConfigDict(frozen=True)

    value: int
    label: str
    type: str
    hierarchy_path: str
    depth_level: int
    is_academic: bool
    is_administrative: bool
    is_teaching: bool


class BreadcrumbItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    type: str


class MoveValidation(BaseModel):
    unit_id: int
    new_parent_id: int | None
    valid: bool


class DeleteCheck(BaseModel):
    unit_id: int
    can_delete: bool


class DeleteResult(BaseModel):
    unit_id: int
    deleted_ids: list[int]
