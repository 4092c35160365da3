"""OrganizationalUnit entity: a node in the university's organizational tree."""

from __future__ import annotations

from datetime import datetime, timezone

from uniadmin.domain.hierarchy_path import SEPARATOR, HierarchyPath
from uniadmin.domain.unit_type import UnitType, validate_child_type
from uniadmin.errors.exceptions import (
    CircularHierarchyError,
    InvalidArgumentError,
    InvalidHierarchyError,
)

NAME_MAX_LENGTH = 255
DEFAULT_MAX_DEPTH = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_unit_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidArgumentError("Unit name cannot be empty")
    if len(name) > NAME_MAX_LENGTH:
        raise InvalidArgumentError(f"Unit name cannot exceed {NAME_MAX_LENGTH} characters")
    return name


class OrganizationalUnit:
    """Tree node with a parent reference and an owned collection of children.

    ``id`` stays ``None`` until the unit is persisted. Two units are the same
    node when they are the same object or share a persisted id.

    Ancestor lists are returned root-first everywhere (entity, repository and
    services), matching the segment order of ``HierarchyPath``.
    """

    def __init__(
        self,
        name: str,
        unit_type: UnitType | str,
        *,
        id: int | None = None,
        is_active: bool = True,
        soft_deleted: bool = False,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id
        self._name = validate_unit_name(name)
        self._unit_type = UnitType.create(unit_type)
        self._parent: OrganizationalUnit | None = None
        self._children: list[OrganizationalUnit] = []
        self._is_active = is_active
        self._soft_deleted = soft_deleted
        now = _utcnow()
        self.created_at = created_at or now
        self.updated_at = updated_at or now

    @classmethod
    def create(
        cls,
        name: str,
        unit_type: UnitType | str,
        parent: OrganizationalUnit | None = None,
    ) -> OrganizationalUnit:
        """Build a new unit and attach it under ``parent`` when given."""
        unit = cls(name, unit_type)
        if parent is not None:
            parent.add_child(unit)
        return unit

    def __repr__(self) -> str:
        return f"OrganizationalUnit(id={self.id!r}, name={self._name!r}, type={self._unit_type.value!r})"

    # ── State ────────────────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def unit_type(self) -> UnitType:
        return self._unit_type

    @property
    def parent(self) -> OrganizationalUnit | None:
        return self._parent

    @property
    def children(self) -> list[OrganizationalUnit]:
        """Live (non soft-deleted) children, in insertion order."""
        return [child for child in self._children if not child.soft_deleted]

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def soft_deleted(self) -> bool:
        return self._soft_deleted

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def set_name(self, name: str) -> None:
        self._name = validate_unit_name(name)
        self.touch()

    def set_type(self, unit_type: UnitType | str) -> None:
        self._unit_type = UnitType.create(unit_type)
        self.touch()

    def set_parent(self, new_parent: OrganizationalUnit | None) -> None:
        """Reassign the parent, keeping both sides of the link in step.

        Raises CircularHierarchyError, leaving the unit untouched, if
        ``new_parent`` is this unit or one of its descendants.
        """
        if new_parent is not None:
            if self.is_same(new_parent):
                raise CircularHierarchyError.self_reference(self._name)
            if self.is_ancestor_of(new_parent):
                raise CircularHierarchyError.circular_reference(self._name, new_parent.name)

        old_parent = self._parent
        if old_parent is not None and self in old_parent._children:
            old_parent._children.remove(self)
        self._parent = new_parent
        if new_parent is not None and self not in new_parent._children:
            new_parent._children.append(self)
        self.touch()

    def link_parent(self, parent: OrganizationalUnit) -> None:
        """Wire a link read back from storage, skipping validation and timestamps."""
        self._parent = parent
        if self not in parent._children:
            parent._children.append(self)

    def add_child(self, child: OrganizationalUnit) -> None:
        if child in self._children:
            return
        child.set_parent(self)

    def remove_child(self, child: OrganizationalUnit) -> None:
        if child not in self._children:
            return
        child.set_parent(None)

    def activate(self) -> None:
        self._is_active = True
        self.touch()

    def deactivate(self) -> None:
        self._is_active = False
        self.touch()

    def delete(self) -> None:
        """Soft delete: always leaves ``soft_deleted=True`` and ``is_active=False``."""
        self._soft_deleted = True
        self._is_active = False
        self.touch()

    def restore(self) -> None:
        self._soft_deleted = False
        self._is_active = True
        self.touch()

    # ── Traversal ────────────────────────────────────────────────────────────

    def is_same(self, other: OrganizationalUnit) -> bool:
        if self is other:
            return True
        return self.id is not None and self.id == other.id

    def has_children(self) -> bool:
        return bool(self.children)

    def has_active_children(self) -> bool:
        return any(child.is_active for child in self.children)

    def get_ancestors(self) -> list[OrganizationalUnit]:
        """Ancestors ordered root-first, ending with the immediate parent."""
        ancestors = []
        current = self._parent
        while current is not None:
            ancestors.append(current)
            current = current._parent
        ancestors.reverse()
        return ancestors

    def get_descendants(self) -> list[OrganizationalUnit]:
        """Pre-order walk: each child followed by its own descendants."""
        descendants = []
        for child in self.children:
            descendants.append(child)
            descendants.extend(child.get_descendants())
        return descendants

    def get_depth_level(self) -> int:
        level = 0
        current = self._parent
        while current is not None:
            level += 1
            current = current._parent
        return level

    def subtree_height(self) -> int:
        """Levels below this unit (0 for a leaf)."""
        children = self.children
        if not children:
            return 0
        return 1 + max(child.subtree_height() for child in children)

    def is_ancestor_of(self, unit: OrganizationalUnit) -> bool:
        current = unit._parent
        while current is not None:
            if self.is_same(current):
                return True
            current = current._parent
        return False

    def is_descendant_of(self, unit: OrganizationalUnit) -> bool:
        return unit.is_ancestor_of(self)

    def get_hierarchy_path(self) -> str:
        names = [ancestor.name for ancestor in self.get_ancestors()]
        names.append(self._name)
        return SEPARATOR.join(names)

    def get_hierarchy_path_vo(self) -> HierarchyPath:
        return HierarchyPath.create(self.get_hierarchy_path())

    # ── Type rules ───────────────────────────────────────────────────────────

    def is_of_type(self, unit_type: UnitType) -> bool:
        return self._unit_type == unit_type

    def is_academic_unit(self) -> bool:
        return self._unit_type.is_academic_unit()

    def is_administrative_unit(self) -> bool:
        return self._unit_type.is_administrative_unit()

    def is_teaching_unit(self) -> bool:
        return self._unit_type.is_teaching_unit()

    def create_child(
        self,
        name: str,
        unit_type: UnitType | str,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> OrganizationalUnit:
        """Construct a child after checking type compatibility and depth."""
        child_type = UnitType.create(unit_type)
        validate_child_type(self._unit_type, child_type)
        depth = self.get_depth_level() + 1
        if depth >= max_depth:
            raise InvalidHierarchyError.max_depth_exceeded(max_depth, depth)
        return OrganizationalUnit.create(name, child_type, parent=self)

    def get_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self._name,
            "type": self._unit_type.value,
            "hierarchy_path": self.get_hierarchy_path(),
            "depth_level": self.get_depth_level(),
            "children_count": len(self.children),
            "is_active": self._is_active,
            "is_academic_unit": self.is_academic_unit(),
            "is_administrative_unit": self.is_administrative_unit(),
            "is_teaching_unit": self.is_teaching_unit(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
