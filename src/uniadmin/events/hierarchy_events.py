"""Domain events emitted by hierarchy writes."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar

CACHE_INVALIDATING_CHANGES = frozenset({"created", "moved", "updated", "deleted", "restored"})


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UnitCreated:
    event_type: ClassVar[str] = "org_unit.created"

    unit_id: int
    unit_name: str
    unit_type: str
    parent_id: int | None = None
    occurred_on: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit_id": self.unit_id,
            "unit_name": self.unit_name,
            "unit_type": self.unit_type,
            "parent_id": self.parent_id,
            "occurred_on": self.occurred_on.isoformat(),
        }


@dataclass(frozen=True)
class UnitMoved:
    event_type: ClassVar[str] = "org_unit.moved"

    unit_id: int
    unit_name: str
    old_parent_id: int | None
    new_parent_id: int | None
    occurred_on: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit_id": self.unit_id,
            "unit_name": self.unit_name,
            "old_parent_id": self.old_parent_id,
            "new_parent_id": self.new_parent_id,
            "occurred_on": self.occurred_on.isoformat(),
        }


@dataclass(frozen=True)
class HierarchyChanged:
    """Structural change to one unit; ``affected_unit_ids`` always starts with that unit."""

    event_type: ClassVar[str] = "org_unit.hierarchy_changed"

    change_type: str
    affected_unit_id: int
    affected_unit_ids: tuple[int, ...] = ()
    occurred_on: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        ids = tuple(dict.fromkeys((self.affected_unit_id, *self.affected_unit_ids)))
        object.__setattr__(self, "affected_unit_ids", ids)

    @property
    def requires_cache_invalidation(self) -> bool:
        return self.change_type in CACHE_INVALIDATING_CHANGES

    def to_dict(self) -> dict[str, Any]:
        return {
            "change_type": self.change_type,
            "affected_unit_id": self.affected_unit_id,
            "affected_unit_ids": list(self.affected_unit_ids),
            "requires_cache_invalidation": self.requires_cache_invalidation,
            "occurred_on": self.occurred_on.isoformat(),
        }


HierarchyEvent = UnitCreated | UnitMoved | HierarchyChanged
ALL_EVENT_TYPES: tuple[type, ...] = (UnitCreated, UnitMoved, HierarchyChanged)
