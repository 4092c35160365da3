"""Immutable root-to-node path of unit names, e.g. ``Sede > Facultad > Escuela``."""

from __future__ import annotations

from dataclasses import dataclass, field

from uniadmin.errors.exceptions import InvalidArgumentError

SEPARATOR = " > "
MIN_LENGTH = 1
MAX_LENGTH = 1000


def _parse_segments(value: str) -> tuple[str, ...]:
    trimmed = value.strip()
    if len(trimmed) < MIN_LENGTH:
        raise InvalidArgumentError("Hierarchy path cannot be empty")
    if len(trimmed) > MAX_LENGTH:
        raise InvalidArgumentError(f"Hierarchy path cannot exceed {MAX_LENGTH} characters")

    segments = []
    for raw in value.split(SEPARATOR):
        segment = raw.strip()
        if not segment:
            raise InvalidArgumentError("Hierarchy path segments cannot be empty")
        segments.append(segment)
    return tuple(segments)


@dataclass(frozen=True)
class HierarchyPath:
    """Path algebra over name segments.

    Relationship tests (ancestor, descendant, sibling) are decided purely by
    segment-prefix comparison, so two paths built from the same lineage always
    agree with the parent-walk performed by ``OrganizationalUnit``.
    """

    value: str
    segments: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "segments", _parse_segments(self.value))

    @classmethod
    def create(cls, value: str) -> HierarchyPath:
        return cls(value)

    @classmethod
    def from_segments(cls, segments: list[str] | tuple[str, ...]) -> HierarchyPath:
        if not segments:
            raise InvalidArgumentError("Hierarchy path segments cannot be empty")
        if any(not isinstance(s, str) or not s.strip() for s in segments):
            raise InvalidArgumentError("Every hierarchy path segment must be a non-empty string")
        return cls(SEPARATOR.join(segments))

    @classmethod
    def root(cls, root_name: str) -> HierarchyPath:
        return cls(root_name)

    @property
    def root_name(self) -> str:
        return self.segments[0]

    @property
    def leaf(self) -> str:
        return self.segments[-1]

    @property
    def depth(self) -> int:
        return len(self.segments)

    def is_ancestor_of(self, other: HierarchyPath) -> bool:
        if self.depth >= other.depth:
            return False
        return other.segments[: self.depth] == self.segments

    def is_descendant_of(self, other: HierarchyPath) -> bool:
        return other.is_ancestor_of(self)

    def is_sibling_of(self, other: HierarchyPath) -> bool:
        mine, theirs = self.parent_path(), other.parent_path()
        if mine is None or theirs is None:
            return False
        return mine == theirs and self != other

    def parent_path(self) -> HierarchyPath | None:
        if self.depth <= 1:
            return None
        return HierarchyPath.from_segments(self.segments[:-1])

    def append_child(self, child_name: str) -> HierarchyPath:
        child_name = child_name.strip()
        if not child_name:
            raise InvalidArgumentError("Child name cannot be empty")
        return HierarchyPath.from_segments(self.segments + (child_name,))

    def contains(self, segment: str) -> bool:
        return segment in self.segments

    def starts_with(self, other: HierarchyPath) -> bool:
        if other.depth > self.depth:
            return False
        return self.segments[: other.depth] == other.segments

    def sub_path(self, start: int, length: int | None = None) -> HierarchyPath:
        """Slice ``length`` segments starting at ``start`` (to the end when omitted)."""
        if start < 0 or start >= self.depth:
            raise InvalidArgumentError("Sub-path start index out of range")
        end = None if length is None else start + length
        sliced = self.segments[start:end]
        if not sliced:
            raise InvalidArgumentError("Sub-path cannot be empty")
        return HierarchyPath.from_segments(sliced)

    def __str__(self) -> str:
        return self.value
