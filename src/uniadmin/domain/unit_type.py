"""Organizational unit kinds and the parent -> child compatibility table."""

from enum import StrEnum

from uniadmin.errors.exceptions import InvalidArgumentError, InvalidHierarchyError


class UnitType(StrEnum):
    SEDE = "Sede"
    FACULTAD = "Facultad"
    CENTRO_REGIONAL = "Centro Regional"
    INSTITUTO = "Instituto"
    DEPARTAMENTO = "Departamento"
    ESCUELA = "Escuela"
    DIRECCION = "Direccion"
    COORDINACION = "Coordinacion"
    DIVISION = "Division"
    CENTRO = "Centro"

    @classmethod
    def create(cls, value: "str | UnitType") -> "UnitType":
        """Return the member for ``value`` or raise InvalidArgumentError."""
        try:
            return cls(value)
        except ValueError:
            raise InvalidArgumentError(
                f"Unit type '{value}' is not valid. Valid types: {', '.join(cls.valid_types())}",
                details={"type": str(value), "valid_types": cls.valid_types()},
            ) from None

    @classmethod
    def valid_types(cls) -> list[str]:
        return [member.value for member in cls]

    @classmethod
    def sede(cls) -> "UnitType":
        return cls.SEDE

    @classmethod
    def facultad(cls) -> "UnitType":
        return cls.FACULTAD

    @classmethod
    def centro_regional(cls) -> "UnitType":
        return cls.CENTRO_REGIONAL

    @classmethod
    def instituto(cls) -> "UnitType":
        return cls.INSTITUTO

    @classmethod
    def departamento(cls) -> "UnitType":
        return cls.DEPARTAMENTO

    @classmethod
    def escuela(cls) -> "UnitType":
        return cls.ESCUELA

    @classmethod
    def direccion(cls) -> "UnitType":
        return cls.DIRECCION

    @classmethod
    def coordinacion(cls) -> "UnitType":
        return cls.COORDINACION

    @classmethod
    def division(cls) -> "UnitType":
        return cls.DIVISION

    @classmethod
    def centro(cls) -> "UnitType":
        return cls.CENTRO

    def is_academic_unit(self) -> bool:
        return self in _ACADEMIC

    def is_administrative_unit(self) -> bool:
        return self in _ADMINISTRATIVE

    def is_teaching_unit(self) -> bool:
        return self in _TEACHING

    def allowed_children(self) -> frozenset["UnitType"]:
        return VALID_CHILD_TYPES.get(self, frozenset())

    def can_parent(self, child: "UnitType") -> bool:
        return child in self.allowed_children()


_ACADEMIC = frozenset({UnitType.FACULTAD, UnitType.CENTRO_REGIONAL, UnitType.INSTITUTO})
_ADMINISTRATIVE = frozenset({UnitType.DIRECCION, UnitType.COORDINACION, UnitType.DIVISION})
_TEACHING = frozenset({UnitType.DEPARTAMENTO, UnitType.ESCUELA})

# Single source of truth for parent -> child pairings. Types missing here are leaves.
VALID_CHILD_TYPES: dict[UnitType, frozenset[UnitType]] = {
    UnitType.SEDE: frozenset({UnitType.FACULTAD, UnitType.CENTRO_REGIONAL, UnitType.INSTITUTO}),
    UnitType.FACULTAD: frozenset({UnitType.DEPARTAMENTO, UnitType.ESCUELA, UnitType.DIRECCION}),
    UnitType.CENTRO_REGIONAL: frozenset({UnitType.DEPARTAMENTO, UnitType.ESCUELA, UnitType.COORDINACION}),
    UnitType.INSTITUTO: frozenset({UnitType.DEPARTAMENTO, UnitType.DIVISION, UnitType.CENTRO}),
    UnitType.DEPARTAMENTO: frozenset({UnitType.COORDINACION, UnitType.CENTRO}),
    UnitType.ESCUELA: frozenset({UnitType.COORDINACION, UnitType.CENTRO}),
    UnitType.DIRECCION: frozenset({UnitType.COORDINACION, UnitType.DIVISION}),
}


def validate_child_type(parent_type: UnitType, child_type: UnitType) -> None:
    """Raise InvalidHierarchyError unless ``parent_type`` may parent ``child_type``."""
    if not parent_type.can_parent(child_type):
        raise InvalidHierarchyError.invalid_parent_type(child_type.value, parent_type.value)
