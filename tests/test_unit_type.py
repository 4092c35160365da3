"""Tests for the UnitType enumeration and the parent/child compatibility table."""

import itertools

import pytest

from uniadmin.domain.unit_type import VALID_CHILD_TYPES, UnitType, validate_child_type
from uniadmin.errors.exceptions import InvalidArgumentError, InvalidHierarchyError


def test_ten_closed_variants():
    assert len(UnitType) == 10
    assert UnitType.valid_types()[0] == "Sede"
    assert "Centro Regional" in UnitType.valid_types()


def test_create_accepts_known_values():
    assert UnitType.create("Facultad") is UnitType.FACULTAD
    assert UnitType.create(UnitType.ESCUELA) is UnitType.ESCUELA


@pytest.mark.parametrize("value", ["", "facultad", "Universidad", "SYSTEM"])
def test_create_rejects_unknown_values(value):
    with pytest.raises(InvalidArgumentError) as exc_info:
        UnitType.create(value)
    assert exc_info.value.status_code == 400
    assert exc_info.value.details["valid_types"] == UnitType.valid_types()


def test_named_constructors():
    assert UnitType.sede() is UnitType.SEDE
    assert UnitType.centro_regional() is UnitType.CENTRO_REGIONAL
    assert UnitType.centro() is UnitType.CENTRO


def test_category_predicates():
    academic = {t for t in UnitType if t.is_academic_unit()}
    administrative = {t for t in UnitType if t.is_administrative_unit()}
    teaching = {t for t in UnitType if t.is_teaching_unit()}
    assert academic == {UnitType.FACULTAD, UnitType.CENTRO_REGIONAL, UnitType.INSTITUTO}
    assert administrative == {UnitType.DIRECCION, UnitType.COORDINACION, UnitType.DIVISION}
    assert teaching == {UnitType.DEPARTAMENTO, UnitType.ESCUELA}
    assert not UnitType.SEDE.is_academic_unit()


def test_leaf_types_allow_no_children():
    for leaf in (UnitType.COORDINACION, UnitType.DIVISION, UnitType.CENTRO):
        assert leaf.allowed_children() == frozenset()


def test_sede_children():
    assert UnitType.SEDE.allowed_children() == {
        UnitType.FACULTAD,
        UnitType.CENTRO_REGIONAL,
        UnitType.INSTITUTO,
    }
    assert not UnitType.SEDE.can_parent(UnitType.SEDE)


@pytest.mark.parametrize("parent,child", list(itertools.product(UnitType, UnitType)))
def test_validate_child_type_matches_table(parent, child):
    allowed = child in VALID_CHILD_TYPES.get(parent, frozenset())
    if allowed:
        validate_child_type(parent, child)
    else:
        with pytest.raises(InvalidHierarchyError) as exc_info:
            validate_child_type(parent, child)
        assert exc_info.value.details["reason"] == "invalid_parent_type"
