"""Tests for ContextService.

Covers:
- type and role based context resolution
- selection tree pruning by type
- dropdown options (parent filter, inactive units, path ordering)
- siblings, breadcrumbs and membership checks
"""

import pytest

from uniadmin.errors.exceptions import InvalidArgumentError, UnitNotFoundError
from uniadmin.services.organizational.context_service import ContextService


@pytest.fixture
def context_service(repository, hierarchy_service):
    return ContextService(repository, hierarchy_service)


async def _seed_university(service):
    sede = await service.create_unit("Universidad Central", "Sede")
    ing = await service.create_unit("Facultad de Ingeniería", "Facultad", sede.id)
    cien = await service.create_unit("Facultad de Ciencias", "Facultad", sede.id)
    dep = await service.create_unit("Departamento de Sistemas", "Departamento", ing.id)
    esc = await service.create_unit("Escuela de Física", "Escuela", cien.id)
    return {"sede": sede, "ing": ing, "cien": cien, "dep": dep, "esc": esc}


@pytest.mark.asyncio
async def test_resolve_context_by_type(management_service, context_service):
    await _seed_university(management_service)
    units = await context_service.resolve_context_by_type("Facultad")
    assert [u.name for u in units] == ["Facultad de Ciencias", "Facultad de Ingeniería"]


@pytest.mark.asyncio
async def test_resolve_context_for_role(management_service, context_service):
    units = await _seed_university(management_service)

    decano = await context_service.resolve_context_for_role("decano")
    assert {u.id for u in decano} == {units["ing"].id, units["cien"].id}

    jefe = await context_service.resolve_context_for_role("jefe_departamento")
    assert [u.id for u in jefe] == [units["dep"].id]

    full = await context_service.resolve_context_for_role("coordinador_extension")
    assert [t.unit.id for t in full] == [units["sede"].id]

    assert await context_service.resolve_context_for_role("visitante") == []


@pytest.mark.asyncio
async def test_selection_tree_pruned_by_type(management_service, context_service):
    units = await _seed_university(management_service)

    (tree,) = await context_service.get_units_tree_for_selection("Escuela")
    assert tree.unit.id == units["sede"].id
    assert [c.unit.name for c in tree.children] == ["Facultad de Ciencias"]
    assert tree.children[0].children[0].unit.name == "Escuela de Física"

    assert await context_service.get_units_tree_for_selection("Centro") == []
    with pytest.raises(InvalidArgumentError):
        await context_service.get_units_tree_for_selection("Rectorado")


@pytest.mark.asyncio
async def test_dropdown_options(management_service, context_service):
    units = await _seed_university(management_service)
    await management_service.toggle_unit_status(units["esc"].id)

    options = await context_service.get_units_for_dropdown()
    assert [o.label for o in options] == [
        "Universidad Central",
        "Facultad de Ciencias",
        "Facultad de Ingeniería",
        "Departamento de Sistemas",
    ]
    assert options[0].depth_level == 0
    assert options[1].is_academic

    with_inactive = await context_service.get_units_for_dropdown(active_only=False)
    assert "Escuela de Física" in [o.label for o in with_inactive]

    under_faculties = await context_service.get_units_for_dropdown(parent_type="Facultad", active_only=False)
    assert [o.value for o in under_faculties] == [units["esc"].id, units["dep"].id]
    assert all(o.is_teaching for o in under_faculties)


@pytest.mark.asyncio
async def test_siblings(management_service, context_service):
    units = await _seed_university(management_service)
    siblings = await context_service.get_sibling_units(units["ing"].id)
    assert [s.id for s in siblings] == [units["cien"].id]

    other_root = await management_service.create_unit("Sede Norte", "Sede")
    root_siblings = await context_service.get_sibling_units(units["sede"].id)
    assert [s.id for s in root_siblings] == [other_root.id]

    with pytest.raises(UnitNotFoundError):
        await context_service.get_sibling_units(999)


@pytest.mark.asyncio
async def test_breadcrumb(management_service, context_service):
    units = await _seed_university(management_service)
    crumbs = await context_service.get_breadcrumb_for_unit(units["dep"].id)
    assert [(c.name, c.type) for c in crumbs] == [
        ("Universidad Central", "Sede"),
        ("Facultad de Ingeniería", "Facultad"),
        ("Departamento de Sistemas", "Departamento"),
    ]


@pytest.mark.asyncio
async def test_unit_belongs_to_hierarchy(management_service, context_service):
    units = await _seed_university(management_service)
    assert await context_service.unit_belongs_to_hierarchy(units["dep"].id, units["sede"].id)
    assert not await context_service.unit_belongs_to_hierarchy(units["dep"].id, units["cien"].id)


@pytest.mark.asyncio
async def test_context_delegates(management_service, context_service):
    units = await _seed_university(management_service)
    context = await context_service.get_unit_hierarchy_context(units["ing"].id)
    assert context.descendants_count == 1
    stats = await context_service.get_context_statistics()
    assert stats.by_level["level_1"] == 2
