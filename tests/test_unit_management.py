"""Tests for UnitManagementService (write side).

Covers:
- create under a parent: ids, depth, path and emitted events
- rejected creates: invalid type, invalid pairing, duplicate, missing parent, max depth
- update with type re-validation against parent and children
- move: cycles, self-reference, type pairing, depth, affected ids
- delete guard and forced cascade, restore, toggle
- paginated search
"""

import pytest

from uniadmin.db.models.user import UserRow
from uniadmin.domain.unit_type import UnitType
from uniadmin.errors.exceptions import (
    CircularHierarchyError,
    DuplicateUnitError,
    InvalidArgumentError,
    InvalidHierarchyError,
    UnitNotFoundError,
)
from uniadmin.events.hierarchy_events import HierarchyChanged, UnitCreated, UnitMoved
from uniadmin.services.organizational.unit_management import UnitManagementService


async def _seed_faculty(service):
    """Sede "Universidad Central" with one Facultad and one Departamento."""
    sede = await service.create_unit("Universidad Central", "Sede")
    fac = await service.create_unit("Facultad de Ingeniería", "Facultad", sede.id)
    dep = await service.create_unit("Departamento de Sistemas", "Departamento", fac.id)
    return sede, fac, dep


# ── Create ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_and_attach(management_service, recorded_events):
    sede = await management_service.create_unit("Universidad Central", "Sede")
    fac = await management_service.create_unit("Facultad de Ingeniería", "Facultad", sede.id)

    assert (sede.id, fac.id) == (1, 2)
    assert sede.depth_level == 0
    assert fac.depth_level == 1
    assert fac.parent_id == sede.id
    assert fac.parent_name == "Universidad Central"
    assert fac.hierarchy_path == "Universidad Central > Facultad de Ingeniería"
    assert fac.is_academic_unit

    assert recorded_events == [
        UnitCreated(1, "Universidad Central", "Sede", None, occurred_on=recorded_events[0].occurred_on),
        UnitCreated(2, "Facultad de Ingeniería", "Facultad", 1, occurred_on=recorded_events[1].occurred_on),
    ]


@pytest.mark.asyncio
async def test_create_invalidates_tree_cache(management_service, hierarchy_service, tree_cache):
    await management_service.create_unit("Universidad Central", "Sede")
    await hierarchy_service.get_full_hierarchy()
    assert tree_cache.is_populated

    await management_service.create_unit("Sede Norte", "Sede")
    assert not tree_cache.is_populated
    forest = await hierarchy_service.get_full_hierarchy()
    assert [t.unit.name for t in forest] == ["Sede Norte", "Universidad Central"]


@pytest.mark.asyncio
async def test_create_sede_under_sede_rejected(management_service, recorded_events):
    sede = await management_service.create_unit("Universidad Central", "Sede")
    recorded_events.clear()

    with pytest.raises(InvalidHierarchyError) as exc_info:
        await management_service.create_unit("Sede Anexa", "Sede", sede.id)
    assert exc_info.value.details["reason"] == "invalid_parent_type"
    assert recorded_events == []

    page = await management_service.search_units()
    assert page.total == 1


@pytest.mark.asyncio
async def test_create_unknown_type(management_service):
    with pytest.raises(InvalidArgumentError):
        await management_service.create_unit("Oficina", "Oficina")


@pytest.mark.asyncio
async def test_create_duplicate_name_and_type(management_service):
    await management_service.create_unit("Universidad Central", "Sede")
    with pytest.raises(DuplicateUnitError) as exc_info:
        await management_service.create_unit("Universidad Central", "Sede")
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_create_duplicate_ignores_surrounding_whitespace(management_service, repository):
    await management_service.create_unit("Universidad Central", "Sede")
    with pytest.raises(DuplicateUnitError):
        await management_service.create_unit("  Universidad Central ", "Sede")
    assert [u.name for u in await repository.find_by_type(UnitType.SEDE)] == ["Universidad Central"]


@pytest.mark.asyncio
async def test_same_name_different_type_allowed(management_service):
    sede = await management_service.create_unit("Ingeniería", "Sede")
    fac = await management_service.create_unit("Ingeniería", "Facultad", sede.id)
    assert fac.id != sede.id


@pytest.mark.asyncio
async def test_create_missing_parent(management_service):
    with pytest.raises(UnitNotFoundError):
        await management_service.create_unit("Facultad de Ingeniería", "Facultad", 99)


@pytest.mark.asyncio
async def test_create_max_depth(repository, hierarchy_service, dispatcher):
    service = UnitManagementService(repository, hierarchy_service, dispatcher, max_depth=3)
    _, _, dep = await _seed_faculty(service)

    with pytest.raises(InvalidHierarchyError) as exc_info:
        await service.create_unit("Coordinación de Pregrado", "Coordinacion", dep.id)
    assert exc_info.value.details == {"reason": "max_depth_exceeded", "max_depth": 3, "depth": 3}


# ── Update ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_update_name(management_service, recorded_events):
    _, fac, _ = await _seed_faculty(management_service)
    recorded_events.clear()

    updated = await management_service.update_unit(fac.id, "Facultad de Ciencias", "Facultad")
    assert updated.name == "Facultad de Ciencias"
    assert [type(e) for e in recorded_events] == [HierarchyChanged]
    assert recorded_events[0].change_type == "updated"


@pytest.mark.asyncio
async def test_update_type_checked_against_parent(management_service):
    _, fac, _ = await _seed_faculty(management_service)
    updated = await management_service.update_unit(fac.id, "Facultad de Ingeniería", "Instituto")
    assert updated.type == "Instituto"

    with pytest.raises(InvalidHierarchyError):
        await management_service.update_unit(fac.id, "Facultad de Ingeniería", "Escuela")


@pytest.mark.asyncio
async def test_update_type_checked_against_children(management_service):
    direccion = await management_service.create_unit("Dirección de Planificación", "Direccion")
    await management_service.create_unit("División de Presupuesto", "Division", direccion.id)

    with pytest.raises(InvalidHierarchyError) as exc_info:
        await management_service.update_unit(direccion.id, "Dirección de Planificación", "Escuela")
    assert exc_info.value.details["reason"] == "invalid_parent_type"


@pytest.mark.asyncio
async def test_update_duplicate(management_service):
    sede, fac, _ = await _seed_faculty(management_service)
    await management_service.create_unit("Facultad de Ciencias", "Facultad", sede.id)
    with pytest.raises(DuplicateUnitError):
        await management_service.update_unit(fac.id, "Facultad de Ciencias", "Facultad")
    with pytest.raises(DuplicateUnitError):
        await management_service.update_unit(fac.id, " Facultad de Ciencias\t", "Facultad")


# ── Move ──────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_move_into_own_descendant_rejected(management_service, recorded_events):
    sede, fac, dep = await _seed_faculty(management_service)
    recorded_events.clear()

    with pytest.raises(CircularHierarchyError) as exc_info:
        await management_service.move_unit(fac.id, dep.id)
    assert exc_info.value.details["reason"] == "circular_reference"
    assert recorded_events == []

    unchanged = await management_service.get_unit_by_id(fac.id)
    assert unchanged.parent_id == sede.id


@pytest.mark.asyncio
async def test_move_onto_itself_rejected(management_service):
    _, fac, _ = await _seed_faculty(management_service)
    with pytest.raises(CircularHierarchyError) as exc_info:
        await management_service.move_unit(fac.id, fac.id)
    assert exc_info.value.details["reason"] == "self_reference"


@pytest.mark.asyncio
async def test_move_reparents_and_emits(management_service, recorded_events):
    sede, fac, dep = await _seed_faculty(management_service)
    other = await management_service.create_unit("Facultad de Ciencias", "Facultad", sede.id)
    coord = await management_service.create_unit("Coordinación de Pregrado", "Coordinacion", dep.id)
    recorded_events.clear()

    moved = await management_service.move_unit(dep.id, other.id)
    assert moved.parent_id == other.id
    assert moved.hierarchy_path == "Universidad Central > Facultad de Ciencias > Departamento de Sistemas"

    unit_moved, changed = recorded_events
    assert isinstance(unit_moved, UnitMoved)
    assert (unit_moved.old_parent_id, unit_moved.new_parent_id) == (fac.id, other.id)
    assert changed.change_type == "moved"
    assert changed.affected_unit_ids == (dep.id, coord.id)

    old_parent = await management_service.get_unit_by_id(fac.id)
    assert old_parent.children_count == 0


@pytest.mark.asyncio
async def test_move_to_root(management_service):
    _, fac, _ = await _seed_faculty(management_service)
    moved = await management_service.move_unit(fac.id, None)
    assert moved.parent_id is None
    assert moved.depth_level == 0


@pytest.mark.asyncio
async def test_move_type_incompatible(management_service):
    sede, fac, dep = await _seed_faculty(management_service)
    with pytest.raises(InvalidHierarchyError) as exc_info:
        await management_service.move_unit(dep.id, sede.id)
    assert exc_info.value.details["reason"] == "invalid_parent_type"


@pytest.mark.asyncio
async def test_move_counts_subtree_height(repository, hierarchy_service, dispatcher):
    service = UnitManagementService(repository, hierarchy_service, dispatcher, max_depth=3)
    sede = await service.create_unit("Universidad Central", "Sede")
    fac = await service.create_unit("Facultad de Ingeniería", "Facultad", sede.id)
    escuela_root = await service.create_unit("Escuela Libre", "Escuela")
    await service.create_unit("Coordinación Libre", "Coordinacion", escuela_root.id)

    with pytest.raises(InvalidHierarchyError) as exc_info:
        await service.move_unit(escuela_root.id, fac.id)
    assert exc_info.value.details["depth"] == 3


@pytest.mark.asyncio
async def test_move_missing_parent(management_service):
    _, fac, _ = await _seed_faculty(management_service)
    with pytest.raises(UnitNotFoundError):
        await management_service.move_unit(fac.id, 404)


# ── Delete / restore / toggle ─────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_delete_with_children_rejected(management_service):
    _, fac, _ = await _seed_faculty(management_service)
    with pytest.raises(InvalidHierarchyError) as exc_info:
        await management_service.delete_unit(fac.id)
    assert exc_info.value.details == {"reason": "has_children", "children_count": 1}


@pytest.mark.asyncio
async def test_delete_with_assigned_users_rejected(management_service, db_session):
    _, _, dep = await _seed_faculty(management_service)
    db_session.add(UserRow(user_id="usr_1", email="prof@uni.test", display_name="Prof", roles=[],
                           org_unit_id=dep.id))
    await db_session.commit()

    with pytest.raises(InvalidHierarchyError) as exc_info:
        await management_service.delete_unit(dep.id)
    assert exc_info.value.details["reason"] == "has_dependents"


@pytest.mark.asyncio
async def test_delete_leaf(management_service, recorded_events):
    _, fac, dep = await _seed_faculty(management_service)
    recorded_events.clear()

    assert await management_service.delete_unit(dep.id) == [dep.id]
    with pytest.raises(UnitNotFoundError):
        await management_service.get_unit_by_id(dep.id)
    assert (await management_service.get_unit_by_id(fac.id)).children_count == 0
    assert [(e.change_type, e.affected_unit_id) for e in recorded_events] == [("deleted", dep.id)]


@pytest.mark.asyncio
async def test_force_delete_cascades(management_service, repository, recorded_events):
    sede, fac, dep = await _seed_faculty(management_service)
    escuela = await management_service.create_unit("Escuela de Civil", "Escuela", fac.id)
    recorded_events.clear()

    deleted = await management_service.delete_unit(fac.id, force=True)
    assert deleted == [dep.id, escuela.id, fac.id]
    assert [e.affected_unit_id for e in recorded_events] == deleted

    for unit_id in deleted:
        unit = await repository.find_by_id_including_deleted(unit_id)
        assert unit.soft_deleted
        assert not unit.is_active

    page = await management_service.search_units()
    assert [u.id for u in page.items] == [sede.id]


@pytest.mark.asyncio
async def test_force_delete_root_scenario(management_service):
    sede = await management_service.create_unit("Universidad Central", "Sede")
    fac = await management_service.create_unit("Facultad de Ingeniería", "Facultad", sede.id)

    with pytest.raises(InvalidHierarchyError):
        await management_service.delete_unit(sede.id)
    assert await management_service.delete_unit(sede.id, force=True) == [fac.id, sede.id]


@pytest.mark.asyncio
async def test_restore(management_service, recorded_events):
    _, _, dep = await _seed_faculty(management_service)
    await management_service.delete_unit(dep.id)
    recorded_events.clear()

    restored = await management_service.restore_unit(dep.id)
    assert restored.is_active
    assert restored.hierarchy_path.endswith("> Departamento de Sistemas")
    assert recorded_events[0].change_type == "restored"

    # Restoring a live unit is a no-op.
    again = await management_service.restore_unit(dep.id)
    assert again.id == dep.id
    assert len(recorded_events) == 1


@pytest.mark.asyncio
async def test_restore_under_deleted_parent_rejected(management_service):
    _, fac, dep = await _seed_faculty(management_service)
    await management_service.delete_unit(fac.id, force=True)
    with pytest.raises(InvalidHierarchyError) as exc_info:
        await management_service.restore_unit(dep.id)
    assert exc_info.value.details["reason"] == "invalid_structure"


@pytest.mark.asyncio
async def test_restore_blocked_by_duplicate(management_service):
    sede = await management_service.create_unit("Universidad Central", "Sede")
    await management_service.delete_unit(sede.id)
    await management_service.create_unit("Universidad Central", "Sede")
    with pytest.raises(DuplicateUnitError):
        await management_service.restore_unit(sede.id)


@pytest.mark.asyncio
async def test_restore_unknown(management_service):
    with pytest.raises(UnitNotFoundError):
        await management_service.restore_unit(12)


@pytest.mark.asyncio
async def test_toggle_status(management_service, recorded_events):
    sede = await management_service.create_unit("Universidad Central", "Sede")
    recorded_events.clear()

    toggled = await management_service.toggle_unit_status(sede.id)
    assert not toggled.is_active
    toggled = await management_service.toggle_unit_status(sede.id)
    assert toggled.is_active
    assert recorded_events == []


# ── Search ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_search_units_paginates(management_service):
    sede = await management_service.create_unit("Universidad Central", "Sede")
    for name in ("Facultad de Artes", "Facultad de Ciencias", "Facultad de Derecho"):
        await management_service.create_unit(name, "Facultad", sede.id)

    page = await management_service.search_units(page=2, limit=2, unit_type="Facultad")
    assert page.total == 3
    assert page.pages == 2
    assert [u.name for u in page.items] == ["Facultad de Derecho"]

    found = await management_service.search_units(search="ciencias")
    assert [u.name for u in found.items] == ["Facultad de Ciencias"]


@pytest.mark.asyncio
async def test_search_units_clamps_limit(management_service):
    page = await management_service.search_units(page=0, limit=10_000)
    assert page.page == 1
    assert page.limit == 100
    assert page.pages == 0


# ── Properties ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_move_root_under_grandchild_leaves_tree_unchanged(management_service, hierarchy_service):
    sede, _, dep = await _seed_faculty(management_service)
    before = await hierarchy_service.get_hierarchy_tree()

    with pytest.raises(CircularHierarchyError):
        await management_service.move_unit(sede.id, dep.id)

    hierarchy_service.flush_cache()
    assert await hierarchy_service.get_hierarchy_tree() == before


@pytest.mark.asyncio
@pytest.mark.parametrize("parent_type", UnitType.valid_types())
@pytest.mark.parametrize("child_type", UnitType.valid_types())
async def test_create_follows_pairing_table(management_service, parent_type, child_type):
    parent = await management_service.create_unit("Unidad Padre", parent_type)
    allowed = UnitType(parent_type).can_parent(UnitType(child_type))

    if allowed:
        child = await management_service.create_unit("Unidad Hija", child_type, parent.id)
        assert child.parent_id == parent.id
    else:
        with pytest.raises(InvalidHierarchyError):
            await management_service.create_unit("Unidad Hija", child_type, parent.id)


@pytest.mark.asyncio
@pytest.mark.parametrize("parent_type", UnitType.valid_types())
@pytest.mark.parametrize("child_type", UnitType.valid_types())
async def test_move_follows_pairing_table(management_service, hierarchy_service, parent_type, child_type):
    parent = await management_service.create_unit("Unidad Padre", parent_type)
    child = await management_service.create_unit("Unidad Hija", child_type)
    allowed = UnitType(parent_type).can_parent(UnitType(child_type))

    if allowed:
        moved = await management_service.move_unit(child.id, parent.id)
        assert moved.parent_id == parent.id
    else:
        with pytest.raises(InvalidHierarchyError):
            await management_service.move_unit(child.id, parent.id)
        assert (await management_service.get_unit_by_id(child.id)).parent_id is None
        assert await hierarchy_service.get_descendants_for_unit(parent.id) == []
