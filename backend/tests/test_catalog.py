import pytest
from bizadmin import get_db
from bizadmin.errors import ValidationError, ConflictError, IntegrityViolationError, NotFoundError
from bizadmin.models.catalog import AllowedAction
from bizadmin.services import catalog
from bizadmin.utils.listing import ListParams
from tests.test_utils_seed import small_catalog


def test_section_name_unique_after_normalizing():
    session = get_db()
    catalog.create_section(session, 'Almacén')
    with pytest.raises(ConflictError):
        catalog.create_section(session, 'ALMACEN')
    with pytest.raises(ConflictError):
        catalog.create_section(session, '  almacen ')


def test_section_order_validation():
    with pytest.raises(ValidationError):
        catalog.create_section(get_db(), 'Ventas', order=-1)
    with pytest.raises(ValidationError):
        catalog.create_section(get_db(), 'Ventas', order='first')


def test_module_name_unique_per_section_only():
    session = get_db()
    ventas = catalog.create_section(session, 'Ventas')
    reportes = catalog.create_section(session, 'Reportes')
    catalog.create_module(session, ventas.id, 'Ventas')
    # same name under another section is fine
    catalog.create_module(session, reportes.id, 'Ventas')
    with pytest.raises(ConflictError):
        catalog.create_module(session, ventas.id, 'ventas')


def test_module_move_to_section_with_same_name_conflicts():
    session = get_db()
    a = catalog.create_section(session, 'Ventas')
    b = catalog.create_section(session, 'Compras')
    catalog.create_module(session, a.id, 'Caja')
    other = catalog.create_module(session, b.id, 'Caja')
    with pytest.raises(ConflictError):
        catalog.update_module(session, other.id, {'section_id': a.id})


def test_module_requires_existing_section():
    with pytest.raises(NotFoundError):
        catalog.create_module(get_db(), 'missing', 'Caja')


def test_submodule_unique_per_module():
    session = get_db()
    section = catalog.create_section(session, 'Reportes')
    module = catalog.create_module(session, section.id, 'Ventas')
    catalog.create_submodule(session, module.id, 'Cierres de Caja')
    with pytest.raises(ConflictError):
        catalog.create_submodule(session, module.id, 'CIERRES DE CAJA')


def test_action_unique():
    session = get_db()
    catalog.create_action(session, 'Ver')
    with pytest.raises(ConflictError):
        catalog.create_action(session, 'ver')


def test_update_section_keeps_own_name():
    session = get_db()
    section = catalog.create_section(session, 'Ventas', order=1)
    updated = catalog.update_section(session, section.id, {'name': 'VENTAS', 'order': 4})
    assert updated.name == 'VENTAS'
    assert updated.order == 4


def test_toggle_section_does_not_touch_modules():
    session = get_db()
    section = catalog.create_section(session, 'Ventas')
    module = catalog.create_module(session, section.id, 'Caja')
    catalog.toggle_section(session, section.id)
    session.refresh(module)
    assert section.status is False
    assert module.status is True
    catalog.toggle_section_visibility(session, section.id)
    assert section.visibility is False


@pytest.mark.parametrize('module,submodule', [(True, True), (False, False)])
def test_allowed_action_exactly_one_target(module, submodule):
    cat = small_catalog()
    with pytest.raises(ValidationError):
        catalog.create_allowed_action(
            get_db(), cat['exportar'].id,
            module_id=cat['caja'].id if module else None,
            submodule_id=cat['cierres'].id if submodule else None,
        )


def test_allowed_action_duplicate_conflicts():
    cat = small_catalog()
    with pytest.raises(ConflictError):
        catalog.create_allowed_action(get_db(), cat['ver'].id, module_id=cat['caja'].id)


def test_allowed_action_not_on_module_with_submodules():
    cat = small_catalog()
    with pytest.raises(IntegrityViolationError):
        catalog.create_allowed_action(get_db(), cat['crear'].id, module_id=cat['rep_ventas'].id)


def test_allowed_action_delete_unlinks_only():
    cat = small_catalog()
    session = get_db()
    link = session.query(AllowedAction).filter_by(module_id=cat['caja'].id, action_id=cat['crear'].id).one()
    catalog.delete_allowed_action(session, link.id)
    assert session.get(AllowedAction, link.id) is None
    assert catalog.get_action(session, cat['crear'].id).status is True
    assert catalog.get_module(session, cat['caja'].id) is not None


def test_list_sections_search_sort_and_visibility():
    small_catalog()
    session = get_db()
    rows, total, limit, offset = catalog.list_sections(session, ListParams(sort='-order'))
    assert [s.name for s in rows] == ['Administracion', 'Reportes', 'Almacen', 'Ventas']
    assert total == 4
    rows, total, _, _ = catalog.list_sections(session, ListParams(search='almacén'))
    assert [s.name for s in rows] == ['Almacen']
    rows, total, _, _ = catalog.list_sections(session, ListParams(), visibility='false')
    assert [s.name for s in rows] == ['Administracion']
    with pytest.raises(ValidationError):
        catalog.list_sections(session, ListParams(), visibility='maybe')


def test_list_allowed_actions_filters_by_submodule():
    cat = small_catalog()
    rows, total, _, _ = catalog.list_allowed_actions(get_db(), ListParams(), submodule_id=cat['cierres'].id)
    assert total == 2
    assert {r.action_id for r in rows} == {cat['ver'].id, cat['exportar'].id}


def test_submodule_not_added_under_module_level_whitelist():
    cat = small_catalog()
    session = get_db()
    with pytest.raises(IntegrityViolationError):
        catalog.create_submodule(session, cat['caja'].id, 'Apertura')
    assert session.query(AllowedAction).filter_by(module_id=cat['caja'].id).count() == 3
    assert cat['caja'].submodules == []
    # moving an existing submodule under that module is refused the same way
    with pytest.raises(IntegrityViolationError):
        catalog.update_submodule(session, cat['cierres'].id, {'module_id': cat['caja'].id})
    session.refresh(cat['cierres'])
    assert cat['cierres'].module_id == cat['rep_ventas'].id


def test_submodule_allowed_once_module_links_removed():
    cat = small_catalog()
    session = get_db()
    for link in session.query(AllowedAction).filter_by(module_id=cat['productos'].id).all():
        catalog.delete_allowed_action(session, link.id)
    sub = catalog.create_submodule(session, cat['productos'].id, 'Kardex')
    assert sub.module_id == cat['productos'].id


def test_unique_race_past_precheck_is_conflict(monkeypatch):
    session = get_db()
    first = catalog.create_section(session, 'Ventas')
    # a second writer that passed its pre-check before the first commit landed
    monkeypatch.setattr(catalog, 'name_taken', lambda *args, **kwargs: False)
    with pytest.raises(ConflictError):
        catalog.create_section(session, 'VENTAS')
    monkeypatch.undo()
    rows, total, _, _ = catalog.list_sections(session, ListParams())
    assert [s.id for s in rows] == [first.id]


def test_search_treats_like_wildcards_literally():
    small_catalog()
    session = get_db()
    for term in ('%', '_', 'V%s'):
        rows, total, _, _ = catalog.list_sections(session, ListParams(search=term))
        assert total == 0, term
