import pytest
from sqlalchemy.exc import OperationalError
from bizadmin import get_db
from bizadmin.constants.permissions import GLOBAL_TENANT_ID
from bizadmin.errors import (
    ValidationError, ConflictError, IntegrityViolationError, CapacityExceededError, AccessDenied, CascadeFailure,
)
from bizadmin.models.authz import Role, User
from bizadmin.models.tenancy import Subsidiary
from bizadmin.services import tenancy
from bizadmin.services.users import ensure_system_admin
from bizadmin.utils.listing import ListParams
from tests.test_utils_seed import SYSADMIN, caller_for, make_tenant, make_subsidiary, make_role, make_user, tenant_tree


def test_tenant_name_unique_case_and_accent_insensitive():
    make_tenant('Acmé Corp')
    with pytest.raises(ConflictError):
        make_tenant('ACME  CORP')


def test_tenant_mutations_need_system_admin():
    tenant, sub, role, user = tenant_tree()
    with pytest.raises(AccessDenied):
        tenancy.create_tenant(get_db(), caller_for(user), {'name': 'Other'})
    with pytest.raises(AccessDenied):
        tenancy.toggle_tenant(get_db(), caller_for(user), tenant.id)


def test_tenant_limits_validated():
    with pytest.raises(ValidationError):
        make_tenant('Acme', max_users=-1)
    tenant = make_tenant('Acme', max_users='7')
    assert tenant.max_users == 7
    assert tenant.max_roles == 20


def test_global_tenant_is_reserved():
    ensure_system_admin(get_db(), 'pw')
    with pytest.raises(IntegrityViolationError):
        tenancy.toggle_tenant(get_db(), SYSADMIN, GLOBAL_TENANT_ID)
    with pytest.raises(IntegrityViolationError):
        tenancy.update_tenant(get_db(), SYSADMIN, GLOBAL_TENANT_ID, {'name': 'Renamed'})
    rows, total, _, _ = tenancy.list_tenants(get_db(), SYSADMIN, ListParams())
    assert total == 0
    rows, total, _, _ = tenancy.list_tenants(get_db(), SYSADMIN, ListParams(), include_global=True)
    assert [t.id for t in rows] == [GLOBAL_TENANT_ID]


def test_subsidiary_name_unique_per_tenant():
    acme = make_tenant('Acme')
    other = make_tenant('Other')
    make_subsidiary(acme, 'HQ')
    make_subsidiary(other, 'HQ')
    with pytest.raises(ConflictError):
        make_subsidiary(acme, 'hq', subsidiary_type='SUCURSAL')


def test_one_matriz_per_tenant():
    acme = make_tenant('Acme')
    make_subsidiary(acme, 'HQ')
    with pytest.raises(ConflictError):
        make_subsidiary(acme, 'Second HQ', subsidiary_type='MATRIZ')
    branch = make_subsidiary(acme, 'Norte', subsidiary_type='sucursal')
    assert branch.subsidiary_type == 'SUCURSAL'
    with pytest.raises(ConflictError):
        tenancy.update_subsidiary(get_db(), SYSADMIN, branch.id, {'subsidiary_type': 'MATRIZ'})


def test_subsidiary_type_validated():
    acme = make_tenant('Acme')
    with pytest.raises(ValidationError):
        make_subsidiary(acme, 'HQ', subsidiary_type='CASTLE')


def test_subsidiary_capacity():
    acme = make_tenant('Acme', max_subsidiaries=2)
    make_subsidiary(acme, 'HQ')
    make_subsidiary(acme, 'Norte', subsidiary_type='SUCURSAL')
    with pytest.raises(CapacityExceededError) as exc:
        make_subsidiary(acme, 'Sur', subsidiary_type='SUCURSAL')
    assert 'Limit reached: 2' in exc.value.description


def test_tenant_admin_cannot_reach_other_tenant():
    _, _, _, user = tenant_tree()
    other = make_tenant('Other')
    with pytest.raises(AccessDenied):
        tenancy.get_tenant(get_db(), caller_for(user), other.id)
    with pytest.raises(AccessDenied):
        tenancy.create_subsidiary(get_db(), caller_for(user), {
            'tenant_id': other.id, 'name': 'Intruder', 'subsidiary_type': 'SUCURSAL'})


def _statuses(session, tenant_id):
    session.expire_all()
    subs = session.query(Subsidiary).filter_by(tenant_id=tenant_id).all()
    roles = session.query(Role).filter_by(tenant_id=tenant_id).all()
    users = session.query(User).filter_by(tenant_id=tenant_id).all()
    return [x.status for x in subs + roles + users]


def test_tenant_toggle_cascades_both_ways():
    session = get_db()
    tenant, hq, role, _ = tenant_tree()
    branch = make_subsidiary(tenant, 'Norte', subsidiary_type='SUCURSAL')
    branch_role = make_role(branch, 'almacen')
    make_user(branch, branch_role, 'ana')
    outsider = tenant_tree('Other', username='pedro')[3]

    tenancy.toggle_tenant(session, SYSADMIN, tenant.id)
    assert tenant.status is False
    statuses = _statuses(session, tenant.id)
    assert len(statuses) == 6 and not any(statuses)
    session.refresh(outsider)
    assert outsider.status is True

    tenancy.toggle_tenant(session, SYSADMIN, tenant.id)
    assert all(_statuses(session, tenant.id))


def test_subsidiary_toggle_cascades_to_roles_and_users_only_below_it():
    session = get_db()
    tenant, hq, role, user = tenant_tree()
    branch = make_subsidiary(tenant, 'Norte', subsidiary_type='SUCURSAL')
    other_user = make_user(branch, make_role(branch, 'almacen'), 'ana')

    tenancy.toggle_subsidiary(session, SYSADMIN, hq.id)
    for obj in (role, user, other_user):
        session.refresh(obj)
    assert (hq.status, role.status, user.status) == (False, False, False)
    assert other_user.status is True
    session.refresh(tenant)
    assert tenant.status is True


def test_cascade_failure_rolls_back_everything(monkeypatch):
    session = get_db()
    tenant, hq, role, user = tenant_tree()
    real_execute = session.execute

    def flaky_execute(stmt, *args, **kwargs):
        # fail on the last statement of the cascade, after subsidiaries and roles were updated
        if getattr(getattr(stmt, 'table', None), 'name', None) == 'users':
            raise OperationalError('UPDATE users', {}, Exception('disk I/O error'))
        return real_execute(stmt, *args, **kwargs)

    monkeypatch.setattr(session, 'execute', flaky_execute)
    with pytest.raises(CascadeFailure):
        tenancy.toggle_tenant(session, SYSADMIN, tenant.id)
    monkeypatch.undo()
    assert all(_statuses(session, tenant.id))
    session.refresh(tenant)
    assert tenant.status is True


def test_list_subsidiaries_filter_by_type():
    tenant = make_tenant('Acme')
    make_subsidiary(tenant, 'HQ')
    make_subsidiary(tenant, 'Norte', subsidiary_type='SUCURSAL')
    make_subsidiary(tenant, 'Deposito', subsidiary_type='ALMACEN')
    rows, total, _, _ = tenancy.list_subsidiaries(get_db(), SYSADMIN, tenant.id, ListParams(), 'sucursal')
    assert [s.name for s in rows] == ['Norte']
    with pytest.raises(ValidationError):
        tenancy.list_subsidiaries(get_db(), SYSADMIN, tenant.id, ListParams(), 'castle')
