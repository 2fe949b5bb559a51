"""Test seeding utilities to reduce duplication.

Builders go through the service layer so tests exercise the same normalization and
scoping rules as the HTTP routes.
"""
from typing import Dict, Optional
from flask_jwt_extended import create_access_token
from bizadmin import get_db
from bizadmin.constants.permissions import RoleTemplate
from bizadmin.models.authz import Role, User
from bizadmin.models.tenancy import Tenant, Subsidiary
from bizadmin.services import catalog, tenancy, roles, users
from bizadmin.services.policy import CallerContext, token_claims

SYSADMIN = CallerContext(user_id='sysadmin', username='system.admin', role_id='sysadmin', tenant_id=None,
                         template=RoleTemplate.SYSTEM_ADMIN.value)


def caller_for(user: User) -> CallerContext:
    return CallerContext.from_claims(user.id, token_claims(user))


def jwt_headers(app, user: User):
    with app.app_context():
        token = create_access_token(identity=str(user.id), additional_claims=token_claims(user))
    return {'Authorization': f'Bearer {token}'}


def login(client, username: str, password: str, subsidiary_id: Optional[str] = None):
    body = {'username': username, 'password': password}
    if subsidiary_id:
        body['subsidiary_id'] = subsidiary_id
    resp = client.post('/auth/login', json=body)
    assert resp.status_code == 200, resp.get_json()
    return {'Authorization': f"Bearer {resp.get_json()['access_token']}"}


def make_tenant(name: str = 'Acme', **extra) -> Tenant:
    return tenancy.create_tenant(get_db(), SYSADMIN, {'name': name, **extra})


def make_subsidiary(tenant: Tenant, name: str = 'HQ', subsidiary_type: str = 'MATRIZ', **extra) -> Subsidiary:
    return tenancy.create_subsidiary(get_db(), SYSADMIN, {
        'tenant_id': tenant.id, 'name': name, 'subsidiary_type': subsidiary_type, **extra,
    })


def make_role(sub: Subsidiary, name: str = 'vendedor', template: str = 'CUSTOM') -> Role:
    return roles.create_role(get_db(), SYSADMIN, {
        'tenant_id': sub.tenant_id, 'subsidiary_id': sub.id, 'name': name, 'template': template,
    })


def make_user(sub: Subsidiary, role: Role, username: str = 'luis', password: str = 'pw') -> User:
    return users.create_user(get_db(), SYSADMIN, {
        'subsidiary_id': sub.id, 'role_id': role.id, 'username': username, 'password': password,
    })


def tenant_tree(tenant_name: str = 'Acme', sub_name: str = 'HQ', role_name: str = 'vendedor',
                username: str = 'luis', template: str = 'CUSTOM'):
    """Tenant -> MATRIZ subsidiary -> role -> user, the chain most tests start from."""
    tenant = make_tenant(tenant_name)
    sub = make_subsidiary(tenant, sub_name)
    role = make_role(sub, role_name, template)
    user = make_user(sub, role, username)
    return tenant, sub, role, user


def small_catalog() -> Dict[str, object]:
    """Two visible sections (one leaf module each side), one module with submodules,
    and one hidden admin section.

    Ventas/Caja and Almacen/Productos are leaf modules allowing ver, crear, editar.
    Reportes/Ventas has submodules Cierres and Actividad allowing ver, exportar.
    """
    session = get_db()
    out: Dict[str, object] = {}
    for name in ('ver', 'crear', 'editar', 'exportar'):
        out[name] = catalog.create_action(session, name)
    out['ventas'] = catalog.create_section(session, 'Ventas', order=1)
    out['almacen'] = catalog.create_section(session, 'Almacen', order=2)
    out['reportes'] = catalog.create_section(session, 'Reportes', order=3)
    out['admin'] = catalog.create_section(session, 'Administracion', order=99, visibility=False)
    out['caja'] = catalog.create_module(session, out['ventas'].id, 'Caja', route='/cash')
    out['productos'] = catalog.create_module(session, out['almacen'].id, 'Productos', route='/product')
    out['rep_ventas'] = catalog.create_module(session, out['reportes'].id, 'Ventas')
    out['cierres'] = catalog.create_submodule(session, out['rep_ventas'].id, 'Cierres', route='/report/cash')
    out['actividad'] = catalog.create_submodule(session, out['rep_ventas'].id, 'Actividad', route='/report/activity')
    out['tenants_mod'] = catalog.create_module(session, out['admin'].id, 'Tenant', route='/admin/tenant')
    for module in ('caja', 'productos', 'tenants_mod'):
        for action in ('ver', 'crear', 'editar'):
            catalog.create_allowed_action(session, out[action].id, module_id=out[module].id)
    for sub in ('cierres', 'actividad'):
        for action in ('ver', 'exportar'):
            catalog.create_allowed_action(session, out[action].id, submodule_id=out[sub].id)
    return out


__all__ = [
    'SYSADMIN', 'caller_for', 'jwt_headers', 'login', 'make_tenant', 'make_subsidiary', 'make_role',
    'make_user', 'tenant_tree', 'small_catalog',
]
