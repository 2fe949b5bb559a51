from bizadmin import get_db
from bizadmin.services.users import ensure_system_admin
from tests.test_utils_seed import jwt_headers, login, small_catalog, tenant_tree


def _sysadmin_headers(client):
    ensure_system_admin(get_db(), 'admin-pw')
    return login(client, 'system.admin', 'admin-pw')


def test_healthz(client):
    assert client.get('/healthz').get_json() == {'status': 'ok'}


def test_unknown_path_returns_error_json(client):
    resp = client.get('/non-existent-path')
    assert resp.status_code == 404
    body = resp.get_json()
    assert body['error']['status'] == 404
    assert 'detail' in body['error']


def test_login_and_me(client):
    tenant, sub, role, user = tenant_tree()
    headers = login(client, 'LUIS', 'pw')
    me = client.get('/auth/me', headers=headers)
    assert me.status_code == 200
    assert me.get_json() == {
        'id': user.id, 'username': 'luis', 'role_id': role.id, 'template': 'CUSTOM',
        'tenant_id': tenant.id, 'subsidiary_id': sub.id,
    }


def test_login_bad_credentials(client):
    tenant_tree()
    resp = client.post('/auth/login', json={'username': 'luis', 'password': 'nope'})
    assert resp.status_code == 401
    assert resp.get_json()['error']['title'] == 'Unauthorized'


def test_requires_token(client):
    assert client.get('/auth/me').status_code == 401


def test_validation_error_carries_fields(client):
    headers = _sysadmin_headers(client)
    resp = client.post('/tenancy/tenants', json={}, headers=headers)
    assert resp.status_code == 400
    err = resp.get_json()['error']
    assert err['title'] == 'Validation Error'
    assert err['fields'] == {'name': 'required'}


def test_conflict_on_duplicate_tenant(client):
    headers = _sysadmin_headers(client)
    assert client.post('/tenancy/tenants', json={'name': 'Acme'}, headers=headers).status_code == 201
    resp = client.post('/tenancy/tenants', json={'name': 'ACMÉ'}, headers=headers)
    assert resp.status_code == 409


def test_tenant_endpoints_gated_for_tenant_users(client, app_instance):
    tenant, sub, role, user = tenant_tree()
    headers = jwt_headers(app_instance, user)
    assert client.post('/tenancy/tenants', json={'name': 'Other'}, headers=headers).status_code == 403
    assert client.get('/tenancy/tenants', headers=headers).status_code == 403
    own = client.get(f'/tenancy/tenants/{tenant.id}', headers=headers)
    assert own.status_code == 200
    assert [s['name'] for s in own.get_json()['subsidiaries']] == ['HQ']


def test_capacity_error_shape(client):
    headers = _sysadmin_headers(client)
    tenant = client.post('/tenancy/tenants', json={'name': 'Acme', 'max_subsidiaries': 0}, headers=headers).get_json()
    resp = client.post('/tenancy/subsidiaries', json={
        'tenant_id': tenant['id'], 'name': 'HQ', 'subsidiary_type': 'MATRIZ'}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['title'] == 'Capacity Exceeded'


def test_catalog_listing_pagination(client, app_instance):
    small_catalog()
    _, _, _, user = tenant_tree()
    headers = jwt_headers(app_instance, user)
    resp = client.get('/catalog/sections?limit=2&offset=1&sort=order', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert [s['name'] for s in body['data']] == ['Almacen', 'Reportes']
    assert body['pagination'] == {'total': 4, 'limit': 2, 'offset': 1, 'returned': 2}
    assert client.get('/catalog/sections?sort=color', headers=headers).status_code == 400
    assert client.get('/catalog/sections?limit=abc', headers=headers).status_code == 400


def test_end_to_end_section_grant_and_subsidiary_toggle(client):
    headers = _sysadmin_headers(client)
    ver = client.post('/catalog/actions', json={'name': 'ver'}, headers=headers).get_json()
    ventas = client.post('/catalog/sections', json={'name': 'Ventas', 'order': 1}, headers=headers).get_json()
    compras = client.post('/catalog/sections', json={'name': 'Compras', 'order': 2}, headers=headers).get_json()
    client.post('/catalog/modules', json={'section_id': compras['id'], 'name': 'Proveedores'}, headers=headers)

    acme = client.post('/tenancy/tenants', json={'name': 'Acme'}, headers=headers).get_json()
    hq = client.post('/tenancy/subsidiaries', json={
        'tenant_id': acme['id'], 'name': 'HQ', 'subsidiary_type': 'MATRIZ'}, headers=headers).get_json()
    vendedor = client.post('/rbac/roles', json={
        'tenant_id': acme['id'], 'subsidiary_id': hq['id'], 'name': 'vendedor'}, headers=headers).get_json()
    grant = client.post(f"/rbac/roles/{vendedor['id']}/permissions", json={
        'action_id': ver['id'], 'section_id': ventas['id']}, headers=headers)
    assert grant.status_code == 201
    luis = client.post('/iam/users', json={
        'username': 'luis', 'password': 'pw', 'role_id': vendedor['id'], 'subsidiary_id': hq['id']},
        headers=headers).get_json()

    sidebar = client.get(f"/rbac/roles/{vendedor['id']}/sidebar", headers=headers).get_json()['data']
    assert [(s['name'], s['modules']) for s in sidebar] == [('Ventas', [])]

    assert client.post(f"/tenancy/subsidiaries/{hq['id']}/toggle", headers=headers).status_code == 200
    assert client.get(f"/iam/users/{luis['id']}", headers=headers).get_json()['status'] is False
    client.post(f"/tenancy/subsidiaries/{hq['id']}/toggle", headers=headers)
    assert client.get(f"/iam/users/{luis['id']}", headers=headers).get_json()['status'] is True
