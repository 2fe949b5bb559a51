from flask import Blueprint, request
from bizadmin import get_db
from bizadmin.decorators.auth import require_auth, current_caller
from bizadmin.services import roles as svc
from bizadmin.services import permissions
from bizadmin.utils.listing import ListParams, build_list_payload

rbac_bp = Blueprint('rbac', __name__)


def role_dict(r):
    return {
        'id': r.id, 'name': r.name, 'description': r.description, 'template': r.template,
        'tenant_id': r.tenant_id, 'subsidiary_id': r.subsidiary_id, 'status': r.status,
    }


def role_permission_dict(rp):
    return {
        'id': rp.id, 'role_id': rp.role_id, 'action_id': rp.action_id, 'level': rp.level,
        'section_id': rp.section_id, 'module_id': rp.module_id, 'submodule_id': rp.submodule_id,
    }


@rbac_bp.post('/roles')
@require_auth
def create_role():
    role = svc.create_role(get_db(), current_caller(), request.json or {})
    return role_dict(role), 201


@rbac_bp.get('/roles/<role_id>')
@require_auth
def get_role(role_id):
    return role_dict(svc.get_role(get_db(), current_caller(), role_id))


@rbac_bp.put('/roles/<role_id>')
@require_auth
def update_role(role_id):
    return role_dict(svc.update_role(get_db(), current_caller(), role_id, request.json or {}))


@rbac_bp.post('/roles/<role_id>/toggle')
@require_auth
def toggle_role(role_id):
    return role_dict(svc.toggle_role(get_db(), current_caller(), role_id))


@rbac_bp.get('/subsidiaries/<subsidiary_id>/roles')
@require_auth
def list_roles_by_subsidiary(subsidiary_id):
    params = ListParams.from_args(request.args)
    rows, total, limit, offset = svc.list_roles_by_subsidiary(get_db(), current_caller(), subsidiary_id, params)
    return build_list_payload([role_dict(r) for r in rows], total, limit, offset)


@rbac_bp.get('/tenants/<tenant_id>/roles')
@require_auth
def list_roles_by_tenant(tenant_id):
    params = ListParams.from_args(request.args)
    rows, total, limit, offset = svc.list_roles_by_tenant(get_db(), current_caller(), tenant_id, params)
    return build_list_payload([role_dict(r) for r in rows], total, limit, offset)


# --- Permissions ---

@rbac_bp.get('/roles/<role_id>/permissions')
@require_auth
def list_role_permissions(role_id):
    return {'data': permissions.permissions_by_role(get_db(), current_caller(), role_id)}


@rbac_bp.post('/roles/<role_id>/permissions')
@require_auth
def create_role_permission(role_id):
    rp = permissions.create_role_permission(get_db(), current_caller(), role_id, request.json or {})
    return role_permission_dict(rp), 201


@rbac_bp.post('/roles/<role_id>/permissions/seed')
@require_auth
def seed_role_permissions(role_id):
    # loading the role enforces tenant access
    svc.get_role(get_db(), current_caller(), role_id)
    return permissions.seed_role_permissions(get_db(), role_id)


@rbac_bp.delete('/role-permissions/<permission_id>')
@require_auth
def delete_role_permission(permission_id):
    permissions.delete_role_permission(get_db(), current_caller(), permission_id)
    return {'status': 'deleted'}


@rbac_bp.get('/roles/<role_id>/sidebar')
@require_auth
def sidebar(role_id):
    return {'data': permissions.sidebar_by_role(get_db(), current_caller(), role_id)}


@rbac_bp.get('/roles/<role_id>/visibility-tree')
@require_auth
def visibility_tree(role_id):
    return {'data': permissions.visibility_tree(get_db(), current_caller(), role_id)}
