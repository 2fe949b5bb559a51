from flask import Blueprint, request
from bizadmin import get_db
from bizadmin.decorators.auth import require_auth, require_system_admin, current_caller
from bizadmin.services import tenancy as svc
from bizadmin.services import schedules
from bizadmin.services.schedules import schedule_dict, SUBSIDIARY_SCHEDULES
from bizadmin.utils.listing import ListParams, build_list_payload

tenancy_bp = Blueprint('tenancy', __name__)


def tenant_dict(t, with_children=False):
    out = {
        'id': t.id, 'name': t.name, 'description': t.description, 'status': t.status,
        'limits': {'max_subsidiaries': t.max_subsidiaries, 'max_users': t.max_users, 'max_roles': t.max_roles},
    }
    if with_children:
        out['subsidiaries'] = [subsidiary_dict(s) for s in t.subsidiaries]
    return out


def subsidiary_dict(s, with_schedules=False):
    out = {
        'id': s.id, 'tenant_id': s.tenant_id, 'name': s.name, 'subsidiary_type': s.subsidiary_type,
        'allow_negative_stock': s.allow_negative_stock, 'address': s.address, 'city': s.city,
        'country': s.country, 'status': s.status,
    }
    if with_schedules:
        out['schedules'] = [schedule_dict(x) for x in s.schedules]
    return out


# --- Tenants ---

@tenancy_bp.get('/tenants')
@require_system_admin
def list_tenants():
    params = ListParams.from_args(request.args)
    include_global = request.args.get('include_global', 'false').lower() == 'true'
    rows, total, limit, offset = svc.list_tenants(get_db(), current_caller(), params, include_global)
    return build_list_payload([tenant_dict(t) for t in rows], total, limit, offset)


@tenancy_bp.post('/tenants')
@require_system_admin
def create_tenant():
    tenant = svc.create_tenant(get_db(), current_caller(), request.json or {})
    return tenant_dict(tenant), 201


@tenancy_bp.get('/tenants/<tenant_id>')
@require_auth
def get_tenant(tenant_id):
    return tenant_dict(svc.get_tenant(get_db(), current_caller(), tenant_id), with_children=True)


@tenancy_bp.put('/tenants/<tenant_id>')
@require_system_admin
def update_tenant(tenant_id):
    return tenant_dict(svc.update_tenant(get_db(), current_caller(), tenant_id, request.json or {}))


@tenancy_bp.post('/tenants/<tenant_id>/toggle')
@require_system_admin
def toggle_tenant(tenant_id):
    return tenant_dict(svc.toggle_tenant(get_db(), current_caller(), tenant_id))


@tenancy_bp.get('/tenants/<tenant_id>/subsidiaries')
@require_auth
def list_subsidiaries(tenant_id):
    params = ListParams.from_args(request.args)
    rows, total, limit, offset = svc.list_subsidiaries(
        get_db(), current_caller(), tenant_id, params, request.args.get('subsidiary_type'))
    return build_list_payload([subsidiary_dict(s) for s in rows], total, limit, offset)


# --- Subsidiaries ---

@tenancy_bp.post('/subsidiaries')
@require_auth
def create_subsidiary():
    sub = svc.create_subsidiary(get_db(), current_caller(), request.json or {})
    return subsidiary_dict(sub), 201


@tenancy_bp.get('/subsidiaries/<subsidiary_id>')
@require_auth
def get_subsidiary(subsidiary_id):
    return subsidiary_dict(svc.get_subsidiary(get_db(), current_caller(), subsidiary_id), with_schedules=True)


@tenancy_bp.put('/subsidiaries/<subsidiary_id>')
@require_auth
def update_subsidiary(subsidiary_id):
    return subsidiary_dict(svc.update_subsidiary(get_db(), current_caller(), subsidiary_id, request.json or {}))


@tenancy_bp.post('/subsidiaries/<subsidiary_id>/toggle')
@require_auth
def toggle_subsidiary(subsidiary_id):
    return subsidiary_dict(svc.toggle_subsidiary(get_db(), current_caller(), subsidiary_id))


# --- Subsidiary schedules ---

@tenancy_bp.get('/subsidiaries/<subsidiary_id>/schedules')
@require_auth
def list_subsidiary_schedules(subsidiary_id):
    params = ListParams.from_args(request.args)
    rows, total, limit, offset = schedules.list_schedules(
        get_db(), current_caller(), SUBSIDIARY_SCHEDULES, subsidiary_id, params)
    return build_list_payload([schedule_dict(s) for s in rows], total, limit, offset)


@tenancy_bp.post('/subsidiaries/<subsidiary_id>/schedules')
@require_auth
def create_subsidiary_schedule(subsidiary_id):
    schedule = schedules.create_schedule(get_db(), current_caller(), SUBSIDIARY_SCHEDULES, subsidiary_id, request.json or {})
    return schedule_dict(schedule), 201


@tenancy_bp.put('/subsidiary-schedules/<schedule_id>')
@require_auth
def update_subsidiary_schedule(schedule_id):
    schedule = schedules.update_schedule(get_db(), current_caller(), SUBSIDIARY_SCHEDULES, schedule_id, request.json or {})
    return schedule_dict(schedule)


@tenancy_bp.post('/subsidiary-schedules/<schedule_id>/toggle')
@require_auth
def toggle_subsidiary_schedule(schedule_id):
    return schedule_dict(schedules.toggle_schedule(get_db(), current_caller(), SUBSIDIARY_SCHEDULES, schedule_id))


@tenancy_bp.delete('/subsidiary-schedules/<schedule_id>')
@require_auth
def delete_subsidiary_schedule(schedule_id):
    schedules.delete_schedule(get_db(), current_caller(), SUBSIDIARY_SCHEDULES, schedule_id)
    return {'status': 'deleted'}
