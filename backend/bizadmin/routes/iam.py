from flask import Blueprint, request
from bizadmin import get_db
from bizadmin.decorators.auth import require_auth, current_caller
from bizadmin.services import users as svc
from bizadmin.services import schedules
from bizadmin.services.schedules import schedule_dict, USER_SCHEDULES
from bizadmin.utils.listing import ListParams, build_list_payload

iam_bp = Blueprint('iam', __name__)


def user_dict(u, with_schedules=False):
    out = {
        'id': u.id, 'username': u.username, 'name': u.name, 'lastname': u.lastname, 'email': u.email,
        'role_id': u.role_id, 'subsidiary_id': u.subsidiary_id, 'tenant_id': u.tenant_id, 'status': u.status,
    }
    if with_schedules:
        out['role'] = {'id': u.role.id, 'name': u.role.name, 'template': u.role.template}
        out['schedules'] = [schedule_dict(s) for s in u.schedules]
    return out


@iam_bp.post('/users')
@require_auth
def create_user():
    user = svc.create_user(get_db(), current_caller(), request.json or {})
    return user_dict(user), 201


@iam_bp.get('/users/<user_id>')
@require_auth
def get_user(user_id):
    return user_dict(svc.get_user(get_db(), current_caller(), user_id), with_schedules=True)


@iam_bp.put('/users/<user_id>')
@require_auth
def update_user(user_id):
    return user_dict(svc.update_user(get_db(), current_caller(), user_id, request.json or {}))


@iam_bp.put('/users/<user_id>/password')
@require_auth
def change_password(user_id):
    svc.change_password(get_db(), current_caller(), user_id, request.json or {})
    return {'status': 'updated'}


@iam_bp.post('/users/<user_id>/toggle')
@require_auth
def toggle_user(user_id):
    return user_dict(svc.toggle_user(get_db(), current_caller(), user_id))


@iam_bp.get('/subsidiaries/<subsidiary_id>/users')
@require_auth
def list_users_by_subsidiary(subsidiary_id):
    params = ListParams.from_args(request.args)
    rows, total, limit, offset = svc.list_users_by_subsidiary(get_db(), current_caller(), subsidiary_id, params)
    return build_list_payload([user_dict(u) for u in rows], total, limit, offset)


@iam_bp.get('/tenants/<tenant_id>/users')
@require_auth
def list_users_by_tenant(tenant_id):
    params = ListParams.from_args(request.args)
    rows, total, limit, offset = svc.list_users_by_tenant(get_db(), current_caller(), tenant_id, params)
    return build_list_payload([user_dict(u) for u in rows], total, limit, offset)


# --- User schedules ---

@iam_bp.get('/users/<user_id>/schedules')
@require_auth
def list_user_schedules(user_id):
    params = ListParams.from_args(request.args)
    rows, total, limit, offset = schedules.list_schedules(get_db(), current_caller(), USER_SCHEDULES, user_id, params)
    return build_list_payload([schedule_dict(s) for s in rows], total, limit, offset)


@iam_bp.post('/users/<user_id>/schedules')
@require_auth
def create_user_schedule(user_id):
    schedule = schedules.create_schedule(get_db(), current_caller(), USER_SCHEDULES, user_id, request.json or {})
    return schedule_dict(schedule), 201


@iam_bp.put('/user-schedules/<schedule_id>')
@require_auth
def update_user_schedule(schedule_id):
    schedule = schedules.update_schedule(get_db(), current_caller(), USER_SCHEDULES, schedule_id, request.json or {})
    return schedule_dict(schedule)


@iam_bp.post('/user-schedules/<schedule_id>/toggle')
@require_auth
def toggle_user_schedule(schedule_id):
    return schedule_dict(schedules.toggle_schedule(get_db(), current_caller(), USER_SCHEDULES, schedule_id))


@iam_bp.delete('/user-schedules/<schedule_id>')
@require_auth
def delete_user_schedule(schedule_id):
    schedules.delete_schedule(get_db(), current_caller(), USER_SCHEDULES, schedule_id)
    return {'status': 'deleted'}
