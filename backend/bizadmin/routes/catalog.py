from flask import Blueprint, request
from bizadmin import get_db
from bizadmin.decorators.auth import require_auth
from bizadmin.services import catalog as svc
from bizadmin.utils.listing import ListParams, build_list_payload

cat_bp = Blueprint('catalog', __name__)


def submodule_dict(s):
    return {'id': s.id, 'name': s.name, 'module_id': s.module_id, 'route': s.route, 'status': s.status}


def module_dict(m, with_children=False):
    out = {'id': m.id, 'name': m.name, 'section_id': m.section_id, 'route': m.route,
           'icon_name': m.icon_name, 'status': m.status}
    if with_children:
        out['submodules'] = [submodule_dict(s) for s in m.submodules]
    return out


def section_dict(s, with_children=False):
    out = {'id': s.id, 'name': s.name, 'order': s.order, 'visibility': s.visibility, 'status': s.status}
    if with_children:
        out['modules'] = [module_dict(m, with_children=True) for m in s.modules]
    return out


def action_dict(a):
    return {'id': a.id, 'name': a.name, 'description': a.description, 'status': a.status}


def allowed_dict(link):
    return {'id': link.id, 'action_id': link.action_id, 'action': link.action.name,
            'module_id': link.module_id, 'submodule_id': link.submodule_id, 'composite_key': link.composite_key}


def _listing(rows, total, limit, offset, serialize):
    return build_list_payload([serialize(r) for r in rows], total, limit, offset)


# --- Sections ---

@cat_bp.get('/sections')
@require_auth
def list_sections():
    params = ListParams.from_args(request.args)
    return _listing(*svc.list_sections(get_db(), params, request.args.get('visibility')), section_dict)


@cat_bp.post('/sections')
@require_auth
def create_section():
    data = request.json or {}
    section = svc.create_section(get_db(), data.get('name'), data.get('order', 0), data.get('visibility', True))
    return section_dict(section), 201


@cat_bp.get('/sections/<section_id>')
@require_auth
def get_section(section_id):
    return section_dict(svc.get_section(get_db(), section_id), with_children=True)


@cat_bp.put('/sections/<section_id>')
@require_auth
def update_section(section_id):
    return section_dict(svc.update_section(get_db(), section_id, request.json or {}))


@cat_bp.post('/sections/<section_id>/toggle')
@require_auth
def toggle_section(section_id):
    return section_dict(svc.toggle_section(get_db(), section_id))


@cat_bp.post('/sections/<section_id>/visibility')
@require_auth
def toggle_section_visibility(section_id):
    return section_dict(svc.toggle_section_visibility(get_db(), section_id))


# --- Modules ---

@cat_bp.get('/modules')
@require_auth
def list_modules():
    params = ListParams.from_args(request.args)
    return _listing(*svc.list_modules(get_db(), params, request.args.get('section_id')), module_dict)


@cat_bp.post('/modules')
@require_auth
def create_module():
    data = request.json or {}
    module = svc.create_module(get_db(), data.get('section_id'), data.get('name'),
                               data.get('route'), data.get('icon_name'))
    return module_dict(module), 201


@cat_bp.get('/modules/<module_id>')
@require_auth
def get_module(module_id):
    return module_dict(svc.get_module(get_db(), module_id), with_children=True)


@cat_bp.put('/modules/<module_id>')
@require_auth
def update_module(module_id):
    return module_dict(svc.update_module(get_db(), module_id, request.json or {}))


@cat_bp.post('/modules/<module_id>/toggle')
@require_auth
def toggle_module(module_id):
    return module_dict(svc.toggle_module(get_db(), module_id))


# --- Submodules ---

@cat_bp.get('/submodules')
@require_auth
def list_submodules():
    params = ListParams.from_args(request.args)
    return _listing(*svc.list_submodules(get_db(), params, request.args.get('module_id')), submodule_dict)


@cat_bp.post('/submodules')
@require_auth
def create_submodule():
    data = request.json or {}
    sub = svc.create_submodule(get_db(), data.get('module_id'), data.get('name'), data.get('route'))
    return submodule_dict(sub), 201


@cat_bp.get('/submodules/<submodule_id>')
@require_auth
def get_submodule(submodule_id):
    return submodule_dict(svc.get_submodule(get_db(), submodule_id))


@cat_bp.put('/submodules/<submodule_id>')
@require_auth
def update_submodule(submodule_id):
    return submodule_dict(svc.update_submodule(get_db(), submodule_id, request.json or {}))


@cat_bp.post('/submodules/<submodule_id>/toggle')
@require_auth
def toggle_submodule(submodule_id):
    return submodule_dict(svc.toggle_submodule(get_db(), submodule_id))


# --- Actions ---

@cat_bp.get('/actions')
@require_auth
def list_actions():
    return _listing(*svc.list_actions(get_db(), ListParams.from_args(request.args)), action_dict)


@cat_bp.post('/actions')
@require_auth
def create_action():
    data = request.json or {}
    return action_dict(svc.create_action(get_db(), data.get('name'), data.get('description'))), 201


@cat_bp.get('/actions/<action_id>')
@require_auth
def get_action(action_id):
    return action_dict(svc.get_action(get_db(), action_id))


@cat_bp.put('/actions/<action_id>')
@require_auth
def update_action(action_id):
    return action_dict(svc.update_action(get_db(), action_id, request.json or {}))


@cat_bp.post('/actions/<action_id>/toggle')
@require_auth
def toggle_action(action_id):
    return action_dict(svc.toggle_action(get_db(), action_id))


# --- Allowed actions ---

@cat_bp.get('/allowed-actions')
@require_auth
def list_allowed_actions():
    params = ListParams.from_args(request.args)
    args = request.args
    result = svc.list_allowed_actions(get_db(), params, args.get('action_id'), args.get('module_id'), args.get('submodule_id'))
    return _listing(*result, allowed_dict)


@cat_bp.post('/allowed-actions')
@require_auth
def create_allowed_action():
    data = request.json or {}
    link = svc.create_allowed_action(get_db(), data.get('action_id'), data.get('module_id'), data.get('submodule_id'))
    return allowed_dict(link), 201


@cat_bp.get('/allowed-actions/<allowed_id>')
@require_auth
def get_allowed_action(allowed_id):
    return allowed_dict(svc.get_allowed_action(get_db(), allowed_id))


@cat_bp.delete('/allowed-actions/<allowed_id>')
@require_auth
def delete_allowed_action(allowed_id):
    svc.delete_allowed_action(get_db(), allowed_id)
    return {'status': 'deleted'}
