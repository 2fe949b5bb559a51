"""Section / Module / Submodule / PermissionAction catalog and the AllowedAction whitelist.

Catalog toggles flip a flag and never cascade to roles.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional
from bizadmin.errors import ValidationError, ConflictError, IntegrityViolationError
from bizadmin.models.authz import RolePermission, permission_key
from bizadmin.models.catalog import Section, Module, Submodule, PermissionAction, AllowedAction, allowed_action_key
from bizadmin.services.normalization import NameKind, require_name
from bizadmin.utils.filters import apply_search, apply_status, apply_filters
from bizadmin.utils.listing import ListParams, apply_pagination
from bizadmin.utils.persistence import commit_unique, name_taken, get_or_404
from bizadmin.utils.sorting import apply_multi_sort

logger = logging.getLogger(__name__)


def _coerce_order(raw) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError('order must be int', fields={'order': 'int'})
    if value < 0:
        raise ValidationError('order must be >= 0', fields={'order': '>= 0'})
    return value


def _list(session, model, params: ListParams, sort_fields: Dict[str, Any], extra_specs=None, extra_params=None):
    q = session.query(model)
    q = apply_search(q, params.search, model.name, model.name_key, NameKind.CATALOG)
    q = apply_status(q, model.status, params.status)
    if extra_specs:
        q = apply_filters(q, extra_specs, extra_params or {})
    q = apply_multi_sort(q, params.sort, sort_fields, model.id)
    return apply_pagination(q, params)


def _toggle(session, obj, attr: str = 'status'):
    setattr(obj, attr, not getattr(obj, attr))
    session.commit()
    return obj


def _reparent_grants(session, column, node_id: str, **ancestors) -> int:
    """Point grants on a moved node at its new ancestors and re-key them.

    Keys embed the node id, so a re-keyed grant cannot collide with another one.
    """
    grants = session.query(RolePermission).filter(column == node_id).all()
    for rp in grants:
        for attr, value in ancestors.items():
            setattr(rp, attr, value)
        rp.permission_key = permission_key(rp.role_id, rp.action_id, rp.target)
        session.expire(rp, ['section', 'module'])
    return len(grants)


def _reject_module_level_links(session, module: Module):
    if session.query(AllowedAction.id).filter(AllowedAction.module_id == module.id).first():
        raise IntegrityViolationError(
            description=f'Module {module.name} has module-level allowed actions; remove them before adding submodules')


# --- Sections ---

def create_section(session, name, order=0, visibility=True) -> Section:
    display, key = require_name(name, NameKind.CATALOG)
    order = _coerce_order(order)
    if name_taken(session, Section, key):
        raise ConflictError(description=f'Section {display} already exists')
    section = Section(name=display, name_key=key, order=order, visibility=bool(visibility))
    session.add(section)
    commit_unique(session, f'Section {display} already exists')
    return section


def update_section(session, section_id: str, data: Dict[str, Any]) -> Section:
    section = get_or_404(session, Section, section_id, 'Section')
    if 'name' in data:
        display, key = require_name(data['name'], NameKind.CATALOG)
        if name_taken(session, Section, key, exclude_id=section.id):
            raise ConflictError(description=f'Section {display} already exists')
        section.name, section.name_key = display, key
    if 'order' in data:
        section.order = _coerce_order(data['order'])
    if 'visibility' in data:
        section.visibility = bool(data['visibility'])
    commit_unique(session, f'Section {section.name} already exists')
    return section


def get_section(session, section_id: str) -> Section:
    return get_or_404(session, Section, section_id, 'Section')


def toggle_section(session, section_id: str) -> Section:
    return _toggle(session, get_section(session, section_id))


def toggle_section_visibility(session, section_id: str) -> Section:
    return _toggle(session, get_section(session, section_id), 'visibility')


def list_sections(session, params: ListParams, visibility: Optional[str] = None):
    specs = {'visibility': {
        'coerce': lambda v: {'true': True, 'false': False}[str(v).lower()],
        'op': lambda q, v: q.filter(Section.visibility.is_(v)),
    }}
    return _list(session, Section, params,
                 {'name': Section.name_key, 'order': Section.order, 'created_at': Section.created_at},
                 specs, {'visibility': visibility})


# --- Modules ---

def create_module(session, section_id: str, name, route=None, icon_name=None) -> Module:
    section = get_or_404(session, Section, section_id, 'Section')
    display, key = require_name(name, NameKind.CATALOG)
    if name_taken(session, Module, key, Module.section_id == section.id):
        raise ConflictError(description=f'Module {display} already exists in section {section.name}')
    module = Module(section=section, name=display, name_key=key, route=route, icon_name=icon_name)
    session.add(module)
    commit_unique(session, f'Module {display} already exists in section {section.name}')
    return module


def update_module(session, module_id: str, data: Dict[str, Any]) -> Module:
    module = get_or_404(session, Module, module_id, 'Module')
    section = module.section
    if data.get('section_id') and data['section_id'] != module.section_id:
        section = get_or_404(session, Section, data['section_id'], 'Section')
    section_id = section.id
    display, key = module.name, module.name_key
    if 'name' in data:
        display, key = require_name(data['name'], NameKind.CATALOG)
    if (key, section_id) != (module.name_key, module.section_id):
        if name_taken(session, Module, key, Module.section_id == section_id, exclude_id=module.id):
            raise ConflictError(description=f'Module {display} already exists in that section')
    moved = section_id != module.section_id
    module.name, module.name_key, module.section = display, key, section
    if moved:
        n = _reparent_grants(session, RolePermission.module_id, module.id, section_id=section_id)
        logger.info('Module %s moved to section %s (%s grants re-keyed)', module.id, section_id, n)
    if 'route' in data:
        module.route = data['route']
    if 'icon_name' in data:
        module.icon_name = data['icon_name']
    commit_unique(session, f'Module {display} already exists in that section')
    return module


def get_module(session, module_id: str) -> Module:
    return get_or_404(session, Module, module_id, 'Module')


def toggle_module(session, module_id: str) -> Module:
    return _toggle(session, get_module(session, module_id))


def list_modules(session, params: ListParams, section_id: Optional[str] = None):
    specs = {'section_id': {'op': lambda q, v: q.filter(Module.section_id == v)}}
    return _list(session, Module, params,
                 {'name': Module.name_key, 'created_at': Module.created_at},
                 specs, {'section_id': section_id})


# --- Submodules ---

def create_submodule(session, module_id: str, name, route=None) -> Submodule:
    module = get_or_404(session, Module, module_id, 'Module')
    _reject_module_level_links(session, module)
    display, key = require_name(name, NameKind.CATALOG)
    if name_taken(session, Submodule, key, Submodule.module_id == module.id):
        raise ConflictError(description=f'Submodule {display} already exists in module {module.name}')
    sub = Submodule(module=module, name=display, name_key=key, route=route)
    session.add(sub)
    commit_unique(session, f'Submodule {display} already exists in module {module.name}')
    return sub


def update_submodule(session, submodule_id: str, data: Dict[str, Any]) -> Submodule:
    sub = get_or_404(session, Submodule, submodule_id, 'Submodule')
    module = sub.module
    if data.get('module_id') and data['module_id'] != sub.module_id:
        module = get_or_404(session, Module, data['module_id'], 'Module')
        _reject_module_level_links(session, module)
    module_id = module.id
    display, key = sub.name, sub.name_key
    if 'name' in data:
        display, key = require_name(data['name'], NameKind.CATALOG)
    if (key, module_id) != (sub.name_key, sub.module_id):
        if name_taken(session, Submodule, key, Submodule.module_id == module_id, exclude_id=sub.id):
            raise ConflictError(description=f'Submodule {display} already exists in that module')
    moved = module_id != sub.module_id
    sub.name, sub.name_key, sub.module = display, key, module
    if moved:
        n = _reparent_grants(session, RolePermission.submodule_id, sub.id,
                             module_id=module_id, section_id=module.section_id)
        logger.info('Submodule %s moved to module %s (%s grants re-keyed)', sub.id, module_id, n)
    if 'route' in data:
        sub.route = data['route']
    commit_unique(session, f'Submodule {display} already exists in that module')
    return sub


def get_submodule(session, submodule_id: str) -> Submodule:
    return get_or_404(session, Submodule, submodule_id, 'Submodule')


def toggle_submodule(session, submodule_id: str) -> Submodule:
    return _toggle(session, get_submodule(session, submodule_id))


def list_submodules(session, params: ListParams, module_id: Optional[str] = None):
    specs = {'module_id': {'op': lambda q, v: q.filter(Submodule.module_id == v)}}
    return _list(session, Submodule, params,
                 {'name': Submodule.name_key, 'created_at': Submodule.created_at},
                 specs, {'module_id': module_id})


# --- Actions ---

def create_action(session, name, description=None) -> PermissionAction:
    display, key = require_name(name, NameKind.CATALOG)
    if name_taken(session, PermissionAction, key):
        raise ConflictError(description=f'Action {display} already exists')
    action = PermissionAction(name=display, name_key=key, description=description)
    session.add(action)
    commit_unique(session, f'Action {display} already exists')
    return action


def update_action(session, action_id: str, data: Dict[str, Any]) -> PermissionAction:
    action = get_or_404(session, PermissionAction, action_id, 'Action')
    if 'name' in data:
        display, key = require_name(data['name'], NameKind.CATALOG)
        if name_taken(session, PermissionAction, key, exclude_id=action.id):
            raise ConflictError(description=f'Action {display} already exists')
        action.name, action.name_key = display, key
    if 'description' in data:
        action.description = data['description']
    commit_unique(session, f'Action {action.name} already exists')
    return action


def get_action(session, action_id: str) -> PermissionAction:
    return get_or_404(session, PermissionAction, action_id, 'Action')


def toggle_action(session, action_id: str) -> PermissionAction:
    return _toggle(session, get_action(session, action_id))


def list_actions(session, params: ListParams):
    return _list(session, PermissionAction, params,
                 {'name': PermissionAction.name_key, 'created_at': PermissionAction.created_at})


# --- Allowed actions ---

def create_allowed_action(session, action_id: str, module_id: Optional[str] = None,
                          submodule_id: Optional[str] = None) -> AllowedAction:
    if not action_id:
        raise ValidationError('action_id required', fields={'action_id': 'required'})
    if bool(module_id) == bool(submodule_id):
        raise ValidationError('exactly one of module_id or submodule_id is required',
                              fields={'module_id': 'xor', 'submodule_id': 'xor'})
    action = get_or_404(session, PermissionAction, action_id, 'Action')
    if module_id:
        module = get_or_404(session, Module, module_id, 'Module')
        if module.submodules:
            raise IntegrityViolationError(
                description=f'Module {module.name} has submodules; attach actions to a submodule')
    else:
        get_or_404(session, Submodule, submodule_id, 'Submodule')
    key = allowed_action_key(action.id, module_id, submodule_id)
    if session.query(AllowedAction.id).filter(AllowedAction.composite_key == key).first():
        raise ConflictError(description='Action already allowed for that target')
    link = AllowedAction(action_id=action.id, module_id=module_id or None,
                         submodule_id=submodule_id or None, composite_key=key)
    session.add(link)
    commit_unique(session, 'Action already allowed for that target')
    return link


def get_allowed_action(session, allowed_id: str) -> AllowedAction:
    return get_or_404(session, AllowedAction, allowed_id, 'AllowedAction')


def delete_allowed_action(session, allowed_id: str):
    """Unlink only; the action and its target are untouched."""
    link = get_allowed_action(session, allowed_id)
    session.delete(link)
    session.commit()


def list_allowed_actions(session, params: ListParams, action_id=None, module_id=None, submodule_id=None):
    q = session.query(AllowedAction)
    q = apply_filters(q, {
        'action_id': {'op': lambda q, v: q.filter(AllowedAction.action_id == v)},
        'module_id': {'op': lambda q, v: q.filter(AllowedAction.module_id == v)},
        'submodule_id': {'op': lambda q, v: q.filter(AllowedAction.submodule_id == v)},
    }, {'action_id': action_id, 'module_id': module_id, 'submodule_id': submodule_id})
    q = apply_multi_sort(q, params.sort, {'created_at': AllowedAction.created_at}, AllowedAction.id)
    return apply_pagination(q, params)
