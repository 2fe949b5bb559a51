"""RolePermission engine and the read-side projections built on it.

Grants are stored with every ancestor id filled in, so a MODULE grant also
carries its section and a SUBMODULE grant its module and section.
"""
from __future__ import annotations
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
from sqlalchemy import select, or_
from sqlalchemy.exc import SQLAlchemyError
from bizadmin.constants.permissions import (
    RoleTemplate, SectionScope, TEMPLATE_POLICIES, GrantPolicy, VIEW_ACTION,
)
from bizadmin.errors import ValidationError, ConflictError, IntegrityViolationError
from bizadmin.models.authz import Role, RolePermission, PermissionLevel, PermissionTarget, permission_key, new_id
from bizadmin.models.catalog import Section, Module, Submodule, PermissionAction, AllowedAction
from bizadmin.services.policy import CallerContext, assert_tenant_access
from bizadmin.utils.persistence import commit_unique, get_or_404

logger = logging.getLogger(__name__)

Grant = Tuple[str, PermissionTarget]


def resolve_target(session, section_id: Optional[str] = None, module_id: Optional[str] = None,
                   submodule_id: Optional[str] = None) -> PermissionTarget:
    """Turn loose ids into a target; the deepest id decides the level."""
    if submodule_id:
        sub = get_or_404(session, Submodule, submodule_id, 'Submodule')
        module = sub.module
        if module_id and module_id != module.id:
            raise IntegrityViolationError(description='Submodule does not belong to the given module')
        if section_id and section_id != module.section_id:
            raise IntegrityViolationError(description='Submodule does not belong to the given section')
        return PermissionTarget(PermissionLevel.SUBMODULE, module.section_id, module.id, sub.id)
    if module_id:
        module = get_or_404(session, Module, module_id, 'Module')
        if section_id and section_id != module.section_id:
            raise IntegrityViolationError(description='Module does not belong to the given section')
        return PermissionTarget(PermissionLevel.MODULE, module.section_id, module.id)
    if section_id:
        section = get_or_404(session, Section, section_id, 'Section')
        return PermissionTarget(PermissionLevel.SECTION, section.id)
    raise ValidationError('one of section_id, module_id or submodule_id is required',
                          fields={'section_id': 'required'})


def allowed_action_ids(session, target: PermissionTarget) -> Optional[Set[str]]:
    """Whitelisted actions for a module/submodule target; None for section targets."""
    if target.level is PermissionLevel.SUBMODULE:
        cond = AllowedAction.submodule_id == target.submodule_id
    elif target.level is PermissionLevel.MODULE:
        children = select(Submodule.id).where(Submodule.module_id == target.module_id)
        cond = or_(AllowedAction.module_id == target.module_id, AllowedAction.submodule_id.in_(children))
    else:
        return None
    return set(session.scalars(select(AllowedAction.action_id).where(cond)))


def _row(role: Role, action_id: str, target: PermissionTarget) -> Dict[str, Any]:
    return {
        'id': new_id(),
        'role_id': role.id,
        'action_id': action_id,
        'tenant_id': role.tenant_id,
        'level': target.level.value,
        'section_id': target.section_id,
        'module_id': target.module_id,
        'submodule_id': target.submodule_id,
        'permission_key': permission_key(role.id, action_id, target),
    }


def create_role_permission(session, caller: Optional[CallerContext], role_id: str, data: Dict[str, Any]) -> RolePermission:
    """Single grant. Unlike bulk seeding, a duplicate is an error."""
    role = get_or_404(session, Role, role_id, 'Role')
    assert_tenant_access(caller, role.tenant_id)
    if not data.get('action_id'):
        raise ValidationError('action_id required', fields={'action_id': 'required'})
    action = get_or_404(session, PermissionAction, data['action_id'], 'Action')
    target = resolve_target(session, data.get('section_id'), data.get('module_id'), data.get('submodule_id'))
    allowed = allowed_action_ids(session, target)
    if allowed is not None and action.id not in allowed:
        raise IntegrityViolationError(description=f'Action {action.name} is not allowed on that {target.level.value.lower()}')
    key = permission_key(role.id, action.id, target)
    if session.query(RolePermission.id).filter(RolePermission.permission_key == key).first():
        raise ConflictError(description='Role already holds that permission')
    rp = RolePermission(**_row(role, action.id, target))
    session.add(rp)
    commit_unique(session, 'Role already holds that permission')
    return rp


def delete_role_permission(session, caller: Optional[CallerContext], permission_id: str):
    rp = get_or_404(session, RolePermission, permission_id, 'RolePermission')
    assert_tenant_access(caller, rp.tenant_id)
    session.delete(rp)
    session.commit()


# --- Bulk seeding ---

def _section_selected(policy: GrantPolicy, section: Section) -> bool:
    if policy.scope is SectionScope.HIDDEN:
        return not section.visibility
    if policy.scope is SectionScope.VISIBLE:
        return section.visibility and section.name_key not in policy.exclude_sections
    if policy.scope is SectionScope.NAMED:
        return section.name_key in policy.sections
    return False


def _children(session):
    """Modules per section and submodules per module, read fresh from the store."""
    modules, submodules = defaultdict(list), defaultdict(list)
    for module in session.scalars(select(Module).order_by(Module.name_key)):
        modules[module.section_id].append(module)
    for sub in session.scalars(select(Submodule).order_by(Submodule.name_key)):
        submodules[sub.module_id].append(sub)
    return modules, submodules


def _allowed_index(session):
    by_module, by_submodule = defaultdict(set), defaultdict(set)
    for link in session.scalars(select(AllowedAction)):
        if link.module_id:
            by_module[link.module_id].add(link.action_id)
        else:
            by_submodule[link.submodule_id].add(link.action_id)
    return by_module, by_submodule


def plan_template_grants(session, role: Role) -> List[Grant]:
    """Every (action, target) the role's template entitles it to, at all three levels."""
    policy = TEMPLATE_POLICIES[RoleTemplate(role.template)]
    if policy.scope is SectionScope.NONE:
        return []
    action_names = dict(session.execute(select(PermissionAction.id, PermissionAction.name_key)).all())
    by_module, by_submodule = _allowed_index(session)
    modules_of, submodules_of = _children(session)

    def keep(ids: Iterable[str]) -> List[str]:
        return sorted(a for a in ids if policy.actions is None or action_names.get(a) in policy.actions)

    grants: List[Grant] = []
    sections = session.scalars(select(Section).order_by(Section.order, Section.name_key)).all()
    for section in sections:
        if not _section_selected(policy, section):
            continue
        section_actions: Set[str] = set()
        for module in modules_of[section.id]:
            if policy.modules is not None and module.name_key not in policy.modules:
                continue
            module_actions = set(keep(by_module.get(module.id, ())))
            for sub in submodules_of[module.id]:
                sub_actions = keep(by_submodule.get(sub.id, ()))
                module_actions.update(sub_actions)
                grants.extend((a, PermissionTarget(PermissionLevel.SUBMODULE, section.id, module.id, sub.id))
                              for a in sub_actions)
            grants.extend((a, PermissionTarget(PermissionLevel.MODULE, section.id, module.id))
                          for a in sorted(module_actions))
            section_actions.update(module_actions)
        grants.extend((a, PermissionTarget(PermissionLevel.SECTION, section.id)) for a in sorted(section_actions))
    return grants


def _insert_skip_duplicates(session, rows: List[Dict[str, Any]]):
    table = RolePermission.__table__
    dialect = session.get_bind().dialect.name
    if dialect == 'postgresql':
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == 'sqlite':
        from sqlalchemy.dialects.sqlite import insert
    else:
        session.execute(table.insert(), rows)
        return
    session.execute(insert(table).on_conflict_do_nothing(index_elements=['permission_key']), rows)


def seed_role_permissions(session, role_id: str) -> Dict[str, int]:
    """Grant the role everything its template allows; rows already present are skipped.

    All new rows go in one transaction: either the full set lands or none does.
    """
    role = get_or_404(session, Role, role_id, 'Role')
    grants = plan_template_grants(session, role)
    seen = set(session.scalars(select(RolePermission.permission_key).where(RolePermission.role_id == role.id)))
    rows = []
    for action_id, target in grants:
        row = _row(role, action_id, target)
        if row['permission_key'] in seen:
            continue
        seen.add(row['permission_key'])
        rows.append(row)
    if rows:
        try:
            _insert_skip_duplicates(session, rows)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception('bulk permission seed for role %s rolled back', role.id)
            raise
        session.expire(role, ['permissions'])
    result = {'inserted': len(rows), 'skipped': len(grants) - len(rows)}
    logger.info('role %s (%s) permission seed %s', role.id, role.template, result)
    return result


# --- Read projections ---

def _ref(obj) -> Optional[Dict[str, str]]:
    return {'id': obj.id, 'name': obj.name} if obj is not None else None


def permissions_by_role(session, caller: Optional[CallerContext], role_id: str) -> List[Dict[str, Any]]:
    role = get_or_404(session, Role, role_id, 'Role')
    assert_tenant_access(caller, role.tenant_id)
    rows = session.scalars(select(RolePermission).where(RolePermission.role_id == role.id)).all()
    out = [{
        'id': rp.id,
        'level': rp.level,
        'action': _ref(rp.action),
        'section': _ref(rp.section),
        'module': _ref(rp.module),
        'submodule': _ref(rp.submodule),
    } for rp in rows]
    out.sort(key=lambda p: (
        p['section']['name'], (p['module'] or {}).get('name', ''),
        (p['submodule'] or {}).get('name', ''), p['action']['name'],
    ))
    return out


def _section_node(section: Section) -> Dict[str, Any]:
    return {'id': section.id, 'name': section.name, 'order': section.order, 'modules': {}}


def _module_node(module: Module) -> Dict[str, Any]:
    return {'id': module.id, 'name': module.name, 'route': module.route, 'icon_name': module.icon_name, 'submodules': {}}


def sidebar_by_role(session, caller: Optional[CallerContext], role_id: str) -> List[Dict[str, Any]]:
    """Section -> Module -> Submodule tree of everything the role may view."""
    role = get_or_404(session, Role, role_id, 'Role')
    assert_tenant_access(caller, role.tenant_id)
    rows = session.scalars(
        select(RolePermission)
        .join(PermissionAction, RolePermission.action_id == PermissionAction.id)
        .where(RolePermission.role_id == role.id, PermissionAction.name_key == VIEW_ACTION)
    ).all()
    sections: Dict[str, Dict[str, Any]] = {}
    for rp in rows:
        if not rp.section.status:
            continue
        if rp.module is not None and not rp.module.status:
            continue
        if rp.submodule is not None and not rp.submodule.status:
            continue
        node = sections.setdefault(rp.section_id, _section_node(rp.section))
        if rp.module is None:
            continue
        mnode = node['modules'].setdefault(rp.module_id, _module_node(rp.module))
        if rp.submodule is not None:
            mnode['submodules'].setdefault(rp.submodule_id, {
                'id': rp.submodule.id, 'name': rp.submodule.name, 'route': rp.submodule.route,
            })
    tree = sorted(sections.values(), key=lambda s: (s['order'], s['name']))
    for snode in tree:
        modules = sorted(snode['modules'].values(), key=lambda m: m['name'])
        for mnode in modules:
            mnode['submodules'] = sorted(mnode['submodules'].values(), key=lambda s: s['name'])
        snode['modules'] = modules
    return tree


def visibility_tree(session, caller: Optional[CallerContext], role_id: str) -> List[Dict[str, Any]]:
    """Configuration view: every section the role's scope can see, each leaf with its
    whitelisted actions and whether this role holds them."""
    role = get_or_404(session, Role, role_id, 'Role')
    assert_tenant_access(caller, role.tenant_id)
    show_hidden = role.template == RoleTemplate.SYSTEM_ADMIN.value
    sections = session.scalars(
        select(Section)
        .where(Section.visibility.is_(not show_hidden), Section.status.is_(True))
        .order_by(Section.order, Section.name_key)
    ).all()
    actions = {a.id: a for a in session.scalars(select(PermissionAction).where(PermissionAction.status.is_(True)))}
    by_module, by_submodule = _allowed_index(session)
    modules_of, submodules_of = _children(session)
    held = {
        (rp.action_id, rp.level, rp.target.target_id)
        for rp in session.scalars(select(RolePermission).where(RolePermission.role_id == role.id))
    }

    def action_list(ids, level: PermissionLevel, target_id: str):
        return [
            {'id': aid, 'name': actions[aid].name, 'granted': (aid, level.value, target_id) in held}
            for aid in sorted(ids, key=lambda i: actions[i].name_key) if aid in actions
        ]

    tree = []
    for section in sections:
        modules = []
        for module in modules_of[section.id]:
            if not module.status:
                continue
            subs = [s for s in submodules_of[module.id] if s.status]
            node = _module_node(module)
            if subs:
                node['actions'] = []
                node['submodules'] = [{
                    'id': s.id, 'name': s.name, 'route': s.route,
                    'actions': action_list(by_submodule.get(s.id, ()), PermissionLevel.SUBMODULE, s.id),
                } for s in subs]
            else:
                node['actions'] = action_list(by_module.get(module.id, ()), PermissionLevel.MODULE, module.id)
                node['submodules'] = []
            modules.append(node)
        tree.append({'id': section.id, 'name': section.name, 'order': section.order,
                     'visibility': section.visibility, 'modules': modules})
    return tree
