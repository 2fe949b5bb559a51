"""Idempotent provisioning steps. Every ``ensure_*`` looks before it writes."""
from __future__ import annotations
import logging
from typing import Dict, List
from sqlalchemy import select
from bizadmin.constants.catalog import (
    ACTIONS, SECTIONS, MODULE_ACTIONS, SUBMODULE_ACTIONS, DEMO_TENANTS, DEMO_ROLES,
    WORKWEEK, SUBSIDIARY_HOURS, USER_HOURS,
)
from bizadmin.constants.permissions import RoleTemplate
from bizadmin.constants.tenancy import SubsidiaryType
from bizadmin.models.authz import Role, User
from bizadmin.models.catalog import Section, Module, Submodule, PermissionAction, AllowedAction, allowed_action_key
from bizadmin.models.tenancy import Tenant, Subsidiary
from bizadmin.services import schedules
from bizadmin.services.normalization import NameKind, normalize
from bizadmin.services.permissions import seed_role_permissions
from bizadmin.services.tenancy import create_tenant, create_subsidiary
from bizadmin.services.roles import create_role
from bizadmin.services.users import ensure_system_admin, system_admin_caller, create_user

logger = logging.getLogger(__name__)


def ensure_actions(session) -> int:
    existing = set(session.scalars(select(PermissionAction.name_key)))
    created = 0
    for name in ACTIONS:
        key = normalize(name)
        if key not in existing:
            session.add(PermissionAction(name=name, name_key=key))
            created += 1
    session.flush()
    return created


def ensure_catalog(session) -> int:
    created = 0
    sections = {s.name_key: s for s in session.scalars(select(Section))}
    for sdef in SECTIONS:
        key = normalize(sdef['name'])
        section = sections.get(key)
        if section is None:
            section = Section(name=sdef['name'], name_key=key, order=sdef['order'], visibility=sdef['visibility'])
            session.add(section)
            created += 1
        modules = {m.name_key: m for m in section.modules}
        for mdef in sdef['modules']:
            mkey = normalize(mdef['name'])
            module = modules.get(mkey)
            if module is None:
                module = Module(section=section, name=mdef['name'], name_key=mkey,
                                route=mdef.get('route'), icon_name=mdef.get('icon_name'))
                session.add(module)
                created += 1
            subs = {s.name_key for s in module.submodules}
            for subdef in mdef.get('submodules', []):
                skey = normalize(subdef['name'])
                if skey not in subs:
                    session.add(Submodule(module=module, name=subdef['name'], name_key=skey, route=subdef.get('route')))
                    created += 1
    session.flush()
    return created


def ensure_allowed_actions(session) -> int:
    """Submodules get view/export; leaf modules get view/create/edit/status."""
    actions = {a.name_key: a.id for a in session.scalars(select(PermissionAction))}
    existing = set(session.scalars(select(AllowedAction.composite_key)))
    created = 0

    def link(action_name, module_id=None, submodule_id=None):
        nonlocal created
        action_id = actions.get(action_name)
        if action_id is None:
            return
        key = allowed_action_key(action_id, module_id, submodule_id)
        if key in existing:
            return
        session.add(AllowedAction(action_id=action_id, module_id=module_id, submodule_id=submodule_id, composite_key=key))
        existing.add(key)
        created += 1

    for module in session.scalars(select(Module)):
        if module.submodules:
            for sub in module.submodules:
                for name in SUBMODULE_ACTIONS:
                    link(name, submodule_id=sub.id)
        else:
            for name in MODULE_ACTIONS:
                link(name, module_id=module.id)
    session.flush()
    return created


def ensure_reference_data(session, admin_password: str) -> Dict[str, int]:
    """System admin, action verbs, catalog, whitelist and the System-Admin grants."""
    summary = {'bootstrap': sum(ensure_system_admin(session, admin_password).values())}
    summary['actions'] = ensure_actions(session)
    summary['catalog'] = ensure_catalog(session)
    summary['allowed_actions'] = ensure_allowed_actions(session)
    session.commit()
    role = session.scalars(select(Role).where(Role.template == RoleTemplate.SYSTEM_ADMIN.value)).first()
    summary['system_admin_permissions'] = seed_role_permissions(session, role.id)['inserted']
    return summary


def ensure_demo_data(session, user_password: str) -> Dict[str, int]:
    """Two tenants, each with a MATRIZ and a SUCURSAL, four templated roles and one user per role."""
    caller = system_admin_caller(session)
    created = {'tenants': 0, 'subsidiaries': 0, 'roles': 0, 'users': 0, 'permissions': 0}
    for tdef in DEMO_TENANTS:
        tkey = normalize(tdef['name'], NameKind.TENANT)
        tenant = session.scalars(select(Tenant).where(Tenant.name_key == tkey)).first()
        if tenant is None:
            tenant = create_tenant(session, caller, {'name': tdef['name'], 'description': tdef['description']})
            created['tenants'] += 1
        prefix = tdef['name'].split(' ')[0].title()
        for label, sub_type, negative in (('Casa Matriz', SubsidiaryType.MATRIZ, True),
                                          ('Sucursal Central', SubsidiaryType.SUCURSAL, False)):
            name = f'{label} {prefix}'
            sub = session.scalars(select(Subsidiary).where(
                Subsidiary.tenant_id == tenant.id, Subsidiary.name_key == normalize(name, NameKind.TENANT))).first()
            if sub is None:
                sub = create_subsidiary(session, caller, {
                    'tenant_id': tenant.id, 'name': name, 'subsidiary_type': sub_type.value,
                    'allow_negative_stock': negative, 'city': tdef['city'], 'country': tdef['country'],
                    'address': f'Av. Principal de {name}',
                })
                schedules.create_schedule(session, caller, schedules.SUBSIDIARY_SCHEDULES, sub.id, {
                    'start_day': WORKWEEK[0], 'end_day': WORKWEEK[1],
                    'opening_hour': SUBSIDIARY_HOURS[0], 'closing_hour': SUBSIDIARY_HOURS[1],
                })
                created['subsidiaries'] += 1
            for role_name, template, username_prefix in DEMO_ROLES:
                role = session.scalars(select(Role).where(
                    Role.subsidiary_id == sub.id, Role.template == template)).first()
                if role is None:
                    role = create_role(session, caller, {
                        'tenant_id': tenant.id, 'subsidiary_id': sub.id, 'name': role_name, 'template': template,
                    })
                    created['roles'] += 1
                created['permissions'] += seed_role_permissions(session, role.id)['inserted']
                username = f"{username_prefix}.{sub.name_key.split(' ')[0]}{sub.name_key.split(' ')[-1]}"
                username = normalize(username, NameKind.USERNAME)
                exists = session.scalars(select(User).where(
                    User.subsidiary_id == sub.id, User.username == username)).first()
                if exists is None:
                    user = create_user(session, caller, {
                        'subsidiary_id': sub.id, 'role_id': role.id, 'username': username,
                        'password': user_password, 'name': role_name, 'lastname': prefix,
                    })
                    schedules.create_schedule(session, caller, schedules.USER_SCHEDULES, user.id, {
                        'start_day': WORKWEEK[0], 'end_day': WORKWEEK[1],
                        'opening_hour': USER_HOURS[0], 'closing_hour': USER_HOURS[1],
                    })
                    created['users'] += 1
    logger.info('demo data seeded %s', created)
    return created


def role_permission_counts(session) -> List[tuple]:
    rows = []
    for role in session.scalars(select(Role).order_by(Role.tenant_id, Role.subsidiary_id, Role.name_key)):
        rows.append((role.name, role.template, len(role.permissions)))
    return rows
