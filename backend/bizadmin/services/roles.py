"""Role lifecycle: scoped creation, rename, cascading status toggle."""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional
from sqlalchemy import update
from bizadmin.constants.permissions import GLOBAL_TENANT_ID, RoleTemplate, parse_template
from bizadmin.errors import ValidationError, ConflictError, IntegrityViolationError
from bizadmin.models.authz import Role, User
from bizadmin.models.tenancy import Tenant, Subsidiary
from bizadmin.services.normalization import NameKind, require_name
from bizadmin.services.policy import CallerContext, assert_tenant_access
from bizadmin.services.tenancy import check_capacity, cascade_status
from bizadmin.utils.filters import apply_search, apply_status
from bizadmin.utils.listing import ListParams, apply_pagination
from bizadmin.utils.persistence import commit_unique, name_taken, get_or_404
from bizadmin.utils.sorting import apply_multi_sort

logger = logging.getLogger(__name__)

ROLE_SORT = {'name': Role.name_key, 'template': Role.template, 'created_at': Role.created_at}


def _role_scope(tenant_id, subsidiary_id):
    return (Role.tenant_id == tenant_id, Role.subsidiary_id == subsidiary_id)


def create_role(session, caller: Optional[CallerContext], data: Dict[str, Any]) -> Role:
    for field in ('tenant_id', 'subsidiary_id'):
        if not data.get(field):
            raise ValidationError(f'{field} required', fields={field: 'required'})
    tenant = get_or_404(session, Tenant, data['tenant_id'], 'Tenant')
    sub = get_or_404(session, Subsidiary, data['subsidiary_id'], 'Subsidiary')
    if sub.tenant_id != tenant.id:
        raise IntegrityViolationError(description='Subsidiary does not belong to the given tenant')
    assert_tenant_access(caller, tenant.id)
    display, key = require_name(data.get('name'), NameKind.ROLE)
    try:
        template = parse_template(data.get('template'))
    except ValueError as e:
        raise ValidationError(str(e), fields={'template': 'invalid'})
    if template is RoleTemplate.SYSTEM_ADMIN and tenant.id != GLOBAL_TENANT_ID:
        raise IntegrityViolationError(description='SYSTEM_ADMIN roles live in the GLOBAL tenant only')
    if name_taken(session, Role, key, *_role_scope(tenant.id, sub.id)):
        raise ConflictError(description=f'Role {display} already exists in this subsidiary')
    check_capacity(session, tenant, 'role')
    role = Role(tenant_id=tenant.id, subsidiary=sub, name=display, name_key=key,
                description=data.get('description'), template=template.value)
    session.add(role)
    commit_unique(session, f'Role {display} already exists in this subsidiary')
    logger.info('role %s created with template %s', role.id, role.template)
    return role


def update_role(session, caller: Optional[CallerContext], role_id: str, data: Dict[str, Any]) -> Role:
    role = get_or_404(session, Role, role_id, 'Role')
    assert_tenant_access(caller, role.tenant_id)
    if 'template' in data and data['template'] and str(data['template']).upper() != role.template:
        raise ValidationError('template cannot change after creation', fields={'template': 'immutable'})
    if 'name' in data:
        display, key = require_name(data['name'], NameKind.ROLE)
        if name_taken(session, Role, key, *_role_scope(role.tenant_id, role.subsidiary_id), exclude_id=role.id):
            raise ConflictError(description=f'Role {display} already exists in this subsidiary')
        role.name, role.name_key = display, key
    if 'description' in data:
        role.description = data['description']
    commit_unique(session, f'Role {role.name} already exists in this subsidiary')
    return role


def toggle_role(session, caller: Optional[CallerContext], role_id: str) -> Role:
    """Flip the role's status together with every user holding it."""
    role = get_or_404(session, Role, role_id, 'Role')
    assert_tenant_access(caller, role.tenant_id)
    if role.template == RoleTemplate.SYSTEM_ADMIN.value:
        raise IntegrityViolationError(description='The System-Admin role cannot be deactivated')
    users = update(User).where(User.role_id == role.id, User.subsidiary_id == role.subsidiary_id)
    if role.tenant_id:
        users = users.where(User.tenant_id == role.tenant_id)
    return cascade_status(session, 'Role', role, not role.status, [('users', users)])


def get_role(session, caller: Optional[CallerContext], role_id: str) -> Role:
    role = get_or_404(session, Role, role_id, 'Role')
    assert_tenant_access(caller, role.tenant_id)
    return role


def _list_roles(q, params: ListParams):
    q = apply_search(q, params.search, Role.name, Role.name_key, NameKind.ROLE)
    q = apply_status(q, Role.status, params.status)
    q = apply_multi_sort(q, params.sort, ROLE_SORT, Role.id)
    return apply_pagination(q, params)


def list_roles_by_subsidiary(session, caller: Optional[CallerContext], subsidiary_id: str, params: ListParams):
    sub = get_or_404(session, Subsidiary, subsidiary_id, 'Subsidiary')
    assert_tenant_access(caller, sub.tenant_id)
    return _list_roles(session.query(Role).filter(Role.subsidiary_id == sub.id), params)


def list_roles_by_tenant(session, caller: Optional[CallerContext], tenant_id: str, params: ListParams):
    tenant = get_or_404(session, Tenant, tenant_id, 'Tenant')
    assert_tenant_access(caller, tenant.id)
    return _list_roles(session.query(Role).filter(Role.tenant_id == tenant.id), params)
