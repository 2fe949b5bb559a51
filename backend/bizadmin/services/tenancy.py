"""Tenants, subsidiaries and the cascading status toggles."""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional
from sqlalchemy import update, select, or_
from sqlalchemy.exc import SQLAlchemyError
from bizadmin.constants.permissions import GLOBAL_TENANT_ID
from bizadmin.constants.tenancy import SubsidiaryType
from bizadmin.errors import ValidationError, ConflictError, IntegrityViolationError, CapacityExceededError, CascadeFailure
from bizadmin.models.authz import Role, User
from bizadmin.models.tenancy import Tenant, Subsidiary
from bizadmin.services.normalization import NameKind, require_name
from bizadmin.services.policy import CallerContext, assert_system_admin, assert_tenant_access
from bizadmin.utils.filters import apply_search, apply_status, apply_filters, in_choices
from bizadmin.utils.listing import ListParams, apply_pagination
from bizadmin.utils.persistence import commit_unique, name_taken, get_or_404
from bizadmin.utils.sorting import apply_multi_sort

logger = logging.getLogger(__name__)

LIMIT_FIELDS = ('max_subsidiaries', 'max_users', 'max_roles')

_CAPACITY = {
    'subsidiary': (Subsidiary, 'max_subsidiaries'),
    'role': (Role, 'max_roles'),
    'user': (User, 'max_users'),
}


def _limits(data: Dict[str, Any]) -> Dict[str, int]:
    out = {}
    for field in LIMIT_FIELDS:
        if field not in data or data[field] is None:
            continue
        try:
            value = int(data[field])
        except (TypeError, ValueError):
            raise ValidationError(f'{field} must be int', fields={field: 'int'})
        if value < 0:
            raise ValidationError(f'{field} must be >= 0', fields={field: '>= 0'})
        out[field] = value
    return out


def parse_subsidiary_type(raw) -> str:
    try:
        return SubsidiaryType(str(raw).upper()).value
    except ValueError:
        raise ValidationError('subsidiary_type invalid',
                              fields={'subsidiary_type': 'one of ' + ','.join(t.value for t in SubsidiaryType)})


def check_capacity(session, tenant: Tenant, kind: str):
    """Refuse a new subsidiary/role/user once the tenant is at its limit."""
    if tenant.id == GLOBAL_TENANT_ID:
        return
    model, attr = _CAPACITY[kind]
    limit = getattr(tenant, attr)
    current = session.query(model).filter(model.tenant_id == tenant.id).count()
    if current >= limit:
        raise CapacityExceededError(description=f'Cannot create new {kind}. Limit reached: {limit}')


def _reject_reserved(tenant: Tenant):
    if tenant.id == GLOBAL_TENANT_ID:
        raise IntegrityViolationError(description='The GLOBAL tenant is reserved')


def cascade_status(session, label: str, obj, new_status: bool, statements):
    obj.status = new_status
    counts = {}
    try:
        for name, stmt in statements:
            counts[name] = session.execute(stmt.values(status=new_status)).rowcount
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception('%s %s toggle rolled back', label, obj.id)
        raise CascadeFailure(description=f'{label} status change failed; nothing was modified') from exc
    logger.info('%s %s status=%s cascaded %s', label, obj.id, new_status, counts)
    return obj


# --- Tenants ---

def create_tenant(session, caller: Optional[CallerContext], data: Dict[str, Any]) -> Tenant:
    assert_system_admin(caller)
    display, key = require_name(data.get('name'), NameKind.TENANT)
    limits = _limits(data)
    if name_taken(session, Tenant, key):
        raise ConflictError(description=f'Tenant {display} already exists')
    tenant = Tenant(name=display, name_key=key, description=data.get('description'), **limits)
    session.add(tenant)
    commit_unique(session, f'Tenant {display} already exists')
    return tenant


def update_tenant(session, caller: Optional[CallerContext], tenant_id: str, data: Dict[str, Any]) -> Tenant:
    assert_system_admin(caller)
    tenant = get_or_404(session, Tenant, tenant_id, 'Tenant')
    if 'name' in data:
        _reject_reserved(tenant)
        display, key = require_name(data['name'], NameKind.TENANT)
        if name_taken(session, Tenant, key, exclude_id=tenant.id):
            raise ConflictError(description=f'Tenant {display} already exists')
        tenant.name, tenant.name_key = display, key
    if 'description' in data:
        tenant.description = data['description']
    for field, value in _limits(data).items():
        setattr(tenant, field, value)
    commit_unique(session, f'Tenant {tenant.name} already exists')
    return tenant


def toggle_tenant(session, caller: Optional[CallerContext], tenant_id: str) -> Tenant:
    """Flip the tenant's status and push it to every subsidiary, role and user below it."""
    assert_system_admin(caller)
    tenant = get_or_404(session, Tenant, tenant_id, 'Tenant')
    _reject_reserved(tenant)
    sub_ids = select(Subsidiary.id).where(Subsidiary.tenant_id == tenant.id)
    return cascade_status(session, 'Tenant', tenant, not tenant.status, [
        ('subsidiaries', update(Subsidiary).where(Subsidiary.tenant_id == tenant.id)),
        ('roles', update(Role).where(or_(Role.tenant_id == tenant.id, Role.subsidiary_id.in_(sub_ids)))),
        ('users', update(User).where(or_(User.tenant_id == tenant.id, User.subsidiary_id.in_(sub_ids)))),
    ])


def get_tenant(session, caller: Optional[CallerContext], tenant_id: str) -> Tenant:
    tenant = get_or_404(session, Tenant, tenant_id, 'Tenant')
    assert_tenant_access(caller, tenant.id)
    return tenant


def list_tenants(session, caller: Optional[CallerContext], params: ListParams, include_global: bool = False):
    assert_system_admin(caller)
    q = session.query(Tenant)
    if not include_global:
        q = q.filter(Tenant.id != GLOBAL_TENANT_ID)
    q = apply_search(q, params.search, Tenant.name, Tenant.name_key, NameKind.TENANT)
    q = apply_status(q, Tenant.status, params.status)
    q = apply_multi_sort(q, params.sort, {'name': Tenant.name_key, 'created_at': Tenant.created_at}, Tenant.id)
    return apply_pagination(q, params)


# --- Subsidiaries ---

def _matriz_taken(session, tenant_id: str, exclude_id: Optional[str] = None) -> bool:
    q = session.query(Subsidiary.id).filter(
        Subsidiary.tenant_id == tenant_id, Subsidiary.subsidiary_type == SubsidiaryType.MATRIZ.value)
    if exclude_id:
        q = q.filter(Subsidiary.id != exclude_id)
    return q.first() is not None


def create_subsidiary(session, caller: Optional[CallerContext], data: Dict[str, Any]) -> Subsidiary:
    if not data.get('tenant_id'):
        raise ValidationError('tenant_id required', fields={'tenant_id': 'required'})
    tenant = get_or_404(session, Tenant, data['tenant_id'], 'Tenant')
    assert_tenant_access(caller, tenant.id)
    display, key = require_name(data.get('name'), NameKind.TENANT)
    sub_type = parse_subsidiary_type(data.get('subsidiary_type'))
    check_capacity(session, tenant, 'subsidiary')
    if name_taken(session, Subsidiary, key, Subsidiary.tenant_id == tenant.id):
        raise ConflictError(description=f'Subsidiary {display} already exists in tenant {tenant.name}')
    if sub_type == SubsidiaryType.MATRIZ.value and _matriz_taken(session, tenant.id):
        raise ConflictError(description='Tenant already has a MATRIZ subsidiary')
    sub = Subsidiary(
        tenant=tenant, name=display, name_key=key, subsidiary_type=sub_type,
        allow_negative_stock=bool(data.get('allow_negative_stock', False)),
        address=data.get('address'), city=data.get('city'), country=data.get('country'),
    )
    session.add(sub)
    commit_unique(session, f'Subsidiary {display} already exists in tenant {tenant.name}')
    return sub


def update_subsidiary(session, caller: Optional[CallerContext], subsidiary_id: str, data: Dict[str, Any]) -> Subsidiary:
    sub = get_or_404(session, Subsidiary, subsidiary_id, 'Subsidiary')
    assert_tenant_access(caller, sub.tenant_id)
    if 'name' in data:
        display, key = require_name(data['name'], NameKind.TENANT)
        if name_taken(session, Subsidiary, key, Subsidiary.tenant_id == sub.tenant_id, exclude_id=sub.id):
            raise ConflictError(description=f'Subsidiary {display} already exists in this tenant')
        sub.name, sub.name_key = display, key
    if 'subsidiary_type' in data:
        sub_type = parse_subsidiary_type(data['subsidiary_type'])
        if sub_type == SubsidiaryType.MATRIZ.value and _matriz_taken(session, sub.tenant_id, exclude_id=sub.id):
            raise ConflictError(description='Tenant already has a MATRIZ subsidiary')
        sub.subsidiary_type = sub_type
    if 'allow_negative_stock' in data:
        sub.allow_negative_stock = bool(data['allow_negative_stock'])
    for field in ('address', 'city', 'country'):
        if field in data:
            setattr(sub, field, data[field])
    commit_unique(session, f'Subsidiary {sub.name} already exists in this tenant')
    return sub


def toggle_subsidiary(session, caller: Optional[CallerContext], subsidiary_id: str) -> Subsidiary:
    sub = get_or_404(session, Subsidiary, subsidiary_id, 'Subsidiary')
    assert_tenant_access(caller, sub.tenant_id)
    if sub.tenant_id == GLOBAL_TENANT_ID:
        raise IntegrityViolationError(description='The GLOBAL subsidiary is reserved')
    return cascade_status(session, 'Subsidiary', sub, not sub.status, [
        ('roles', update(Role).where(Role.subsidiary_id == sub.id)),
        ('users', update(User).where(User.subsidiary_id == sub.id)),
    ])


def get_subsidiary(session, caller: Optional[CallerContext], subsidiary_id: str) -> Subsidiary:
    sub = get_or_404(session, Subsidiary, subsidiary_id, 'Subsidiary')
    assert_tenant_access(caller, sub.tenant_id)
    return sub


def list_subsidiaries(session, caller: Optional[CallerContext], tenant_id: str, params: ListParams,
                      subsidiary_type: Optional[str] = None):
    tenant = get_or_404(session, Tenant, tenant_id, 'Tenant')
    assert_tenant_access(caller, tenant.id)
    q = session.query(Subsidiary).filter(Subsidiary.tenant_id == tenant.id)
    q = apply_search(q, params.search, Subsidiary.name, Subsidiary.name_key, NameKind.TENANT)
    q = apply_status(q, Subsidiary.status, params.status)
    q = apply_filters(q, {'subsidiary_type': {
        'coerce': lambda v: str(v).upper(),
        'validate': in_choices(t.value for t in SubsidiaryType),
        'op': lambda q, v: q.filter(Subsidiary.subsidiary_type == v),
    }}, {'subsidiary_type': subsidiary_type})
    q = apply_multi_sort(q, params.sort, {
        'name': Subsidiary.name_key, 'type': Subsidiary.subsidiary_type, 'created_at': Subsidiary.created_at,
    }, Subsidiary.id)
    return apply_pagination(q, params)
