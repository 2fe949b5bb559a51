"""User accounts: scoped usernames, role assignment, credentials."""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional
from werkzeug.exceptions import Unauthorized
from bizadmin.constants.permissions import (
    GLOBAL_TENANT_ID, GLOBAL_SUBSIDIARY_ID, GLOBAL_NAME, SYSTEM_ADMIN_ROLE_NAME, SYSTEM_ADMIN_USERNAME, RoleTemplate,
)
from bizadmin.constants.tenancy import SubsidiaryType
from bizadmin.errors import ValidationError, ConflictError, IntegrityViolationError
from bizadmin.models.authz import Role, User
from bizadmin.models.tenancy import Tenant, Subsidiary
from bizadmin.services.normalization import NameKind, normalize, fold, USERNAME_PATTERN
from bizadmin.services.policy import CallerContext, assert_tenant_access
from bizadmin.services.tenancy import check_capacity
from bizadmin.utils.filters import apply_status
from bizadmin.utils.listing import ListParams, apply_pagination
from bizadmin.utils.persistence import commit_unique, get_or_404
from bizadmin.utils.sorting import apply_multi_sort
from sqlalchemy import func, or_

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('name', 'lastname', 'email')
USER_SORT = {'username': User.username, 'name': User.name, 'lastname': User.lastname, 'created_at': User.created_at}


def normalize_username(raw) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError('username required', fields={'username': 'required'})
    if not USERNAME_PATTERN.match(fold(raw)):
        raise ValidationError('username may only contain letters, digits and dots',
                              fields={'username': 'invalid'})
    return normalize(raw, NameKind.USERNAME)


def _require_password(raw, field: str = 'password') -> str:
    if not isinstance(raw, str) or not raw:
        raise ValidationError(f'{field} required', fields={field: 'required'})
    return raw


def username_taken(session, subsidiary_id: str, username: str, exclude_id: Optional[str] = None) -> bool:
    q = session.query(User.id).filter(User.subsidiary_id == subsidiary_id, func.lower(User.username) == username.lower())
    if exclude_id:
        q = q.filter(User.id != exclude_id)
    return q.first() is not None


def _role_in_subsidiary(session, role_id, subsidiary: Subsidiary) -> Role:
    role = get_or_404(session, Role, role_id, 'Role')
    if role.subsidiary_id != subsidiary.id:
        raise IntegrityViolationError(description='Role does not belong to the given subsidiary')
    return role


def create_user(session, caller: Optional[CallerContext], data: Dict[str, Any]) -> User:
    for field in ('subsidiary_id', 'role_id'):
        if not data.get(field):
            raise ValidationError(f'{field} required', fields={field: 'required'})
    password = _require_password(data.get('password'))
    username = normalize_username(data.get('username'))
    sub = get_or_404(session, Subsidiary, data['subsidiary_id'], 'Subsidiary')
    assert_tenant_access(caller, sub.tenant_id)
    role = _role_in_subsidiary(session, data['role_id'], sub)
    # usernames are unique per subsidiary only; the same login may exist elsewhere
    if username_taken(session, sub.id, username):
        raise ConflictError(description=f'Username {username} already exists in this subsidiary')
    check_capacity(session, sub.tenant, 'user')
    user = User(username=username, role=role, subsidiary_id=sub.id, tenant_id=sub.tenant_id,
                **{f: data.get(f) for f in PROFILE_FIELDS})
    user.set_password(password)
    session.add(user)
    commit_unique(session, f'Username {username} already exists in this subsidiary')
    return user


def update_user(session, caller: Optional[CallerContext], user_id: str, data: Dict[str, Any]) -> User:
    user = get_or_404(session, User, user_id, 'User')
    assert_tenant_access(caller, user.tenant_id)
    if 'username' in data:
        username = normalize_username(data['username'])
        if username_taken(session, user.subsidiary_id, username, exclude_id=user.id):
            raise ConflictError(description=f'Username {username} already exists in this subsidiary')
        user.username = username
    if data.get('role_id') and data['role_id'] != user.role_id:
        sub = get_or_404(session, Subsidiary, user.subsidiary_id, 'Subsidiary')
        user.role = _role_in_subsidiary(session, data['role_id'], sub)
    for field in PROFILE_FIELDS:
        if field in data:
            setattr(user, field, data[field])
    commit_unique(session, f'Username {user.username} already exists in this subsidiary')
    return user


def change_password(session, caller: Optional[CallerContext], user_id: str, data: Dict[str, Any]) -> User:
    user = get_or_404(session, User, user_id, 'User')
    assert_tenant_access(caller, user.tenant_id)
    new_password = _require_password(data.get('new_password'), 'new_password')
    if caller is None or not caller.is_system_admin:
        current = _require_password(data.get('current_password'), 'current_password')
        if not user.verify_password(current):
            raise ValidationError('current_password incorrect', fields={'current_password': 'incorrect'})
    user.set_password(new_password)
    session.commit()
    return user


def toggle_user(session, caller: Optional[CallerContext], user_id: str) -> User:
    """Users have no dependents, so this never cascades."""
    user = get_or_404(session, User, user_id, 'User')
    assert_tenant_access(caller, user.tenant_id)
    if user.tenant_id is None:
        raise IntegrityViolationError(description='The System-Admin user cannot be deactivated')
    user.status = not user.status
    session.commit()
    return user


def get_user(session, caller: Optional[CallerContext], user_id: str) -> User:
    user = get_or_404(session, User, user_id, 'User')
    assert_tenant_access(caller, user.tenant_id)
    return user


def _list_users(q, params: ListParams):
    if params.search:
        term = params.search
        q = q.filter(or_(*(col.icontains(term, autoescape=True) for col in (User.username, User.name, User.lastname))))
    q = apply_status(q, User.status, params.status)
    q = apply_multi_sort(q, params.sort, USER_SORT, User.id)
    return apply_pagination(q, params)


def list_users_by_subsidiary(session, caller: Optional[CallerContext], subsidiary_id: str, params: ListParams):
    sub = get_or_404(session, Subsidiary, subsidiary_id, 'Subsidiary')
    assert_tenant_access(caller, sub.tenant_id)
    return _list_users(session.query(User).filter(User.subsidiary_id == sub.id), params)


def list_users_by_tenant(session, caller: Optional[CallerContext], tenant_id: str, params: ListParams):
    tenant = get_or_404(session, Tenant, tenant_id, 'Tenant')
    assert_tenant_access(caller, tenant.id)
    return _list_users(session.query(User).filter(User.tenant_id == tenant.id), params)


def authenticate(session, username, password, subsidiary_id: Optional[str] = None) -> User:
    if not username or not password:
        raise ValidationError('username & password required', fields={'username': 'required', 'password': 'required'})
    if not isinstance(username, str) or not USERNAME_PATTERN.match(fold(username)):
        raise Unauthorized(description='invalid credentials')
    q = session.query(User).filter(func.lower(User.username) == normalize(username, NameKind.USERNAME),
                                   User.status.is_(True))
    if subsidiary_id:
        q = q.filter(User.subsidiary_id == subsidiary_id)
    candidates = q.all()
    if len(candidates) > 1:
        raise ValidationError('username exists in several subsidiaries; subsidiary_id required',
                              fields={'subsidiary_id': 'required'})
    if not candidates or not candidates[0].verify_password(password):
        raise Unauthorized(description='invalid credentials')
    return candidates[0]


def ensure_system_admin(session, password: str) -> Dict[str, int]:
    """Create the GLOBAL tenant/subsidiary, the System-Admin role and its user.

    Each piece is looked up first; running this again changes nothing.
    """
    created = {'tenant': 0, 'subsidiary': 0, 'role': 0, 'user': 0}
    tenant = session.get(Tenant, GLOBAL_TENANT_ID)
    if tenant is None:
        tenant = Tenant(id=GLOBAL_TENANT_ID, name=GLOBAL_NAME, name_key=normalize(GLOBAL_NAME, NameKind.TENANT),
                        description='Reserved tenant for system administration')
        session.add(tenant)
        created['tenant'] = 1
    sub = session.get(Subsidiary, GLOBAL_SUBSIDIARY_ID)
    if sub is None:
        sub = Subsidiary(id=GLOBAL_SUBSIDIARY_ID, tenant=tenant, name=GLOBAL_NAME,
                         name_key=normalize(GLOBAL_NAME, NameKind.TENANT),
                         subsidiary_type=SubsidiaryType.MATRIZ.value)
        session.add(sub)
        created['subsidiary'] = 1
    session.flush()
    role = session.query(Role).filter(Role.subsidiary_id == sub.id,
                                      Role.template == RoleTemplate.SYSTEM_ADMIN.value).first()
    if role is None:
        role = Role(tenant_id=tenant.id, subsidiary=sub, name=SYSTEM_ADMIN_ROLE_NAME,
                    name_key=normalize(SYSTEM_ADMIN_ROLE_NAME, NameKind.ROLE),
                    description='Global system administrator', template=RoleTemplate.SYSTEM_ADMIN.value)
        session.add(role)
        created['role'] = 1
    user = session.query(User).filter(User.tenant_id.is_(None), User.username == SYSTEM_ADMIN_USERNAME).first()
    if user is None:
        user = User(username=SYSTEM_ADMIN_USERNAME, role=role, subsidiary_id=sub.id, tenant_id=None,
                    name='System', lastname='Admin')
        user.set_password(password)
        session.add(user)
        created['user'] = 1
    session.commit()
    if any(created.values()):
        logger.info('system admin bootstrap created %s', created)
    return created


def system_admin_caller(session) -> CallerContext:
    """Caller identity of the System-Admin user, for seeding and scripts."""
    user = session.query(User).filter(User.tenant_id.is_(None), User.username == SYSTEM_ADMIN_USERNAME).one()
    return CallerContext(user_id=user.id, username=user.username, role_id=user.role_id, tenant_id=None,
                         subsidiary_id=user.subsidiary_id, template=RoleTemplate.SYSTEM_ADMIN.value)
