from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from bizadmin.constants.permissions import RoleTemplate
from bizadmin.errors import AccessDenied


@dataclass(frozen=True)
class CallerContext:
    """Identity of the authenticated caller as carried by the access token."""
    user_id: str
    username: str
    role_id: str
    tenant_id: Optional[str]
    subsidiary_id: Optional[str] = None
    template: str = RoleTemplate.CUSTOM.value

    @property
    def is_system_admin(self) -> bool:
        return self.template == RoleTemplate.SYSTEM_ADMIN.value

    @classmethod
    def from_claims(cls, identity: str, claims: Mapping[str, Any]) -> 'CallerContext':
        return cls(
            user_id=identity,
            username=claims.get('username', ''),
            role_id=claims.get('role_id', ''),
            tenant_id=claims.get('tenant_id'),
            subsidiary_id=claims.get('subsidiary_id'),
            template=claims.get('template', RoleTemplate.CUSTOM.value),
        )


def token_claims(user) -> dict:
    return {
        'username': user.username,
        'role_id': user.role_id,
        'tenant_id': user.tenant_id,
        'subsidiary_id': user.subsidiary_id,
        'template': user.role.template,
    }


def assert_system_admin(caller: Optional[CallerContext]):
    if caller is None or not caller.is_system_admin:
        raise AccessDenied(description='System-Admin role required')


def assert_tenant_access(caller: Optional[CallerContext], tenant_id: Optional[str]):
    """System-Admin reaches every tenant; everyone else only their own."""
    if caller is None or caller.is_system_admin:
        return
    if caller.tenant_id != tenant_id:
        raise AccessDenied(description='Tenant access denied')


def scoped_tenant_id(caller: Optional[CallerContext], requested: Optional[str] = None) -> Optional[str]:
    """Tenant filter for list queries."""
    if caller is None or caller.is_system_admin:
        return requested
    if requested and requested != caller.tenant_id:
        raise AccessDenied(description='Tenant access denied')
    return caller.tenant_id
