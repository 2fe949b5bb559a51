"""Role templates and their bulk grant policies.

A template is fixed when the role is created and drives seeding and gating; the
role's display name is cosmetic. Section/module/action names below are
normalized keys (see ``services.normalization``).
"""
from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

GLOBAL_TENANT_ID = '00000000-0000-0000-0000-000000000000'
GLOBAL_SUBSIDIARY_ID = '00000000-0000-0000-0000-000000000000'
GLOBAL_NAME = 'GLOBAL'
SYSTEM_ADMIN_ROLE_NAME = 'System.Admin'
SYSTEM_ADMIN_USERNAME = 'system.admin'

VIEW_ACTION = 'ver'


class RoleTemplate(str, enum.Enum):
    SYSTEM_ADMIN = 'SYSTEM_ADMIN'
    SUPER_ADMIN = 'SUPER_ADMIN'
    ADMIN = 'ADMIN'
    VENDEDOR = 'VENDEDOR'
    ALMACEN = 'ALMACEN'
    CUSTOM = 'CUSTOM'


class SectionScope(str, enum.Enum):
    HIDDEN = 'HIDDEN'
    VISIBLE = 'VISIBLE'
    NAMED = 'NAMED'
    NONE = 'NONE'


@dataclass(frozen=True)
class GrantPolicy:
    scope: SectionScope
    sections: FrozenSet[str] = frozenset()
    exclude_sections: FrozenSet[str] = frozenset()
    modules: Optional[FrozenSet[str]] = None  # None = every module of a selected section
    actions: Optional[FrozenSet[str]] = None  # None = every allowed action


TEMPLATE_POLICIES: Dict[RoleTemplate, GrantPolicy] = {
    RoleTemplate.SYSTEM_ADMIN: GrantPolicy(scope=SectionScope.HIDDEN),
    RoleTemplate.SUPER_ADMIN: GrantPolicy(scope=SectionScope.VISIBLE),
    RoleTemplate.ADMIN: GrantPolicy(
        scope=SectionScope.VISIBLE,
        exclude_sections=frozenset({'reportes'}),
        actions=frozenset({'ver', 'crear', 'editar', 'estado'}),
    ),
    RoleTemplate.VENDEDOR: GrantPolicy(
        scope=SectionScope.NAMED,
        sections=frozenset({'ventas', 'almacen'}),
        actions=frozenset({'ver', 'crear'}),
    ),
    RoleTemplate.ALMACEN: GrantPolicy(
        scope=SectionScope.NAMED,
        sections=frozenset({'almacen'}),
        actions=frozenset({'ver', 'crear', 'editar', 'estado'}),
    ),
    RoleTemplate.CUSTOM: GrantPolicy(scope=SectionScope.NONE),
}


def parse_template(raw) -> RoleTemplate:
    if raw is None:
        return RoleTemplate.CUSTOM
    try:
        return RoleTemplate(str(raw).upper())
    except ValueError:
        raise ValueError(f'template must be one of {[t.value for t in RoleTemplate]}')
