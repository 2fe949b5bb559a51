"""Canonical comparison form for free-text names.

Uniqueness checks compare ``normalize(name, kind)`` values; the display name the
caller sent is stored untouched next to it.
"""
from __future__ import annotations
import enum
import re
import unicodedata

from bizadmin.errors import ValidationError


class NameKind(enum.Enum):
    CATALOG = 'catalog'      # sections, modules, submodules, actions
    ROLE = 'role'
    TENANT = 'tenant'        # tenants and subsidiaries
    USERNAME = 'username'


_DISALLOWED = {
    NameKind.CATALOG: re.compile(r'[^a-z]'),
    NameKind.ROLE: re.compile(r'[^a-z.]'),
    NameKind.TENANT: re.compile(r'[^a-z0-9.,\- ]'),
    NameKind.USERNAME: re.compile(r'[^a-z0-9.]'),
}
_SPACES = re.compile(r'\s+')
USERNAME_PATTERN = re.compile(r'^[a-z0-9.]+$')


def fold(raw: str) -> str:
    """Lower-case and strip diacritics (ñ -> n, á -> a) without restricting the alphabet."""
    lowered = raw.strip().lower()
    decomposed = unicodedata.normalize('NFD', lowered)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize(raw: str, kind: NameKind = NameKind.CATALOG) -> str:
    if not isinstance(raw, str):
        raise ValidationError('name must be a string')
    folded = _SPACES.sub(' ', fold(raw))
    kept = _DISALLOWED[kind].sub('', folded)
    return _SPACES.sub(' ', kept).strip()


def require_name(raw, kind: NameKind, field: str = 'name') -> tuple[str, str]:
    """Return ``(display, key)`` or raise when nothing usable is left after normalizing."""
    if raw is None or not isinstance(raw, str) or not raw.strip():
        raise ValidationError(f'{field} required', fields={field: 'required'})
    key = normalize(raw, kind)
    if not key:
        raise ValidationError(f'{field} has no valid characters', fields={field: 'invalid'})
    return raw.strip(), key


def same_name(a: str, b: str, kind: NameKind = NameKind.CATALOG) -> bool:
    return normalize(a, kind).casefold() == normalize(b, kind).casefold()


__all__ = ['NameKind', 'fold', 'normalize', 'require_name', 'same_name', 'USERNAME_PATTERN']
