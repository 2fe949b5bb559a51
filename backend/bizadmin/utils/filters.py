from __future__ import annotations
from typing import Any, Dict, Iterable, Optional
from sqlalchemy import or_
from bizadmin.errors import ValidationError
from bizadmin.services.normalization import NameKind, normalize


def apply_filters(query, specs: Dict[str, Dict[str, Any]], params: Dict[str, Any]):
    """Generic filter builder.

    specs: { param_name: { 'op': callable(query, value)->query, 'coerce': type/func, 'validate': callable(optional) } }
    """
    for name, meta in specs.items():
        if name not in params or params[name] is None:
            continue
        val = params[name]
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except (TypeError, ValueError, KeyError):
                raise ValidationError(f'{name} invalid', fields={name: 'invalid'})
        if 'validate' in meta and not meta['validate'](val):
            raise ValidationError(f'{name} invalid', fields={name: 'invalid'})
        query = meta['op'](query, val)
    return query


def apply_status(query, column, status: str):
    if status == 'true':
        return query.filter(column.is_(True))
    if status == 'false':
        return query.filter(column.is_(False))
    return query


def apply_search(query, search: Optional[str], display_col, key_col, kind: NameKind = NameKind.CATALOG):
    """Case-insensitive substring match on the display name or the normalized key."""
    if not search:
        return query
    clauses = [display_col.icontains(search, autoescape=True)]
    key = normalize(search, kind)
    if key:
        clauses.append(key_col.icontains(key, autoescape=True))
    return query.filter(or_(*clauses))


def in_choices(choices: Iterable[str]):
    allowed = set(choices)
    return lambda v: v in allowed
