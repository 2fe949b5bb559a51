from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
from bizadmin.errors import ValidationError


def parse_sort(sort_expr: Optional[str], allowed: Dict[str, Any]) -> List[Tuple[Any, bool]]:
    """``'-order,name'`` -> ``[(order_col, True), (name_col, False)]``.

    Unknown fields and a field named twice are both rejected.
    """
    out: List[Tuple[Any, bool]] = []
    seen = set()
    for token in (sort_expr or '').split(','):
        token = token.strip()
        if not token:
            continue
        desc = token[0] == '-'
        field = token.lstrip('+-')
        if field not in allowed:
            raise ValidationError(f'Invalid sort field {field}',
                                  fields={'sort': 'one of ' + ','.join(sorted(allowed))})
        if field in seen:
            raise ValidationError(f'Sort field {field} repeated', fields={'sort': field})
        seen.add(field)
        out.append((allowed[field], desc))
    return out


def apply_multi_sort(query, sort_expr: Optional[str], allowed: dict, tie_breaker):
    """Order by the requested fields, then ``tie_breaker`` so pages are stable."""
    clauses = [col.desc() if desc else col.asc() for col, desc in parse_sort(sort_expr, allowed)]
    return query.order_by(*clauses, tie_breaker.asc())
