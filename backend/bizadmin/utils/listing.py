from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple
from sqlalchemy.orm import Query
from bizadmin.config.settings import DEFAULT_LIMIT, MAX_LIMIT
from bizadmin.errors import ValidationError

STATUS_CHOICES = ('all', 'true', 'false')


def _as_int(raw, default: int, field: str) -> int:
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be int', fields={field: 'int'})


@dataclass
class ListParams:
    search: Optional[str] = None
    status: str = 'all'
    sort: Optional[str] = None
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> 'ListParams':
        """Build from query-string style values (all strings, all optional).

        limit is clamped to ``[1, MAX_LIMIT]`` and offset to ``>= 0``.
        """
        limit = max(1, min(_as_int(args.get('limit'), DEFAULT_LIMIT, 'limit'), MAX_LIMIT))
        offset = max(0, _as_int(args.get('offset'), 0, 'offset'))
        status = (args.get('status') or 'all').lower()
        if status not in STATUS_CHOICES:
            raise ValidationError('status invalid', fields={'status': 'one of all,true,false'})
        search = (args.get('search') or '').strip()
        return cls(search=search or None, status=status, sort=args.get('sort') or None, limit=limit, offset=offset)


def apply_pagination(q: Query, params: ListParams) -> Tuple[list, int, int, int]:
    total = q.count()
    rows = q.offset(params.offset).limit(params.limit).all()
    return rows, total, params.limit, params.offset


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }
