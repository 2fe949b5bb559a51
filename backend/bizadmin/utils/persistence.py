from __future__ import annotations
from sqlalchemy.exc import IntegrityError
from bizadmin.errors import ConflictError


def commit_unique(session, conflict_detail: str):
    """Commit, turning a unique-constraint race into a Conflict.

    The pre-checks in the services catch ordinary duplicates; this covers two
    writers passing the pre-check at the same time.
    """
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError(description=conflict_detail) from exc


def name_taken(session, model, key: str, *scope, exclude_id=None) -> bool:
    """True when another row of ``model`` inside ``scope`` already uses ``key``.

    Keys are already normalized; the comparison is still case-insensitive.
    """
    from sqlalchemy import func
    q = session.query(model.id).filter(func.lower(model.name_key) == key.lower(), *scope)
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    return session.query(q.exists()).scalar()


def get_or_404(session, model, entity_id, label: str):
    from bizadmin.errors import NotFoundError
    obj = session.get(model, entity_id) if entity_id else None
    if obj is None:
        raise NotFoundError(label, entity_id)
    return obj
