"""Weekly availability windows for subsidiaries and users."""
from __future__ import annotations
from dataclasses import dataclass
from datetime import time
from typing import Any, Dict, Optional, Type
from bizadmin.constants.tenancy import DayOfWeek
from bizadmin.errors import ValidationError, ConflictError
from bizadmin.models.authz import User, ScheduleUser
from bizadmin.models.tenancy import Subsidiary, ScheduleSubsidiary
from bizadmin.services.policy import CallerContext, assert_tenant_access
from bizadmin.utils.filters import apply_status
from bizadmin.utils.listing import ListParams, apply_pagination
from bizadmin.utils.persistence import commit_unique, get_or_404
from bizadmin.utils.sorting import apply_multi_sort

DUPLICATE = 'An identical schedule already exists'


def parse_day(raw, field: str) -> DayOfWeek:
    try:
        return DayOfWeek(str(raw).upper())
    except ValueError:
        raise ValidationError(f'{field} invalid', fields={field: 'one of ' + ','.join(d.value for d in DayOfWeek)})


def parse_hour(raw, field: str) -> time:
    if isinstance(raw, time):
        return raw
    try:
        return time.fromisoformat(str(raw))
    except ValueError:
        raise ValidationError(f'{field} must be HH:MM', fields={field: 'HH:MM'})


def _window(data: Dict[str, Any], current=None) -> Dict[str, Any]:
    """Merge incoming fields over ``current`` and check day and hour ordering."""
    def pick(field):
        if field in data:
            return data[field]
        if current is not None:
            return getattr(current, field)
        raise ValidationError(f'{field} required', fields={field: 'required'})

    start = parse_day(pick('start_day'), 'start_day')
    end = parse_day(pick('end_day'), 'end_day')
    opening = parse_hour(pick('opening_hour'), 'opening_hour')
    closing = parse_hour(pick('closing_hour'), 'closing_hour')
    if start.position > end.position:
        raise ValidationError('start_day must not come after end_day', fields={'start_day': 'order'})
    if opening >= closing:
        raise ValidationError('opening_hour must be before closing_hour', fields={'opening_hour': 'order'})
    return {'start_day': start.value, 'end_day': end.value, 'opening_hour': opening, 'closing_hour': closing}


@dataclass(frozen=True)
class ScheduleKind:
    model: Type
    owner_model: Type
    owner_field: str
    relation: str
    label: str

    def owner_col(self):
        return getattr(self.model, self.owner_field)


SUBSIDIARY_SCHEDULES = ScheduleKind(ScheduleSubsidiary, Subsidiary, 'subsidiary_id', 'subsidiary', 'Subsidiary')
USER_SCHEDULES = ScheduleKind(ScheduleUser, User, 'user_id', 'user', 'User')


def _is_duplicate(session, kind: ScheduleKind, owner_id: str, window: Dict[str, Any], exclude_id: Optional[str] = None) -> bool:
    m = kind.model
    q = session.query(m.id).filter(
        kind.owner_col() == owner_id,
        m.start_day == window['start_day'], m.end_day == window['end_day'],
        m.opening_hour == window['opening_hour'], m.closing_hour == window['closing_hour'],
    )
    if exclude_id:
        q = q.filter(m.id != exclude_id)
    return q.first() is not None


def create_schedule(session, caller: Optional[CallerContext], kind: ScheduleKind, owner_id: str, data: Dict[str, Any]):
    owner = get_or_404(session, kind.owner_model, owner_id, kind.label)
    assert_tenant_access(caller, owner.tenant_id)
    window = _window(data)
    if _is_duplicate(session, kind, owner.id, window):
        raise ConflictError(description=DUPLICATE)
    extra = {'tenant_id': owner.tenant_id}
    if kind is USER_SCHEDULES:
        extra['subsidiary_id'] = owner.subsidiary_id
    schedule = kind.model(**{kind.relation: owner}, **extra, **window)
    session.add(schedule)
    commit_unique(session, DUPLICATE)
    return schedule


def _get(session, caller, kind: ScheduleKind, schedule_id: str):
    schedule = get_or_404(session, kind.model, schedule_id, 'Schedule')
    assert_tenant_access(caller, schedule.tenant_id)
    return schedule


def update_schedule(session, caller: Optional[CallerContext], kind: ScheduleKind, schedule_id: str, data: Dict[str, Any]):
    schedule = _get(session, caller, kind, schedule_id)
    window = _window(data, schedule)
    if _is_duplicate(session, kind, getattr(schedule, kind.owner_field), window, exclude_id=schedule.id):
        raise ConflictError(description=DUPLICATE)
    for field, value in window.items():
        setattr(schedule, field, value)
    commit_unique(session, DUPLICATE)
    return schedule


def toggle_schedule(session, caller: Optional[CallerContext], kind: ScheduleKind, schedule_id: str):
    schedule = _get(session, caller, kind, schedule_id)
    schedule.status = not schedule.status
    session.commit()
    return schedule


def delete_schedule(session, caller: Optional[CallerContext], kind: ScheduleKind, schedule_id: str):
    schedule = _get(session, caller, kind, schedule_id)
    # delete-orphan on the owner's collection removes the row
    getattr(schedule, kind.relation).schedules.remove(schedule)
    session.commit()


def get_schedule(session, caller: Optional[CallerContext], kind: ScheduleKind, schedule_id: str):
    return _get(session, caller, kind, schedule_id)


def list_schedules(session, caller: Optional[CallerContext], kind: ScheduleKind, owner_id: str, params: ListParams):
    owner = get_or_404(session, kind.owner_model, owner_id, kind.label)
    assert_tenant_access(caller, owner.tenant_id)
    m = kind.model
    q = session.query(m).filter(kind.owner_col() == owner.id)
    q = apply_status(q, m.status, params.status)
    q = apply_multi_sort(q, params.sort, {'opening_hour': m.opening_hour, 'created_at': m.created_at}, m.id)
    return apply_pagination(q, params)


def schedule_dict(s) -> Dict[str, Any]:
    return {
        'id': s.id,
        'start_day': s.start_day,
        'end_day': s.end_day,
        'opening_hour': s.opening_hour.strftime('%H:%M'),
        'closing_hour': s.closing_hour.strftime('%H:%M'),
        'status': s.status,
    }
