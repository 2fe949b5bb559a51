import pytest
from bizadmin import get_db
from bizadmin.errors import ValidationError, ConflictError, AccessDenied
from bizadmin.models.tenancy import ScheduleSubsidiary
from bizadmin.services import schedules
from bizadmin.services.schedules import SUBSIDIARY_SCHEDULES, USER_SCHEDULES, schedule_dict
from bizadmin.utils.listing import ListParams
from tests.test_utils_seed import SYSADMIN, caller_for, tenant_tree

WEEKDAYS = {'start_day': 'LUNES', 'end_day': 'VIERNES', 'opening_hour': '08:00', 'closing_hour': '18:00'}


@pytest.mark.parametrize('override', [
    {'opening_hour': '18:00', 'closing_hour': '08:00'},
    {'opening_hour': '09:00', 'closing_hour': '09:00'},
    {'start_day': 'VIERNES', 'end_day': 'LUNES'},
    {'start_day': 'FUNDAY'},
    {'opening_hour': '8 am'},
])
def test_schedule_window_validation(override):
    _, sub, _, _ = tenant_tree()
    with pytest.raises(ValidationError):
        schedules.create_schedule(get_db(), SYSADMIN, SUBSIDIARY_SCHEDULES, sub.id, {**WEEKDAYS, **override})


def test_schedule_missing_field():
    _, sub, _, _ = tenant_tree()
    data = dict(WEEKDAYS)
    data.pop('closing_hour')
    with pytest.raises(ValidationError) as exc:
        schedules.create_schedule(get_db(), SYSADMIN, SUBSIDIARY_SCHEDULES, sub.id, data)
    assert exc.value.fields == {'closing_hour': 'required'}


def test_single_day_schedule_allowed():
    _, sub, _, _ = tenant_tree()
    s = schedules.create_schedule(get_db(), SYSADMIN, SUBSIDIARY_SCHEDULES, sub.id,
                                  {**WEEKDAYS, 'start_day': 'sabado', 'end_day': 'SABADO'})
    assert schedule_dict(s)['start_day'] == 'SABADO'
    assert s.tenant_id == sub.tenant_id


def test_identical_schedule_conflicts():
    _, sub, _, _ = tenant_tree()
    schedules.create_schedule(get_db(), SYSADMIN, SUBSIDIARY_SCHEDULES, sub.id, WEEKDAYS)
    with pytest.raises(ConflictError):
        schedules.create_schedule(get_db(), SYSADMIN, SUBSIDIARY_SCHEDULES, sub.id, WEEKDAYS)


def test_update_schedule_merges_and_revalidates():
    _, _, _, user = tenant_tree()
    session = get_db()
    s = schedules.create_schedule(session, SYSADMIN, USER_SCHEDULES, user.id, WEEKDAYS)
    assert s.subsidiary_id == user.subsidiary_id
    # updating to its own current values is not a duplicate
    schedules.update_schedule(session, SYSADMIN, USER_SCHEDULES, s.id, {'opening_hour': '08:00'})
    updated = schedules.update_schedule(session, SYSADMIN, USER_SCHEDULES, s.id, {'closing_hour': '16:30'})
    assert schedule_dict(updated) == {
        'id': s.id, 'start_day': 'LUNES', 'end_day': 'VIERNES',
        'opening_hour': '08:00', 'closing_hour': '16:30', 'status': True,
    }
    with pytest.raises(ValidationError):
        schedules.update_schedule(session, SYSADMIN, USER_SCHEDULES, s.id, {'opening_hour': '17:00'})


def test_toggle_list_and_delete():
    _, sub, _, user = tenant_tree()
    session = get_db()
    morning = schedules.create_schedule(session, SYSADMIN, SUBSIDIARY_SCHEDULES, sub.id,
                                        {**WEEKDAYS, 'closing_hour': '12:00'})
    afternoon = schedules.create_schedule(session, SYSADMIN, SUBSIDIARY_SCHEDULES, sub.id,
                                          {**WEEKDAYS, 'opening_hour': '14:00'})
    schedules.toggle_schedule(session, caller_for(user), SUBSIDIARY_SCHEDULES, afternoon.id)
    rows, total, _, _ = schedules.list_schedules(session, caller_for(user), SUBSIDIARY_SCHEDULES, sub.id,
                                                 ListParams(status='true'))
    assert [r.id for r in rows] == [morning.id]
    schedules.delete_schedule(session, SYSADMIN, SUBSIDIARY_SCHEDULES, morning.id)
    assert session.get(ScheduleSubsidiary, morning.id) is None
    assert [s.id for s in sub.schedules] == [afternoon.id]


def test_schedule_of_other_tenant_denied():
    _, sub, _, _ = tenant_tree()
    outsider = tenant_tree('Other', username='pedro')[3]
    s = schedules.create_schedule(get_db(), SYSADMIN, SUBSIDIARY_SCHEDULES, sub.id, WEEKDAYS)
    with pytest.raises(AccessDenied):
        schedules.get_schedule(get_db(), caller_for(outsider), SUBSIDIARY_SCHEDULES, s.id)
