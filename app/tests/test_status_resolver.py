"""
Tests for day status resolution
"""
import random
from datetime import date, timedelta

import pytest

from app.core.errors import ValidationFailed
from app.models.attendance import AttendanceLog, AttendanceStatus
from app.models.attendance_session import AttendanceSession
from app.models.break_log import BreakLog, BreakType
from app.models.employee import SaturdayPolicy
from app.models.holiday import Holiday
from app.models.leave import LeaveDayKind, LeaveRequest, LeaveRequestType, LeaveStatus
from app.services.status_resolver import (
    get_day_status,
    get_day_statuses,
    is_working_saturday,
    resolve_day_status,
)
from app.tests.conftest import WORK_DAY, at

TODAY = date(2026, 3, 31)


def _worked_log(day: date, minutes: int, **kwargs) -> AttendanceLog:
    start = at(day, "09:00")
    log = AttendanceLog(
        attendance_date=day,
        clock_in_time=start,
        clock_out_time=start + timedelta(minutes=minutes),
        attendance_status=kwargs.pop("attendance_status", AttendanceStatus.ON_TIME.value),
        is_half_day=kwargs.pop("is_half_day", False),
    )
    log.sessions = [AttendanceSession(start_time=start, end_time=start + timedelta(minutes=minutes))]
    log.breaks = []
    return log


def _leave(day: date, **kwargs) -> LeaveRequest:
    return LeaveRequest(
        employee_id=1,
        request_type=kwargs.get("request_type", LeaveRequestType.SICK.value),
        day_kind=kwargs.get("day_kind", LeaveDayKind.FULL_DAY.value),
        from_date=day,
        to_date=kwargs.get("to_date", day),
        status=kwargs.get("status", LeaveStatus.APPROVED.value),
    )


def test_holiday_wins_over_leave():
    holiday = Holiday(date=WORK_DAY, name="Founders Day", is_tentative=False)
    result = resolve_day_status(WORK_DAY, None, None, [holiday], [_leave(WORK_DAY)], TODAY)
    assert result.status == "Holiday - Founders Day"
    assert result.is_on_leave is False


def test_tentative_holiday_is_ignored():
    holiday = Holiday(date=WORK_DAY, name="Maybe", is_tentative=True)
    result = resolve_day_status(WORK_DAY, None, None, [holiday], [], TODAY)
    assert result.status == "Absent"


def test_leave_labels():
    assert resolve_day_status(WORK_DAY, None, None, [], [_leave(WORK_DAY)], TODAY).status == "Leave - Sick (Full Day)"
    comp = _leave(WORK_DAY, request_type=LeaveRequestType.COMPENSATORY.value)
    assert resolve_day_status(WORK_DAY, None, None, [], [comp], TODAY).status == "Comp Off"
    swap = _leave(WORK_DAY, request_type=LeaveRequestType.SWAP.value)
    assert resolve_day_status(WORK_DAY, None, None, [], [swap], TODAY).status == "Swap Leave"
    half = _leave(WORK_DAY, request_type=LeaveRequestType.CASUAL.value, day_kind=LeaveDayKind.FIRST_HALF.value)
    assert resolve_day_status(WORK_DAY, None, None, [], [half], TODAY).status == "Leave - Casual (Half Day - First Half)"


def test_pending_leave_does_not_count():
    pending = _leave(WORK_DAY, status=LeaveStatus.PENDING.value)
    assert resolve_day_status(WORK_DAY, None, None, [], [pending], TODAY).status == "Absent"


def test_leave_wins_over_punches():
    result = resolve_day_status(WORK_DAY, _worked_log(WORK_DAY, 540), None, [], [_leave(WORK_DAY)], TODAY)
    assert result.is_on_leave is True


def test_sunday_is_weekend():
    sunday = date(2026, 3, 8)
    assert resolve_day_status(sunday, None, None, [], [], TODAY).status == "Weekend"


@pytest.mark.parametrize(
    "saturday, policy, working",
    [
        (date(2026, 3, 7), SaturdayPolicy.WEEKS_1_3_OFF.value, False),
        (date(2026, 3, 14), SaturdayPolicy.WEEKS_1_3_OFF.value, True),
        (date(2026, 3, 14), SaturdayPolicy.WEEKS_2_4_OFF.value, False),
        (date(2026, 3, 21), SaturdayPolicy.WEEKS_1_3_OFF.value, False),
        (date(2026, 3, 28), SaturdayPolicy.WEEKS_2_4_OFF.value, False),
        (date(2026, 3, 7), SaturdayPolicy.ALL_OFF.value, False),
        (date(2026, 3, 7), SaturdayPolicy.ALL_WORKING.value, True),
    ],
)
def test_saturday_policy(saturday, policy, working):
    assert is_working_saturday(saturday, policy) is working
    expected = "Absent" if working else "Week Off"
    assert resolve_day_status(saturday, None, policy, [], [], TODAY).status == expected


def test_half_day_boundary():
    assert resolve_day_status(WORK_DAY, _worked_log(WORK_DAY, 509), None, [], [], TODAY).status == "Half Day"
    assert resolve_day_status(WORK_DAY, _worked_log(WORK_DAY, 510), None, [], [], TODAY).status == "Present"


def test_breaks_are_subtracted_from_worked_time():
    log = _worked_log(WORK_DAY, 540)
    log.breaks = [
        BreakLog(
            break_type=BreakType.UNPAID.value,
            start_time=at(WORK_DAY, "13:00"),
            end_time=at(WORK_DAY, "13:31"),
        )
    ]
    assert resolve_day_status(WORK_DAY, log, None, [], [], TODAY).status == "Half Day"


def test_open_day_uses_stored_status():
    log = AttendanceLog(
        attendance_date=TODAY,
        clock_in_time=at(TODAY, "10:00"),
        attendance_status=AttendanceStatus.LATE.value,
        is_half_day=False,
    )
    log.sessions = [AttendanceSession(start_time=at(TODAY, "10:00"))]
    log.breaks = []
    assert resolve_day_status(TODAY, log, None, [], [], TODAY).status == "Late"


def test_leave_placeholder_without_punches_is_absent_in_the_past():
    placeholder = AttendanceLog(attendance_date=WORK_DAY, attendance_status=AttendanceStatus.LEAVE.value)
    placeholder.sessions = []
    placeholder.breaks = []
    assert resolve_day_status(WORK_DAY, placeholder, None, [], [], TODAY).status == "Absent"


def test_future_day_is_not_applicable():
    assert resolve_day_status(TODAY + timedelta(days=1), None, None, [], [], TODAY).status == "N/A"


def test_range_rejects_inverted_and_oversized_ranges(db, employee):
    with pytest.raises(ValidationFailed):
        get_day_statuses(db, employee, WORK_DAY, WORK_DAY - timedelta(days=1))
    with pytest.raises(ValidationFailed):
        get_day_statuses(db, employee, WORK_DAY, WORK_DAY + timedelta(days=366))


def test_single_and_batched_resolution_agree(db, employee):
    rng = random.Random(42)
    start = date(2026, 2, 1)
    end = date(2026, 3, 31)
    employee.saturday_policy = SaturdayPolicy.WEEKS_2_4_OFF.value
    db.add(Holiday(date=date(2026, 2, 17), name="Festival", is_tentative=False))
    db.add(Holiday(date=date(2026, 3, 10), name="Tentative", is_tentative=True))
    db.add(
        LeaveRequest(
            employee_id=employee.id,
            request_type=LeaveRequestType.PLANNED.value,
            day_kind=LeaveDayKind.FULL_DAY.value,
            from_date=date(2026, 2, 16),
            to_date=date(2026, 2, 18),
            status=LeaveStatus.APPROVED.value,
        )
    )
    db.commit()

    for offset in rng.sample(range((end - start).days + 1), 25):
        day = start + timedelta(days=offset)
        minutes = rng.choice([300, 509, 510, 560])
        log = AttendanceLog(
            employee_id=employee.id,
            attendance_date=day,
            clock_in_time=at(day, "09:00"),
            clock_out_time=at(day, "09:00") + timedelta(minutes=minutes),
        )
        db.add(log)
        db.flush()
        db.add(
            AttendanceSession(
                attendance_log_id=log.id,
                start_time=at(day, "09:00"),
                end_time=at(day, "09:00") + timedelta(minutes=minutes),
            )
        )
    db.commit()

    batched = get_day_statuses(db, employee, start, end, today=TODAY)
    assert len(batched) == (end - start).days + 1
    for result in batched:
        single = get_day_status(db, employee, result.date, today=TODAY)
        assert (single.date, single.status, single.is_on_leave) == (result.date, result.status, result.is_on_leave)

    by_date = {r.date: r.status for r in batched}
    assert by_date[date(2026, 2, 17)] == "Holiday - Festival"
    assert by_date[date(2026, 2, 16)] == "Leave - Planned (Full Day)"


def test_sparse_leave_covers_only_its_dates(db, employee):
    monday, tuesday, wednesday = date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 4)
    leave = LeaveRequest(
        employee_id=employee.id,
        request_type=LeaveRequestType.SICK.value,
        day_kind=LeaveDayKind.FULL_DAY.value,
        from_date=monday,
        to_date=wednesday,
        leave_dates=[wednesday, monday],
        status=LeaveStatus.APPROVED.value,
    )
    db.add(leave)
    log = AttendanceLog(
        employee_id=employee.id,
        attendance_date=tuesday,
        clock_in_time=at(tuesday, "09:00"),
        clock_out_time=at(tuesday, "18:00"),
    )
    db.add(log)
    db.flush()
    db.add(AttendanceSession(attendance_log_id=log.id, start_time=at(tuesday, "09:00"), end_time=at(tuesday, "18:00")))
    db.commit()

    assert leave.dates() == [monday, wednesday]
    assert resolve_day_status(tuesday, None, None, [], [leave], TODAY).status == "Absent"

    batched = {r.date: r.status for r in get_day_statuses(db, employee, monday, wednesday, today=TODAY)}
    assert batched == {
        monday: "Leave - Sick (Full Day)",
        tuesday: "Present",
        wednesday: "Leave - Sick (Full Day)",
    }
    for day, status in batched.items():
        assert get_day_status(db, employee, day, today=TODAY).status == status
