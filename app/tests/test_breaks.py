"""
Tests for manual and automatic breaks
"""
import pytest

from app.core.errors import AlreadyOnBreak, ExtraBreakNotApproved, NoActiveBreak, NotClockedIn, ValidationFailed
from app.models.attendance import AttendanceLog
from app.models.audit_log import AuditLog
from app.models.break_log import BreakType
from app.services import attendance_session_service as svc
from app.services.daily_status_service import get_daily_status
from app.tests.conftest import WORK_DAY, at


@pytest.fixture
def clocked_in(db, employee):
    return svc.clock_in(db, employee.id, now=at(WORK_DAY, "09:00"))


def test_break_requires_open_session(db, employee):
    with pytest.raises(NotClockedIn):
        svc.start_break(db, employee.id, BreakType.PAID.value, now=at(WORK_DAY, "13:00"))


def test_invalid_break_type(db, employee, clocked_in):
    with pytest.raises(ValidationFailed):
        svc.start_break(db, employee.id, BreakType.AUTO_UNPAID.value, now=at(WORK_DAY, "13:00"))


def test_paid_break_under_allowance(db, employee, clocked_in):
    svc.start_break(db, employee.id, BreakType.PAID.value, now=at(WORK_DAY, "13:00"))
    result = svc.end_break(db, employee.id, now=at(WORK_DAY, "13:10"))

    assert result.break_log.duration_minutes == 10
    assert result.log.paid_break_minutes_taken == 10
    assert result.log.penalty_minutes == 0
    status = get_daily_status(db, employee, WORK_DAY, now=at(WORK_DAY, "13:11"))
    assert status.calculated_logout_time == at(WORK_DAY, "17:40")


def test_paid_break_over_allowance_adds_penalty(db, employee, clocked_in):
    svc.start_break(db, employee.id, BreakType.PAID.value, now=at(WORK_DAY, "13:00"))
    result = svc.end_break(db, employee.id, now=at(WORK_DAY, "13:42"))
    assert result.log.paid_break_minutes_taken == 42
    assert result.log.penalty_minutes == 12


def test_unpaid_break_extends_expected_logout(db, employee, clocked_in):
    svc.start_break(db, employee.id, BreakType.UNPAID.value, reason="Bank", now=at(WORK_DAY, "11:00"))
    running = get_daily_status(db, employee, WORK_DAY, now=at(WORK_DAY, "11:05"))
    assert running.status == "On Break"
    assert running.calculated_logout_time == at(WORK_DAY, "18:05")

    result = svc.end_break(db, employee.id, now=at(WORK_DAY, "11:15"))
    assert result.log.unpaid_break_minutes_taken == 15
    assert result.log.penalty_minutes == 5
    status = get_daily_status(db, employee, WORK_DAY, now=at(WORK_DAY, "12:00"))
    assert status.calculated_logout_time == at(WORK_DAY, "18:15")


def test_second_break_while_on_break(db, employee, clocked_in):
    svc.start_break(db, employee.id, BreakType.PAID.value, now=at(WORK_DAY, "13:00"))
    with pytest.raises(AlreadyOnBreak):
        svc.start_break(db, employee.id, BreakType.UNPAID.value, now=at(WORK_DAY, "13:01"))
    with pytest.raises(AlreadyOnBreak):
        svc.start_auto_break(db, employee.id, now=at(WORK_DAY, "13:01"))


def test_end_break_without_break(db, employee, clocked_in):
    with pytest.raises(NoActiveBreak):
        svc.end_break(db, employee.id, now=at(WORK_DAY, "13:00"))


def test_extra_break_requires_approval(db, employee, clocked_in):
    with pytest.raises(ExtraBreakNotApproved):
        svc.start_break(db, employee.id, BreakType.EXTRA.value, now=at(WORK_DAY, "15:00"))

    log = db.query(AttendanceLog).filter(AttendanceLog.id == clocked_in.log.id).one()
    log.extra_breaks_approved = 1
    db.commit()

    started = svc.start_break(db, employee.id, BreakType.EXTRA.value, now=at(WORK_DAY, "15:00"))
    assert started.log.extra_breaks_approved == 0
    svc.end_break(db, employee.id, now=at(WORK_DAY, "15:08"))
    with pytest.raises(ExtraBreakNotApproved):
        svc.start_break(db, employee.id, BreakType.EXTRA.value, now=at(WORK_DAY, "16:00"))


def test_manual_end_does_not_close_auto_break(db, employee, clocked_in):
    svc.start_auto_break(db, employee.id, now=at(WORK_DAY, "14:00"))
    with pytest.raises(NoActiveBreak):
        svc.end_break(db, employee.id, now=at(WORK_DAY, "14:05"))

    status = get_daily_status(db, employee, WORK_DAY, now=at(WORK_DAY, "14:05"))
    assert status.status == "On Auto-Break"
    assert status.active_auto_break is not None


def test_auto_break_round_trip_is_audited(db, employee, clocked_in, recorded_notifications):
    svc.start_auto_break(db, employee.id, reason="Idle", now=at(WORK_DAY, "14:00"))
    result = svc.end_auto_break(db, employee.id, now=at(WORK_DAY, "14:20"))

    assert result.break_log.is_auto_break is True
    assert result.break_log.break_type == BreakType.AUTO_UNPAID.value
    assert result.break_log.duration_minutes == 20
    assert result.log.unpaid_break_minutes_taken == 20
    actions = {a.action for a in db.query(AuditLog).all()}
    assert {"AUTO_BREAK_START", "AUTO_BREAK_END"} <= actions
    assert [e.event_type for e in recorded_notifications][-2:] == ["AUTO_BREAK_START", "AUTO_BREAK_END"]


def test_end_auto_break_without_one(db, employee, clocked_in):
    with pytest.raises(NoActiveBreak):
        svc.end_auto_break(db, employee.id, now=at(WORK_DAY, "14:00"))
