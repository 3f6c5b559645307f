"""
Tests for the auto-logout sweeper
"""
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.core.constants import LEGACY_CLOSE_REASON, LEGACY_NO_SHIFT_REASON, SETTING_AUTO_LOGOUT_BUFFER, SETTING_ENABLE_AUTO_LOGOUT
from app.core.scheduler import AutoLogoutScheduler
from app.models.attendance import AttendanceLog, LogoutType
from app.models.attendance_session import AttendanceSession
from app.models.audit_log import AuditLog
from app.models.break_log import BreakLog, BreakType
from app.services import attendance_session_service as svc
from app.services.audit_service import list_audit_entries
from app.services.auto_logout_service import AutoLogoutSweeper
from app.services.setting_service import set_setting
from app.tests.conftest import WORK_DAY, TestingSessionLocal, at, make_employee
from app.utils.datetime_utils import FixedClock, ensure_utc


def _sweep(db, when):
    return AutoLogoutSweeper(clock=FixedClock(when)).run(db)


def _reload(db, log_id):
    db.expire_all()
    log = db.query(AttendanceLog).filter(AttendanceLog.id == log_id).one()
    sessions = db.query(AttendanceSession).filter(AttendanceSession.attendance_log_id == log_id).all()
    return log, sessions


@pytest.fixture
def open_day(db, employee):
    """Clocked in at 09:00 on a 09:00-18:00 shift, never clocked out"""
    return svc.clock_in(db, employee.id, now=at(WORK_DAY, "09:00"))


def test_closes_session_past_threshold(db, employee, open_day, recorded_notifications):
    summary = _sweep(db, at(WORK_DAY, "19:35"))

    assert summary.skipped_reason is None
    assert summary.processed == 1
    assert summary.closed == 1
    assert summary.errors == 0
    log, sessions = _reload(db, open_day.log.id)
    assert ensure_utc(log.clock_out_time) == at(WORK_DAY, "19:35")
    assert log.logout_type == LogoutType.AUTO.value
    assert "90 minutes buffer" in log.auto_logout_reason
    assert sessions[0].logout_type == LogoutType.AUTO.value
    assert ensure_utc(sessions[0].end_time) == at(WORK_DAY, "19:35")
    assert log.total_working_hours == pytest.approx(635 / 60, abs=0.001)
    assert log.lock_token is None
    assert sessions[0].lock_token is None

    (audit,) = list_audit_entries(db, "attendance_logs", log.id, action="AUTO_LOGOUT")
    assert audit.actor_id is None
    assert audit.meta_json["overrun_minutes"] == 95
    assert audit.meta_json["minutes_past_threshold"] == 5
    audiences = sorted(e.audience for e in recorded_notifications if e.event_type == "AUTO_LOGOUT")
    assert audiences == ["admin", "employee"]


def test_rerun_is_a_noop(db, employee, open_day):
    _sweep(db, at(WORK_DAY, "19:35"))
    again = _sweep(db, at(WORK_DAY, "19:36"))

    assert again.processed == 0
    assert again.closed == 0
    assert db.query(AuditLog).filter(AuditLog.action == "AUTO_LOGOUT").count() == 1


def test_before_threshold_is_skipped(db, employee, open_day):
    summary = _sweep(db, at(WORK_DAY, "19:00"))
    assert summary.closed == 0
    assert summary.skipped == 1
    log, _ = _reload(db, open_day.log.id)
    assert log.clock_out_time is None


def test_buffer_comes_from_settings(db, employee, open_day):
    set_setting(db, SETTING_AUTO_LOGOUT_BUFFER, 30)
    summary = _sweep(db, at(WORK_DAY, "18:31"))
    assert summary.closed == 1


def test_out_of_range_buffer_falls_back_to_default(db, employee, open_day):
    set_setting(db, SETTING_AUTO_LOGOUT_BUFFER, 5)
    summary = _sweep(db, at(WORK_DAY, "18:31"))
    assert summary.closed == 0


def test_disabled_toggle_skips_run(db, employee, open_day):
    set_setting(db, SETTING_ENABLE_AUTO_LOGOUT, False)
    summary = _sweep(db, at(WORK_DAY, "23:00"))
    assert summary.skipped_reason == "disabled"
    assert summary.processed == 0
    log, _ = _reload(db, open_day.log.id)
    assert log.clock_out_time is None


def test_unreachable_database_skips_run(db, monkeypatch):
    def unavailable(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(db, "execute", unavailable)
    summary = _sweep(db, at(WORK_DAY, "19:35"))
    assert summary.skipped_reason == "database_unavailable"


def test_young_session_is_never_closed(db, employee):
    svc.clock_in(db, employee.id, now=at(WORK_DAY, "09:00"))
    svc.clock_out(db, employee.id, now=at(WORK_DAY, "09:30"))
    reopened = svc.clock_in(db, employee.id, now=at(WORK_DAY, "19:00"))

    summary = _sweep(db, at(WORK_DAY, "19:45"))
    assert summary.closed == 0
    log, _ = _reload(db, reopened.log.id)
    assert log.clock_out_time is None


def test_past_date_logout_is_capped_at_threshold(db, employee, open_day):
    summary = _sweep(db, at(WORK_DAY + timedelta(days=1), "08:00"))
    assert summary.closed == 1
    log, sessions = _reload(db, open_day.log.id)
    assert ensure_utc(log.clock_out_time) == at(WORK_DAY, "19:30")
    assert ensure_utc(sessions[0].end_time) == at(WORK_DAY, "19:30")


def test_deactivated_employee_session_is_closed_as_legacy(db, employee, open_day):
    employee.active = False
    db.commit()

    summary = _sweep(db, at(WORK_DAY, "12:00"))

    assert summary.legacy_closed == 1
    log, sessions = _reload(db, open_day.log.id)
    assert log.is_legacy_session is True
    assert log.logout_type == LogoutType.SYSTEM.value
    assert log.auto_logout_reason == LEGACY_CLOSE_REASON
    assert log.total_working_hours == 0
    assert ensure_utc(sessions[0].end_time) == ensure_utc(sessions[0].start_time)
    assert db.query(AuditLog).filter(AuditLog.action == "LEGACY_SESSION_CLOSED").count() == 1


def test_log_older_than_a_day_is_closed_as_legacy(db, employee, open_day):
    summary = _sweep(db, at(WORK_DAY + timedelta(days=2), "10:00"))
    assert summary.legacy_closed == 1
    assert summary.closed == 0
    log, _ = _reload(db, open_day.log.id)
    assert log.is_legacy_session is True
    assert log.total_working_hours == 0


def test_no_shift_session_older_than_a_day_is_closed(db):
    no_shift = make_employee(db, "EMP-NS")
    now = at(WORK_DAY, "12:00")
    log = AttendanceLog(
        employee_id=no_shift.id,
        attendance_date=WORK_DAY - timedelta(days=1),
        clock_in_time=now - timedelta(hours=25),
        created_at=now - timedelta(hours=1),
        updated_at=now - timedelta(hours=1),
    )
    db.add(log)
    db.flush()
    db.add(AttendanceSession(attendance_log_id=log.id, start_time=now - timedelta(hours=25)))
    db.commit()

    summary = _sweep(db, now)
    assert summary.closed == 1
    assert summary.legacy_closed == 1
    log, _ = _reload(db, log.id)
    assert log.auto_logout_reason == LEGACY_NO_SHIFT_REASON


def test_open_log_without_open_session_is_repaired(db, employee):
    now = at(WORK_DAY, "20:00")
    log = AttendanceLog(
        employee_id=employee.id,
        attendance_date=WORK_DAY,
        clock_in_time=at(WORK_DAY, "09:00"),
        created_at=at(WORK_DAY, "09:00"),
        updated_at=at(WORK_DAY, "09:00"),
    )
    db.add(log)
    db.flush()
    db.add(
        AttendanceSession(
            attendance_log_id=log.id,
            start_time=at(WORK_DAY, "09:00"),
            end_time=at(WORK_DAY, "17:45"),
        )
    )
    db.commit()

    summary = _sweep(db, now)
    assert summary.repaired == 1
    assert summary.skipped == 1
    log, _ = _reload(db, log.id)
    assert ensure_utc(log.clock_out_time) == at(WORK_DAY, "17:45")


def test_held_lease_blocks_processing_until_it_expires(db, employee, open_day):
    now = at(WORK_DAY, "19:35")
    log = db.query(AttendanceLog).filter(AttendanceLog.id == open_day.log.id).one()
    log.lock_token = "held-by-another-run"
    log.lock_expires_at = now + timedelta(minutes=1)
    db.commit()

    blocked = _sweep(db, now)
    assert blocked.closed == 0
    log, _ = _reload(db, open_day.log.id)
    assert log.clock_out_time is None
    assert log.lock_token == "held-by-another-run"

    released = _sweep(db, now + timedelta(minutes=2))
    assert released.leases_released == 1
    assert released.closed == 1


def test_manual_clock_out_wins_over_sweeper(db, employee, open_day):
    log = db.query(AttendanceLog).filter(AttendanceLog.id == open_day.log.id).one()
    session = db.query(AttendanceSession).filter(AttendanceSession.id == open_day.session.id).one()
    svc.clock_out(db, employee.id, now=at(WORK_DAY, "19:34"))

    now = at(WORK_DAY, "19:35")
    closed = AutoLogoutSweeper(clock=FixedClock(now)).close_session(
        db, log, session, now, LogoutType.AUTO, "late sweep", now
    )

    assert closed is False
    log, sessions = _reload(db, open_day.log.id)
    assert log.logout_type == LogoutType.MANUAL.value
    assert sessions[0].logout_type == LogoutType.MANUAL.value
    assert log.lock_token is None


def test_one_bad_record_does_not_abort_the_sweep(db, fixed_shift, monkeypatch):
    first = make_employee(db, "EMP-A", fixed_shift)
    second = make_employee(db, "EMP-B", fixed_shift)
    svc.clock_in(db, first.id, now=at(WORK_DAY, "09:00"))
    svc.clock_in(db, second.id, now=at(WORK_DAY, "09:00"))

    from app.services import auto_logout_service

    original = auto_logout_service.get_daily_status

    def flaky(db_, employee_, day, now=None):
        if employee_.id == first.id:
            raise RuntimeError("boom")
        return original(db_, employee_, day, now)

    monkeypatch.setattr(auto_logout_service, "get_daily_status", flaky)
    summary = _sweep(db, at(WORK_DAY, "19:35"))

    assert summary.errors == 1
    assert summary.closed == 1


def test_auto_logout_closes_break_left_running(db, employee, open_day):
    svc.start_auto_break(db, employee.id, now=at(WORK_DAY, "18:10"))

    summary = _sweep(db, at(WORK_DAY, "19:35"))

    assert summary.closed == 1
    db.expire_all()
    assert db.query(BreakLog).filter(BreakLog.end_time.is_(None)).count() == 0
    (auto_break,) = db.query(BreakLog).filter(BreakLog.attendance_log_id == open_day.log.id).all()
    assert ensure_utc(auto_break.end_time) == at(WORK_DAY, "19:35")
    assert auto_break.duration_minutes == 85
    log, _ = _reload(db, open_day.log.id)
    assert log.unpaid_break_minutes_taken == 85
    assert log.total_working_hours == pytest.approx(550 / 60, abs=0.001)

    next_day = WORK_DAY + timedelta(days=1)
    svc.clock_in(db, employee.id, now=at(next_day, "09:00"))
    svc.start_break(db, employee.id, BreakType.PAID.value, now=at(next_day, "12:00"))
    svc.end_break(db, employee.id, now=at(next_day, "12:15"))
    result = svc.clock_out(db, employee.id, now=at(next_day, "18:00"))
    assert result.already_closed is False
    assert ensure_utc(result.log.clock_out_time) == at(next_day, "18:00")


def test_legacy_close_ends_break_at_its_own_start(db, employee, open_day):
    svc.start_break(db, employee.id, BreakType.PAID.value, now=at(WORK_DAY, "11:00"))
    employee.active = False
    db.commit()

    summary = _sweep(db, at(WORK_DAY, "12:00"))

    assert summary.legacy_closed == 1
    db.expire_all()
    (paid_break,) = db.query(BreakLog).filter(BreakLog.attendance_log_id == open_day.log.id).all()
    assert ensure_utc(paid_break.end_time) == at(WORK_DAY, "11:00")
    assert paid_break.duration_minutes == 0
    log, _ = _reload(db, open_day.log.id)
    assert log.paid_break_minutes_taken == 0


def test_scheduler_run_once_uses_its_own_session(db, employee, open_day):
    db.commit()
    scheduler = AutoLogoutScheduler(clock=FixedClock(at(WORK_DAY, "19:35")), session_factory=TestingSessionLocal)
    summary = scheduler.run_once()
    assert summary is not None
    assert summary.closed == 1


def test_scheduler_start_and_shutdown():
    scheduler = AutoLogoutScheduler(interval_minutes=5, start_delay_seconds=3600)
    scheduler.start()
    try:
        assert scheduler.running is True
    finally:
        scheduler.shutdown()
    assert scheduler.running is False
