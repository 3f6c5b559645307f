"""
Keep attendance logs in step with leave approvals.

The leave workflow itself lives in another service; it calls these two functions after a
leave is approved or after an approved leave is rejected or cancelled. Attendance logs are
the single source of the day's stored status, so a leave day gets a placeholder log and a
reverted leave removes it again.
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from app.core.constants import SHIFT_TOTAL_MINUTES
from app.models.attendance import AttendanceLog, AttendanceStatus
from app.models.employee import Employee
from app.models.leave import LeaveRequest
from app.services.attendance_session_service import evaluate_lateness, get_log
from app.services.setting_service import get_late_grace_minutes
from app.utils.datetime_utils import ensure_utc, iso_business

logger = logging.getLogger(__name__)


def _append_note(log: AttendanceLog, note: str) -> None:
    log.notes = f"{log.notes}; {note}" if log.notes else note


def _reset_derived_flags(log: AttendanceLog) -> None:
    log.is_late = False
    log.is_half_day = False
    log.late_minutes = 0


def sync_attendance_on_leave_approval(db: Session, leave: LeaveRequest) -> List[int]:
    """
    Mark every date of an approved leave on the attendance ledger. Returns the ids of the
    logs created or updated.

    Dates already worked keep their punches: a half-day leave turns them into a Half-day,
    a full-day leave marks them Leave and records the worked time in the notes.
    """
    employee = db.query(Employee).filter(Employee.id == leave.employee_id).first()
    if employee is None:
        raise ValueError(f"Employee {leave.employee_id} not found for attendance sync")

    shift = employee.shift
    duration_minutes = (
        int(float(shift.duration_hours) * 60) if shift is not None and shift.duration_hours else SHIFT_TOTAL_MINUTES
    )

    touched = []
    for day in leave.dates():
        log = get_log(db, employee.id, day)
        if log is None:
            log = AttendanceLog(
                employee_id=employee.id,
                attendance_date=day,
                shift_duration_minutes=duration_minutes,
                attendance_status=AttendanceStatus.LEAVE.value,
                leave_request_id=leave.id,
                total_working_hours=0.0,
            )
            db.add(log)
            db.flush()
            logger.info("Leave placeholder created: employee_id=%s date=%s leave_id=%s", employee.id, day, leave.id)
        elif log.clock_in_time is not None:
            clock_out = ensure_utc(log.clock_out_time)
            _append_note(
                log,
                f"[LEAVE-APPROVED] Attendance preserved. Worked: {log.total_working_hours or 0}h. "
                f"Clock-In: {iso_business(ensure_utc(log.clock_in_time))} - "
                f"Clock-Out: {iso_business(clock_out) if clock_out else 'Active'}. Leave: {leave.day_kind}",
            )
            if leave.is_half_day:
                log.attendance_status = AttendanceStatus.HALF_DAY.value
                log.is_half_day = True
            else:
                log.attendance_status = AttendanceStatus.LEAVE.value
            log.leave_request_id = leave.id
            logger.info("Leave applied over worked day: employee_id=%s date=%s leave_id=%s", employee.id, day, leave.id)
        else:
            log.attendance_status = AttendanceStatus.LEAVE.value
            log.leave_request_id = leave.id
            _reset_derived_flags(log)
        touched.append(log.id)

    db.commit()
    return touched


def sync_attendance_on_leave_revert(db: Session, leave: LeaveRequest) -> List[int]:
    """
    Undo ``sync_attendance_on_leave_approval`` for a leave that was rejected or cancelled.
    Placeholders created only for this leave are deleted; logs with punches are unlinked
    and their lateness re-evaluated from the recorded clock-in. Returns the affected log ids.
    """
    employee = db.query(Employee).filter(Employee.id == leave.employee_id).first()
    if employee is None:
        raise ValueError(f"Employee {leave.employee_id} not found for attendance sync")

    grace = get_late_grace_minutes(db)
    touched = []
    for day in leave.dates():
        log = get_log(db, employee.id, day)
        if log is None:
            continue

        if log.clock_in_time is None:
            if log.leave_request_id == leave.id and log.clock_out_time is None and not log.notes:
                db.delete(log)
                logger.info("Leave placeholder removed: employee_id=%s date=%s leave_id=%s", employee.id, day, leave.id)
                touched.append(log.id)
                continue
            log.attendance_status = AttendanceStatus.ABSENT.value
            _reset_derived_flags(log)
        elif employee.shift is not None:
            lateness = evaluate_lateness(employee.shift, ensure_utc(log.clock_in_time), grace)
            log.late_minutes = lateness.late_minutes
            log.is_late = lateness.is_late
            log.is_half_day = lateness.is_half_day
            log.attendance_status = lateness.attendance_status
        else:
            log.attendance_status = AttendanceStatus.ON_TIME.value
            _reset_derived_flags(log)

        log.leave_request_id = None
        touched.append(log.id)

    db.commit()
    return touched
