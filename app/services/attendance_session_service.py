"""
Attendance session service: clock in/out and breaks against the day's attendance log.

All timestamps are stored in UTC (server time); the attendance date is the business
timezone date. At most one open session per log is guaranteed by the partial unique
index on attendance_sessions; a lost clock-in race collapses to AlreadyClockedIn.
"""
import enum
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import (
    AUDIT_AUTO_BREAK_END,
    AUDIT_AUTO_BREAK_START,
    AUDIT_CLOCK_IN,
    AUDIT_CLOCK_OUT,
    DEFAULT_PAID_BREAK_ALLOWANCE_MINUTES,
    EXTRA_BREAK_ALLOWANCE_MINUTES,
    SHIFT_TOTAL_MINUTES,
    UNPAID_BREAK_ALLOWANCE_MINUTES,
)
from app.core.errors import (
    ActiveBreakBlocksClockOut,
    AlreadyClockedIn,
    AlreadyOnBreak,
    DataInconsistency,
    EmployeeNotFound,
    ExtraBreakNotApproved,
    NoActiveBreak,
    NoShiftAssigned,
    NotClockedIn,
    ValidationFailed,
)
from app.db.conflict import insert_or_ignore
from app.models.attendance import AttendanceLog, AttendanceStatus, LogoutType
from app.models.attendance_session import AttendanceSession
from app.models.break_log import BreakLog, BreakType
from app.models.employee import Employee
from app.models.shift import Shift, ShiftType
from app.services import notification_service
from app.services.audit_service import log_audit
from app.services.logout_calculator import expected_logout, shift_window
from app.services.setting_service import get_late_grace_minutes
from app.services.weekly_late_service import track_late
from app.services.worked_time import WorkedTime, summarize_worked_time
from app.utils.datetime_utils import ensure_utc, get_work_date, iso_business, minutes_between, now_utc

logger = logging.getLogger(__name__)

MANUAL_BREAK_TYPES = (BreakType.PAID, BreakType.UNPAID, BreakType.EXTRA)


class CreateOutcome(str, enum.Enum):
    CREATED = "CREATED"
    ALREADY_EXISTS = "ALREADY_EXISTS"


@dataclass(frozen=True)
class TryCreateResult:
    outcome: CreateOutcome
    session_id: Optional[int] = None

    @property
    def created(self) -> bool:
        return self.outcome == CreateOutcome.CREATED


@dataclass(frozen=True)
class Lateness:
    late_minutes: int
    is_late: bool
    is_half_day: bool
    attendance_status: str


@dataclass
class ClockInResult:
    log: AttendanceLog
    session: AttendanceSession
    weekly_late_warning: Optional[str]
    calculated_logout_time: Optional[datetime]


@dataclass
class ClockOutResult:
    log: AttendanceLog
    session: AttendanceSession
    worked: WorkedTime
    # True when another actor (the auto-logout sweeper) closed the session first
    already_closed: bool = False


@dataclass
class BreakResult:
    break_log: BreakLog
    log: AttendanceLog


# --- lookups ---

def get_active_employee(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None or not employee.active:
        raise EmployeeNotFound()
    return employee


def get_log(db: Session, employee_id: int, work_date: date) -> Optional[AttendanceLog]:
    return (
        db.query(AttendanceLog)
        .filter(AttendanceLog.employee_id == employee_id, AttendanceLog.attendance_date == work_date)
        .first()
    )


def get_open_session(db: Session, attendance_log_id: int) -> Optional[AttendanceSession]:
    """Most recent open session of a log."""
    return (
        db.query(AttendanceSession)
        .filter(AttendanceSession.attendance_log_id == attendance_log_id, AttendanceSession.end_time.is_(None))
        .order_by(AttendanceSession.start_time.desc())
        .first()
    )


def get_employee_open_session(db: Session, employee_id: int) -> Optional[AttendanceSession]:
    """Most recent open session across the employee's logs (covers sessions spanning midnight)."""
    return (
        db.query(AttendanceSession)
        .join(AttendanceLog, AttendanceSession.attendance_log_id == AttendanceLog.id)
        .filter(AttendanceLog.employee_id == employee_id, AttendanceSession.end_time.is_(None))
        .order_by(AttendanceSession.start_time.desc())
        .first()
    )


def get_active_break(db: Session, employee_id: int, auto: Optional[bool] = None) -> Optional[BreakLog]:
    query = db.query(BreakLog).filter(BreakLog.employee_id == employee_id, BreakLog.end_time.is_(None))
    if auto is not None:
        query = query.filter(BreakLog.is_auto_break.is_(auto))
    return query.order_by(BreakLog.start_time.desc()).first()


# --- log / session creation ---

def _shift_duration_minutes(shift: Optional[Shift]) -> int:
    if shift is not None and shift.duration_hours:
        return int(float(shift.duration_hours) * 60)
    return SHIFT_TOTAL_MINUTES


def get_or_create_log(db: Session, employee: Employee, work_date: date, now: datetime) -> AttendanceLog:
    """Return the employee's log for ``work_date``, creating an empty one if needed. Commits."""
    log = get_log(db, employee.id, work_date)
    if log:
        return log

    insert_or_ignore(
        db,
        AttendanceLog,
        {
            "employee_id": employee.id,
            "attendance_date": work_date,
            "shift_duration_minutes": _shift_duration_minutes(employee.shift),
            "created_at": now,
            "updated_at": now,
        },
        index_elements=[AttendanceLog.employee_id, AttendanceLog.attendance_date],
    )
    db.commit()
    return get_log(db, employee.id, work_date)


def try_create_session(db: Session, attendance_log_id: int, start_time: datetime) -> TryCreateResult:
    """
    Insert an open session unless the log already has one.

    The database decides: the partial unique index admits exactly one open session per log.
    """
    session_id = insert_or_ignore(
        db,
        AttendanceSession,
        {
            "attendance_log_id": attendance_log_id,
            "start_time": start_time,
            "created_at": start_time,
        },
        index_elements=[AttendanceSession.attendance_log_id],
        index_where=AttendanceSession.end_time.is_(None),
    )
    if session_id is None:
        return TryCreateResult(CreateOutcome.ALREADY_EXISTS)
    return TryCreateResult(CreateOutcome.CREATED, session_id)


# --- classification ---

def evaluate_lateness(shift: Shift, clock_in: datetime, grace_minutes: int) -> Lateness:
    """
    Lateness of a first clock-in against the shift start. Flexible shifts are never late.
    Beyond the grace period the day is both late and half-day.
    """
    if shift.shift_type != ShiftType.FIXED or not shift.start_time or not shift.end_time:
        return Lateness(0, False, False, AttendanceStatus.ON_TIME.value)

    shift_start, _ = shift_window(shift, clock_in)
    late_minutes = max(0, math.floor(minutes_between(shift_start, clock_in)))
    if late_minutes <= grace_minutes:
        return Lateness(late_minutes, False, False, AttendanceStatus.ON_TIME.value)
    return Lateness(late_minutes, True, True, AttendanceStatus.HALF_DAY.value)


def _has_half_day_leave(log: AttendanceLog) -> bool:
    return log.leave_request is not None and log.leave_request.is_half_day


def apply_half_day_classification(log: AttendanceLog, worked: WorkedTime, full_day_minutes: Optional[int] = None) -> None:
    """
    Re-derive is_half_day after the day's worked time changed. Lateness recorded at
    clock-in is kept; a short day adds the half-day signal without clearing is_late.
    """
    full_day_minutes = full_day_minutes or settings.HALF_DAY_MIN_WORK_MINUTES
    log.is_half_day = worked.net_minutes < full_day_minutes or bool(log.is_late) or _has_half_day_leave(log)
    if log.is_half_day:
        log.attendance_status = AttendanceStatus.HALF_DAY.value
    elif log.attendance_status == AttendanceStatus.HALF_DAY:
        log.attendance_status = AttendanceStatus.ON_TIME.value


def recompute_log_totals(db: Session, log: AttendanceLog) -> WorkedTime:
    """Aggregate worked/break minutes across all of the log's sessions and breaks."""
    worked = summarize_worked_time(list_day_sessions(db, log.id), list_day_breaks(db, log.id))
    log.total_working_hours = round(worked.net_hours, 4)
    return worked


# --- clock in / out ---

def clock_in(db: Session, employee_id: int, now: Optional[datetime] = None) -> ClockInResult:
    """
    Open a work session for today. A concurrent second clock-in for the same day
    observes the existing session and fails with AlreadyClockedIn.
    """
    now = ensure_utc(now) if now else now_utc()
    employee = get_active_employee(db, employee_id)
    shift = employee.shift
    if shift is None:
        raise NoShiftAssigned()

    work_date = get_work_date(now)
    log = get_or_create_log(db, employee, work_date, now)
    if get_open_session(db, log.id):
        raise AlreadyClockedIn()

    result = try_create_session(db, log.id, now)
    if not result.created:
        existing = get_open_session(db, log.id)
        db.rollback()
        if existing is None:
            logger.error(
                "Open-session conflict on attendance_log_id=%s (employee_id=%s) but no open session exists",
                log.id, employee_id,
            )
            raise DataInconsistency("Clock-in conflicted with a session that does not exist")
        logger.info("Concurrent clock-in resolved: employee_id=%s already has session %s", employee_id, existing.id)
        raise AlreadyClockedIn()

    first_clock_in = log.clock_in_time is None
    if first_clock_in:
        log.clock_in_time = now
        lateness = evaluate_lateness(shift, now, get_late_grace_minutes(db))
        log.late_minutes = lateness.late_minutes
        log.is_late = lateness.is_late
        log.is_half_day = lateness.is_half_day or _has_half_day_leave(log)
        log.attendance_status = (
            AttendanceStatus.HALF_DAY.value if log.is_half_day else lateness.attendance_status
        )
    # Re-clocking in after a clock-out reopens the day
    log.clock_out_time = None
    log.logout_type = None
    log.auto_logout_reason = None
    db.commit()

    session = db.query(AttendanceSession).filter(AttendanceSession.id == result.session_id).one()
    db.refresh(log)

    weekly_late_warning = None
    if first_clock_in and log.is_late:
        try:
            week = track_late(db, employee.id, work_date)
        except SQLAlchemyError:
            db.rollback()
            logger.warning("Weekly late tracking failed for employee_id=%s date=%s", employee.id, work_date, exc_info=True)
        else:
            if week.late_count >= settings.WEEKLY_LATE_WARNING_THRESHOLD:
                weekly_late_warning = (
                    f"You have been late {week.late_count} times this week "
                    f"(threshold {settings.WEEKLY_LATE_WARNING_THRESHOLD})."
                )

    log_audit(
        db=db,
        actor_id=employee.id,
        action=AUDIT_CLOCK_IN,
        entity_type="attendance_sessions",
        entity_id=session.id,
        meta={
            "attendance_date": work_date,
            "clock_in_time": now,
            "first_clock_in": first_clock_in,
            "late_minutes": log.late_minutes,
            "is_late": log.is_late,
        },
    )
    notification_service.notify(
        notification_service.EVENT_CHECKED_IN,
        employee.id,
        f"{employee.name} checked in at {iso_business(now)}",
        audience=notification_service.AUDIENCE_ADMIN,
        metadata={"attendance_date": work_date, "is_late": log.is_late},
    )

    sessions = list_day_sessions(db, log.id)
    return ClockInResult(
        log=log,
        session=session,
        weekly_late_warning=weekly_late_warning,
        calculated_logout_time=expected_logout(sessions, log, shift, None, now),
    )


def clock_out(db: Session, employee_id: int, now: Optional[datetime] = None) -> ClockOutResult:
    """
    Close the employee's most recent open session and recompute the day's totals.
    Any active break, manual or automatic, blocks clock-out.
    """
    now = ensure_utc(now) if now else now_utc()
    employee = get_active_employee(db, employee_id)

    session = get_employee_open_session(db, employee.id)
    if session is None:
        raise NotClockedIn()

    active_break = get_active_break(db, employee.id)
    if active_break is not None:
        if active_break.is_auto_break:
            raise ActiveBreakBlocksClockOut("You are on an automatic break. End it before clocking out.")
        raise ActiveBreakBlocksClockOut()

    closed = (
        db.query(AttendanceSession)
        .filter(AttendanceSession.id == session.id, AttendanceSession.end_time.is_(None))
        .update(
            {AttendanceSession.end_time: now, AttendanceSession.logout_type: LogoutType.MANUAL.value},
            synchronize_session=False,
        )
    )
    log = session.attendance_log
    if closed == 0:
        # Lost the race against the auto-logout sweeper: the session is already closed
        db.rollback()
        db.refresh(session)
        db.refresh(log)
        logger.info("Clock-out for employee_id=%s found session %s already closed", employee.id, session.id)
        # Read-only: the winner already wrote the totals
        worked = summarize_worked_time(list_day_sessions(db, log.id), list_day_breaks(db, log.id))
        return ClockOutResult(log=log, session=session, worked=worked, already_closed=True)

    db.refresh(session)
    worked = recompute_log_totals(db, log)
    log.clock_out_time = now
    log.logout_type = LogoutType.MANUAL.value
    apply_half_day_classification(log, worked)
    db.commit()
    db.refresh(log)

    log_audit(
        db=db,
        actor_id=employee.id,
        action=AUDIT_CLOCK_OUT,
        entity_type="attendance_sessions",
        entity_id=session.id,
        meta={
            "attendance_date": log.attendance_date,
            "clock_out_time": now,
            "total_working_hours": log.total_working_hours,
            "is_half_day": log.is_half_day,
        },
    )
    notification_service.notify(
        notification_service.EVENT_CHECKED_OUT,
        employee.id,
        f"{employee.name} checked out at {iso_business(now)}",
        audience=notification_service.AUDIENCE_ADMIN,
        metadata={"attendance_date": log.attendance_date, "total_working_hours": log.total_working_hours},
    )
    return ClockOutResult(log=log, session=session, worked=worked)


# --- breaks ---

def _require_open_session(db: Session, employee_id: int) -> AttendanceSession:
    session = get_employee_open_session(db, employee_id)
    if session is None:
        raise NotClockedIn("You must be clocked in to take a break.")
    return session


def start_break(
    db: Session,
    employee_id: int,
    break_type: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BreakResult:
    """Start a Paid, Unpaid or Extra break. Extra breaks consume one approved allowance."""
    now = ensure_utc(now) if now else now_utc()
    if break_type not in [t.value for t in MANUAL_BREAK_TYPES]:
        raise ValidationFailed(f"Invalid break type '{break_type}'. Use Paid, Unpaid or Extra.")

    employee = get_active_employee(db, employee_id)
    session = _require_open_session(db, employee.id)
    if get_active_break(db, employee.id) is not None:
        raise AlreadyOnBreak()

    log = session.attendance_log
    if break_type == BreakType.EXTRA:
        consumed = (
            db.query(AttendanceLog)
            .filter(AttendanceLog.id == log.id, AttendanceLog.extra_breaks_approved > 0)
            .update(
                {AttendanceLog.extra_breaks_approved: AttendanceLog.extra_breaks_approved - 1},
                synchronize_session=False,
            )
        )
        if consumed == 0:
            db.rollback()
            raise ExtraBreakNotApproved()

    break_log = BreakLog(
        employee_id=employee.id,
        attendance_log_id=log.id,
        break_type=break_type,
        start_time=now,
        reason=reason,
        is_auto_break=False,
    )
    db.add(break_log)
    db.commit()
    db.refresh(break_log)
    db.refresh(log)
    logger.debug("Break started: employee_id=%s type=%s break_id=%s", employee.id, break_type, break_log.id)
    return BreakResult(break_log=break_log, log=log)


def _close_break(db: Session, break_log: BreakLog, now: datetime) -> int:
    """Conditionally close an active break; returns its rounded duration in minutes."""
    duration = max(0, round(minutes_between(break_log.start_time, now)))
    closed = (
        db.query(BreakLog)
        .filter(BreakLog.id == break_log.id, BreakLog.end_time.is_(None))
        .update(
            {BreakLog.end_time: now, BreakLog.duration_minutes: duration},
            synchronize_session=False,
        )
    )
    if closed == 0:
        db.rollback()
        raise NoActiveBreak()
    return duration


def _apply_break_accounting(log: AttendanceLog, break_type: str, duration: int, paid_allowance: int) -> None:
    if break_type == BreakType.PAID:
        remaining = max(0, paid_allowance - (log.paid_break_minutes_taken or 0))
        log.penalty_minutes = (log.penalty_minutes or 0) + max(0, duration - remaining)
        log.paid_break_minutes_taken = (log.paid_break_minutes_taken or 0) + duration
        return

    log.unpaid_break_minutes_taken = (log.unpaid_break_minutes_taken or 0) + duration
    if break_type == BreakType.UNPAID:
        log.penalty_minutes = (log.penalty_minutes or 0) + max(0, duration - UNPAID_BREAK_ALLOWANCE_MINUTES)
    elif break_type == BreakType.EXTRA:
        log.penalty_minutes = (log.penalty_minutes or 0) + max(0, duration - EXTRA_BREAK_ALLOWANCE_MINUTES)


def paid_break_allowance(employee: Optional[Employee]) -> int:
    shift = employee.shift if employee is not None else None
    if shift is not None and shift.paid_break_minutes:
        return shift.paid_break_minutes
    return DEFAULT_PAID_BREAK_ALLOWANCE_MINUTES


def close_open_breaks(
    db: Session,
    log: AttendanceLog,
    end_time: Optional[datetime],
    paid_allowance: int,
) -> List[int]:
    """
    Close every break still open on ``log`` and charge it to the log, without committing.
    ``end_time`` None ends each break at its own start. A break never ends before it began.
    Returns the ids of the breaks this call closed.
    """
    open_breaks = (
        db.query(BreakLog)
        .filter(BreakLog.attendance_log_id == log.id, BreakLog.end_time.is_(None))
        .order_by(BreakLog.start_time)
        .all()
    )
    closed_ids = []
    for break_log in open_breaks:
        start = ensure_utc(break_log.start_time)
        end = start if end_time is None else max(start, ensure_utc(end_time))
        duration = max(0, round(minutes_between(start, end)))
        closed = (
            db.query(BreakLog)
            .filter(BreakLog.id == break_log.id, BreakLog.end_time.is_(None))
            .update({BreakLog.end_time: end, BreakLog.duration_minutes: duration}, synchronize_session=False)
        )
        if closed == 0:
            continue
        db.refresh(break_log)
        _apply_break_accounting(log, break_log.break_type, duration, paid_allowance)
        closed_ids.append(break_log.id)
    return closed_ids


def end_break(db: Session, employee_id: int, now: Optional[datetime] = None) -> BreakResult:
    """End the employee's active manual break. Two concurrent calls close it once."""
    now = ensure_utc(now) if now else now_utc()
    employee = get_active_employee(db, employee_id)
    break_log = get_active_break(db, employee.id, auto=False)
    if break_log is None:
        raise NoActiveBreak()

    duration = _close_break(db, break_log, now)
    log = break_log.attendance_log
    _apply_break_accounting(log, break_log.break_type, duration, paid_break_allowance(employee))
    db.commit()
    db.refresh(break_log)
    db.refresh(log)
    logger.debug("Break ended: employee_id=%s break_id=%s duration=%s", employee.id, break_log.id, duration)
    return BreakResult(break_log=break_log, log=log)


def start_auto_break(
    db: Session,
    employee_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BreakResult:
    """Start an automatic unpaid break (e.g. idle detection on the client)."""
    now = ensure_utc(now) if now else now_utc()
    employee = get_active_employee(db, employee_id)
    session = _require_open_session(db, employee.id)
    if get_active_break(db, employee.id) is not None:
        raise AlreadyOnBreak()

    log = session.attendance_log
    break_log = BreakLog(
        employee_id=employee.id,
        attendance_log_id=log.id,
        break_type=BreakType.AUTO_UNPAID.value,
        start_time=now,
        reason=reason or "Inactivity detected",
        is_auto_break=True,
    )
    db.add(break_log)
    db.commit()
    db.refresh(break_log)

    log_audit(
        db=db,
        actor_id=employee.id,
        action=AUDIT_AUTO_BREAK_START,
        entity_type="break_logs",
        entity_id=break_log.id,
        meta={"start_time": now, "reason": break_log.reason},
    )
    notification_service.notify(
        notification_service.EVENT_AUTO_BREAK_START,
        employee.id,
        f"{employee.name} was placed on an automatic break",
        audience=notification_service.AUDIENCE_ADMIN,
        metadata={"break_id": break_log.id, "reason": break_log.reason},
    )
    return BreakResult(break_log=break_log, log=log)


def end_auto_break(db: Session, employee_id: int, now: Optional[datetime] = None) -> BreakResult:
    """End the employee's active automatic break, found by employee rather than by log."""
    now = ensure_utc(now) if now else now_utc()
    employee = get_active_employee(db, employee_id)
    break_log = get_active_break(db, employee.id, auto=True)
    if break_log is None:
        raise NoActiveBreak("No active automatic break to end.")

    duration = _close_break(db, break_log, now)
    log = break_log.attendance_log
    _apply_break_accounting(log, break_log.break_type, duration, DEFAULT_PAID_BREAK_ALLOWANCE_MINUTES)
    db.commit()
    db.refresh(break_log)
    db.refresh(log)

    log_audit(
        db=db,
        actor_id=employee.id,
        action=AUDIT_AUTO_BREAK_END,
        entity_type="break_logs",
        entity_id=break_log.id,
        meta={"end_time": now, "duration_minutes": duration},
    )
    notification_service.notify(
        notification_service.EVENT_AUTO_BREAK_END,
        employee.id,
        f"{employee.name} returned from an automatic break ({duration} min)",
        audience=notification_service.AUDIENCE_ADMIN,
        metadata={"break_id": break_log.id, "duration_minutes": duration},
    )
    return BreakResult(break_log=break_log, log=log)


def list_day_sessions(db: Session, attendance_log_id: int) -> List[AttendanceSession]:
    return (
        db.query(AttendanceSession)
        .filter(AttendanceSession.attendance_log_id == attendance_log_id)
        .order_by(AttendanceSession.start_time)
        .all()
    )


def list_day_breaks(db: Session, attendance_log_id: int) -> List[BreakLog]:
    return (
        db.query(BreakLog)
        .filter(BreakLog.attendance_log_id == attendance_log_id)
        .order_by(BreakLog.start_time)
        .all()
    )
