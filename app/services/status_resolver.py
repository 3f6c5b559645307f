"""
Day status resolution.

One authoritative status per (employee, date), first match wins:
1. Holiday (non-tentative)            -> "Holiday - <name>"
2. Approved leave covering the date   -> "Comp Off" | "Swap Leave" | "Leave - <type> (<day kind>)"
3. Sunday                             -> "Weekend"; Saturday off by policy -> "Week Off"
4. Punch data                         -> "Present" | "Half Day" | "Late"
5. Past date with nothing above       -> "Absent"
6. Otherwise                          -> "N/A"

``resolve_day_status`` is pure. ``get_day_status`` fetches inputs for one date;
``get_day_statuses`` prefetches a whole range once and applies the same rules.
"""
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.core.errors import ValidationFailed
from app.models.attendance import AttendanceLog, AttendanceStatus
from app.models.employee import Employee, SaturdayPolicy
from app.models.holiday import Holiday
from app.models.leave import LeaveRequest, LeaveRequestType, LeaveStatus
from app.services.worked_time import summarize_worked_time
from app.utils.datetime_utils import get_work_date

STATUS_WEEKEND = "Weekend"
STATUS_WEEK_OFF = "Week Off"
STATUS_PRESENT = "Present"
STATUS_HALF_DAY = "Half Day"
STATUS_LATE = "Late"
STATUS_ABSENT = "Absent"
STATUS_NOT_APPLICABLE = "N/A"
STATUS_COMP_OFF = "Comp Off"
STATUS_SWAP_LEAVE = "Swap Leave"

MAX_RANGE_DAYS = 366


@dataclass(frozen=True)
class DayStatus:
    date: date
    status: str
    leave: Optional[LeaveRequest] = None
    holiday: Optional[Holiday] = None
    is_on_leave: bool = False


def is_working_saturday(day: date, saturday_policy: Optional[str]) -> bool:
    """Week of month is ceil(day / 7); non-Saturdays always count as working."""
    if day.weekday() != 5:
        return True
    week_num = math.ceil(day.day / 7)
    if saturday_policy == SaturdayPolicy.ALL_OFF:
        return False
    if saturday_policy == SaturdayPolicy.WEEKS_1_3_OFF:
        return week_num not in (1, 3)
    if saturday_policy == SaturdayPolicy.WEEKS_2_4_OFF:
        return week_num not in (2, 4)
    return True


def leave_status_label(leave: LeaveRequest) -> str:
    if leave.request_type == LeaveRequestType.COMPENSATORY:
        return STATUS_COMP_OFF
    if leave.request_type == LeaveRequestType.SWAP:
        return STATUS_SWAP_LEAVE
    return f"Leave - {leave.request_type} ({leave.day_kind or 'Full Day'})"


def _presence_status(log: AttendanceLog, full_day_minutes: int) -> Optional[str]:
    sessions = list(log.sessions or [])
    if not sessions and log.clock_in_time is None:
        return None

    completed = log.clock_out_time is not None or (sessions and all(s.end_time for s in sessions))
    if completed and sessions:
        # Worked time always wins for a finished day, whatever status was stored earlier
        worked = summarize_worked_time(sessions, log.breaks or []).net_minutes
        if 0 < worked < full_day_minutes:
            return STATUS_HALF_DAY
        if worked >= full_day_minutes:
            return STATUS_PRESENT

    if log.attendance_status == AttendanceStatus.HALF_DAY or log.is_half_day:
        return STATUS_HALF_DAY
    if log.attendance_status == AttendanceStatus.LATE:
        return STATUS_LATE
    return STATUS_PRESENT


def resolve_day_status(
    day: date,
    attendance_log: Optional[AttendanceLog],
    saturday_policy: Optional[str],
    holidays: Iterable[Holiday],
    leaves: Iterable[LeaveRequest],
    today: date,
    full_day_minutes: Optional[int] = None,
) -> DayStatus:
    """Apply the priority chain to already-fetched inputs."""
    full_day_minutes = full_day_minutes or settings.HALF_DAY_MIN_WORK_MINUTES

    holiday = next((h for h in holidays if h.date == day and not h.is_tentative), None)
    if holiday:
        return DayStatus(day, f"Holiday - {holiday.name}", holiday=holiday)

    leave = next(
        (l for l in leaves if l.status == LeaveStatus.APPROVED and l.covers(day)),
        None,
    )
    if leave:
        return DayStatus(day, leave_status_label(leave), leave=leave, is_on_leave=True)

    if day.weekday() == 6:
        return DayStatus(day, STATUS_WEEKEND)
    if not is_working_saturday(day, saturday_policy):
        return DayStatus(day, STATUS_WEEK_OFF)

    if attendance_log is not None:
        presence = _presence_status(attendance_log, full_day_minutes)
        if presence:
            return DayStatus(day, presence)

    if day < today:
        return DayStatus(day, STATUS_ABSENT)
    return DayStatus(day, STATUS_NOT_APPLICABLE)


def _fetch_holidays(db: Session, start: date, end: date) -> List[Holiday]:
    return (
        db.query(Holiday)
        .filter(Holiday.date >= start, Holiday.date <= end, Holiday.is_tentative.is_(False))
        .order_by(Holiday.id)
        .all()
    )


def _fetch_approved_leaves(db: Session, employee_id: int, start: date, end: date) -> List[LeaveRequest]:
    # Range overlap only; sparse leaves are matched per date by LeaveRequest.covers
    return (
        db.query(LeaveRequest)
        .filter(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status == LeaveStatus.APPROVED.value,
            LeaveRequest.from_date <= end,
            LeaveRequest.to_date >= start,
        )
        .order_by(LeaveRequest.id)
        .all()
    )


def _logs_query(db: Session, employee_id: int):
    return db.query(AttendanceLog).options(
        selectinload(AttendanceLog.sessions),
        selectinload(AttendanceLog.breaks),
    ).filter(AttendanceLog.employee_id == employee_id)


def get_day_status(db: Session, employee: Employee, day: date, today: Optional[date] = None) -> DayStatus:
    """Resolve a single date, fetching its holiday, leave and attendance inputs."""
    today = today or get_work_date()
    log = _logs_query(db, employee.id).filter(AttendanceLog.attendance_date == day).first()
    return resolve_day_status(
        day,
        log,
        employee.saturday_policy,
        _fetch_holidays(db, day, day),
        _fetch_approved_leaves(db, employee.id, day, day),
        today,
    )


def get_day_statuses(
    db: Session,
    employee: Employee,
    start: date,
    end: date,
    today: Optional[date] = None,
) -> List[DayStatus]:
    """
    Resolve every date in [start, end] for one employee. Holidays, leaves and logs are
    fetched once for the whole range and indexed by date.
    """
    if end < start:
        raise ValidationFailed("'from' must be on or before 'to'")
    if (end - start).days + 1 > MAX_RANGE_DAYS:
        raise ValidationFailed(f"Date range cannot exceed {MAX_RANGE_DAYS} days")

    today = today or get_work_date()
    holidays = _fetch_holidays(db, start, end)
    leaves = _fetch_approved_leaves(db, employee.id, start, end)
    logs = (
        _logs_query(db, employee.id)
        .filter(AttendanceLog.attendance_date >= start, AttendanceLog.attendance_date <= end)
        .all()
    )

    holidays_by_date: Dict[date, List[Holiday]] = {}
    for h in holidays:
        holidays_by_date.setdefault(h.date, []).append(h)
    leaves_by_date: Dict[date, List[LeaveRequest]] = {}
    for leave in leaves:
        for d in leave.dates():
            if start <= d <= end:
                leaves_by_date.setdefault(d, []).append(leave)
    logs_by_date: Dict[date, AttendanceLog] = {log.attendance_date: log for log in logs}

    results = []
    day = start
    while day <= end:
        results.append(
            resolve_day_status(
                day,
                logs_by_date.get(day),
                employee.saturday_policy,
                holidays_by_date.get(day, ()),
                leaves_by_date.get(day, ()),
                today,
            )
        )
        day += timedelta(days=1)
    return results
