"""
Daily status view: one employee's attendance state for one date, including the
expected logout time. The auto-logout sweeper reads expected logout through here so
both paths share one calculation.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.attendance import AttendanceLog
from app.models.attendance_session import AttendanceSession
from app.models.break_log import BreakLog
from app.models.employee import Employee
from app.models.shift import Shift
from app.services.attendance_session_service import (
    get_active_break,
    get_log,
    list_day_breaks,
    list_day_sessions,
)
from app.services.logout_calculator import expected_logout
from app.utils.datetime_utils import ensure_utc, now_utc

STATUS_NOT_CLOCKED_IN = "Not Clocked In"
STATUS_CLOCKED_IN = "Clocked In"
STATUS_ON_BREAK = "On Break"
STATUS_ON_AUTO_BREAK = "On Auto-Break"
STATUS_CLOCKED_OUT = "Clocked Out"


@dataclass
class DailyStatus:
    employee_id: int
    date: date
    status: str
    shift: Optional[Shift] = None
    log: Optional[AttendanceLog] = None
    sessions: List[AttendanceSession] = field(default_factory=list)
    breaks: List[BreakLog] = field(default_factory=list)
    active_break: Optional[BreakLog] = None
    active_auto_break: Optional[BreakLog] = None
    calculated_logout_time: Optional[datetime] = None

    @property
    def has_log(self) -> bool:
        return self.log is not None


def _active_break_on_log(db: Session, employee_id: int, log: AttendanceLog, auto: bool) -> Optional[BreakLog]:
    active = get_active_break(db, employee_id, auto=auto)
    if active is not None and active.attendance_log_id == log.id:
        return active
    return None


def get_daily_status(
    db: Session,
    employee: Employee,
    day: date,
    now: Optional[datetime] = None,
) -> DailyStatus:
    """
    Build the day view. Without a log nothing is derived: no lateness, no expected logout.
    """
    now = ensure_utc(now) if now else now_utc()
    shift = employee.shift
    log = get_log(db, employee.id, day)
    if log is None:
        return DailyStatus(employee_id=employee.id, date=day, status=STATUS_NOT_CLOCKED_IN, shift=shift)

    sessions = list_day_sessions(db, log.id)
    breaks = list_day_breaks(db, log.id)
    active_break = _active_break_on_log(db, employee.id, log, auto=False)
    active_auto_break = _active_break_on_log(db, employee.id, log, auto=True)
    has_open_session = any(s.end_time is None for s in sessions)

    if active_auto_break is not None:
        status = STATUS_ON_AUTO_BREAK
    elif active_break is not None:
        status = STATUS_ON_BREAK
    elif has_open_session:
        status = STATUS_CLOCKED_IN
    elif sessions:
        status = STATUS_CLOCKED_OUT
    else:
        status = STATUS_NOT_CLOCKED_IN

    return DailyStatus(
        employee_id=employee.id,
        date=day,
        status=status,
        shift=shift,
        log=log,
        sessions=sessions,
        breaks=breaks,
        active_break=active_break,
        active_auto_break=active_auto_break,
        calculated_logout_time=expected_logout(sessions, log, shift, active_break, now),
    )
