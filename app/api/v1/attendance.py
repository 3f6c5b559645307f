"""
Attendance endpoints: clock in/out, daily status, weekly late stats and day status.
Every endpoint acts on the authenticated employee's own records.
"""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db
from app.core.errors import ValidationFailed
from app.models.employee import Employee
from app.schemas.attendance import (
    AttendanceLogOut,
    BreakOut,
    ClockInResponse,
    ClockOutResponse,
    DailyStatusOut,
    SessionOut,
    WeeklyLateOut,
)
from app.schemas.status import DayStatusOut, DayStatusRangeOut
from app.services import attendance_session_service as svc
from app.services.daily_status_service import get_daily_status
from app.services.status_resolver import DayStatus, get_day_status, get_day_statuses
from app.services.weekly_late_service import get_weekly_late_stats
from app.utils.datetime_utils import get_work_date, parse_date

router = APIRouter()
_log = logging.getLogger(__name__)


def _parse_date_param(value: Optional[str], name: str = "date") -> date:
    """YYYY-MM-DD query parameter; defaults to today in the business timezone."""
    if not value:
        return get_work_date()
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationFailed(f"Invalid {name} format. Use YYYY-MM-DD")


def _day_status_out(result: DayStatus) -> DayStatusOut:
    return DayStatusOut(
        date=result.date,
        status=result.status,
        is_on_leave=result.is_on_leave,
        leave_id=result.leave.id if result.leave else None,
        holiday_name=result.holiday.name if result.holiday else None,
    )


@router.post("/clock-in", response_model=ClockInResponse, status_code=201)
async def clock_in_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Open a work session for today. A second clock-in while a session is open => 400.
    """
    result = svc.clock_in(db, current_user.id)
    _log.info("clock-in: employee_id=%s session_id=%s", current_user.id, result.session.id)
    return ClockInResponse(
        session=SessionOut.model_validate(result.session),
        log=AttendanceLogOut.model_validate(result.log),
        weekly_late_warning=result.weekly_late_warning,
        calculated_logout_time=result.calculated_logout_time,
    )


@router.post("/clock-out", response_model=ClockOutResponse)
async def clock_out_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Close the open session. Blocked while any break (manual or automatic) is active.
    """
    result = svc.clock_out(db, current_user.id)
    return ClockOutResponse(
        session=SessionOut.model_validate(result.session),
        log=AttendanceLogOut.model_validate(result.log),
        worked_minutes=round(result.worked.net_minutes),
        break_minutes=round(result.worked.break_minutes),
        already_closed=result.already_closed,
    )


@router.get("/status", response_model=DailyStatusOut)
async def daily_status_endpoint(
    date_str: Optional[str] = Query(None, alias="date", description="YYYY-MM-DD, default today"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Status for one day including sessions, breaks and the calculated logout time.
    """
    day = _parse_date_param(date_str)
    status = get_daily_status(db, current_user, day)
    return DailyStatusOut(
        employee_id=status.employee_id,
        date=status.date,
        status=status.status,
        shift_name=status.shift.name if status.shift else None,
        log=AttendanceLogOut.model_validate(status.log) if status.log else None,
        sessions=[SessionOut.model_validate(s) for s in status.sessions],
        breaks=[BreakOut.model_validate(b) for b in status.breaks],
        active_break=BreakOut.model_validate(status.active_break) if status.active_break else None,
        active_auto_break=BreakOut.model_validate(status.active_auto_break) if status.active_auto_break else None,
        calculated_logout_time=status.calculated_logout_time,
    )


@router.get("/weekly-late", response_model=WeeklyLateOut)
async def weekly_late_endpoint(
    date_str: Optional[str] = Query(None, alias="date", description="Any date in the week, default today"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    stats = get_weekly_late_stats(db, current_user.id, _parse_date_param(date_str))
    return WeeklyLateOut(
        week_start_date=stats.week_start_date,
        week_end_date=stats.week_end_date,
        late_count=stats.late_count,
        late_dates=stats.late_dates,
        threshold=stats.threshold,
        remaining=stats.remaining,
        warning=stats.warning,
    )


@router.get("/day-status", response_model=DayStatusOut)
async def day_status_endpoint(
    date_str: Optional[str] = Query(None, alias="date", description="YYYY-MM-DD, default today"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Authoritative status for one date (holiday > leave > weekend/week off > punches > absent).
    """
    return _day_status_out(get_day_status(db, current_user, _parse_date_param(date_str)))


@router.get("/day-status/range", response_model=DayStatusRangeOut)
async def day_status_range_endpoint(
    from_str: str = Query(..., alias="from", description="YYYY-MM-DD"),
    to_str: str = Query(..., alias="to", description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    start = _parse_date_param(from_str, "from")
    end = _parse_date_param(to_str, "to")
    results = get_day_statuses(db, current_user, start, end)
    return DayStatusRangeOut(
        employee_id=current_user.id,
        from_date=start,
        to_date=end,
        items=[_day_status_out(r) for r in results],
    )
