"""
Expected logout calculation.

Every shift is worked as a fixed 9-hour window measured from the first clock-in of
the day. Paid-break savings pull the expected logout earlier, paid-break overruns and
unpaid/extra breaks push it later. Shifts using the EARLY_LOGIN_OFFSET profile let
minutes worked before the shift start absorb break overruns, and never expect a
logout before the shift end.

The result is advisory: it drives progress display and the auto-logout threshold,
never whether a clock-out is allowed.
"""
import math
from datetime import datetime, timedelta
from typing import Optional, Sequence, Tuple

from app.core.constants import DEFAULT_PAID_BREAK_ALLOWANCE_MINUTES, SHIFT_TOTAL_MINUTES
from app.models.attendance import AttendanceLog
from app.models.attendance_session import AttendanceSession
from app.models.break_log import BreakLog, EXTENDING_BREAK_TYPES
from app.models.shift import Shift, ShiftProfile, ShiftType
from app.utils.datetime_utils import ensure_utc, now_utc, shift_time_on


def _floor_minutes(start: datetime, end: datetime) -> int:
    return math.floor((end - start).total_seconds() / 60)


def running_extending_break_minutes(active_break: Optional[BreakLog], now: datetime) -> int:
    """Whole minutes elapsed on an active Unpaid/Extra break (0 for anything else)."""
    if active_break is None or active_break.end_time is not None:
        return 0
    if active_break.break_type not in EXTENDING_BREAK_TYPES:
        return 0
    return max(0, _floor_minutes(ensure_utc(active_break.start_time), now))


def _nine_hour_rule(clock_in: datetime, paid_taken: int, allowance: int) -> datetime:
    if paid_taken <= 0:
        # No paid break yet: assume it will still be used
        return clock_in + timedelta(minutes=SHIFT_TOTAL_MINUTES)
    saved = allowance - paid_taken  # negative when the allowance was exceeded
    return clock_in + timedelta(minutes=SHIFT_TOTAL_MINUTES - saved)


def shift_window(shift: Shift, day) -> Tuple[datetime, datetime]:
    """
    UTC start and end of a Fixed shift on the business date of ``day``.
    An end time before the start time means the shift ends the next day.
    """
    shift_start = shift_time_on(day, shift.start_time)
    shift_end = shift_time_on(day, shift.end_time)
    if shift_end < shift_start:
        shift_end += timedelta(days=1)
    return shift_start, shift_end


def _early_login_offset(
    clock_in: datetime, shift: Shift, paid_taken: int, unpaid_total: int, allowance: int
) -> datetime:
    shift_start, shift_end = shift_window(shift, clock_in)

    if clock_in < shift_start:
        early_login = max(0, _floor_minutes(clock_in, shift_start))
        extra_paid = max(paid_taken - DEFAULT_PAID_BREAK_ALLOWANCE_MINUTES, 0)
        adjustment = max(extra_paid + unpaid_total - early_login, 0)
        return shift_end + timedelta(minutes=adjustment)

    base = max(_nine_hour_rule(clock_in, paid_taken, allowance), shift_end)
    return base + timedelta(minutes=unpaid_total)


def expected_logout(
    sessions: Sequence[AttendanceSession],
    log: Optional[AttendanceLog],
    shift: Optional[Shift],
    active_break: Optional[BreakLog] = None,
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    Expected completion instant for the day, or None when it cannot be computed
    (no session yet, no shift, or an incomplete shift definition).

    Pure: reads the snapshots it is given and touches no storage.
    """
    if not sessions or shift is None or log is None:
        return None

    now = ensure_utc(now) if now else now_utc()
    clock_in = min(ensure_utc(s.start_time) for s in sessions)

    allowance = shift.paid_break_minutes or DEFAULT_PAID_BREAK_ALLOWANCE_MINUTES
    paid_taken = log.paid_break_minutes_taken or 0
    unpaid_total = (log.unpaid_break_minutes_taken or 0) + running_extending_break_minutes(active_break, now)

    if shift.shift_type == ShiftType.FIXED:
        if not shift.start_time or not shift.end_time:
            return None
        if shift.profile == ShiftProfile.EARLY_LOGIN_OFFSET:
            return _early_login_offset(clock_in, shift, paid_taken, unpaid_total, allowance)
    elif shift.shift_type == ShiftType.FLEXIBLE:
        if not shift.duration_hours:
            return None
    else:
        return None

    return _nine_hour_rule(clock_in, paid_taken, allowance) + timedelta(minutes=unpaid_total)
