"""
Worked-time aggregation shared by clock-out, the auto-logout sweeper and the status resolver.
"""
from dataclasses import dataclass
from typing import Iterable

from app.models.attendance_session import AttendanceSession
from app.models.break_log import BreakLog
from app.utils.datetime_utils import minutes_between


@dataclass(frozen=True)
class WorkedTime:
    session_minutes: float
    break_minutes: float

    @property
    def net_minutes(self) -> float:
        return max(0.0, self.session_minutes - self.break_minutes)

    @property
    def net_hours(self) -> float:
        return self.net_minutes / 60


def summarize_worked_time(sessions: Iterable[AttendanceSession], breaks: Iterable[BreakLog]) -> WorkedTime:
    """Sum of closed session spans minus sum of closed break spans. Open spans count as zero."""
    session_minutes = sum(
        minutes_between(s.start_time, s.end_time) for s in sessions if s.start_time and s.end_time
    )
    break_minutes = sum(
        minutes_between(b.start_time, b.end_time) for b in breaks if b.start_time and b.end_time
    )
    return WorkedTime(session_minutes=session_minutes, break_minutes=break_minutes)
