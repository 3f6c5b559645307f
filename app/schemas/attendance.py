"""
Attendance schemas: clock-in/out, breaks, daily status and weekly late stats.
All datetimes are emitted in the business timezone with an explicit offset.
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from app.models.break_log import BreakType
from app.utils.datetime_utils import iso_business


def _serialize_dt(dt: Optional[datetime]) -> Optional[str]:
    return iso_business(dt)


MANUAL_BREAK_TYPE_VALUES = [BreakType.PAID.value, BreakType.UNPAID.value, BreakType.EXTRA.value]


class BreakStartRequest(BaseModel):
    """Start a manual break"""
    break_type: str = Field(..., description="Paid | Unpaid | Extra")
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("break_type")
    @classmethod
    def check_break_type(cls, v: str) -> str:
        if v not in MANUAL_BREAK_TYPE_VALUES:
            raise ValueError(f"break_type must be one of {MANUAL_BREAK_TYPE_VALUES}")
        return v


class AutoBreakStartRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class SessionOut(BaseModel):
    id: int
    attendance_log_id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    logout_type: Optional[str] = None
    auto_logout_reason: Optional[str] = None
    is_legacy_session: bool = False

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("start_time", "end_time", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class BreakOut(BaseModel):
    id: int
    attendance_log_id: int
    break_type: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    reason: Optional[str] = None
    is_auto_break: bool = False

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("start_time", "end_time", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class AttendanceLogOut(BaseModel):
    """Day analytics for one employee"""
    id: int
    employee_id: int
    attendance_date: date
    clock_in_time: Optional[datetime] = None
    clock_out_time: Optional[datetime] = None
    shift_duration_minutes: int
    paid_break_minutes_taken: int
    unpaid_break_minutes_taken: int
    penalty_minutes: int
    total_working_hours: float
    is_late: bool
    is_half_day: bool
    late_minutes: int
    attendance_status: str
    logout_type: Optional[str] = None
    auto_logout_reason: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("clock_in_time", "clock_out_time", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class ClockInResponse(BaseModel):
    session: SessionOut
    log: AttendanceLogOut
    weekly_late_warning: Optional[str] = None
    calculated_logout_time: Optional[datetime] = None

    @field_serializer("calculated_logout_time", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class ClockOutResponse(BaseModel):
    session: SessionOut
    log: AttendanceLogOut
    worked_minutes: int
    break_minutes: int
    already_closed: bool = False


class BreakResponse(BaseModel):
    break_log: BreakOut
    log: AttendanceLogOut


class DailyStatusOut(BaseModel):
    employee_id: int
    date: date
    status: str
    shift_name: Optional[str] = None
    log: Optional[AttendanceLogOut] = None
    sessions: List[SessionOut] = []
    breaks: List[BreakOut] = []
    active_break: Optional[BreakOut] = None
    active_auto_break: Optional[BreakOut] = None
    calculated_logout_time: Optional[datetime] = None

    @field_serializer("calculated_logout_time", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class WeeklyLateOut(BaseModel):
    week_start_date: date
    week_end_date: date
    late_count: int
    late_dates: List[str]
    threshold: int
    remaining: int
    warning: bool
