"""
Database models
"""
from app.models.shift import Shift, ShiftType, ShiftProfile
from app.models.employee import Employee, Role, SaturdayPolicy
from app.models.holiday import Holiday
from app.models.leave import LeaveRequest, LeaveStatus, LeaveRequestType, LeaveDayKind
from app.models.attendance import AttendanceLog, AttendanceStatus, LogoutType
from app.models.attendance_session import AttendanceSession
from app.models.break_log import BreakLog, BreakType
from app.models.weekly_late import WeeklyLateTracking
from app.models.setting import Setting
from app.models.audit_log import AuditLog

__all__ = [
    "Shift",
    "ShiftType",
    "ShiftProfile",
    "Employee",
    "Role",
    "SaturdayPolicy",
    "Holiday",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveRequestType",
    "LeaveDayKind",
    "AttendanceLog",
    "AttendanceStatus",
    "LogoutType",
    "AttendanceSession",
    "BreakLog",
    "BreakType",
    "WeeklyLateTracking",
    "Setting",
    "AuditLog",
]
