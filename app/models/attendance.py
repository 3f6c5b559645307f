"""
Attendance log model: one row per employee per business-timezone calendar day.
"""
from sqlalchemy import (
    Column, Integer, Date, DateTime, ForeignKey, String, Text, Boolean, Float, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class LogoutType(str, enum.Enum):
    MANUAL = "MANUAL"
    AUTO = "AUTO"
    SYSTEM = "SYSTEM"


class AttendanceStatus(str, enum.Enum):
    ON_TIME = "On-time"
    LATE = "Late"
    HALF_DAY = "Half-day"
    LEAVE = "Leave"
    ABSENT = "Absent"


class AttendanceLog(Base):
    __tablename__ = "attendance_logs"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    attendance_date = Column(Date, nullable=False, index=True)  # business timezone date
    clock_in_time = Column(DateTime(timezone=True), nullable=True)  # null for leave placeholders
    clock_out_time = Column(DateTime(timezone=True), nullable=True)
    shift_duration_minutes = Column(Integer, nullable=False, default=540)

    paid_break_minutes_taken = Column(Integer, nullable=False, default=0)
    unpaid_break_minutes_taken = Column(Integer, nullable=False, default=0)
    penalty_minutes = Column(Integer, nullable=False, default=0)
    extra_breaks_approved = Column(Integer, nullable=False, default=0)  # granted externally, consumed per Extra break
    total_working_hours = Column(Float, nullable=False, default=0.0)

    is_late = Column(Boolean, nullable=False, default=False)
    is_half_day = Column(Boolean, nullable=False, default=False)
    late_minutes = Column(Integer, nullable=False, default=0)
    attendance_status = Column(String, nullable=False, default=AttendanceStatus.ON_TIME.value)
    notes = Column(Text, nullable=True)
    leave_request_id = Column(Integer, ForeignKey("leave_requests.id"), nullable=True, index=True)

    logout_type = Column(String, nullable=True)  # LogoutType
    auto_logout_reason = Column(String, nullable=True)
    is_legacy_session = Column(Boolean, nullable=False, default=False)

    # Sweeper lease
    lock_token = Column(String(36), nullable=True)
    lock_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint('employee_id', 'attendance_date', name='uq_employee_attendance_date'),
    )

    # Relationships
    employee = relationship("Employee", backref="attendance_logs")
    sessions = relationship(
        "AttendanceSession",
        back_populates="attendance_log",
        order_by="AttendanceSession.start_time",
    )
    breaks = relationship("BreakLog", back_populates="attendance_log", order_by="BreakLog.start_time")
    leave_request = relationship("LeaveRequest")

    @property
    def is_open(self) -> bool:
        return self.clock_in_time is not None and self.clock_out_time is None
