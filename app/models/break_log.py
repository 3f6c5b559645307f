"""
Break log model
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, String, Text, Boolean, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class BreakType(str, enum.Enum):
    PAID = "Paid"
    UNPAID = "Unpaid"
    EXTRA = "Extra"
    AUTO_UNPAID = "Auto-Unpaid"


# Break kinds whose running time extends the expected logout
EXTENDING_BREAK_TYPES = (BreakType.UNPAID, BreakType.EXTRA)


class BreakLog(Base):
    __tablename__ = "break_logs"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    attendance_log_id = Column(Integer, ForeignKey("attendance_logs.id"), nullable=False, index=True)
    break_type = Column(String, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)  # null = active
    duration_minutes = Column(Integer, nullable=True)  # set on close
    reason = Column(Text, nullable=True)
    is_auto_break = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        Index("ix_break_logs_employee_active", "employee_id", "end_time"),
    )

    attendance_log = relationship("AttendanceLog", back_populates="breaks")
