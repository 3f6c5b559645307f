"""
Leave request model (read by the timekeeping core; the approval workflow lives elsewhere)
"""
from datetime import date, timedelta
from typing import List

from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, String, Text, CheckConstraint, JSON
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class LeaveStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class LeaveRequestType(str, enum.Enum):
    PLANNED = "Planned"
    SICK = "Sick"
    CASUAL = "Casual"
    UNPAID = "Unpaid"
    COMPENSATORY = "Compensatory"
    SWAP = "Swap Leave"
    BACKDATED = "Backdated Leave"


class LeaveDayKind(str, enum.Enum):
    FULL_DAY = "Full Day"
    FIRST_HALF = "Half Day - First Half"
    SECOND_HALF = "Half Day - Second Half"


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    request_type = Column(String, nullable=False)
    day_kind = Column(String, nullable=False, default=LeaveDayKind.FULL_DAY.value)
    # First and last covered date; used to narrow range queries
    from_date = Column(Date, nullable=False, index=True)
    to_date = Column(Date, nullable=False, index=True)
    # Explicit covered dates (ISO strings) for leaves that skip days; NULL means every date in the range
    leave_dates = Column(JSON, nullable=True)
    reason = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=LeaveStatus.PENDING.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        CheckConstraint("to_date >= from_date", name="ck_leave_date_range"),
    )

    employee = relationship("Employee")

    @validates("leave_dates")
    def _normalise_leave_dates(self, key, value):
        if value is None:
            return None
        return sorted({d.isoformat() if isinstance(d, date) else date.fromisoformat(d).isoformat() for d in value})

    @property
    def is_half_day(self) -> bool:
        return self.day_kind != LeaveDayKind.FULL_DAY

    def dates(self) -> List[date]:
        """Every calendar date the leave covers, in order."""
        if self.leave_dates is not None:
            return [date.fromisoformat(d) for d in self.leave_dates]
        days = (self.to_date - self.from_date).days
        return [self.from_date + timedelta(days=i) for i in range(days + 1)]

    def covers(self, day: date) -> bool:
        if self.leave_dates is not None:
            return day.isoformat() in self.leave_dates
        return self.from_date <= day <= self.to_date
