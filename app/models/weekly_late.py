"""
Weekly late tracking model (one row per employee per Monday-Sunday week)
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, String, JSON, UniqueConstraint
from sqlalchemy.sql import func
from app.db.base import Base


class WeeklyLateTracking(Base):
    __tablename__ = "weekly_late_tracking"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    week_start_date = Column(Date, nullable=False)
    week_end_date = Column(Date, nullable=False)
    late_count = Column(Integer, nullable=False, default=0)
    late_dates = Column(JSON, nullable=False, default=list)  # ISO date strings, deduplicated
    # Owned by an external lock policy; never written here
    locked_at = Column(DateTime(timezone=True), nullable=True)
    lock_reason = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint('employee_id', 'week_start_date', name='uq_weekly_late_employee_week'),
    )
