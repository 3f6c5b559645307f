"""
Attendance session model: one row per contiguous clocked-in span within an attendance log.
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, String, Boolean, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class AttendanceSession(Base):
    __tablename__ = "attendance_sessions"

    id = Column(Integer, primary_key=True, index=True)
    attendance_log_id = Column(Integer, ForeignKey("attendance_logs.id"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)  # null = open
    logout_type = Column(String, nullable=True)  # LogoutType
    auto_logout_reason = Column(String, nullable=True)
    is_legacy_session = Column(Boolean, nullable=False, default=False)

    # Sweeper lease
    lock_token = Column(String(36), nullable=True)
    lock_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    # At most one open session per attendance log, enforced by the database
    __table_args__ = (
        Index(
            "uq_active_session_per_log",
            "attendance_log_id",
            unique=True,
            sqlite_where=end_time.is_(None),
            postgresql_where=end_time.is_(None),
        ),
    )

    attendance_log = relationship("AttendanceLog", back_populates="sessions")

    @property
    def is_open(self) -> bool:
        return self.end_time is None
