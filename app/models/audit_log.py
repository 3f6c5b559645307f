"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from app.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, ForeignKey("employees.id"), nullable=True)  # null for system actions (sweeper)
    action = Column(String, nullable=False)  # e.g., "ATTENDANCE_CLOCK_IN", "AUTO_LOGOUT"
    entity_type = Column(String, nullable=False)  # e.g., "attendance_logs"
    entity_id = Column(Integer, nullable=True)  # ID of the affected entity
    meta_json = Column(JSON, nullable=True)  # Additional metadata as JSON
    created_at = Column(DateTime(timezone=True), nullable=False)
