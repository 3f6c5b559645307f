"""
Holiday calendar model
"""
from sqlalchemy import Column, Integer, Date, DateTime, String, Boolean
from sqlalchemy.sql import func
from app.db.base import Base


class Holiday(Base):
    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_tentative = Column(Boolean, default=False, nullable=False)  # tentative holidays never affect status
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
