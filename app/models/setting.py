"""
Runtime setting model (key/value feature toggles read by the timekeeping services)
"""
from sqlalchemy import Column, Integer, DateTime, String, Text
from sqlalchemy.sql import func
from app.db.base import Base


class Setting(Base):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, nullable=False, unique=True, index=True)
    value = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)
