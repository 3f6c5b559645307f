"""
Employee model
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class Role(str, enum.Enum):
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    HR = "HR"
    ADMIN = "ADMIN"


class SaturdayPolicy(str, enum.Enum):
    ALL_OFF = "All Saturdays Off"
    ALL_WORKING = "All Saturdays Working"
    WEEKS_1_3_OFF = "Week 1 & 3 Off"
    WEEKS_2_4_OFF = "Week 2 & 4 Off"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    emp_code = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    role = Column(String, nullable=False, default=Role.EMPLOYEE.value)
    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=True)
    saturday_policy = Column(String, nullable=False, default=SaturdayPolicy.ALL_WORKING.value)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    # Relationships
    shift = relationship("Shift")
