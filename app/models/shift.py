"""
Shift policy model
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class ShiftType(str, enum.Enum):
    FIXED = "Fixed"
    FLEXIBLE = "Flexible"


class ShiftProfile(str, enum.Enum):
    STANDARD = "STANDARD"
    # Clock-ins before the shift start bank early-login minutes against break overruns,
    # and the expected logout never falls before the shift end.
    EARLY_LOGIN_OFFSET = "EARLY_LOGIN_OFFSET"


class Shift(Base):
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    shift_type = Column(String, nullable=False, default=ShiftType.FIXED.value)
    start_time = Column(String(5), nullable=True)  # "HH:MM" in business timezone; Fixed only
    end_time = Column(String(5), nullable=True)
    duration_hours = Column(Numeric(4, 2), nullable=False, default=9)
    paid_break_minutes = Column(Integer, nullable=False, default=30)
    profile = Column(String, nullable=False, default=ShiftProfile.STANDARD.value)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    @property
    def is_fixed(self) -> bool:
        return self.shift_type == ShiftType.FIXED
