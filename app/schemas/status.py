"""
Day status schemas
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel


class DayStatusOut(BaseModel):
    date: date
    status: str
    is_on_leave: bool = False
    leave_id: Optional[int] = None
    holiday_name: Optional[str] = None


class DayStatusRangeOut(BaseModel):
    employee_id: int
    from_date: date
    to_date: date
    items: List[DayStatusOut]
