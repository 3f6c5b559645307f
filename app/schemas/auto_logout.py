"""
Auto-logout sweep schemas
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_serializer

from app.utils.datetime_utils import iso_business


class SweepSummaryOut(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_seconds: float
    skipped_reason: Optional[str] = None
    processed: int
    closed: int
    skipped: int
    legacy_closed: int
    repaired: int
    errors: int
    leases_released: int
    closed_log_ids: List[int] = []

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("started_at", "finished_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_business(dt)
